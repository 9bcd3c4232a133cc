"""Deal participant ORM model."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from jam3a.db.base import Base

if TYPE_CHECKING:
    from jam3a.db.models.deal import Deal


class DealParticipant(Base):
    """One user holding one capacity slot of a deal."""

    __tablename__ = "deal_participants"
    __table_args__ = (
        UniqueConstraint(
            "deal_id",
            "user_id",
            name="uq_deal_participants_deal_user",
        ),
    )

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    deal_id: Mapped[UUID] = mapped_column(
        ForeignKey("deals.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
    )
    product_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("products.id"),
        nullable=True,
    )
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    deal: Mapped[Deal] = relationship(back_populates="participants")
