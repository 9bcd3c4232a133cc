"""Deal (Jam3a) ORM model."""

from __future__ import annotations

import enum
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from jam3a.db.base import Base
from jam3a.db.models.category import Category

if TYPE_CHECKING:
    from jam3a.db.models.deal_participant import DealParticipant


class DealStatus(enum.StrEnum):
    """Deal lifecycle states."""

    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class Deal(Base):
    """Group-buying offer unlocking the jam3a price once enough people join."""

    __tablename__ = "deals"
    __table_args__ = (
        CheckConstraint(
            "current_participants >= 0",
            name="ck_deals_current_participants_non_negative",
        ),
        CheckConstraint(
            "current_participants <= max_participants",
            name="ck_deals_current_participants_within_capacity",
        ),
        CheckConstraint(
            "min_participants <= max_participants",
            name="ck_deals_min_participants_within_max",
        ),
        CheckConstraint(
            "jam3a_price < regular_price",
            name="ck_deals_jam3a_price_below_regular",
        ),
        Index("ix_deals_status_expiry_date", "status", "expiry_date"),
    )

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    code: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    title_ar: Mapped[str | None] = mapped_column(String(200), nullable=True)
    description: Mapped[str] = mapped_column(String(2000), nullable=False)
    description_ar: Mapped[str | None] = mapped_column(String(2000), nullable=True)
    category_id: Mapped[UUID] = mapped_column(
        ForeignKey("categories.id"),
        nullable=False,
        index=True,
    )
    regular_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    jam3a_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    discount_percentage: Mapped[Decimal] = mapped_column(
        Numeric(5, 2), nullable=False
    )
    min_participants: Mapped[int] = mapped_column(Integer, nullable=False)
    max_participants: Mapped[int] = mapped_column(Integer, nullable=False)
    current_participants: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )
    expiry_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    status: Mapped[DealStatus] = mapped_column(
        Enum(
            DealStatus,
            name="deal_status",
            native_enum=False,
            length=16,
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
            validate_strings=True,
        ),
        nullable=False,
        default=DealStatus.ACTIVE,
    )
    featured: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default="false",
    )
    image_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    created_by_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("users.id"),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    category: Mapped[Category] = relationship(lazy="joined")
    participants: Mapped[list[DealParticipant]] = relationship(
        "DealParticipant",
        back_populates="deal",
        cascade="all, delete-orphan",
        order_by="DealParticipant.joined_at",
        lazy="selectin",
    )
