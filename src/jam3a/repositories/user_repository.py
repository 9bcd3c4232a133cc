"""User persistence operations."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from jam3a.db.models.user import User
from jam3a.db.session import retry_transient


class UserRepository:
    """Repository resolving request actors."""

    def __init__(self, session: Session) -> None:
        self._session = session

    @retry_transient
    def get_active(self, user_id: UUID) -> User | None:
        statement = select(User).where(User.id == user_id, User.is_active.is_(True))
        return self._session.scalar(statement)
