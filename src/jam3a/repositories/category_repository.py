"""Category persistence operations."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from jam3a.db.models.category import Category
from jam3a.db.session import retry_transient


class CategoryRepository:
    """Repository for catalog categories."""

    def __init__(self, session: Session) -> None:
        self._session = session

    @retry_transient
    def get(self, category_id: UUID) -> Category | None:
        statement = select(Category).where(Category.id == category_id)
        return self._session.scalar(statement)

    @retry_transient
    def list_categories(self, *, include_inactive: bool = False) -> list[Category]:
        statement = select(Category).order_by(Category.name.asc())
        if not include_inactive:
            statement = statement.where(Category.is_active.is_(True))
        return list(self._session.scalars(statement).all())

    def get_by_name(self, name: str) -> Category | None:
        statement = select(Category).where(Category.name == name)
        return self._session.scalar(statement)

    def add(self, category: Category) -> Category:
        self._session.add(category)
        self._session.flush()
        return category
