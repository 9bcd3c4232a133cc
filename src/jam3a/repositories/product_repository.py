"""Product persistence operations."""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import Select, exists, func, select, update
from sqlalchemy.orm import Session

from jam3a.db.models.deal_participant import DealParticipant
from jam3a.db.models.product import Product
from jam3a.db.session import retry_transient


@dataclass(slots=True, frozen=True)
class ProductListFilters:
    """Filters for listing products."""

    category_id: UUID | None = None
    featured: bool | None = None
    include_inactive: bool = False
    limit: int = 50
    offset: int = 0


class ProductRepository:
    """Repository for catalog products and their stock counter."""

    def __init__(self, session: Session) -> None:
        self._session = session

    @retry_transient
    def get(self, product_id: UUID) -> Product | None:
        statement = select(Product).where(Product.id == product_id)
        return self._session.scalar(statement)

    @retry_transient
    def get_for_update(self, product_id: UUID) -> Product | None:
        statement = (
            select(Product).where(Product.id == product_id).with_for_update(of=Product)
        )
        return self._session.scalar(statement)

    def get_by_sku(self, sku: str) -> Product | None:
        statement = select(Product).where(Product.sku == sku)
        return self._session.scalar(statement)

    def add(self, product: Product) -> Product:
        self._session.add(product)
        self._session.flush()
        return product

    def delete(self, product: Product) -> None:
        self._session.delete(product)
        self._session.flush()

    def flush(self) -> None:
        self._session.flush()

    def is_referenced(self, product_id: UUID) -> bool:
        """Tell whether any deal participation selected this product."""

        statement = select(exists().where(DealParticipant.product_id == product_id))
        return bool(self._session.scalar(statement))

    @retry_transient
    def list_products(
        self,
        filters: ProductListFilters,
    ) -> tuple[list[Product], int]:
        """List products with optional category and featured filters."""

        statement = self._apply_list_filters(select(Product), filters)
        total_statement = select(func.count()).select_from(statement.subquery())
        total = int(self._session.scalar(total_statement) or 0)

        page_statement = (
            statement.order_by(Product.created_at.desc(), Product.id.desc())
            .limit(filters.limit)
            .offset(filters.offset)
        )
        return list(self._session.scalars(page_statement).unique().all()), total

    @retry_transient
    def list_featured(self, limit: int) -> list[Product]:
        statement = (
            select(Product)
            .where(Product.is_active.is_(True), Product.featured.is_(True))
            .order_by(Product.created_at.desc(), Product.id.desc())
            .limit(limit)
        )
        return list(self._session.scalars(statement).unique().all())

    def decrement_stock(self, product_id: UUID) -> bool:
        """Take one unit of stock only while some is left."""

        statement = (
            update(Product)
            .where(Product.id == product_id, Product.stock > 0)
            .values(stock=Product.stock - 1)
            .execution_options(synchronize_session=False)
        )
        return self._session.execute(statement).rowcount == 1

    @staticmethod
    def _apply_list_filters(
        statement: Select[tuple[Product]],
        filters: ProductListFilters,
    ) -> Select[tuple[Product]]:
        typed_statement = statement
        if not filters.include_inactive:
            typed_statement = typed_statement.where(Product.is_active.is_(True))
        if filters.category_id is not None:
            typed_statement = typed_statement.where(
                Product.category_id == filters.category_id
            )
        if filters.featured is not None:
            typed_statement = typed_statement.where(
                Product.featured.is_(filters.featured)
            )
        return typed_statement
