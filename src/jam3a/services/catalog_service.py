"""Category and product catalog service layer."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Literal, Protocol
from uuid import UUID

from sqlalchemy.exc import IntegrityError

from jam3a.db.models.category import Category
from jam3a.db.models.product import Product
from jam3a.domain.authorization import Actor, AuthorizationPolicy, Capability
from jam3a.domain.errors import ConflictError, NotFoundError, ValidationError
from jam3a.domain.money import quantize_money
from jam3a.repositories.product_repository import ProductListFilters

logger = logging.getLogger(__name__)


class SessionProtocol(Protocol):
    def commit(self) -> None: ...

    def rollback(self) -> None: ...

    def refresh(self, instance: object) -> None: ...


class CategoryRepositoryProtocol(Protocol):
    def get(self, category_id: UUID) -> Category | None: ...

    def get_by_name(self, name: str) -> Category | None: ...

    def list_categories(self, *, include_inactive: bool = False) -> list[Category]: ...

    def add(self, category: Category) -> Category: ...


class ProductRepositoryProtocol(Protocol):
    def get(self, product_id: UUID) -> Product | None: ...

    def add(self, product: Product) -> Product: ...

    def get_for_update(self, product_id: UUID) -> Product | None: ...

    def delete(self, product: Product) -> None: ...

    def flush(self) -> None: ...

    def is_referenced(self, product_id: UUID) -> bool: ...

    def list_featured(self, limit: int) -> list[Product]: ...

    def list_products(
        self, filters: ProductListFilters
    ) -> tuple[list[Product], int]: ...


@dataclass(slots=True, frozen=True)
class CreateCategoryInput:
    """Input model for category creation."""

    name: str
    name_ar: str | None = None
    description: str | None = None
    description_ar: str | None = None
    image_url: str | None = None


@dataclass(slots=True, frozen=True)
class CreateProductInput:
    """Input model for product creation."""

    name: str
    description: str
    category_id: UUID
    price: Decimal
    stock: int = 0
    sku: str | None = None
    featured: bool = False
    image_url: str | None = None


@dataclass(slots=True, frozen=True)
class UpdateProductInput:
    """Partial product update; None leaves a field unchanged."""

    product_id: UUID
    name: str | None = None
    description: str | None = None
    category_id: UUID | None = None
    price: Decimal | None = None
    stock: int | None = None
    featured: bool | None = None
    is_active: bool | None = None
    image_url: str | None = None


@dataclass(slots=True, frozen=True)
class DeleteProductResult:
    outcome: Literal["deleted", "deactivated"]
    product_id: UUID
    product: Product | None = None


def validate_product_values(*, price: Decimal | None, stock: int | None) -> None:
    if price is not None and price < Decimal("0"):
        raise ValidationError(
            message="price cannot be negative.",
            details={"field": "price"},
        )
    if stock is not None and stock < 0:
        raise ValidationError(
            message="stock cannot be negative.",
            details={"field": "stock"},
        )


class CatalogService:
    """Manages categories and the products offered inside them."""

    def __init__(
        self,
        *,
        category_repository: CategoryRepositoryProtocol,
        product_repository: ProductRepositoryProtocol,
        session: SessionProtocol,
        policy: AuthorizationPolicy,
    ) -> None:
        self._category_repository = category_repository
        self._product_repository = product_repository
        self._session = session
        self._policy = policy

    def list_categories(self) -> list[Category]:
        return self._category_repository.list_categories()

    def get_category(self, category_id: UUID) -> Category:
        category = self._category_repository.get(category_id)
        if category is None or not category.is_active:
            raise NotFoundError(
                message="Category not found.",
                details={"category_id": str(category_id)},
            )
        return category

    def create_category(self, payload: CreateCategoryInput, actor: Actor) -> Category:
        """Create a category; names are unique across the catalog."""

        self._policy.require(actor, Capability.CATEGORIES_MANAGE)
        name = payload.name.strip()
        if self._category_repository.get_by_name(name) is not None:
            raise ConflictError(
                message="Category name is already in use.",
                details={"name": name},
            )

        try:
            category = self._category_repository.add(
                Category(
                    name=name,
                    name_ar=payload.name_ar,
                    description=payload.description,
                    description_ar=payload.description_ar,
                    image_url=payload.image_url,
                )
            )
            self._session.commit()
        except IntegrityError as exc:
            self._session.rollback()
            raise ConflictError(
                message="Category name is already in use.",
                details={"name": name},
            ) from exc
        except Exception:
            self._session.rollback()
            raise

        self._session.refresh(category)
        logger.info(
            "category_created",
            extra={"category_id": str(category.id), "actor_id": str(actor.user_id)},
        )
        return category

    def list_products(self, filters: ProductListFilters) -> tuple[list[Product], int]:
        return self._product_repository.list_products(filters)

    def get_product(self, product_id: UUID) -> Product:
        product = self._product_repository.get(product_id)
        if product is None or not product.is_active:
            raise NotFoundError(
                message="Product not found.",
                details={"product_id": str(product_id)},
            )
        return product

    def create_product(self, payload: CreateProductInput, actor: Actor) -> Product:
        """Create a product inside an active category."""

        self._policy.require(actor, Capability.PRODUCTS_CREATE)
        validate_product_values(price=payload.price, stock=payload.stock)
        self.get_category(payload.category_id)

        try:
            product = self._product_repository.add(
                Product(
                    name=payload.name.strip(),
                    description=payload.description.strip(),
                    category_id=payload.category_id,
                    price=quantize_money(payload.price),
                    stock=payload.stock,
                    sku=payload.sku,
                    featured=payload.featured,
                    image_url=payload.image_url,
                    created_by_id=actor.user_id,
                )
            )
            self._session.commit()
        except IntegrityError as exc:
            self._session.rollback()
            raise ConflictError(
                message="Product SKU is already in use.",
                details={"sku": payload.sku},
            ) from exc
        except Exception:
            self._session.rollback()
            raise

        self._session.refresh(product)
        logger.info(
            "product_created",
            extra={"product_id": str(product.id), "actor_id": str(actor.user_id)},
        )
        return product

    def list_featured_products(self, limit: int) -> list[Product]:
        return self._product_repository.list_featured(limit)

    def update_product(self, payload: UpdateProductInput, actor: Actor) -> Product:
        """Apply owner/admin changes such as restocking or deactivation."""

        validate_product_values(price=payload.price, stock=payload.stock)
        try:
            product = self._require_product_for_update(payload.product_id)
            self._policy.require(
                actor, Capability.PRODUCTS_UPDATE, owner_id=product.created_by_id
            )
            if (
                payload.category_id is not None
                and payload.category_id != product.category_id
            ):
                self.get_category(payload.category_id)
                product.category_id = payload.category_id

            if payload.name is not None:
                product.name = payload.name.strip()
            if payload.description is not None:
                product.description = payload.description.strip()
            if payload.price is not None:
                product.price = quantize_money(payload.price)
            if payload.stock is not None:
                product.stock = payload.stock
            if payload.featured is not None:
                product.featured = payload.featured
            if payload.is_active is not None:
                product.is_active = payload.is_active
            if payload.image_url is not None:
                product.image_url = payload.image_url

            self._product_repository.flush()
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        self._session.refresh(product)
        logger.info(
            "product_updated",
            extra={
                "product_id": str(product.id),
                "actor_id": str(actor.user_id),
                "stock": product.stock,
                "is_active": product.is_active,
            },
        )
        return product

    def delete_product(self, product_id: UUID, actor: Actor) -> DeleteProductResult:
        """Remove a product, or deactivate it once a participation references it."""

        try:
            product = self._require_product_for_update(product_id)
            self._policy.require(
                actor, Capability.PRODUCTS_DELETE, owner_id=product.created_by_id
            )

            if not self._product_repository.is_referenced(product.id):
                self._product_repository.delete(product)
                self._session.commit()
                logger.info(
                    "product_deleted",
                    extra={
                        "product_id": str(product_id),
                        "actor_id": str(actor.user_id),
                    },
                )
                return DeleteProductResult(outcome="deleted", product_id=product_id)

            product.is_active = False
            self._product_repository.flush()
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        self._session.refresh(product)
        logger.info(
            "product_deactivated",
            extra={"product_id": str(product_id), "actor_id": str(actor.user_id)},
        )
        return DeleteProductResult(
            outcome="deactivated", product_id=product_id, product=product
        )

    def _require_product_for_update(self, product_id: UUID) -> Product:
        product = self._product_repository.get_for_update(product_id)
        if product is None:
            raise NotFoundError(
                message="Product not found.",
                details={"product_id": str(product_id)},
            )
        return product
