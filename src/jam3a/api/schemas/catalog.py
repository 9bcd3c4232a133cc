"""Category and product API schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from jam3a.db.models.category import Category
from jam3a.db.models.product import Product
from jam3a.domain.money import format_money
from jam3a.services.catalog_service import DeleteProductResult

MONEY_PATTERN = r"^[0-9]+(\.[0-9]{1,2})?$"


class CreateCategoryRequest(BaseModel):
    """Payload for category creation."""

    name: str = Field(min_length=1, max_length=120)
    name_ar: str | None = Field(default=None, max_length=120)
    description: str | None = Field(default=None, max_length=500)
    description_ar: str | None = Field(default=None, max_length=500)
    image_url: str | None = Field(default=None, max_length=500)

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        trimmed = value.strip()
        if not trimmed:
            raise ValueError("Name cannot be blank.")
        return trimmed


class CategoryResponse(BaseModel):
    """Serialized category."""

    id: UUID
    name: str
    name_ar: str | None
    description: str | None
    description_ar: str | None
    image_url: str | None
    is_active: bool

    @classmethod
    def from_model(cls, category: Category) -> CategoryResponse:
        return cls(
            id=category.id,
            name=category.name,
            name_ar=category.name_ar,
            description=category.description,
            description_ar=category.description_ar,
            image_url=category.image_url,
            is_active=category.is_active,
        )


class CategoryListResponse(BaseModel):
    items: list[CategoryResponse]

    @classmethod
    def from_models(cls, categories: list[Category]) -> CategoryListResponse:
        return cls(items=[CategoryResponse.from_model(item) for item in categories])


class CreateProductRequest(BaseModel):
    """Payload for product creation."""

    name: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1, max_length=2000)
    category_id: UUID
    price: str = Field(pattern=MONEY_PATTERN)
    stock: int = Field(default=0, ge=0)
    sku: str | None = Field(default=None, min_length=1, max_length=64)
    featured: bool = False
    image_url: str | None = Field(default=None, max_length=500)

    @field_validator("name", "description")
    @classmethod
    def validate_text(cls, value: str) -> str:
        trimmed = value.strip()
        if not trimmed:
            raise ValueError("Value cannot be blank.")
        return trimmed


class UpdateProductRequest(BaseModel):
    """Partial product update; omitted fields stay unchanged."""

    name: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, min_length=1, max_length=2000)
    category_id: UUID | None = None
    price: str | None = Field(default=None, pattern=MONEY_PATTERN)
    stock: int | None = Field(default=None, ge=0)
    featured: bool | None = None
    is_active: bool | None = None
    image_url: str | None = Field(default=None, max_length=500)


class ProductResponse(BaseModel):
    """Serialized product."""

    id: UUID
    name: str
    description: str
    category_id: UUID
    category_name: str | None
    price: str = Field(pattern=r"^[0-9]+\.[0-9]{2}$")
    stock: int
    sku: str | None
    featured: bool
    is_active: bool
    image_url: str | None
    created_at: datetime

    @classmethod
    def from_model(cls, product: Product) -> ProductResponse:
        return cls(
            id=product.id,
            name=product.name,
            description=product.description,
            category_id=product.category_id,
            category_name=product.category.name if product.category else None,
            price=format_money(product.price),
            stock=product.stock,
            sku=product.sku,
            featured=product.featured,
            is_active=product.is_active,
            image_url=product.image_url,
            created_at=product.created_at,
        )


class ProductListResponse(BaseModel):
    """Paginated product list response."""

    items: list[ProductResponse]
    total: int = Field(ge=0)
    limit: int = Field(ge=1)
    offset: int = Field(ge=0)

    @classmethod
    def from_models(
        cls,
        *,
        items: list[Product],
        total: int,
        limit: int,
        offset: int,
    ) -> ProductListResponse:
        return cls(
            items=[ProductResponse.from_model(item) for item in items],
            total=total,
            limit=limit,
            offset=offset,
        )


class FeaturedProductsResponse(BaseModel):
    items: list[ProductResponse]

    @classmethod
    def from_models(cls, items: list[Product]) -> FeaturedProductsResponse:
        return cls(items=[ProductResponse.from_model(item) for item in items])


class DeleteProductResponse(BaseModel):
    """Outcome of a delete: removed outright or deactivated."""

    outcome: Literal["deleted", "deactivated"]
    product_id: UUID
    product: ProductResponse | None = None

    @classmethod
    def from_result(cls, result: DeleteProductResult) -> DeleteProductResponse:
        return cls(
            outcome=result.outcome,
            product_id=result.product_id,
            product=(
                ProductResponse.from_model(result.product) if result.product else None
            ),
        )
