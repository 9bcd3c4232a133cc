"""Product routes."""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from jam3a.api.dependencies import get_catalog_service, get_current_actor
from jam3a.api.schemas.catalog import (
    CreateProductRequest,
    DeleteProductResponse,
    FeaturedProductsResponse,
    ProductListResponse,
    ProductResponse,
    UpdateProductRequest,
)
from jam3a.core.settings import Settings, get_settings
from jam3a.domain.authorization import Actor
from jam3a.domain.money import parse_money
from jam3a.repositories.product_repository import ProductListFilters
from jam3a.services.catalog_service import (
    CatalogService,
    CreateProductInput,
    UpdateProductInput,
)

router = APIRouter(prefix="/products", tags=["Products"])

MUTATION_RESPONSES = {
    400: {"description": "Invalid payload"},
    401: {"description": "Missing or unknown user"},
    403: {"description": "Insufficient permissions"},
    404: {"description": "Product or category not found"},
}


@router.get("", response_model=ProductListResponse)
def list_products(
    service: Annotated[CatalogService, Depends(get_catalog_service)],
    category_id: Annotated[UUID | None, Query()] = None,
    featured: Annotated[bool | None, Query()] = None,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> ProductListResponse:
    """List active products, optionally within one category."""

    items, total = service.list_products(
        ProductListFilters(
            category_id=category_id,
            featured=featured,
            limit=limit,
            offset=offset,
        )
    )
    return ProductListResponse.from_models(
        items=items,
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/featured", response_model=FeaturedProductsResponse)
def list_featured_products(
    service: Annotated[CatalogService, Depends(get_catalog_service)],
    settings: Annotated[Settings, Depends(get_settings)],
    limit: Annotated[int | None, Query(ge=1, le=50)] = None,
) -> FeaturedProductsResponse:
    items = service.list_featured_products(
        limit or settings.featured_products_limit
    )
    return FeaturedProductsResponse.from_models(items)


@router.get(
    "/{product_id}",
    response_model=ProductResponse,
    responses={404: {"description": "Product not found"}},
)
def get_product(
    product_id: UUID,
    service: Annotated[CatalogService, Depends(get_catalog_service)],
) -> ProductResponse:
    return ProductResponse.from_model(service.get_product(product_id))


@router.post(
    "",
    response_model=ProductResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Invalid payload"},
        401: {"description": "Missing or unknown user"},
        403: {"description": "Insufficient permissions"},
        404: {"description": "Category not found"},
        409: {"description": "SKU already used"},
    },
)
def create_product(
    payload: CreateProductRequest,
    actor: Annotated[Actor, Depends(get_current_actor)],
    service: Annotated[CatalogService, Depends(get_catalog_service)],
) -> ProductResponse:
    product = service.create_product(
        CreateProductInput(
            name=payload.name,
            description=payload.description,
            category_id=payload.category_id,
            price=parse_money(payload.price),
            stock=payload.stock,
            sku=payload.sku,
            featured=payload.featured,
            image_url=payload.image_url,
        ),
        actor,
    )
    return ProductResponse.from_model(product)


@router.put(
    "/{product_id}",
    response_model=ProductResponse,
    responses=MUTATION_RESPONSES,
)
def update_product(
    product_id: UUID,
    payload: UpdateProductRequest,
    actor: Annotated[Actor, Depends(get_current_actor)],
    service: Annotated[CatalogService, Depends(get_catalog_service)],
) -> ProductResponse:
    """Update product fields, including stock and active flag."""

    product = service.update_product(
        UpdateProductInput(
            product_id=product_id,
            name=payload.name,
            description=payload.description,
            category_id=payload.category_id,
            price=parse_money(payload.price) if payload.price is not None else None,
            stock=payload.stock,
            featured=payload.featured,
            is_active=payload.is_active,
            image_url=payload.image_url,
        ),
        actor,
    )
    return ProductResponse.from_model(product)


@router.delete(
    "/{product_id}",
    response_model=DeleteProductResponse,
    responses=MUTATION_RESPONSES,
)
def delete_product(
    product_id: UUID,
    actor: Annotated[Actor, Depends(get_current_actor)],
    service: Annotated[CatalogService, Depends(get_catalog_service)],
) -> DeleteProductResponse:
    """Delete an unreferenced product or deactivate a referenced one."""

    return DeleteProductResponse.from_result(service.delete_product(product_id, actor))
