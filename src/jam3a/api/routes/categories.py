"""Category routes."""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status

from jam3a.api.dependencies import get_catalog_service, get_current_actor
from jam3a.api.schemas.catalog import (
    CategoryListResponse,
    CategoryResponse,
    CreateCategoryRequest,
)
from jam3a.domain.authorization import Actor
from jam3a.services.catalog_service import CatalogService, CreateCategoryInput

router = APIRouter(prefix="/categories", tags=["Categories"])


@router.get("", response_model=CategoryListResponse)
def list_categories(
    service: Annotated[CatalogService, Depends(get_catalog_service)],
) -> CategoryListResponse:
    """List active categories ordered by name."""

    return CategoryListResponse.from_models(service.list_categories())


@router.get(
    "/{category_id}",
    response_model=CategoryResponse,
    responses={404: {"description": "Category not found"}},
)
def get_category(
    category_id: UUID,
    service: Annotated[CatalogService, Depends(get_catalog_service)],
) -> CategoryResponse:
    return CategoryResponse.from_model(service.get_category(category_id))


@router.post(
    "",
    response_model=CategoryResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Invalid payload"},
        401: {"description": "Missing or unknown user"},
        403: {"description": "Admin only"},
        409: {"description": "Category name already used"},
    },
)
def create_category(
    payload: CreateCategoryRequest,
    actor: Annotated[Actor, Depends(get_current_actor)],
    service: Annotated[CatalogService, Depends(get_catalog_service)],
) -> CategoryResponse:
    category = service.create_category(
        CreateCategoryInput(
            name=payload.name,
            name_ar=payload.name_ar,
            description=payload.description,
            description_ar=payload.description_ar,
            image_url=payload.image_url,
        ),
        actor,
    )
    return CategoryResponse.from_model(category)
