"""API request and response schemas."""

from jam3a.api.schemas.catalog import (
    CategoryResponse,
    CreateCategoryRequest,
    CreateProductRequest,
    ProductResponse,
)
from jam3a.api.schemas.deals import (
    CreateDealRequest,
    DealListResponse,
    DealResponse,
    JoinDealRequest,
    UpdateDealRequest,
)

__all__ = [
    "CategoryResponse",
    "CreateCategoryRequest",
    "CreateDealRequest",
    "CreateProductRequest",
    "DealListResponse",
    "DealResponse",
    "JoinDealRequest",
    "ProductResponse",
    "UpdateDealRequest",
]
