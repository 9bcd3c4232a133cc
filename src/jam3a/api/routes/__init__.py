"""API v1 router registration."""

from fastapi import APIRouter

from jam3a.api.routes import categories, deals, products

v1_router = APIRouter(prefix="/v1")
v1_router.include_router(deals.router)
v1_router.include_router(categories.router)
v1_router.include_router(products.router)
