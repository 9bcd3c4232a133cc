"""Deal routes."""

from __future__ import annotations

from typing import Annotated, Literal
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Body, Depends, Query, status

from jam3a.api.dependencies import (
    get_authorization_policy,
    get_current_actor,
    get_deal_join_service,
    get_deal_service,
    get_notification_service,
)
from jam3a.api.schemas.deals import (
    CreateDealRequest,
    DealListResponse,
    DealResponse,
    DeleteDealResponse,
    FeaturedDealsResponse,
    JoinDealRequest,
    UpdateDealRequest,
)
from jam3a.core.settings import Settings, get_settings
from jam3a.db.models.deal import DealStatus
from jam3a.domain.authorization import Actor, AuthorizationPolicy, Capability
from jam3a.domain.money import parse_money
from jam3a.repositories.deal_repository import DealListFilters, DealSort
from jam3a.services.deal_join_service import DealJoinService, JoinDealInput
from jam3a.services.deal_service import CreateDealInput, DealService, UpdateDealInput
from jam3a.services.notification_service import NotificationService

router = APIRouter(prefix="/deals", tags=["Deals"])

ERROR_RESPONSES = {
    400: {"description": "Invalid payload or business rule violation"},
    401: {"description": "Missing or unknown user"},
    403: {"description": "Insufficient permissions"},
    404: {"description": "Deal not found"},
}


@router.get(
    "",
    response_model=DealListResponse,
    responses={400: {"description": "Invalid query filters"}},
)
def list_deals(
    service: Annotated[DealService, Depends(get_deal_service)],
    status: Annotated[
        Literal["pending", "active", "completed", "cancelled", "expired", "all"],
        Query(),
    ] = "active",
    category_id: Annotated[UUID | None, Query()] = None,
    featured: Annotated[bool | None, Query()] = None,
    min_participants: Annotated[int | None, Query(ge=0)] = None,
    max_participants: Annotated[int | None, Query(ge=0)] = None,
    q: Annotated[str | None, Query(min_length=1, max_length=200)] = None,
    sort: Annotated[DealSort, Query()] = DealSort.CREATED_AT,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> DealListResponse:
    """List deals; only active ones unless another status is requested."""

    items, total = service.list_deals(
        DealListFilters(
            status=None if status == "all" else DealStatus(status),
            category_id=category_id,
            featured=featured,
            min_participants=min_participants,
            max_participants=max_participants,
            query=q,
            sort=sort,
            limit=limit,
            offset=offset,
        )
    )
    return DealListResponse.from_models(
        items=items,
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/featured", response_model=FeaturedDealsResponse)
def list_featured_deals(
    service: Annotated[DealService, Depends(get_deal_service)],
    settings: Annotated[Settings, Depends(get_settings)],
    limit: Annotated[int | None, Query(ge=1, le=50)] = None,
) -> FeaturedDealsResponse:
    """List active featured deals."""

    items = service.list_featured_deals(limit or settings.featured_deals_limit)
    return FeaturedDealsResponse.from_models(items)


@router.get(
    "/{deal_id}",
    response_model=DealResponse,
    responses={404: {"description": "Deal not found"}},
)
def get_deal(
    deal_id: UUID,
    service: Annotated[DealService, Depends(get_deal_service)],
) -> DealResponse:
    return DealResponse.from_model(service.get_deal(deal_id))


@router.post(
    "",
    response_model=DealResponse,
    status_code=status.HTTP_201_CREATED,
    responses={**ERROR_RESPONSES, 409: {"description": "Deal code already used"}},
)
def create_deal(
    payload: CreateDealRequest,
    actor: Annotated[Actor, Depends(get_current_actor)],
    service: Annotated[DealService, Depends(get_deal_service)],
) -> DealResponse:
    """Create one deal owned by the calling seller or admin."""

    deal = service.create_deal(
        CreateDealInput(
            code=payload.code,
            title=payload.title,
            title_ar=payload.title_ar,
            description=payload.description,
            description_ar=payload.description_ar,
            category_id=payload.category_id,
            regular_price=parse_money(payload.regular_price),
            jam3a_price=parse_money(payload.jam3a_price),
            min_participants=payload.min_participants,
            max_participants=payload.max_participants,
            expiry_date=payload.expiry_date,
            featured=payload.featured,
            image_url=payload.image_url,
            status=DealStatus(payload.status),
        ),
        actor,
    )
    return DealResponse.from_model(deal)


@router.put(
    "/{deal_id}",
    response_model=DealResponse,
    responses=ERROR_RESPONSES,
)
def update_deal(
    deal_id: UUID,
    payload: UpdateDealRequest,
    actor: Annotated[Actor, Depends(get_current_actor)],
    service: Annotated[DealService, Depends(get_deal_service)],
) -> DealResponse:
    """Update deal fields and optionally its status."""

    deal = service.update_deal(
        UpdateDealInput(
            deal_id=deal_id,
            title=payload.title,
            title_ar=payload.title_ar,
            description=payload.description,
            description_ar=payload.description_ar,
            category_id=payload.category_id,
            regular_price=parse_money(payload.regular_price)
            if payload.regular_price is not None
            else None,
            jam3a_price=parse_money(payload.jam3a_price)
            if payload.jam3a_price is not None
            else None,
            min_participants=payload.min_participants,
            max_participants=payload.max_participants,
            expiry_date=payload.expiry_date,
            featured=payload.featured,
            image_url=payload.image_url,
            status=DealStatus(payload.status) if payload.status else None,
        ),
        actor,
    )
    return DealResponse.from_model(deal)


@router.delete(
    "/{deal_id}",
    response_model=DeleteDealResponse,
    responses=ERROR_RESPONSES,
)
def delete_deal(
    deal_id: UUID,
    actor: Annotated[Actor, Depends(get_current_actor)],
    service: Annotated[DealService, Depends(get_deal_service)],
) -> DeleteDealResponse:
    """Delete an unjoined deal or cancel a joined one."""

    return DeleteDealResponse.from_result(service.delete_deal(deal_id, actor))


@router.post(
    "/{deal_id}/join",
    response_model=DealResponse,
    responses=ERROR_RESPONSES,
)
def join_deal(
    deal_id: UUID,
    actor: Annotated[Actor, Depends(get_current_actor)],
    policy: Annotated[AuthorizationPolicy, Depends(get_authorization_policy)],
    service: Annotated[DealJoinService, Depends(get_deal_join_service)],
    notification_service: Annotated[
        NotificationService, Depends(get_notification_service)
    ],
    background_tasks: BackgroundTasks,
    payload: Annotated[JoinDealRequest | None, Body()] = None,
) -> DealResponse:
    """Join a deal as the calling user, optionally picking a product."""

    policy.require(actor, Capability.DEALS_JOIN)
    result = service.join(
        JoinDealInput(
            deal_id=deal_id,
            user_id=actor.user_id,
            user_email=actor.email,
            user_name=actor.name,
            product_id=payload.product_id if payload else None,
        )
    )
    background_tasks.add_task(
        notification_service.notify_join,
        result.joined_event,
        result.completed_event,
    )
    return DealResponse.from_model(result.deal)
