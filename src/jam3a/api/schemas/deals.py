"""Deal API schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

from jam3a.db.models.deal import Deal
from jam3a.db.models.deal_participant import DealParticipant
from jam3a.domain.deal_rules import format_time_remaining, utc_now
from jam3a.domain.money import format_money
from jam3a.services.deal_service import DeleteDealResult

MONEY_PATTERN = r"^[0-9]+(\.[0-9]{1,2})?$"
DealStatusValue = Literal["pending", "active", "completed", "cancelled", "expired"]
InitialStatusValue = Literal["pending", "active"]


class CreateDealRequest(BaseModel):
    """Payload for deal creation."""

    code: str | None = Field(
        default=None,
        pattern=r"^[A-Za-z0-9-]{3,32}$",
    )
    title: str = Field(min_length=1, max_length=200)
    title_ar: str | None = Field(default=None, max_length=200)
    description: str = Field(min_length=1, max_length=2000)
    description_ar: str | None = Field(default=None, max_length=2000)
    category_id: UUID
    regular_price: str = Field(pattern=MONEY_PATTERN)
    jam3a_price: str = Field(pattern=MONEY_PATTERN)
    min_participants: int = Field(default=2, ge=1)
    max_participants: int = Field(ge=1)
    expiry_date: datetime
    featured: bool = False
    image_url: str | None = Field(default=None, max_length=500)
    status: InitialStatusValue = "active"

    @field_validator("title", "description")
    @classmethod
    def validate_text(cls, value: str) -> str:
        trimmed = value.strip()
        if not trimmed:
            raise ValueError("Value cannot be blank.")
        return trimmed

    @model_validator(mode="after")
    def validate_ranges(self) -> CreateDealRequest:
        if self.min_participants > self.max_participants:
            raise ValueError("min_participants cannot exceed max_participants.")
        if Decimal(self.jam3a_price) >= Decimal(self.regular_price):
            raise ValueError("jam3a_price must be lower than regular_price.")
        return self


class UpdateDealRequest(BaseModel):
    """Partial update payload; omitted fields stay unchanged."""

    title: str | None = Field(default=None, min_length=1, max_length=200)
    title_ar: str | None = Field(default=None, max_length=200)
    description: str | None = Field(default=None, min_length=1, max_length=2000)
    description_ar: str | None = Field(default=None, max_length=2000)
    category_id: UUID | None = None
    regular_price: str | None = Field(default=None, pattern=MONEY_PATTERN)
    jam3a_price: str | None = Field(default=None, pattern=MONEY_PATTERN)
    min_participants: int | None = Field(default=None, ge=1)
    max_participants: int | None = Field(default=None, ge=1)
    expiry_date: datetime | None = None
    featured: bool | None = None
    image_url: str | None = Field(default=None, max_length=500)
    status: DealStatusValue | None = None

    @model_validator(mode="after")
    def validate_ranges(self) -> UpdateDealRequest:
        if (
            self.min_participants is not None
            and self.max_participants is not None
            and self.min_participants > self.max_participants
        ):
            raise ValueError("min_participants cannot exceed max_participants.")
        return self


class JoinDealRequest(BaseModel):
    """Optional product selection for a join."""

    product_id: UUID | None = None


class DealCategoryResponse(BaseModel):
    id: UUID
    name: str
    name_ar: str | None


class DealParticipantResponse(BaseModel):
    user_id: UUID
    product_id: UUID | None
    joined_at: datetime

    @classmethod
    def from_model(cls, participant: DealParticipant) -> DealParticipantResponse:
        return cls(
            user_id=participant.user_id,
            product_id=participant.product_id,
            joined_at=participant.joined_at,
        )


class DealResponse(BaseModel):
    """Serialized deal returned by API."""

    id: UUID
    code: str
    title: str
    title_ar: str | None
    description: str
    description_ar: str | None
    category: DealCategoryResponse | None
    regular_price: str = Field(pattern=r"^[0-9]+\.[0-9]{2}$")
    jam3a_price: str = Field(pattern=r"^[0-9]+\.[0-9]{2}$")
    discount_percentage: str
    min_participants: int
    max_participants: int
    current_participants: int = Field(ge=0)
    remaining_slots: int = Field(ge=0)
    participants: list[DealParticipantResponse]
    expiry_date: datetime
    time_remaining: str
    status: DealStatusValue
    featured: bool
    image_url: str | None
    created_by_id: UUID | None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, deal: Deal, now: datetime | None = None) -> DealResponse:
        current_time = now or utc_now()
        category = (
            DealCategoryResponse(
                id=deal.category.id,
                name=deal.category.name,
                name_ar=deal.category.name_ar,
            )
            if deal.category
            else None
        )
        return cls(
            id=deal.id,
            code=deal.code,
            title=deal.title,
            title_ar=deal.title_ar,
            description=deal.description,
            description_ar=deal.description_ar,
            category=category,
            regular_price=format_money(deal.regular_price),
            jam3a_price=format_money(deal.jam3a_price),
            discount_percentage=format_money(deal.discount_percentage),
            min_participants=deal.min_participants,
            max_participants=deal.max_participants,
            current_participants=deal.current_participants,
            remaining_slots=max(deal.max_participants - deal.current_participants, 0),
            participants=[
                DealParticipantResponse.from_model(item) for item in deal.participants
            ],
            expiry_date=deal.expiry_date,
            time_remaining=format_time_remaining(deal.expiry_date, current_time),
            status=deal.status.value,
            featured=deal.featured,
            image_url=deal.image_url,
            created_by_id=deal.created_by_id,
            created_at=deal.created_at,
            updated_at=deal.updated_at,
        )


class DealListResponse(BaseModel):
    """Paginated deal list response."""

    items: list[DealResponse]
    total: int = Field(ge=0)
    limit: int = Field(ge=1)
    offset: int = Field(ge=0)

    @classmethod
    def from_models(
        cls,
        *,
        items: list[Deal],
        total: int,
        limit: int,
        offset: int,
    ) -> DealListResponse:
        now = utc_now()
        return cls(
            items=[DealResponse.from_model(item, now) for item in items],
            total=total,
            limit=limit,
            offset=offset,
        )


class FeaturedDealsResponse(BaseModel):
    items: list[DealResponse]

    @classmethod
    def from_models(cls, items: list[Deal]) -> FeaturedDealsResponse:
        now = utc_now()
        return cls(items=[DealResponse.from_model(item, now) for item in items])


class DeleteDealResponse(BaseModel):
    """Outcome of a delete: removed outright or cancelled."""

    outcome: Literal["deleted", "cancelled"]
    deal_id: UUID
    deal: DealResponse | None = None

    @classmethod
    def from_result(cls, result: DeleteDealResult) -> DeleteDealResponse:
        return cls(
            outcome=result.outcome,
            deal_id=result.deal_id,
            deal=DealResponse.from_model(result.deal) if result.deal else None,
        )
