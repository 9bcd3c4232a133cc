"""Deal management service layer."""

from __future__ import annotations

import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Literal, Protocol
from uuid import UUID

from jam3a.db.models.category import Category
from jam3a.db.models.deal import Deal, DealStatus
from jam3a.domain.authorization import Actor, AuthorizationPolicy, Capability
from jam3a.domain.deal_rules import (
    INITIAL_STATUSES,
    as_utc,
    can_transition,
    is_overdue,
    is_terminal,
    reaches_capacity,
    utc_now,
)
from jam3a.domain.errors import (
    ConflictError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from jam3a.domain.money import discount_percentage, quantize_money
from jam3a.repositories.deal_repository import DealListFilters

logger = logging.getLogger(__name__)

CODE_PREFIX = "JAM-"
CODE_GENERATION_ATTEMPTS = 5


class SessionProtocol(Protocol):
    """Subset of SQLAlchemy session APIs used by deal service."""

    def commit(self) -> None: ...

    def rollback(self) -> None: ...

    def refresh(self, instance: object) -> None: ...


class DealRepositoryProtocol(Protocol):
    """Deal repository contract consumed by deal service."""

    def get(self, deal_id: UUID) -> Deal | None: ...

    def get_for_update(self, deal_id: UUID) -> Deal | None: ...

    def add(self, deal: Deal) -> Deal: ...

    def delete(self, deal: Deal) -> None: ...

    def flush(self) -> None: ...

    def code_exists(self, code: str) -> bool: ...

    def list_deals(self, filters: DealListFilters) -> tuple[list[Deal], int]: ...

    def list_featured(self, limit: int) -> list[Deal]: ...

    def mark_expired(self, *, deal_id: UUID, now: datetime) -> bool: ...

    def expire_overdue(self, now: datetime) -> int: ...


class CategoryRepositoryProtocol(Protocol):
    """Category repository contract consumed by deal service."""

    def get(self, category_id: UUID) -> Category | None: ...


@dataclass(slots=True, frozen=True)
class CreateDealInput:
    """Input model for deal creation."""

    title: str
    description: str
    category_id: UUID
    regular_price: Decimal
    jam3a_price: Decimal
    max_participants: int
    expiry_date: datetime
    min_participants: int = 2
    code: str | None = None
    title_ar: str | None = None
    description_ar: str | None = None
    featured: bool = False
    image_url: str | None = None
    status: DealStatus = DealStatus.ACTIVE


@dataclass(slots=True, frozen=True)
class UpdateDealInput:
    """Input model for partial deal updates; None leaves a field unchanged."""

    deal_id: UUID
    title: str | None = None
    title_ar: str | None = None
    description: str | None = None
    description_ar: str | None = None
    category_id: UUID | None = None
    regular_price: Decimal | None = None
    jam3a_price: Decimal | None = None
    min_participants: int | None = None
    max_participants: int | None = None
    expiry_date: datetime | None = None
    featured: bool | None = None
    image_url: str | None = None
    status: DealStatus | None = None


@dataclass(slots=True, frozen=True)
class DeleteDealResult:
    """Outcome of a delete request."""

    outcome: Literal["deleted", "cancelled"]
    deal_id: UUID
    deal: Deal | None = None


def validate_deal_invariants(
    *,
    regular_price: Decimal,
    jam3a_price: Decimal,
    min_participants: int,
    max_participants: int,
    current_participants: int = 0,
) -> None:
    """Reject price and capacity combinations a deal may never hold."""

    if regular_price <= Decimal("0"):
        raise ValidationError(
            message="regular_price must be greater than zero.",
            details={"field": "regular_price"},
        )
    if jam3a_price <= Decimal("0") or jam3a_price >= regular_price:
        raise ValidationError(
            message="jam3a_price must be positive and lower than regular_price.",
            details={"field": "jam3a_price"},
        )
    if min_participants < 1:
        raise ValidationError(
            message="min_participants must be at least 1.",
            details={"field": "min_participants"},
        )
    if min_participants > max_participants:
        raise ValidationError(
            message="min_participants cannot exceed max_participants.",
            details={
                "min_participants": min_participants,
                "max_participants": max_participants,
            },
        )
    if max_participants < current_participants:
        raise ValidationError(
            message="max_participants cannot be lower than current participants.",
            details={
                "max_participants": max_participants,
                "current_participants": current_participants,
            },
        )


class DealService:
    """Coordinates deal creation, updates, deletion and read-side expiry."""

    def __init__(
        self,
        *,
        deal_repository: DealRepositoryProtocol,
        category_repository: CategoryRepositoryProtocol,
        session: SessionProtocol,
        policy: AuthorizationPolicy,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._deal_repository = deal_repository
        self._category_repository = category_repository
        self._session = session
        self._policy = policy
        self._clock = clock

    def create_deal(self, payload: CreateDealInput, actor: Actor) -> Deal:
        """Create one deal in pending or active status."""

        self._policy.require(actor, Capability.DEALS_CREATE)

        if payload.status not in INITIAL_STATUSES:
            raise ValidationError(
                message="A deal can only be created as pending or active.",
                details={"status": payload.status.value},
            )

        regular_price = quantize_money(payload.regular_price)
        jam3a_price = quantize_money(payload.jam3a_price)
        validate_deal_invariants(
            regular_price=regular_price,
            jam3a_price=jam3a_price,
            min_participants=payload.min_participants,
            max_participants=payload.max_participants,
        )

        expiry_date = as_utc(payload.expiry_date)
        if expiry_date <= self._clock():
            raise ValidationError(
                message="expiry_date must be in the future.",
                details={"field": "expiry_date"},
            )

        self._require_active_category(payload.category_id)

        try:
            code = self._resolve_code(payload.code)
            deal = self._deal_repository.add(
                Deal(
                    code=code,
                    title=payload.title.strip(),
                    title_ar=payload.title_ar,
                    description=payload.description.strip(),
                    description_ar=payload.description_ar,
                    category_id=payload.category_id,
                    regular_price=regular_price,
                    jam3a_price=jam3a_price,
                    discount_percentage=discount_percentage(
                        regular_price, jam3a_price
                    ),
                    min_participants=payload.min_participants,
                    max_participants=payload.max_participants,
                    current_participants=0,
                    expiry_date=expiry_date,
                    status=payload.status,
                    featured=payload.featured,
                    image_url=payload.image_url,
                    created_by_id=actor.user_id,
                )
            )
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        self._session.refresh(deal)
        logger.info(
            "deal_created",
            extra={
                "deal_id": str(deal.id),
                "code": deal.code,
                "actor_id": str(actor.user_id),
                "status": deal.status.value,
            },
        )
        return deal

    def update_deal(self, payload: UpdateDealInput, actor: Actor) -> Deal:
        """Apply owner/admin field changes and an optional status change."""

        try:
            deal = self._deal_repository.get_for_update(payload.deal_id)
            if deal is None:
                raise NotFoundError(
                    message="Deal not found.",
                    details={"deal_id": str(payload.deal_id)},
                )
            self._policy.require(
                actor, Capability.DEALS_UPDATE, owner_id=deal.created_by_id
            )
            if payload.status is not None and payload.status != deal.status:
                self._policy.require(
                    actor,
                    Capability.DEALS_CHANGE_STATUS,
                    owner_id=deal.created_by_id,
                )

            now = self._clock()
            if is_overdue(deal.status, deal.expiry_date, now):
                deal.status = DealStatus.EXPIRED

            self._apply_field_changes(deal, payload, now)
            self._apply_status_change(deal, payload.status)

            # Activating a pending deal whose expiry already passed.
            if is_overdue(deal.status, deal.expiry_date, now):
                deal.status = DealStatus.EXPIRED
            elif deal.status == DealStatus.ACTIVE and reaches_capacity(
                deal.current_participants, deal.max_participants
            ):
                deal.status = DealStatus.COMPLETED

            deal.updated_at = now
            self._deal_repository.flush()
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        self._session.refresh(deal)
        logger.info(
            "deal_updated",
            extra={
                "deal_id": str(deal.id),
                "actor_id": str(actor.user_id),
                "status": deal.status.value,
            },
        )
        return deal

    def delete_deal(self, deal_id: UUID, actor: Actor) -> DeleteDealResult:
        """Hard delete an unjoined deal, otherwise cancel it."""

        try:
            deal = self._deal_repository.get_for_update(deal_id)
            if deal is None:
                raise NotFoundError(
                    message="Deal not found.",
                    details={"deal_id": str(deal_id)},
                )
            self._policy.require(
                actor, Capability.DEALS_DELETE, owner_id=deal.created_by_id
            )

            if deal.current_participants == 0 and not deal.participants:
                self._deal_repository.delete(deal)
                self._session.commit()
                logger.info(
                    "deal_deleted",
                    extra={"deal_id": str(deal_id), "actor_id": str(actor.user_id)},
                )
                return DeleteDealResult(outcome="deleted", deal_id=deal_id)

            now = self._clock()
            if is_overdue(deal.status, deal.expiry_date, now):
                deal.status = DealStatus.EXPIRED
            if not can_transition(deal.status, DealStatus.CANCELLED):
                raise InvalidStateError(
                    message=(
                        "Deal has participants and cannot be cancelled "
                        f"(status: {deal.status.value})."
                    ),
                    details={"deal_id": str(deal_id), "status": deal.status.value},
                )
            deal.status = DealStatus.CANCELLED
            deal.updated_at = now
            self._deal_repository.flush()
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        self._session.refresh(deal)
        logger.info(
            "deal_cancelled_on_delete",
            extra={
                "deal_id": str(deal_id),
                "actor_id": str(actor.user_id),
                "participants": deal.current_participants,
            },
        )
        return DeleteDealResult(outcome="cancelled", deal_id=deal_id, deal=deal)

    def get_deal(self, deal_id: UUID) -> Deal:
        """Fetch one deal, correcting an overdue active status on read."""

        deal = self._deal_repository.get(deal_id)
        if deal is None:
            raise NotFoundError(
                message="Deal not found.",
                details={"deal_id": str(deal_id)},
            )

        now = self._clock()
        if is_overdue(deal.status, deal.expiry_date, now):
            self._commit_expiry(
                lambda: self._deal_repository.mark_expired(deal_id=deal.id, now=now)
            )
            self._session.refresh(deal)
        return deal

    def list_deals(self, filters: DealListFilters) -> tuple[list[Deal], int]:
        """List deals after correcting overdue active ones."""

        self.expire_overdue_deals()
        return self._deal_repository.list_deals(filters)

    def list_featured_deals(self, limit: int) -> list[Deal]:
        self.expire_overdue_deals()
        return self._deal_repository.list_featured(limit)

    def expire_overdue_deals(self) -> int:
        """Transition every overdue active deal to expired."""

        now = self._clock()
        expired = self._commit_expiry(
            lambda: self._deal_repository.expire_overdue(now)
        )
        if expired:
            logger.info("deals_expired", extra={"count": expired})
        return expired

    def _commit_expiry(self, operation: Callable[[], int | bool]) -> int:
        try:
            changed = int(operation())
            if changed:
                self._session.commit()
            else:
                self._session.rollback()
        except Exception:
            self._session.rollback()
            raise
        return changed

    def _require_active_category(self, category_id: UUID) -> Category:
        category = self._category_repository.get(category_id)
        if category is None or not category.is_active:
            raise NotFoundError(
                message="Category not found.",
                details={"category_id": str(category_id)},
            )
        return category

    def _resolve_code(self, requested: str | None) -> str:
        if requested is not None:
            code = requested.strip().upper()
            if self._deal_repository.code_exists(code):
                raise ConflictError(
                    message="Deal code is already in use.",
                    details={"code": code},
                )
            return code

        for _ in range(CODE_GENERATION_ATTEMPTS):
            code = f"{CODE_PREFIX}{secrets.randbelow(1_000_000):06d}"
            if not self._deal_repository.code_exists(code):
                return code
        raise ConflictError(message="Could not allocate a unique deal code.")

    def _apply_field_changes(
        self, deal: Deal, payload: UpdateDealInput, now: datetime
    ) -> None:
        expiry_date = (
            as_utc(payload.expiry_date) if payload.expiry_date is not None else None
        )
        if expiry_date is not None and expiry_date <= now:
            raise ValidationError(
                message="expiry_date must be in the future.",
                details={"field": "expiry_date"},
            )

        if payload.category_id is not None and payload.category_id != deal.category_id:
            if deal.current_participants > 0:
                raise ValidationError(
                    message="Category cannot change once the deal has participants.",
                    details={"field": "category_id"},
                )
            self._require_active_category(payload.category_id)
            deal.category_id = payload.category_id

        regular_price = (
            quantize_money(payload.regular_price)
            if payload.regular_price is not None
            else deal.regular_price
        )
        jam3a_price = (
            quantize_money(payload.jam3a_price)
            if payload.jam3a_price is not None
            else deal.jam3a_price
        )
        min_participants = (
            payload.min_participants
            if payload.min_participants is not None
            else deal.min_participants
        )
        max_participants = (
            payload.max_participants
            if payload.max_participants is not None
            else deal.max_participants
        )
        validate_deal_invariants(
            regular_price=regular_price,
            jam3a_price=jam3a_price,
            min_participants=min_participants,
            max_participants=max_participants,
            current_participants=deal.current_participants,
        )

        deal.regular_price = regular_price
        deal.jam3a_price = jam3a_price
        deal.discount_percentage = discount_percentage(regular_price, jam3a_price)
        deal.min_participants = min_participants
        deal.max_participants = max_participants

        if payload.title is not None:
            deal.title = payload.title.strip()
        if payload.title_ar is not None:
            deal.title_ar = payload.title_ar
        if payload.description is not None:
            deal.description = payload.description.strip()
        if payload.description_ar is not None:
            deal.description_ar = payload.description_ar
        if expiry_date is not None:
            deal.expiry_date = expiry_date
        if payload.featured is not None:
            deal.featured = payload.featured
        if payload.image_url is not None:
            deal.image_url = payload.image_url

    @staticmethod
    def _apply_status_change(deal: Deal, target: DealStatus | None) -> None:
        if target is None or target == deal.status:
            return
        if is_terminal(deal.status) or not can_transition(deal.status, target):
            raise InvalidStateError(
                message=(
                    f"Deal cannot move from {deal.status.value} to {target.value}."
                ),
                details={
                    "deal_id": str(deal.id),
                    "status": deal.status.value,
                    "target_status": target.value,
                },
            )
        deal.status = target
