"""Join operation over a deal: the participation lifecycle core."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol
from uuid import UUID

from sqlalchemy.exc import IntegrityError

from jam3a.db.models.deal import Deal, DealStatus
from jam3a.db.models.deal_participant import DealParticipant
from jam3a.db.models.product import Product
from jam3a.domain.deal_rules import is_expired, utc_now
from jam3a.domain.errors import (
    CategoryMismatchError,
    DealExpiredError,
    DealFullError,
    DomainError,
    DuplicateJoinError,
    InvalidStateError,
    NotFoundError,
    OutOfStockError,
)
from jam3a.domain.money import format_money
from jam3a.services.notification_service import DealCompletedEvent, DealJoinedEvent

logger = logging.getLogger(__name__)

MAX_RESERVATION_ATTEMPTS = 3

# PostgreSQL reports the constraint name, SQLite the constrained columns.
DUPLICATE_PARTICIPANT_MARKERS = (
    "uq_deal_participants_deal_user",
    "deal_participants.deal_id, deal_participants.user_id",
)


class SessionProtocol(Protocol):
    """Subset of SQLAlchemy session APIs used by the join service."""

    def commit(self) -> None: ...

    def rollback(self) -> None: ...

    def refresh(self, instance: object) -> None: ...


class DealRepositoryProtocol(Protocol):
    """Deal repository contract consumed by the join service."""

    def get(self, deal_id: UUID) -> Deal | None: ...

    def has_participant(self, *, deal_id: UUID, user_id: UUID) -> bool: ...

    def reserve_slot(
        self, *, deal_id: UUID, user_id: UUID, now: datetime
    ) -> bool: ...

    def add_participant(
        self,
        *,
        deal_id: UUID,
        user_id: UUID,
        product_id: UUID | None,
        joined_at: datetime,
    ) -> DealParticipant: ...

    def mark_expired(self, *, deal_id: UUID, now: datetime) -> bool: ...


class ProductRepositoryProtocol(Protocol):
    """Product repository contract consumed by the join service."""

    def get(self, product_id: UUID) -> Product | None: ...

    def decrement_stock(self, product_id: UUID) -> bool: ...


@dataclass(slots=True, frozen=True)
class JoinDealInput:
    """Input model for one join attempt."""

    deal_id: UUID
    user_id: UUID
    user_email: str = ""
    user_name: str = ""
    product_id: UUID | None = None


@dataclass(slots=True, frozen=True)
class JoinDealResult:
    """Outcome of a committed join."""

    deal: Deal
    product: Product | None
    joined_event: DealJoinedEvent
    completed_event: DealCompletedEvent | None

    @property
    def completed(self) -> bool:
        return self.completed_event is not None


def is_duplicate_participant(exc: IntegrityError) -> bool:
    error_text = str(exc.orig)
    return any(marker in error_text for marker in DUPLICATE_PARTICIPANT_MARKERS)


class DealJoinService:
    """Adds a participant to a deal without ever overcommitting capacity.

    Preconditions are checked in a fixed order so the reported error is
    deterministic. The checks are then enforced again by the storage layer
    through a single guarded UPDATE, so concurrent joins racing for the last
    slot cannot both succeed. Participant row, counter, completion status and
    product stock are committed in one transaction.
    """

    def __init__(
        self,
        *,
        deal_repository: DealRepositoryProtocol,
        product_repository: ProductRepositoryProtocol,
        session: SessionProtocol,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._deal_repository = deal_repository
        self._product_repository = product_repository
        self._session = session
        self._clock = clock

    def join(self, payload: JoinDealInput) -> JoinDealResult:
        now = self._clock()
        deal = self._load_joinable_deal(payload, now)
        product = self._resolve_product(payload, deal)

        try:
            for _ in range(MAX_RESERVATION_ATTEMPTS):
                if self._deal_repository.reserve_slot(
                    deal_id=deal.id,
                    user_id=payload.user_id,
                    now=now,
                ):
                    break
                # The guarded update lost a race; re-read to report the exact
                # rule that now fails, or try again if none does.
                self._session.rollback()
                deal = self._load_joinable_deal(payload, now)
            else:
                raise DealFullError(
                    message="Deal is full.",
                    details={"deal_id": str(payload.deal_id)},
                )

            self._deal_repository.add_participant(
                deal_id=deal.id,
                user_id=payload.user_id,
                product_id=product.id if product else None,
                joined_at=now,
            )
            if product is not None and not self._product_repository.decrement_stock(
                product.id
            ):
                raise OutOfStockError(
                    message="Product is out of stock.",
                    details={"product_id": str(product.id)},
                )
            self._session.commit()
        except IntegrityError as exc:
            self._session.rollback()
            if not is_duplicate_participant(exc):
                raise
            raise DuplicateJoinError(
                message="User has already joined this deal.",
                details={"deal_id": str(payload.deal_id)},
            ) from exc
        except Exception:
            self._session.rollback()
            raise

        self._session.refresh(deal)
        if product is not None:
            self._session.refresh(product)

        logger.info(
            "deal_joined",
            extra={
                "deal_id": str(deal.id),
                "user_id": str(payload.user_id),
                "product_id": str(product.id) if product else None,
                "current_participants": deal.current_participants,
                "status": deal.status.value,
            },
        )
        return JoinDealResult(
            deal=deal,
            product=product,
            joined_event=self._joined_event(payload, deal, product, now),
            completed_event=self._completed_event(deal, now),
        )

    def _load_joinable_deal(self, payload: JoinDealInput, now: datetime) -> Deal:
        deal = self._deal_repository.get(payload.deal_id)
        if deal is None:
            raise NotFoundError(
                message="Deal not found.",
                details={"deal_id": str(payload.deal_id)},
            )
        try:
            self._ensure_joinable(deal, payload.user_id, now)
        except DomainError as exc:
            logger.info(
                "join_rejected",
                extra={
                    "deal_id": str(deal.id),
                    "user_id": str(payload.user_id),
                    "code": exc.code,
                },
            )
            raise
        return deal

    def _ensure_joinable(self, deal: Deal, user_id: UUID, now: datetime) -> None:
        details = {"deal_id": str(deal.id)}

        if deal.status == DealStatus.EXPIRED:
            raise DealExpiredError(message="Deal has expired.", details=details)

        # A completed deal reached capacity, so report it as full.
        if deal.status == DealStatus.COMPLETED:
            raise DealFullError(message="Deal is full.", details=details)

        if deal.status != DealStatus.ACTIVE:
            raise InvalidStateError(
                message=f"Deal is not active (status: {deal.status.value}).",
                details={**details, "status": deal.status.value},
            )

        if is_expired(deal.expiry_date, now):
            self._correct_expired(deal, now)
            raise DealExpiredError(message="Deal has expired.", details=details)

        if deal.current_participants >= deal.max_participants:
            raise DealFullError(message="Deal is full.", details=details)

        if self._deal_repository.has_participant(deal_id=deal.id, user_id=user_id):
            raise DuplicateJoinError(
                message="User has already joined this deal.",
                details=details,
            )

    def _correct_expired(self, deal: Deal, now: datetime) -> None:
        try:
            if self._deal_repository.mark_expired(deal_id=deal.id, now=now):
                self._session.commit()
                logger.info("deal_expired", extra={"deal_id": str(deal.id)})
        except Exception:
            self._session.rollback()
            raise

    def _resolve_product(self, payload: JoinDealInput, deal: Deal) -> Product | None:
        if payload.product_id is None:
            return None

        product = self._product_repository.get(payload.product_id)
        if product is None or not product.is_active:
            raise NotFoundError(
                message="Product not found.",
                details={"product_id": str(payload.product_id)},
            )
        if product.category_id != deal.category_id:
            raise CategoryMismatchError(
                message="Product category does not match the deal category.",
                details={
                    "product_id": str(product.id),
                    "deal_id": str(deal.id),
                },
            )
        if product.stock <= 0:
            raise OutOfStockError(
                message="Product is out of stock.",
                details={"product_id": str(product.id)},
            )
        return product

    @staticmethod
    def _joined_event(
        payload: JoinDealInput,
        deal: Deal,
        product: Product | None,
        now: datetime,
    ) -> DealJoinedEvent:
        return DealJoinedEvent(
            user_id=str(payload.user_id),
            user_email=payload.user_email,
            user_name=payload.user_name,
            deal_id=str(deal.id),
            deal_code=deal.code,
            deal_title=deal.title,
            jam3a_price=format_money(deal.jam3a_price),
            current_participants=deal.current_participants,
            max_participants=deal.max_participants,
            status=deal.status.value,
            joined_at=now,
            product_id=str(product.id) if product else None,
            product_name=product.name if product else None,
        )

    @staticmethod
    def _completed_event(deal: Deal, now: datetime) -> DealCompletedEvent | None:
        if deal.status != DealStatus.COMPLETED:
            return None
        return DealCompletedEvent(
            deal_id=str(deal.id),
            deal_code=deal.code,
            deal_title=deal.title,
            participant_ids=tuple(
                str(participant.user_id) for participant in deal.participants
            ),
            completed_at=now,
        )
