"""Persistence operations for deals and their participants."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from sqlalchemy import Select, case, exists, func, literal, or_, select, update
from sqlalchemy.orm import Session

from jam3a.db.models.deal import Deal, DealStatus
from jam3a.db.models.deal_participant import DealParticipant
from jam3a.db.session import retry_transient


class DealSort(enum.StrEnum):
    """Supported deal list orderings, newest/highest first."""

    CREATED_AT = "created_at"
    DISCOUNT = "discount"
    PARTICIPANTS = "participants"


@dataclass(slots=True, frozen=True)
class DealListFilters:
    """Filters for listing deals."""

    status: DealStatus | None = DealStatus.ACTIVE
    category_id: UUID | None = None
    featured: bool | None = None
    min_participants: int | None = None
    max_participants: int | None = None
    query: str | None = None
    sort: DealSort = DealSort.CREATED_AT
    limit: int = 50
    offset: int = 0


class DealRepository:
    """Repository for deals, participant rows and guarded counters."""

    def __init__(self, session: Session) -> None:
        self._session = session

    @retry_transient
    def get(self, deal_id: UUID) -> Deal | None:
        """Fetch deal by id with category populated."""

        statement = select(Deal).where(Deal.id == deal_id)
        return self._session.scalar(statement)

    @retry_transient
    def get_for_update(self, deal_id: UUID) -> Deal | None:
        """Fetch and lock one deal by id."""

        statement = select(Deal).where(Deal.id == deal_id).with_for_update(of=Deal)
        return self._session.scalar(statement)

    def add(self, deal: Deal) -> Deal:
        """Persist a newly created deal."""

        self._session.add(deal)
        self._session.flush()
        return deal

    def delete(self, deal: Deal) -> None:
        self._session.delete(deal)
        self._session.flush()

    def flush(self) -> None:
        self._session.flush()

    @retry_transient
    def code_exists(self, code: str) -> bool:
        statement = select(exists().where(Deal.code == code))
        return bool(self._session.scalar(statement))

    @retry_transient
    def has_participant(self, *, deal_id: UUID, user_id: UUID) -> bool:
        statement = select(
            exists().where(
                DealParticipant.deal_id == deal_id,
                DealParticipant.user_id == user_id,
            )
        )
        return bool(self._session.scalar(statement))

    @retry_transient
    def list_deals(self, filters: DealListFilters) -> tuple[list[Deal], int]:
        """List deals with optional filters, ordering and pagination."""

        statement = self._apply_list_filters(select(Deal), filters)
        total_statement = select(func.count()).select_from(statement.subquery())
        total = int(self._session.scalar(total_statement) or 0)

        page_statement = (
            statement.order_by(*self._ordering(filters.sort))
            .limit(filters.limit)
            .offset(filters.offset)
        )
        items = list(self._session.scalars(page_statement).unique().all())
        return items, total

    @retry_transient
    def list_featured(self, limit: int) -> list[Deal]:
        """List active featured deals, newest first."""

        statement = (
            select(Deal)
            .where(Deal.status == DealStatus.ACTIVE, Deal.featured.is_(True))
            .order_by(Deal.created_at.desc(), Deal.id.desc())
            .limit(limit)
        )
        return list(self._session.scalars(statement).unique().all())

    def reserve_slot(self, *, deal_id: UUID, user_id: UUID, now: datetime) -> bool:
        """Take one capacity slot in a single guarded UPDATE.

        The row only changes while the deal is active, not expired, below
        capacity and not yet joined by the user. The join that fills the
        last slot also flips the status to completed in the same statement.
        """

        already_joined = exists().where(
            DealParticipant.deal_id == deal_id,
            DealParticipant.user_id == user_id,
        )
        statement = (
            update(Deal)
            .where(
                Deal.id == deal_id,
                Deal.status == DealStatus.ACTIVE,
                Deal.expiry_date >= now,
                Deal.current_participants < Deal.max_participants,
                ~already_joined,
            )
            .values(
                current_participants=Deal.current_participants + 1,
                status=case(
                    (
                        Deal.current_participants + 1 >= Deal.max_participants,
                        literal(DealStatus.COMPLETED.value),
                    ),
                    else_=literal(DealStatus.ACTIVE.value),
                ),
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        result = self._session.execute(statement)
        return result.rowcount == 1

    def add_participant(
        self,
        *,
        deal_id: UUID,
        user_id: UUID,
        product_id: UUID | None,
        joined_at: datetime,
    ) -> DealParticipant:
        participant = DealParticipant(
            deal_id=deal_id,
            user_id=user_id,
            product_id=product_id,
            joined_at=joined_at,
        )
        self._session.add(participant)
        self._session.flush()
        return participant

    def mark_expired(self, *, deal_id: UUID, now: datetime) -> bool:
        """Correct one overdue active deal to expired."""

        statement = (
            update(Deal)
            .where(
                Deal.id == deal_id,
                Deal.status == DealStatus.ACTIVE,
                Deal.expiry_date < now,
            )
            .values(status=DealStatus.EXPIRED, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        return self._session.execute(statement).rowcount == 1

    def expire_overdue(self, now: datetime) -> int:
        """Correct every overdue active deal to expired."""

        statement = (
            update(Deal)
            .where(Deal.status == DealStatus.ACTIVE, Deal.expiry_date < now)
            .values(status=DealStatus.EXPIRED, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        return int(self._session.execute(statement).rowcount or 0)

    @staticmethod
    def _ordering(sort: DealSort) -> tuple[object, ...]:
        if sort == DealSort.DISCOUNT:
            return (Deal.discount_percentage.desc(), Deal.created_at.desc())
        if sort == DealSort.PARTICIPANTS:
            return (Deal.current_participants.desc(), Deal.created_at.desc())
        return (Deal.created_at.desc(), Deal.id.desc())

    @staticmethod
    def _apply_list_filters(
        statement: Select[tuple[Deal]],
        filters: DealListFilters,
    ) -> Select[tuple[Deal]]:
        typed_statement = statement

        if filters.status is not None:
            typed_statement = typed_statement.where(Deal.status == filters.status)

        if filters.category_id is not None:
            typed_statement = typed_statement.where(
                Deal.category_id == filters.category_id
            )

        if filters.featured is not None:
            typed_statement = typed_statement.where(
                Deal.featured.is_(filters.featured)
            )

        if filters.min_participants is not None:
            typed_statement = typed_statement.where(
                Deal.current_participants >= filters.min_participants
            )

        if filters.max_participants is not None:
            typed_statement = typed_statement.where(
                Deal.current_participants <= filters.max_participants
            )

        if filters.query:
            typed_statement = typed_statement.where(
                or_(
                    Deal.title.icontains(filters.query, autoescape=True),
                    Deal.description.icontains(filters.query, autoescape=True),
                    Deal.code.icontains(filters.query, autoescape=True),
                )
            )

        return typed_statement
