from __future__ import annotations

from collections.abc import Generator
from datetime import timedelta
from decimal import Decimal
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

import pytest
from sqlalchemy.orm import Session, sessionmaker

from jam3a.db.models.deal import Deal, DealStatus
from jam3a.db.models.user import UserRole
from jam3a.domain.authorization import Actor, AuthorizationPolicy
from jam3a.domain.deal_rules import utc_now
from jam3a.domain.errors import (
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from jam3a.repositories.category_repository import CategoryRepository
from jam3a.repositories.deal_repository import DealListFilters, DealRepository
from jam3a.services.deal_service import CreateDealInput, DealService, UpdateDealInput

if TYPE_CHECKING:
    from conftest import Seeder


@pytest.fixture
def session(
    sqlite_session_factory: sessionmaker[Session],
) -> Generator[Session, None, None]:
    with sqlite_session_factory() as db_session:
        yield db_session


@pytest.fixture
def service(session: Session) -> DealService:
    return DealService(
        deal_repository=DealRepository(session),
        category_repository=CategoryRepository(session),
        session=session,
        policy=AuthorizationPolicy(),
    )


def actor_for(seed: Seeder, role: UserRole) -> Actor:
    return Actor.from_user(seed.user(role))


def create_payload(category_id: UUID, **overrides: Any) -> CreateDealInput:
    values = {
        "title": "  Pixel 9 group deal ",
        "description": "Unlock the group price with four friends.",
        "category_id": category_id,
        "regular_price": Decimal("1000"),
        "jam3a_price": Decimal("750.5"),
        "max_participants": 4,
        "expiry_date": utc_now() + timedelta(days=3),
    }
    values.update(overrides)
    return CreateDealInput(**values)


def test_seller_creates_deal_with_generated_code_and_discount(
    service: DealService,
    seed: Seeder,
) -> None:
    seller = actor_for(seed, UserRole.SELLER)
    category = seed.category()

    deal = service.create_deal(create_payload(category.id), seller)

    assert deal.code.startswith("JAM-")
    assert len(deal.code) == len("JAM-000000")
    assert deal.title == "Pixel 9 group deal"
    assert deal.jam3a_price == Decimal("750.50")
    assert deal.discount_percentage == Decimal("24.95")
    assert deal.current_participants == 0
    assert deal.status == DealStatus.ACTIVE
    assert deal.created_by_id == seller.user_id


def test_customer_cannot_create_deal(service: DealService, seed: Seeder) -> None:
    category = seed.category()

    with pytest.raises(ForbiddenError):
        service.create_deal(
            create_payload(category.id), actor_for(seed, UserRole.CUSTOMER)
        )


@pytest.mark.parametrize(
    "overrides",
    [
        {"jam3a_price": Decimal("1000")},
        {"jam3a_price": Decimal("1200")},
        {"regular_price": Decimal("0")},
        {"min_participants": 5, "max_participants": 4},
        {"min_participants": 0},
        {"expiry_date": utc_now() - timedelta(minutes=1)},
        {"status": DealStatus.COMPLETED},
    ],
)
def test_create_rejects_invalid_deal(
    service: DealService,
    seed: Seeder,
    overrides: dict[str, object],
) -> None:
    category = seed.category()

    with pytest.raises(ValidationError):
        service.create_deal(
            create_payload(category.id, **overrides),
            actor_for(seed, UserRole.ADMIN),
        )


def test_create_rejects_inactive_category(service: DealService, seed: Seeder) -> None:
    category = seed.category(is_active=False)

    with pytest.raises(NotFoundError):
        service.create_deal(
            create_payload(category.id), actor_for(seed, UserRole.ADMIN)
        )


def test_create_rejects_taken_code(service: DealService, seed: Seeder) -> None:
    admin = actor_for(seed, UserRole.ADMIN)
    category = seed.category()
    service.create_deal(create_payload(category.id, code="jam-777777"), admin)

    with pytest.raises(ConflictError):
        service.create_deal(create_payload(category.id, code="JAM-777777"), admin)


def test_owner_updates_fields_and_discount_is_recomputed(
    service: DealService,
    seed: Seeder,
) -> None:
    seller = actor_for(seed, UserRole.SELLER)
    category = seed.category()
    deal = seed.deal(category.id, created_by_id=seller.user_id)

    updated = service.update_deal(
        UpdateDealInput(
            deal_id=deal.id,
            title="Renamed",
            jam3a_price=Decimal("500"),
            featured=True,
        ),
        seller,
    )

    assert updated.title == "Renamed"
    assert updated.discount_percentage == Decimal("50.00")
    assert updated.featured is True


def test_other_seller_cannot_update(service: DealService, seed: Seeder) -> None:
    owner = actor_for(seed, UserRole.SELLER)
    category = seed.category()
    deal = seed.deal(category.id, created_by_id=owner.user_id)

    with pytest.raises(ForbiddenError):
        service.update_deal(
            UpdateDealInput(deal_id=deal.id, title="Hijacked"),
            actor_for(seed, UserRole.SELLER),
        )


def test_max_participants_cannot_drop_below_current(
    service: DealService,
    seed: Seeder,
) -> None:
    category = seed.category()
    joined = [seed.user().id for _ in range(3)]
    deal = seed.deal(category.id, max_participants=5, participants=joined)

    with pytest.raises(ValidationError):
        service.update_deal(
            UpdateDealInput(deal_id=deal.id, max_participants=2),
            actor_for(seed, UserRole.ADMIN),
        )


def test_lowering_max_to_current_completes_deal(
    service: DealService,
    seed: Seeder,
) -> None:
    category = seed.category()
    joined = [seed.user().id for _ in range(3)]
    deal = seed.deal(category.id, max_participants=5, participants=joined)

    updated = service.update_deal(
        UpdateDealInput(deal_id=deal.id, max_participants=3, min_participants=2),
        actor_for(seed, UserRole.ADMIN),
    )

    assert updated.status == DealStatus.COMPLETED


def test_category_is_locked_once_deal_has_participants(
    service: DealService,
    seed: Seeder,
) -> None:
    category, other = seed.category(), seed.category()
    deal = seed.deal(category.id, participants=[seed.user().id])

    with pytest.raises(ValidationError):
        service.update_deal(
            UpdateDealInput(deal_id=deal.id, category_id=other.id),
            actor_for(seed, UserRole.ADMIN),
        )


def test_pending_deal_can_be_activated(service: DealService, seed: Seeder) -> None:
    category = seed.category()
    deal = seed.deal(category.id, status=DealStatus.PENDING)

    updated = service.update_deal(
        UpdateDealInput(deal_id=deal.id, status=DealStatus.ACTIVE),
        actor_for(seed, UserRole.ADMIN),
    )

    assert updated.status == DealStatus.ACTIVE


@pytest.mark.parametrize(
    ("current", "target"),
    [
        (DealStatus.ACTIVE, DealStatus.PENDING),
        (DealStatus.ACTIVE, DealStatus.COMPLETED),
        (DealStatus.CANCELLED, DealStatus.ACTIVE),
        (DealStatus.EXPIRED, DealStatus.ACTIVE),
        (DealStatus.COMPLETED, DealStatus.CANCELLED),
    ],
)
def test_disallowed_transitions_are_invalid_state(
    service: DealService,
    seed: Seeder,
    current: DealStatus,
    target: DealStatus,
) -> None:
    category = seed.category()
    deal = seed.deal(category.id, status=current)

    with pytest.raises(InvalidStateError):
        service.update_deal(
            UpdateDealInput(deal_id=deal.id, status=target),
            actor_for(seed, UserRole.ADMIN),
        )


def test_update_treats_overdue_deal_as_expired(
    service: DealService,
    seed: Seeder,
) -> None:
    category = seed.category()
    deal = seed.deal(category.id, expiry_date=utc_now() - timedelta(hours=2))

    with pytest.raises(InvalidStateError):
        service.update_deal(
            UpdateDealInput(deal_id=deal.id, status=DealStatus.CANCELLED),
            actor_for(seed, UserRole.ADMIN),
        )


def test_update_rejects_past_expiry_date(
    service: DealService,
    seed: Seeder,
    sqlite_session_factory: sessionmaker[Session],
) -> None:
    category = seed.category()
    deal = seed.deal(category.id)

    with pytest.raises(ValidationError):
        service.update_deal(
            UpdateDealInput(
                deal_id=deal.id,
                expiry_date=utc_now() - timedelta(days=1),
            ),
            actor_for(seed, UserRole.ADMIN),
        )

    with sqlite_session_factory() as fresh:
        stored = fresh.get(Deal, deal.id)
        assert stored is not None
        assert stored.status == DealStatus.ACTIVE
        assert stored.expiry_date == deal.expiry_date


def test_activating_overdue_pending_deal_stores_expired(
    service: DealService,
    seed: Seeder,
    sqlite_session_factory: sessionmaker[Session],
) -> None:
    category = seed.category()
    deal = seed.deal(
        category.id,
        status=DealStatus.PENDING,
        expiry_date=utc_now() - timedelta(hours=1),
    )

    updated = service.update_deal(
        UpdateDealInput(deal_id=deal.id, status=DealStatus.ACTIVE),
        actor_for(seed, UserRole.ADMIN),
    )

    assert updated.status == DealStatus.EXPIRED
    with sqlite_session_factory() as fresh:
        stored = fresh.get(Deal, deal.id)
        assert stored is not None
        assert stored.status == DealStatus.EXPIRED


def test_update_rejects_min_above_max_and_keeps_row(
    service: DealService,
    seed: Seeder,
    sqlite_session_factory: sessionmaker[Session],
) -> None:
    category = seed.category()
    deal = seed.deal(category.id, min_participants=2, max_participants=5)

    with pytest.raises(ValidationError):
        service.update_deal(
            UpdateDealInput(deal_id=deal.id, min_participants=6, title="Changed"),
            actor_for(seed, UserRole.ADMIN),
        )

    with sqlite_session_factory() as fresh:
        stored = fresh.get(Deal, deal.id)
        assert stored is not None
        assert stored.min_participants == 2
        assert stored.max_participants == 5
        assert stored.title == deal.title


def test_delete_without_participants_removes_row(
    service: DealService,
    seed: Seeder,
    sqlite_session_factory: sessionmaker[Session],
) -> None:
    seller = actor_for(seed, UserRole.SELLER)
    category = seed.category()
    deal = seed.deal(category.id, created_by_id=seller.user_id)

    result = service.delete_deal(deal.id, seller)

    assert result.outcome == "deleted"
    with sqlite_session_factory() as fresh:
        assert fresh.get(Deal, deal.id) is None


def test_delete_with_participants_cancels(
    service: DealService,
    seed: Seeder,
) -> None:
    category = seed.category()
    deal = seed.deal(category.id, participants=[seed.user().id])

    result = service.delete_deal(deal.id, actor_for(seed, UserRole.ADMIN))

    assert result.outcome == "cancelled"
    assert result.deal is not None
    assert result.deal.status == DealStatus.CANCELLED
    assert result.deal.current_participants == 1


def test_delete_of_completed_deal_with_participants_is_invalid_state(
    service: DealService,
    seed: Seeder,
) -> None:
    category = seed.category()
    joined = [seed.user().id, seed.user().id]
    deal = seed.deal(
        category.id,
        max_participants=2,
        participants=joined,
        status=DealStatus.COMPLETED,
    )

    with pytest.raises(InvalidStateError):
        service.delete_deal(deal.id, actor_for(seed, UserRole.ADMIN))


def test_delete_unknown_deal_is_not_found(service: DealService, seed: Seeder) -> None:
    with pytest.raises(NotFoundError):
        service.delete_deal(
            uuid4(),
            actor_for(seed, UserRole.ADMIN),
        )


def test_get_corrects_overdue_active_deal(service: DealService, seed: Seeder) -> None:
    category = seed.category()
    deal = seed.deal(category.id, expiry_date=utc_now() - timedelta(seconds=5))

    fetched = service.get_deal(deal.id)

    assert fetched.status == DealStatus.EXPIRED


def test_list_excludes_overdue_deals_from_active_listing(
    service: DealService,
    seed: Seeder,
) -> None:
    category = seed.category()
    running = seed.deal(category.id, title="Running")
    overdue = seed.deal(
        category.id,
        title="Overdue",
        expiry_date=utc_now() - timedelta(minutes=1),
    )

    active, active_total = service.list_deals(DealListFilters())
    everything, _ = service.list_deals(DealListFilters(status=None))

    assert [deal.id for deal in active] == [running.id]
    assert active_total == 1
    statuses = {deal.id: deal.status for deal in everything}
    assert statuses[overdue.id] == DealStatus.EXPIRED


def test_list_filters_by_query_and_participants(
    service: DealService,
    seed: Seeder,
) -> None:
    category = seed.category()
    seed.deal(category.id, title="Galaxy S25")
    busy = seed.deal(
        category.id,
        title="MacBook Pro",
        participants=[seed.user().id, seed.user().id],
    )

    by_query, _ = service.list_deals(DealListFilters(query="macbook"))
    by_count, _ = service.list_deals(DealListFilters(min_participants=2))

    assert [deal.id for deal in by_query] == [busy.id]
    assert [deal.id for deal in by_count] == [busy.id]


def test_featured_listing_only_returns_active_featured(
    service: DealService,
    seed: Seeder,
) -> None:
    category = seed.category()
    featured = seed.deal(category.id, featured=True)
    seed.deal(category.id, featured=False)
    seed.deal(category.id, featured=True, status=DealStatus.PENDING)
    seed.deal(
        category.id,
        featured=True,
        expiry_date=utc_now() - timedelta(minutes=1),
    )

    items = service.list_featured_deals(limit=10)

    assert [deal.id for deal in items] == [featured.id]
