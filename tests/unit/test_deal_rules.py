from datetime import UTC, datetime, timedelta, timezone

import pytest

from jam3a.db.models.deal import DealStatus
from jam3a.domain.deal_rules import (
    as_utc,
    can_transition,
    format_time_remaining,
    is_expired,
    is_overdue,
    is_terminal,
    reaches_capacity,
)

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=UTC)


@pytest.mark.parametrize(
    ("current", "target", "allowed"),
    [
        (DealStatus.PENDING, DealStatus.ACTIVE, True),
        (DealStatus.PENDING, DealStatus.CANCELLED, True),
        (DealStatus.ACTIVE, DealStatus.CANCELLED, True),
        (DealStatus.ACTIVE, DealStatus.COMPLETED, False),
        (DealStatus.ACTIVE, DealStatus.PENDING, False),
        (DealStatus.COMPLETED, DealStatus.ACTIVE, False),
        (DealStatus.EXPIRED, DealStatus.ACTIVE, False),
        (DealStatus.CANCELLED, DealStatus.ACTIVE, False),
    ],
)
def test_manual_transitions(
    current: DealStatus, target: DealStatus, allowed: bool
) -> None:
    assert can_transition(current, target) is allowed


def test_terminal_statuses() -> None:
    assert is_terminal(DealStatus.COMPLETED)
    assert is_terminal(DealStatus.CANCELLED)
    assert is_terminal(DealStatus.EXPIRED)
    assert not is_terminal(DealStatus.ACTIVE)
    assert not is_terminal(DealStatus.PENDING)


def test_deal_expires_strictly_after_expiry_instant() -> None:
    assert not is_expired(NOW, NOW)
    assert is_expired(NOW, NOW + timedelta(microseconds=1))


def test_naive_storage_values_are_treated_as_utc() -> None:
    naive = datetime(2026, 10, 19, 12, 0)
    assert as_utc(naive) == NOW

    riyadh = timezone(timedelta(hours=3))
    assert as_utc(datetime(2026, 10, 19, 15, 0, tzinfo=riyadh)) == NOW


def test_only_active_deals_become_overdue() -> None:
    past = NOW - timedelta(days=1)
    assert is_overdue(DealStatus.ACTIVE, past, NOW)
    assert not is_overdue(DealStatus.PENDING, past, NOW)
    assert not is_overdue(DealStatus.ACTIVE, NOW + timedelta(days=1), NOW)


def test_reaches_capacity() -> None:
    assert reaches_capacity(2, 2)
    assert not reaches_capacity(1, 2)


@pytest.mark.parametrize(
    ("delta", "expected"),
    [
        (timedelta(days=3, hours=4, minutes=5, seconds=6), "3d 04:05:06"),
        (timedelta(hours=4, minutes=5, seconds=6), "04:05:06"),
        (timedelta(seconds=0), "00:00:00"),
        (-timedelta(days=1), "00:00:00"),
    ],
)
def test_format_time_remaining(delta: timedelta, expected: str) -> None:
    assert format_time_remaining(NOW + delta, NOW) == expected
