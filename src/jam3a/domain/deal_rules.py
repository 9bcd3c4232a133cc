"""Deal state machine, expiry and countdown rules."""

from __future__ import annotations

from datetime import UTC, datetime

from jam3a.db.models.deal import DealStatus

TERMINAL_STATUSES = frozenset(
    {DealStatus.COMPLETED, DealStatus.CANCELLED, DealStatus.EXPIRED}
)

# Transitions an owner or admin may request explicitly. Completion and
# expiry are only ever applied by the join operation and the expiry rules.
MANUAL_TRANSITIONS: dict[DealStatus, frozenset[DealStatus]] = {
    DealStatus.PENDING: frozenset({DealStatus.ACTIVE, DealStatus.CANCELLED}),
    DealStatus.ACTIVE: frozenset({DealStatus.CANCELLED}),
    DealStatus.COMPLETED: frozenset(),
    DealStatus.CANCELLED: frozenset(),
    DealStatus.EXPIRED: frozenset(),
}

INITIAL_STATUSES = frozenset({DealStatus.PENDING, DealStatus.ACTIVE})


def utc_now() -> datetime:
    """Return the current instant as an aware UTC datetime."""

    return datetime.now(tz=UTC)


def as_utc(value: datetime) -> datetime:
    """Normalize datetimes read back from storage to aware UTC."""

    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def is_terminal(status: DealStatus) -> bool:
    return status in TERMINAL_STATUSES


def can_transition(current: DealStatus, target: DealStatus) -> bool:
    """Tell whether an explicit status change is allowed."""

    return target in MANUAL_TRANSITIONS[current]


def is_expired(expiry_date: datetime, now: datetime) -> bool:
    """A deal expires strictly after its expiry instant."""

    return as_utc(now) > as_utc(expiry_date)


def is_overdue(status: DealStatus, expiry_date: datetime, now: datetime) -> bool:
    """Active deals past expiry must be corrected to expired."""

    return status == DealStatus.ACTIVE and is_expired(expiry_date, now)


def reaches_capacity(current_participants: int, max_participants: int) -> bool:
    return current_participants >= max_participants


def format_time_remaining(expiry_date: datetime, now: datetime) -> str:
    """Render countdown as ``Nd HH:MM:SS`` or ``HH:MM:SS``."""

    remaining = as_utc(expiry_date) - as_utc(now)
    total_seconds = int(remaining.total_seconds())
    if total_seconds <= 0:
        return "00:00:00"

    days, rest = divmod(total_seconds, 86_400)
    hours, rest = divmod(rest, 3_600)
    minutes, seconds = divmod(rest, 60)
    clock = f"{hours:02d}:{minutes:02d}:{seconds:02d}"
    if days > 0:
        return f"{days}d {clock}"
    return clock
