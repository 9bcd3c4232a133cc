"""Best-effort notifications fired after a join commits."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Protocol

import httpx

from jam3a.core.settings import Settings
from jam3a.domain.deal_rules import utc_now

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class DealJoinedEvent:
    """Snapshot of a successful join, detached from the ORM session."""

    user_id: str
    user_email: str
    user_name: str
    deal_id: str
    deal_code: str
    deal_title: str
    jam3a_price: str
    current_participants: int
    max_participants: int
    status: str
    joined_at: datetime
    product_id: str | None = None
    product_name: str | None = None


@dataclass(slots=True, frozen=True)
class DealCompletedEvent:
    """Snapshot of a deal that just reached capacity."""

    deal_id: str
    deal_code: str
    deal_title: str
    participant_ids: tuple[str, ...]
    completed_at: datetime


class NotificationDispatcher(Protocol):
    """Delivery channel for deal events."""

    def deal_joined(self, event: DealJoinedEvent) -> None: ...

    def deal_completed(self, event: DealCompletedEvent) -> None: ...


class NullNotificationDispatcher:
    """Dispatcher used when notifications are disabled."""

    def deal_joined(self, event: DealJoinedEvent) -> None:
        logger.debug("notification_skipped", extra={"deal_id": event.deal_id})

    def deal_completed(self, event: DealCompletedEvent) -> None:
        logger.debug("notification_skipped", extra={"deal_id": event.deal_id})


def _event_payload(event: DealJoinedEvent | DealCompletedEvent) -> dict[str, Any]:
    payload: dict[str, Any] = {}
    for key, value in asdict(event).items():
        if isinstance(value, datetime):
            payload[key] = value.isoformat()
        elif isinstance(value, tuple):
            payload[key] = list(value)
        else:
            payload[key] = value
    payload["timestamp"] = utc_now().isoformat()
    return payload


@dataclass(slots=True, frozen=True)
class WebhookNotificationDispatcher:
    """Posts deal events to Zapier catch hooks."""

    order_webhook_url: str | None
    group_webhook_url: str | None
    timeout_seconds: float
    transport: httpx.BaseTransport | None = None

    def deal_joined(self, event: DealJoinedEvent) -> None:
        self._post("order", self.order_webhook_url, _event_payload(event))

    def deal_completed(self, event: DealCompletedEvent) -> None:
        self._post("group", self.group_webhook_url, _event_payload(event))

    def _post(self, hook: str, url: str | None, payload: dict[str, Any]) -> None:
        if not url:
            logger.debug("webhook_not_configured", extra={"hook": hook})
            return

        with httpx.Client(
            timeout=self.timeout_seconds,
            transport=self.transport,
        ) as client:
            response = client.post(url, json=payload)
        response.raise_for_status()
        logger.info(
            "webhook_delivered",
            extra={"hook": hook, "status_code": response.status_code},
        )


def build_notification_dispatcher(settings: Settings) -> NotificationDispatcher:
    """Select the dispatcher configured for this process."""

    if not settings.notifications_enabled:
        return NullNotificationDispatcher()
    return WebhookNotificationDispatcher(
        order_webhook_url=settings.zapier_webhook_order,
        group_webhook_url=settings.zapier_webhook_group,
        timeout_seconds=settings.notification_timeout_seconds,
    )


class NotificationService:
    """Runs dispatchers and keeps their failures away from the caller."""

    def __init__(self, dispatcher: NotificationDispatcher) -> None:
        self._dispatcher = dispatcher

    def notify_join(
        self,
        joined: DealJoinedEvent,
        completed: DealCompletedEvent | None = None,
    ) -> None:
        try:
            self._dispatcher.deal_joined(joined)
        except Exception:
            logger.exception(
                "notification_failed",
                extra={"event": "deal_joined", "deal_id": joined.deal_id},
            )

        if completed is None:
            return

        try:
            self._dispatcher.deal_completed(completed)
        except Exception:
            logger.exception(
                "notification_failed",
                extra={"event": "deal_completed", "deal_id": completed.deal_id},
            )
