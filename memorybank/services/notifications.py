"""NotificationBus — typed publish/subscribe for memory bank events.

Subscribers are kept in an explicit registry (subscription_id → record)
and publish() walks it in subscription order, invoking every matching
callback synchronously. A failing callback is isolated: it is logged,
recorded in the DeliveryReport, and delivery continues.
"""

from __future__ import annotations

import threading
import uuid
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

from memorybank.exceptions import SubscriberCallbackError
from memorybank.schemas.enums import EventType
from memorybank.schemas.notification import Notification
from memorybank.utils.logging import get_logger

NotificationCallback = Callable[[Notification], Any]

_KNOWN_EVENT_TYPES = frozenset(e.value for e in EventType)


def event_type_value(event_type: EventType | str) -> str:
    """Normalize an EventType or raw string to its wire value."""
    if isinstance(event_type, EventType):
        return event_type.value
    return str(event_type)


@dataclass(frozen=True)
class Subscription:
    """A registered interest in some (or all) event types."""

    subscription_id: str
    connection_id: str
    event_types: frozenset[str] | None  # None = every event type
    callback: NotificationCallback

    def matches(self, event_type: str) -> bool:
        return self.event_types is None or event_type in self.event_types


@dataclass(frozen=True)
class DeliveryReport:
    """Outcome of one publish() call."""

    event_type: str
    delivered: int = 0
    failures: tuple[SubscriberCallbackError, ...] = field(default_factory=tuple)

    @property
    def ok(self) -> bool:
        return not self.failures


class NotificationBus:
    """Explicit subscriber registry with synchronous, fault-isolated fan-out.

    Thread-safe. Registry changes are guarded by a lock; delivery
    iterates a snapshot, so callbacks may subscribe or unsubscribe
    re-entrantly.
    """

    def __init__(self, logger: Any = None) -> None:
        self._log = logger if logger is not None else get_logger("notification_bus")
        self._lock = threading.RLock()
        self._subscriptions: dict[str, Subscription] = {}
        self._by_connection: dict[str, list[str]] = {}

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def subscribe(
        self,
        connection_id: str,
        event_types: Iterable[EventType | str] | None,
        callback: NotificationCallback,
    ) -> str:
        """Register a callback. Empty or None event_types means all events.

        Returns the new subscription id.
        """
        if not connection_id:
            raise ValueError("connection_id is required")
        if not callable(callback):
            raise ValueError("callback must be callable")

        if isinstance(event_types, str):
            raise ValueError("event_types must be an iterable of event types, not a string")

        types: frozenset[str] | None = None
        if event_types is not None:
            types = frozenset(event_type_value(e) for e in event_types) or None
        if types:
            unknown = types - _KNOWN_EVENT_TYPES
            if unknown:
                self._log.warning(
                    "Subscription includes unknown event types",
                    connection_id=connection_id,
                    event_types=sorted(unknown),
                )

        subscription = Subscription(
            subscription_id=str(uuid.uuid4()),
            connection_id=connection_id,
            event_types=types,
            callback=callback,
        )
        with self._lock:
            self._subscriptions[subscription.subscription_id] = subscription
            self._by_connection.setdefault(connection_id, []).append(subscription.subscription_id)

        self._log.debug(
            "Subscribed",
            connection_id=connection_id,
            subscription_id=subscription.subscription_id,
            event_types=sorted(types) if types else "all",
        )
        return subscription.subscription_id

    def unsubscribe(self, subscription_id: str) -> bool:
        """Remove one subscription. False if it is unknown."""
        with self._lock:
            subscription = self._subscriptions.pop(subscription_id, None)
            if subscription is None:
                return False
            owned = self._by_connection.get(subscription.connection_id, [])
            if subscription_id in owned:
                owned.remove(subscription_id)
            if not owned:
                self._by_connection.pop(subscription.connection_id, None)

        self._log.debug("Unsubscribed", subscription_id=subscription_id)
        return True

    def unsubscribe_all(self, connection_id: str) -> int:
        """Remove every subscription owned by a connection. Returns the count."""
        with self._lock:
            owned = list(self._by_connection.get(connection_id, []))
            count = sum(1 for sid in owned if self.unsubscribe(sid))

        if count:
            self._log.debug(
                "Connection unsubscribed",
                connection_id=connection_id,
                count=count,
            )
        return count

    def subscription_count(self, connection_id: str | None = None) -> int:
        with self._lock:
            if connection_id is not None:
                return len(self._by_connection.get(connection_id, []))
            return len(self._subscriptions)

    def get_subscription(self, subscription_id: str) -> Subscription | None:
        with self._lock:
            return self._subscriptions.get(subscription_id)

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    def publish(self, event_type: EventType | str, data: dict[str, Any] | None = None) -> DeliveryReport:
        """Deliver an event to every matching subscriber, in subscription order."""
        value = event_type_value(event_type)
        if value not in _KNOWN_EVENT_TYPES:
            self._log.warning("Publishing unknown event type", event_type=value)

        with self._lock:
            targets = [s for s in self._subscriptions.values() if s.matches(value)]
        if not targets:
            return DeliveryReport(event_type=value)

        notification = Notification(type=value, data=dict(data or {}))
        delivered = 0
        failures: list[SubscriberCallbackError] = []

        for subscription in targets:
            with self._lock:
                still_registered = subscription.subscription_id in self._subscriptions
            if not still_registered:
                continue
            try:
                subscription.callback(notification)
                delivered += 1
            except Exception as exc:
                error = SubscriberCallbackError(
                    f"Subscriber {subscription.subscription_id} failed on {value}: {exc}",
                    component_id=notification.data.get("componentId"),
                    subscription_id=subscription.subscription_id,
                    event_type=value,
                )
                error.__cause__ = exc
                failures.append(error)
                self._log.error(
                    "Subscriber callback failed",
                    subscription_id=subscription.subscription_id,
                    connection_id=subscription.connection_id,
                    event_type=value,
                    error=str(exc),
                )

        if delivered:
            self._log.debug("Event delivered", event_type=value, delivered=delivered)
        return DeliveryReport(event_type=value, delivered=delivered, failures=tuple(failures))
