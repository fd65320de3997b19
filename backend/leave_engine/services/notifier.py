"""Fire-and-forget notification dispatch.

Live subscribers are tracked in an explicit ``SessionRegistry`` rather than a
module-level dict of connections. Delivery failures never propagate to the
operation that triggered the notification.
"""

# ruff: noqa: TC003
from __future__ import annotations

import asyncio
import logging
import uuid
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from leave_engine.models.base import now_utc
from leave_engine.models.enums import NotificationEvent

logger = logging.getLogger(__name__)

ADMIN_AUDIENCE = "admins"


@dataclass(frozen=True)
class Notification:
    """A single event delivered to one recipient."""

    recipient: str
    event: NotificationEvent
    payload: dict[str, Any]
    created_at: datetime = field(default_factory=now_utc)


@runtime_checkable
class Notifier(Protocol):
    """Interface for the notification collaborator."""

    async def notify(
        self,
        recipients: Iterable[str],
        event: NotificationEvent,
        payload: dict[str, Any],
    ) -> None: ...


class SessionRegistry:
    """Registry of live subscriber queues, keyed by recipient id."""

    def __init__(self, max_queue_size: int = 100) -> None:
        self._subscribers: dict[str, set[asyncio.Queue[Notification]]] = defaultdict(set)
        self._max_queue_size = max_queue_size

    def subscribe(self, recipient: str) -> asyncio.Queue[Notification]:
        queue: asyncio.Queue[Notification] = asyncio.Queue(maxsize=self._max_queue_size)
        self._subscribers[recipient].add(queue)
        return queue

    def unsubscribe(self, recipient: str, queue: asyncio.Queue[Notification]) -> None:
        queues = self._subscribers.get(recipient)
        if queues is None:
            return
        queues.discard(queue)
        if not queues:
            del self._subscribers[recipient]

    def subscriber_count(self, recipient: str) -> int:
        return len(self._subscribers.get(recipient, ()))

    def publish(self, notification: Notification) -> int:
        """Push to every live queue of the recipient. Returns the number delivered."""
        delivered = 0
        for queue in list(self._subscribers.get(notification.recipient, ())):
            try:
                queue.put_nowait(notification)
            except asyncio.QueueFull:
                logger.warning("Dropping %s for %s: subscriber queue full", notification.event, notification.recipient)
                continue
            delivered += 1
        return delivered


class RegistryNotifier:
    """Notifier that publishes to live subscribers in a SessionRegistry."""

    def __init__(self, registry: SessionRegistry | None = None) -> None:
        self.registry = registry or SessionRegistry()

    async def notify(
        self,
        recipients: Iterable[str],
        event: NotificationEvent,
        payload: dict[str, Any],
    ) -> None:
        for recipient in recipients:
            self.registry.publish(Notification(recipient=recipient, event=event, payload=payload))


_notifier: Notifier = RegistryNotifier()


def get_notifier() -> Notifier:
    return _notifier


def set_notifier(notifier: Notifier) -> None:
    """Override the notifier (for testing or production wiring)."""
    global _notifier
    _notifier = notifier


def trainer_recipient(trainer_id: uuid.UUID) -> str:
    return str(trainer_id)


async def dispatch_notification(
    recipients: Iterable[str],
    event: NotificationEvent,
    payload: dict[str, Any],
) -> None:
    """Invoke the configured notifier after a successful commit. Never raises."""
    recipients = list(recipients)
    try:
        await get_notifier().notify(recipients, event, payload)
    except Exception:
        logger.exception("Notification %s to %s failed", event, recipients)
