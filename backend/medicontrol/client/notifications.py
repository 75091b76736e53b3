"""Client-side notification cache with explicit read reconciliation."""

from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass, field
from typing import Literal

from pydantic import ValidationError

from medicontrol.client.blob_store import BlobStore
from medicontrol.client.mirror import RemoteMirror
from medicontrol.client.records import Notification, utcnow

logger = logging.getLogger(__name__)

NOTIFICATIONS_KEY = "medicontrol-notifications"
DEFAULT_CACHE_SIZE = 50


@dataclass
class ReconciliationFailure:
    """A read flag applied locally that the backend has not confirmed."""

    action: Literal["mark_read", "mark_all_read"]
    error: str
    notification_id: str | None = None
    at: dt.datetime = field(default_factory=utcnow)


def _ordering(notification: Notification) -> tuple[int, dt.datetime]:
    return notification.priority, notification.created_at


class NotificationStore:
    """Most recent notifications, ordered by priority then recency.

    Read flags are applied optimistically and tagged ``pending`` until the
    backend confirms them. Failed confirmations are never rolled back; they
    are kept in :attr:`failures` until :meth:`retry_failed` succeeds.
    """

    def __init__(
        self, store: BlobStore, mirror: RemoteMirror, *, limit: int = DEFAULT_CACHE_SIZE
    ) -> None:
        self._store = store
        self._mirror = mirror
        self._limit = limit
        self._failures: list[ReconciliationFailure] = []
        self._items: list[Notification] = []
        for raw in store.get(NOTIFICATIONS_KEY, []) or []:
            try:
                self._items.append(Notification.model_validate(raw))
            except ValidationError:
                logger.warning("Skipping unreadable cached notification", exc_info=True)

    @property
    def items(self) -> list[Notification]:
        return list(self._items)

    @property
    def unread_count(self) -> int:
        return sum(1 for item in self._items if not item.is_read)

    @property
    def failures(self) -> list[ReconciliationFailure]:
        return list(self._failures)

    def get(self, notification_id: str) -> Notification | None:
        return next((item for item in self._items if item.id == notification_id), None)

    def _set_items(self, items: list[Notification]) -> None:
        ordered = sorted(items, key=_ordering, reverse=True)
        self._items = ordered[: self._limit]
        self._store.put(NOTIFICATIONS_KEY, [item.to_blob() for item in self._items])

    def _update(self, notification_id: str, **changes) -> Notification | None:
        current = self.get(notification_id)
        if current is None:
            return None
        updated = current.model_copy(update=changes)
        self._set_items([updated if item.id == notification_id else item for item in self._items])
        return updated

    async def refresh(self) -> bool:
        """Replace the cache with the backend's list.

        Reads still awaiting confirmation stay read locally.
        """
        result = await self._mirror.fetch_notifications(limit=self._limit)
        if not result.ok:
            logger.warning("Notification refresh failed: %s", result.error)
            return False
        unconfirmed = {item.id: item for item in self._items if item.sync == "pending"}
        merged = []
        for item in result.records:
            local = unconfirmed.get(item.id)
            if local is not None and not item.is_read:
                item = item.model_copy(
                    update={"is_read": True, "read_at": local.read_at, "sync": "pending"}
                )
            merged.append(item)
        self._set_items(merged)
        return True

    def add(self, notification: Notification) -> None:
        """Insert a locally raised notification and prune to the cache size."""
        self._set_items([notification, *(i for i in self._items if i.id != notification.id)])

    async def mark_read(self, notification_id: str) -> Notification | None:
        item = self.get(notification_id)
        if item is None:
            return None
        if item.is_read and item.sync == "confirmed":
            return item
        self._update(
            notification_id, is_read=True, read_at=item.read_at or utcnow(), sync="pending"
        )
        return await self._confirm_read(notification_id)

    async def _confirm_read(self, notification_id: str) -> Notification | None:
        result = await self._mirror.confirm_read(notification_id)
        if result.ok or result.status_code == 404:
            return self._update(notification_id, sync="confirmed")
        self._record_failure("mark_read", result.error, notification_id)
        return self.get(notification_id)

    async def mark_all_read(self) -> int:
        """Mark every cached notification read; returns how many changed locally."""
        now = utcnow()
        changed = [item.id for item in self._items if not item.is_read]
        self._set_items(
            [
                item.model_copy(update={"is_read": True, "read_at": now, "sync": "pending"})
                if item.id in changed
                else item
                for item in self._items
            ]
        )
        await self._confirm_all(changed)
        return len(changed)

    async def _confirm_all(self, ids: list[str]) -> bool:
        result = await self._mirror.confirm_all_read()
        if not result.ok:
            self._record_failure("mark_all_read", result.error)
            return False
        confirmed = set(ids)
        self._set_items(
            [
                item.model_copy(update={"sync": "confirmed"}) if item.id in confirmed else item
                for item in self._items
            ]
        )
        return True

    def _record_failure(
        self, action: str, error: str | None, notification_id: str | None = None
    ) -> None:
        failure = ReconciliationFailure(
            action=action, error=error or "unknown error", notification_id=notification_id
        )
        self._failures.append(failure)
        logger.warning(
            "Could not confirm %s%s: %s",
            action,
            f" for {notification_id}" if notification_id else "",
            failure.error,
        )

    async def retry_failed(self) -> int:
        """Re-send unconfirmed read flags; returns how many failures remain."""
        pending, self._failures = self._failures, []
        for failure in pending:
            if failure.action == "mark_all_read":
                ids = [item.id for item in self._items if item.sync == "pending"]
                await self._confirm_all(ids)
            elif failure.notification_id is not None:
                await self._confirm_read(failure.notification_id)
        return len(self._failures)
