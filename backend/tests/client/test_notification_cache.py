"""Notification cache ordering and read-flag reconciliation."""

from __future__ import annotations

import datetime as dt

import httpx
import pytest

from medicontrol.client.blob_store import MemoryBlobStore
from medicontrol.client.config import ClientSettings
from medicontrol.client.mirror import RemoteMirror
from medicontrol.client.notifications import NOTIFICATIONS_KEY, NotificationStore
from medicontrol.client.records import Notification
from medicontrol.db.session import get_sessionmaker
from medicontrol.models import NotificationType
from medicontrol.services import notifications_service

pytestmark = pytest.mark.asyncio

API_URL = "http://test/api/v1"


def _notification(notification_id: str, priority: int, minutes_ago: int) -> Notification:
    return Notification(
        id=notification_id,
        type="system",
        title=notification_id,
        message=f"{notification_id} message",
        priority=priority,
        created_at=dt.datetime(2026, 3, 10, 12, 0, tzinfo=dt.UTC)
        - dt.timedelta(minutes=minutes_ago),
    )


class _ReadEndpoint:
    """Mock API whose read confirmations can be switched off."""

    def __init__(self) -> None:
        self.available = False
        self.calls: list[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request.url.path.removeprefix("/api/v1"))
        if not self.available:
            return httpx.Response(503, json={"detail": "try later"})
        if request.url.path.endswith("/read-all"):
            return httpx.Response(200, json={"updated": 2})
        if request.url.path.endswith("/gone/read"):
            return httpx.Response(404, json={"detail": "Notification not found"})
        return httpx.Response(200, json={})


def _store(
    settings: ClientSettings, blobs: MemoryBlobStore, endpoint: _ReadEndpoint, limit: int = 50
) -> NotificationStore:
    http = httpx.AsyncClient(transport=httpx.MockTransport(endpoint), base_url=API_URL)
    mirror = RemoteMirror(settings, token="t", http_client=http)
    return NotificationStore(blobs, mirror, limit=limit)


async def test_cache_orders_by_priority_and_caps_size(
    client_settings: ClientSettings, blobs: MemoryBlobStore
) -> None:
    cache = _store(client_settings, blobs, _ReadEndpoint(), limit=3)
    for notification in (
        _notification("old-low", 0, 30),
        _notification("urgent", 3, 20),
        _notification("new-low", 0, 1),
        _notification("normal", 1, 10),
        _notification("newest-low", 0, 0),
    ):
        cache.add(notification)

    assert [item.id for item in cache.items] == ["urgent", "normal", "newest-low"]
    assert cache.unread_count == 3
    assert len(blobs.get(NOTIFICATIONS_KEY)) == 3


async def test_failed_read_is_kept_and_retried(
    client_settings: ClientSettings, blobs: MemoryBlobStore
) -> None:
    endpoint = _ReadEndpoint()
    cache = _store(client_settings, blobs, endpoint)
    cache.add(_notification("n-1", 1, 5))
    cache.add(_notification("gone", 0, 1))

    updated = await cache.mark_read("n-1")
    assert updated.is_read is True
    assert updated.sync == "pending"
    assert [(f.action, f.notification_id) for f in cache.failures] == [("mark_read", "n-1")]
    assert "503" in cache.failures[0].error
    assert await cache.mark_read("missing") is None

    endpoint.available = True
    assert await cache.retry_failed() == 0
    assert cache.get("n-1").sync == "confirmed"
    assert cache.get("n-1").is_read is True

    gone = await cache.mark_read("gone")
    assert gone.sync == "confirmed"
    assert cache.failures == []

    calls_before = len(endpoint.calls)
    assert (await cache.mark_read("n-1")).sync == "confirmed"
    assert len(endpoint.calls) == calls_before


async def test_mark_all_read_reconciles_as_one_request(
    client_settings: ClientSettings, blobs: MemoryBlobStore
) -> None:
    endpoint = _ReadEndpoint()
    cache = _store(client_settings, blobs, endpoint)
    cache.add(_notification("a", 0, 2))
    cache.add(_notification("b", 2, 1))

    assert await cache.mark_all_read() == 2
    assert cache.unread_count == 0
    assert {item.sync for item in cache.items} == {"pending"}
    assert [f.action for f in cache.failures] == ["mark_all_read"]

    endpoint.available = True
    assert await cache.retry_failed() == 0
    assert {item.sync for item in cache.items} == {"confirmed"}
    assert endpoint.calls.count("/notifications/read-all") == 2

    reloaded = NotificationStore(blobs, cache._mirror)
    assert [item.id for item in reloaded.items] == ["b", "a"]
    assert reloaded.unread_count == 0


async def test_refresh_keeps_unconfirmed_reads(
    app_context: dict[str, object],
    patient_mirror: RemoteMirror,
    blobs: MemoryBlobStore,
) -> None:
    async with get_sessionmaker(str(app_context["db_url"]))() as session:
        for title, priority in (("reminder", 1), ("alert", 3)):
            await notifications_service.notify(
                session,
                user_id=str(app_context["patient_id"]),
                type=NotificationType.SYSTEM,
                title=title,
                message=f"{title} message",
                priority=priority,
            )

    cache = NotificationStore(blobs, patient_mirror)
    assert await cache.refresh() is True
    assert [item.title for item in cache.items] == ["alert", "reminder"]
    reminder = cache.items[1]

    # Simulate a read whose confirmation never arrived.
    cache._update(reminder.id, is_read=True, sync="pending")
    assert await cache.refresh() is True
    assert cache.get(reminder.id).is_read is True
    assert cache.get(reminder.id).sync == "pending"
    assert cache.unread_count == 1

    assert (await cache.mark_read(reminder.id)).sync == "confirmed"
    assert await cache.mark_all_read() == 1
    assert await cache.refresh() is True
    assert cache.unread_count == 0
    assert {item.sync for item in cache.items} == {"confirmed"}
