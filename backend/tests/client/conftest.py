"""Fixtures for the device-side sync client."""
from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from pathlib import Path
from typing import Any

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport

from medicontrol.client.blob_store import MemoryBlobStore
from medicontrol.client.config import ClientSettings
from medicontrol.client.ledger import PendingChangeLedger
from medicontrol.client.local_store import LocalStore
from medicontrol.client.mirror import RemoteMirror
from medicontrol.client.orchestrator import SyncOrchestrator
from medicontrol.main import app

API_URL = "http://test/api/v1"


class SwitchableTransport(httpx.AsyncBaseTransport):
    """Wrap a transport and fail every request with ConnectError while offline."""

    def __init__(self, inner: httpx.AsyncBaseTransport) -> None:
        self.inner = inner
        self.online = True

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        if not self.online:
            raise httpx.ConnectError("network unreachable", request=request)
        return await self.inner.handle_async_request(request)


@pytest.fixture()
def client_settings(tmp_path: Path) -> ClientSettings:
    return ClientSettings(api_url=API_URL, data_dir=tmp_path / "device")


@pytest.fixture()
def blobs() -> MemoryBlobStore:
    return MemoryBlobStore()


@pytest_asyncio.fixture()
async def api_transport(app_context: dict[str, object]) -> SwitchableTransport:
    return SwitchableTransport(ASGITransport(app=app))


@pytest_asyncio.fixture()
async def api_http(api_transport: SwitchableTransport) -> AsyncIterator[httpx.AsyncClient]:
    async with httpx.AsyncClient(transport=api_transport, base_url=API_URL) as http:
        yield http


@pytest_asyncio.fixture()
async def patient_mirror(
    app_context: dict[str, object],
    client_settings: ClientSettings,
    api_http: httpx.AsyncClient,
) -> RemoteMirror:
    """Mirror logged in as the seeded patient against the in-process API."""
    mirror = RemoteMirror(client_settings, http_client=api_http)
    assert await mirror.login(
        str(app_context["patient_email"]), str(app_context["patient_password"])
    )
    return mirror


@pytest.fixture()
def build_client(
    blobs: MemoryBlobStore,
) -> Callable[[RemoteMirror], tuple[PendingChangeLedger, LocalStore, SyncOrchestrator]]:
    def _build(
        mirror: RemoteMirror,
    ) -> tuple[PendingChangeLedger, LocalStore, SyncOrchestrator]:
        ledger = PendingChangeLedger(blobs)
        store = LocalStore(blobs, ledger)
        return ledger, store, SyncOrchestrator(store, ledger, mirror)

    return _build


def _medication_row(medication_id: str, name: str, **fields: Any) -> dict[str, Any]:
    """A ``/sync/medications`` row as the API serializes it."""
    row: dict[str, Any] = {
        "id": medication_id,
        "user_id": "user-1",
        "name": name,
        "dose": 1,
        "dose_unit": "tablet",
        "frequency_type": "daily",
        "frequency_value": 1,
        "schedules": ["08:00"],
        "instructions": [],
        "status": "active",
        "is_critical": False,
        "created_at": "2026-03-01T08:00:00Z",
        "updated_at": "2026-03-01T08:00:00Z",
    }
    row.update(fields)
    return row


def _mock_api(
    *,
    medications: list[dict[str, Any]] | None = None,
    doses: list[dict[str, Any]] | None = None,
    fail_writes: Callable[[], bool] = lambda: False,
    calls: list[tuple[str, str]] | None = None,
) -> httpx.MockTransport:
    """Minimal stand-in for the sync API with switchable write failures."""

    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path.removeprefix("/api/v1")
        if calls is not None:
            calls.append((request.method, path))
        if path == "/health":
            return httpx.Response(200, json={"status": "ok"})
        if path == "/auth/session":
            return httpx.Response(200, json={"user": {"id": "user-1"}})
        if request.method in {"PUT", "DELETE", "POST"}:
            if fail_writes():
                return httpx.Response(500, json={"detail": "database unavailable"})
            if request.method == "DELETE" and path == "/sync/doses":
                return httpx.Response(200, json={"deleted": 0})
            if request.method == "DELETE":
                return httpx.Response(204)
            return httpx.Response(200, json={})
        if path == "/sync/user":
            return httpx.Response(
                200,
                json={
                    "user": {
                        "id": "user-1",
                        "name": "Maria Garcia",
                        "phone": None,
                        "created_at": "2026-03-01T08:00:00Z",
                    },
                    "profile": None,
                    "caregivers": [],
                },
            )
        if path == "/sync/medications":
            return httpx.Response(200, json=list(medications or []))
        if path == "/sync/doses":
            return httpx.Response(200, json=list(doses or []))
        return httpx.Response(200, json=[])

    return httpx.MockTransport(handler)


@pytest.fixture()
def medication_row() -> Callable[..., dict[str, Any]]:
    return _medication_row


@pytest.fixture()
def mock_api() -> Callable[..., httpx.MockTransport]:
    return _mock_api
