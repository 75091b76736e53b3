"""Notification listing and read-flag endpoints."""

from __future__ import annotations

import pytest
from httpx import AsyncClient

from medicontrol.db.session import get_sessionmaker
from medicontrol.models import NotificationType
from medicontrol.services import notifications_service

pytestmark = pytest.mark.asyncio


async def _authenticate(client: AsyncClient, email: str, password: str) -> dict[str, str]:
    response = await client.post(
        "/api/v1/auth/token",
        data={"username": email, "password": password},
        headers={"Content-Type": "application/x-www-form-urlencoded"},
    )
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


async def _seed(db_url: str, user_id: str) -> None:
    async with get_sessionmaker(db_url)() as session:
        for title, priority in (("low", 0), ("urgent", 3), ("later low", 0), ("normal", 1)):
            await notifications_service.notify(
                session,
                user_id=user_id,
                type=NotificationType.SYSTEM,
                title=title,
                message=f"{title} message",
                priority=priority,
            )


async def test_list_orders_by_priority_then_recency(app_context: dict[str, object]) -> None:
    client: AsyncClient = app_context["client"]  # type: ignore[assignment]
    headers = await _authenticate(
        client, app_context["patient_email"], app_context["patient_password"]
    )
    await _seed(str(app_context["db_url"]), str(app_context["patient_id"]))

    response = await client.get("/api/v1/notifications", headers=headers)
    assert response.status_code == 200
    payload = response.json()
    assert [item["title"] for item in payload["items"]] == ["urgent", "normal", "later low", "low"]
    assert payload["unread_count"] == 4

    limited = await client.get("/api/v1/notifications", params={"limit": 2}, headers=headers)
    assert len(limited.json()["items"]) == 2
    assert limited.json()["unread_count"] == 4

    too_many = await client.get("/api/v1/notifications", params={"limit": 500}, headers=headers)
    assert too_many.status_code == 422


async def test_mark_read_and_mark_all(app_context: dict[str, object]) -> None:
    client: AsyncClient = app_context["client"]  # type: ignore[assignment]
    headers = await _authenticate(
        client, app_context["patient_email"], app_context["patient_password"]
    )
    await _seed(str(app_context["db_url"]), str(app_context["patient_id"]))
    items = (await client.get("/api/v1/notifications", headers=headers)).json()["items"]

    marked = await client.post(f"/api/v1/notifications/{items[0]['id']}/read", headers=headers)
    assert marked.status_code == 200
    assert marked.json()["is_read"] is True
    assert marked.json()["read_at"] is not None

    unread = await client.get(
        "/api/v1/notifications", params={"unread_only": True}, headers=headers
    )
    assert len(unread.json()["items"]) == 3

    all_read = await client.post("/api/v1/notifications/read-all", headers=headers)
    assert all_read.json() == {"updated": 3}
    assert (await client.get("/api/v1/notifications", headers=headers)).json()[
        "unread_count"
    ] == 0


async def test_cannot_read_someone_elses_notification(app_context: dict[str, object]) -> None:
    client: AsyncClient = app_context["client"]  # type: ignore[assignment]
    await _seed(str(app_context["db_url"]), str(app_context["patient_id"]))
    patient = await _authenticate(
        client, app_context["patient_email"], app_context["patient_password"]
    )
    other = await _authenticate(
        client, app_context["caregiver_email"], app_context["caregiver_password"]
    )
    item = (await client.get("/api/v1/notifications", headers=patient)).json()["items"][0]

    response = await client.post(f"/api/v1/notifications/{item['id']}/read", headers=other)
    assert response.status_code == 404
