"""HTTP adapter between local records and the API's sync rows.

Translation here is field renaming and type coercion only. Remote failures
never raise out of this module: every call returns a result value carrying
an ``error`` string, and nothing is retried internally.
"""

from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from medicontrol.client.config import ClientSettings
from medicontrol.client.records import (
    Caregiver,
    DoseRecord,
    EmergencyContact,
    EntityKind,
    LocalRecord,
    Medication,
    Notification,
    PendingChange,
    PrimaryDoctor,
    UserProfile,
    VoiceNote,
)

logger = logging.getLogger(__name__)

PULL_KINDS: tuple[EntityKind, ...] = ("medication", "dose_record", "caregiver", "profile")

_COLLECTION_PATHS: dict[str, str] = {
    "medication": "/sync/medications",
    "dose_record": "/sync/doses",
    "caregiver": "/sync/caregivers",
}


class MirrorError(RuntimeError):
    """A remote call failed; carried inside result values, never raised out."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass
class PullResult:
    kind: str
    records: list[Any] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class PushResult:
    change_id: str | None
    error: str | None = None
    status_code: int | None = None
    data: Any = None

    @property
    def ok(self) -> bool:
        return self.error is None


# ----------------------------------------------------------------------
# Coercion helpers
# ----------------------------------------------------------------------
def _number(value: Any, default: float | None = None) -> float | None:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _clock(value: Any) -> str | None:
    if not value:
        return None
    return ":".join(str(value).split(":")[:2])


def _day(value: Any) -> dt.date | None:
    if value is None or isinstance(value, dt.date):
        return value
    return dt.date.fromisoformat(str(value)[:10])


def _iso(value: dt.date | dt.datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


# ----------------------------------------------------------------------
# Translation: local record <-> remote row
# ----------------------------------------------------------------------
def medication_to_row(medication: Medication, *, user_id: str | None = None) -> dict[str, Any]:
    row: dict[str, Any] = {
        "name": medication.name,
        "generic_name": medication.generic_name,
        "dose": medication.dose,
        "dose_unit": medication.dose_unit,
        "frequency_type": medication.frequency_type,
        "frequency_value": medication.frequency_value,
        "schedules": [_clock(slot) for slot in medication.schedules],
        "instructions": list(medication.instructions),
        "status": medication.status,
        "start_date": _iso(medication.start_date),
        "end_date": _iso(medication.end_date),
        "notes": medication.notes,
        "stock": medication.stock,
        "stock_unit": medication.stock_unit,
        "low_stock_threshold": medication.low_stock_threshold,
        "last_stock_update": _iso(medication.last_stock_update),
        "is_critical": medication.is_critical,
        "critical_alert_delay": medication.critical_alert_delay,
    }
    if user_id:
        row["user_id"] = user_id
    return row


def row_to_medication(row: dict[str, Any]) -> Medication:
    delay = row.get("critical_alert_delay")
    return Medication(
        id=row["id"],
        name=row["name"],
        generic_name=row.get("generic_name"),
        dose=_number(row.get("dose"), 0.0),
        dose_unit=row.get("dose_unit") or "tablet",
        frequency_type=row.get("frequency_type") or "daily",
        frequency_value=int(_number(row.get("frequency_value"), 1)),
        schedules=[slot for slot in map(_clock, row.get("schedules") or []) if slot],
        instructions=row.get("instructions") or [],
        status=row.get("status") or "active",
        start_date=_day(row.get("start_date")),
        end_date=_day(row.get("end_date")),
        notes=row.get("notes"),
        stock=_number(row.get("stock")),
        stock_unit=row.get("stock_unit"),
        low_stock_threshold=_number(row.get("low_stock_threshold")),
        last_stock_update=row.get("last_stock_update"),
        is_critical=bool(row.get("is_critical")),
        critical_alert_delay=int(delay) if delay is not None else None,
        created_at=row["created_at"],
        updated_at=row.get("updated_at") or row["created_at"],
    )


def dose_record_to_row(record: DoseRecord, *, user_id: str | None = None) -> dict[str, Any]:
    row: dict[str, Any] = {
        "medication_id": record.medication_id,
        "scheduled_time": _clock(record.scheduled_time),
        "date": record.date.isoformat(),
        "status": record.status,
        "actual_time": _iso(record.actual_time),
        "notes": record.notes,
        "postponed_to": _clock(record.postponed_to),
    }
    if user_id:
        row["user_id"] = user_id
    return row


def row_to_dose_record(row: dict[str, Any]) -> DoseRecord:
    return DoseRecord(
        id=row["id"],
        medication_id=row["medication_id"],
        scheduled_time=_clock(row["scheduled_time"]),
        date=_day(row["date"]),
        status=row.get("status") or "pending",
        actual_time=row.get("actual_time"),
        notes=row.get("notes"),
        postponed_to=_clock(row.get("postponed_to")),
        created_at=row["created_at"],
    )


def caregiver_to_row(caregiver: Caregiver, *, user_id: str | None = None) -> dict[str, Any]:
    row: dict[str, Any] = {
        "name": caregiver.name,
        "email": caregiver.email,
        "phone": caregiver.phone,
        "relationship": caregiver.relationship,
        "receive_alerts": caregiver.receive_alerts,
        "receive_missed_dose": caregiver.receive_missed_dose,
        "receive_panic_button": caregiver.receive_panic_button,
    }
    if user_id:
        row["user_id"] = user_id
    return row


def row_to_caregiver(row: dict[str, Any]) -> Caregiver:
    def flag(name: str) -> bool:
        value = row.get(name)
        return True if value is None else bool(value)

    return Caregiver(
        id=row["id"],
        name=row["name"],
        email=row.get("email"),
        phone=row.get("phone"),
        relationship=row.get("relationship") or "other",
        receive_alerts=flag("receive_alerts"),
        receive_missed_dose=flag("receive_missed_dose"),
        receive_panic_button=flag("receive_panic_button"),
        created_at=row["created_at"],
    )


def profile_to_row(profile: UserProfile) -> dict[str, Any]:
    """Body for ``PUT /sync/user``: account fields plus the nested profile."""
    contact = profile.emergency_contact or EmergencyContact()
    doctor = profile.primary_doctor or PrimaryDoctor()
    row: dict[str, Any] = {
        "phone": profile.phone,
        "profile": {
            "age": profile.age,
            "allergies": list(profile.allergies),
            "conditions": list(profile.conditions),
            "emergency_contact_name": contact.name,
            "emergency_contact_phone": contact.phone,
            "emergency_contact_relationship": contact.relationship,
            "primary_doctor_name": doctor.name,
            "primary_doctor_phone": doctor.phone,
            "primary_doctor_specialty": doctor.specialty,
            "onboarding_completed": profile.onboarding_completed,
        },
    }
    if profile.name:
        row["name"] = profile.name
    return row


def row_to_profile(payload: dict[str, Any]) -> UserProfile:
    """Build the local profile from a ``GET /sync/user`` body."""
    user = payload["user"]
    row = payload.get("profile") or {}
    contact = EmergencyContact(
        name=row.get("emergency_contact_name"),
        phone=row.get("emergency_contact_phone"),
        relationship=row.get("emergency_contact_relationship"),
    )
    doctor = PrimaryDoctor(
        name=row.get("primary_doctor_name"),
        phone=row.get("primary_doctor_phone"),
        specialty=row.get("primary_doctor_specialty"),
    )
    return UserProfile(
        id=user["id"],
        name=user.get("name") or "",
        phone=user.get("phone"),
        age=row.get("age"),
        allergies=row.get("allergies") or [],
        conditions=row.get("conditions") or [],
        emergency_contact=contact if any(contact.model_dump().values()) else None,
        primary_doctor=doctor if any(doctor.model_dump().values()) else None,
        onboarding_completed=bool(row.get("onboarding_completed")),
        created_at=row.get("created_at") or user["created_at"],
        updated_at=row.get("updated_at") or user["created_at"],
    )


def row_to_notification(row: dict[str, Any]) -> Notification:
    return Notification(
        id=row["id"],
        type=row["type"],
        title=row["title"],
        message=row["message"],
        data=row.get("data") or {},
        priority=int(row.get("priority") or 0),
        is_read=bool(row.get("is_read")),
        read_at=row.get("read_at"),
        created_at=row["created_at"],
    )


def row_to_voice_note(row: dict[str, Any]) -> VoiceNote:
    return VoiceNote(
        id=row["id"],
        medication_id=row.get("medication_id"),
        medication_name=row.get("medication_name"),
        audio_base64=row["audio_base64"],
        duration_seconds=int(row.get("duration_seconds") or 10),
        transcription=row.get("transcription"),
        recorded_at=row["recorded_at"],
        dose_time=_clock(row.get("dose_time")),
        dose_date=_day(row["dose_date"]),
        is_shared=bool(row.get("is_shared")),
    )


def _sort_newest(records: list[LocalRecord], attr: str) -> list[Any]:
    return sorted(records, key=lambda record: getattr(record, attr), reverse=True)


def _error_detail(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.reason_phrase or "request failed"
    if isinstance(payload, dict) and isinstance(payload.get("detail"), str):
        return payload["detail"]
    return response.reason_phrase or "request failed"


class RemoteMirror:
    """Per-kind pull and per-change push against ``/api/v1``."""

    def __init__(
        self,
        settings: ClientSettings,
        *,
        token: str | None = None,
        user_id: str | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._token = token
        self.user_id = user_id
        self._owns_client = http_client is None
        self._client = (
            http_client
            if http_client is not None
            else httpx.AsyncClient(
                base_url=settings.api_url,
                timeout=httpx.Timeout(
                    settings.http_timeout_seconds,
                    connect=settings.http_connect_timeout_seconds,
                ),
            )
        )

    @property
    def authenticated(self) -> bool:
        return bool(self._token)

    def set_token(self, token: str | None) -> None:
        self._token = token

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------
    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        headers = dict(kwargs.pop("headers", None) or {})
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        try:
            response = await self._client.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            raise MirrorError(f"{method} {path}: {exc.__class__.__name__}") from exc
        if response.is_error:
            raise MirrorError(
                f"{method} {path}: {response.status_code} {_error_detail(response)}",
                status_code=response.status_code,
            )
        return response

    async def _json(self, method: str, path: str, **kwargs: Any) -> Any:
        response = await self._request(method, path, **kwargs)
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise MirrorError(f"{method} {path}: response is not JSON") from exc

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------
    async def check_connectivity(self) -> bool:
        try:
            await self._request("GET", "/health")
        except MirrorError as exc:
            logger.info("Backend unreachable: %s", exc)
            return False
        return True

    async def check_session(self) -> bool:
        if not self._token:
            return False
        try:
            payload = await self._json("GET", "/auth/session")
        except MirrorError as exc:
            logger.info("Session check failed: %s", exc)
            return False
        try:
            self.user_id = payload["user"]["id"]
        except (KeyError, TypeError):
            logger.warning("Session check returned an unusable body")
            return False
        return True

    async def login(self, email: str, password: str) -> bool:
        try:
            payload = await self._json(
                "POST", "/auth/token", data={"username": email, "password": password}
            )
        except MirrorError as exc:
            logger.warning("Login failed: %s", exc)
            return False
        try:
            self._token = payload["access_token"]
        except (KeyError, TypeError):
            logger.warning("Login returned an unusable body")
            return False
        return await self.check_session()

    # ------------------------------------------------------------------
    # Pull
    # ------------------------------------------------------------------
    async def pull(self, kind: EntityKind) -> PullResult:
        """Fetch the authoritative set for ``kind``, newest first."""
        try:
            if kind == "profile":
                payload = await self._json("GET", "/sync/user")
                return PullResult(kind=kind, records=[row_to_profile(payload)])
            rows = await self._json("GET", _COLLECTION_PATHS[kind])
        except MirrorError as exc:
            logger.warning("Pull %s failed: %s", kind, exc)
            return PullResult(kind=kind, error=str(exc))
        except (KeyError, ValueError) as exc:
            logger.warning("Pull %s returned an unusable body: %s", kind, exc)
            return PullResult(kind=kind, error=f"{kind}: malformed response")

        try:
            if kind == "medication":
                records = _sort_newest([row_to_medication(r) for r in rows], "created_at")
            elif kind == "dose_record":
                records = _sort_newest([row_to_dose_record(r) for r in rows], "date")
            else:
                records = _sort_newest([row_to_caregiver(r) for r in rows], "created_at")
        except (KeyError, ValueError) as exc:
            logger.warning("Pull %s returned an unusable row: %s", kind, exc)
            return PullResult(kind=kind, error=f"{kind}: malformed row")
        return PullResult(kind=kind, records=records)

    # ------------------------------------------------------------------
    # Push
    # ------------------------------------------------------------------
    async def push(self, change: PendingChange) -> PushResult:
        """Replay one ledger entry. Deleting an absent record counts as done."""
        try:
            if change.operation == "delete":
                await self._push_delete(change)
            else:
                await self._push_upsert(change)
        except MirrorError as exc:
            logger.warning(
                "Push %s %s %s failed: %s", change.operation, change.entity, change.record_id, exc
            )
            return PushResult(change_id=change.id, error=str(exc), status_code=exc.status_code)
        except (TypeError, ValueError) as exc:
            logger.warning("Ledger entry %s has an unusable payload: %s", change.id, exc)
            return PushResult(change_id=change.id, error=f"invalid payload: {exc}")
        return PushResult(change_id=change.id)

    async def _push_upsert(self, change: PendingChange) -> None:
        payload = change.payload or {}
        if change.entity == "profile":
            body = profile_to_row(UserProfile.model_validate(payload))
            await self._request("PUT", "/sync/user", json=body)
            return
        if change.entity == "medication":
            body = medication_to_row(Medication.model_validate(payload), user_id=self.user_id)
        elif change.entity == "dose_record":
            body = dose_record_to_row(DoseRecord.model_validate(payload), user_id=self.user_id)
        else:
            body = caregiver_to_row(Caregiver.model_validate(payload), user_id=self.user_id)
        path = f"{_COLLECTION_PATHS[change.entity]}/{change.record_id}"
        await self._request("PUT", path, json=body)

    async def _push_delete(self, change: PendingChange) -> None:
        if change.entity == "profile":
            raise MirrorError("profiles cannot be deleted through sync")
        if change.entity == "medication":
            # The API does not cascade; children go first.
            await self._request(
                "DELETE",
                _COLLECTION_PATHS["dose_record"],
                params={"medication_id": change.record_id},
            )
        try:
            await self._request("DELETE", f"{_COLLECTION_PATHS[change.entity]}/{change.record_id}")
        except MirrorError as exc:
            if exc.status_code != 404:
                raise

    # ------------------------------------------------------------------
    # Notifications and voice notes
    # ------------------------------------------------------------------
    async def fetch_notifications(self, *, limit: int = 50) -> PullResult:
        try:
            payload = await self._json("GET", "/notifications", params={"limit": limit})
            records = [row_to_notification(row) for row in payload["items"]]
        except MirrorError as exc:
            logger.warning("Notification fetch failed: %s", exc)
            return PullResult(kind="notification", error=str(exc))
        except (KeyError, ValueError) as exc:
            return PullResult(kind="notification", error=f"malformed response ({exc})")
        return PullResult(kind="notification", records=records)

    async def confirm_read(self, notification_id: str) -> PushResult:
        try:
            await self._request("POST", f"/notifications/{notification_id}/read")
        except MirrorError as exc:
            return PushResult(
                change_id=notification_id, error=str(exc), status_code=exc.status_code
            )
        return PushResult(change_id=notification_id)

    async def confirm_all_read(self) -> PushResult:
        try:
            payload = await self._json("POST", "/notifications/read-all")
        except MirrorError as exc:
            return PushResult(change_id=None, error=str(exc), status_code=exc.status_code)
        return PushResult(change_id=None, data=payload)

    async def fetch_voice_notes(
        self,
        *,
        start_date: dt.date | None = None,
        end_date: dt.date | None = None,
        medication_id: str | None = None,
    ) -> PullResult:
        params = {
            key: value
            for key, value in {
                "start_date": _iso(start_date),
                "end_date": _iso(end_date),
                "medication_id": medication_id,
            }.items()
            if value is not None
        }
        try:
            rows = await self._json("GET", "/voice-notes", params=params)
            records = [row_to_voice_note(row) for row in rows]
        except MirrorError as exc:
            logger.warning("Voice note fetch failed: %s", exc)
            return PullResult(kind="voice_note", error=str(exc))
        except (KeyError, ValueError) as exc:
            return PullResult(kind="voice_note", error=f"malformed response ({exc})")
        return PullResult(kind="voice_note", records=records)

    async def create_voice_note(self, body: dict[str, Any]) -> PushResult:
        try:
            row = await self._json("POST", "/voice-notes", json=body)
            note = row_to_voice_note(row)
        except MirrorError as exc:
            return PushResult(change_id=None, error=str(exc), status_code=exc.status_code)
        except (KeyError, ValueError) as exc:
            return PushResult(change_id=None, error=f"malformed response ({exc})")
        return PushResult(change_id=note.id, data=note)

    async def delete_voice_note(self, note_id: str) -> PushResult:
        try:
            await self._request("DELETE", f"/voice-notes/{note_id}")
        except MirrorError as exc:
            if exc.status_code != 404:
                return PushResult(change_id=note_id, error=str(exc), status_code=exc.status_code)
        return PushResult(change_id=note_id)
