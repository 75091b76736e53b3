"""Local record shapes persisted by the sync client.

These are stored camelCase, the way the device keeps them. The remote API
speaks snake_case rows; ``medicontrol.client.mirror`` translates between the
two.
"""

from __future__ import annotations

import datetime as dt
from typing import Any, Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

DoseUnit = Literal["mg", "ml", "tablet", "drop", "capsule", "gram", "unit"]
FrequencyType = Literal["daily", "hours", "weekly", "as_needed"]
MedicationStatus = Literal["active", "inactive", "suspended"]
DoseStatus = Literal["pending", "taken", "skipped", "postponed"]
SyncFlag = Literal["pending", "confirmed"]
Operation = Literal["create", "update", "delete"]
EntityKind = Literal["medication", "dose_record", "caregiver", "profile"]


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.UTC)


def new_id() -> str:
    return str(uuid4())


class LocalRecord(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    @field_validator("*", mode="after")
    @classmethod
    def _assume_utc(cls, value: Any) -> Any:
        # Rows read back from SQLite lose their offset.
        if isinstance(value, dt.datetime) and value.tzinfo is None:
            return value.replace(tzinfo=dt.UTC)
        return value

    def to_blob(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class Medication(LocalRecord):
    id: str = Field(default_factory=new_id)
    name: str = Field(min_length=1)
    generic_name: str | None = None
    dose: float = Field(gt=0)
    dose_unit: DoseUnit = "tablet"
    frequency_type: FrequencyType = "daily"
    frequency_value: int = Field(default=1, ge=1)
    schedules: list[str] = Field(default_factory=list)
    instructions: list[str] = Field(default_factory=list)
    status: MedicationStatus = "active"
    start_date: dt.date | None = None
    end_date: dt.date | None = None
    notes: str | None = None
    stock: float | None = Field(default=None, ge=0)
    stock_unit: str | None = None
    low_stock_threshold: float | None = Field(default=None, ge=0)
    last_stock_update: dt.datetime | None = None
    is_critical: bool = False
    critical_alert_delay: int | None = Field(default=None, ge=0)
    created_at: dt.datetime = Field(default_factory=utcnow)
    updated_at: dt.datetime = Field(default_factory=utcnow)

    @model_validator(mode="after")
    def _active_needs_schedule(self) -> "Medication":
        if self.status == "active" and not self.schedules:
            raise ValueError("An active medication needs at least one scheduled time")
        return self


class DoseRecord(LocalRecord):
    id: str = Field(default_factory=new_id)
    medication_id: str
    scheduled_time: str
    date: dt.date
    status: DoseStatus = "pending"
    actual_time: dt.datetime | None = None
    notes: str | None = None
    postponed_to: str | None = None
    created_at: dt.datetime = Field(default_factory=utcnow)


class Caregiver(LocalRecord):
    id: str = Field(default_factory=new_id)
    name: str
    email: str | None = None
    phone: str | None = None
    relationship: str = "other"
    receive_alerts: bool = True
    receive_missed_dose: bool = True
    receive_panic_button: bool = True
    created_at: dt.datetime = Field(default_factory=utcnow)


class EmergencyContact(LocalRecord):
    name: str | None = None
    phone: str | None = None
    relationship: str | None = None


class PrimaryDoctor(LocalRecord):
    name: str | None = None
    phone: str | None = None
    specialty: str | None = None


class UserProfile(LocalRecord):
    id: str
    name: str = ""
    phone: str | None = None
    age: int | None = None
    allergies: list[str] = Field(default_factory=list)
    conditions: list[str] = Field(default_factory=list)
    emergency_contact: EmergencyContact | None = None
    primary_doctor: PrimaryDoctor | None = None
    onboarding_completed: bool = False
    created_at: dt.datetime = Field(default_factory=utcnow)
    updated_at: dt.datetime = Field(default_factory=utcnow)


class Notification(LocalRecord):
    id: str
    type: str
    title: str
    message: str
    data: dict[str, Any] = Field(default_factory=dict)
    priority: int = 0
    is_read: bool = False
    read_at: dt.datetime | None = None
    created_at: dt.datetime = Field(default_factory=utcnow)
    sync: SyncFlag = "confirmed"


class VoiceNote(LocalRecord):
    id: str
    medication_id: str | None = None
    medication_name: str | None = None
    audio_base64: str
    duration_seconds: int = 10
    transcription: str | None = None
    recorded_at: dt.datetime = Field(default_factory=utcnow)
    dose_time: str | None = None
    dose_date: dt.date
    is_shared: bool = False


class PendingChange(LocalRecord):
    """One local mutation waiting for a confirmed remote write."""

    id: str = Field(default_factory=new_id)
    operation: Operation
    entity: EntityKind
    record_id: str
    payload: dict[str, Any] | None = None
    created_at: dt.datetime = Field(default_factory=utcnow)
