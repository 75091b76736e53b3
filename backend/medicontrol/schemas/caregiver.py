"""Caregiver contact, relationship and patient-view schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from medicontrol.models.caregiver import RelationshipStatus
from medicontrol.schemas.dose_record import DoseRecordRead
from medicontrol.schemas.medication import MedicationRead


class CaregiverBase(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    email: str | None = None
    phone: str | None = None
    relationship: str = "other"
    receive_alerts: bool = True
    receive_missed_dose: bool = True
    receive_panic_button: bool = True


class CaregiverUpsert(CaregiverBase):
    """Full caregiver row written by the sync client."""


class CaregiverRead(CaregiverBase):
    id: str
    user_id: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class RelationshipPermissions(BaseModel):
    can_view_medications: bool = True
    can_view_doses: bool = True
    can_view_history: bool = False
    can_view_reports: bool = False
    can_receive_alerts: bool = True
    can_receive_missed_dose: bool = True
    can_receive_panic_button: bool = True

    model_config = ConfigDict(from_attributes=True)


class RelationshipCreate(RelationshipPermissions):
    """Patient invitation of a caregiver account."""

    caregiver_email: EmailStr
    caregiver_name: str | None = None
    relationship: str = "other"


class RelationshipRead(RelationshipPermissions):
    id: str
    patient_id: str
    caregiver_user_id: str | None = None
    caregiver_email: str
    caregiver_name: str | None = None
    relationship: str
    status: RelationshipStatus
    accepted_at: datetime | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PatientSummary(BaseModel):
    """A patient as listed to one of their caregivers."""

    relationship_id: str
    patient_id: str
    patient_name: str
    patient_email: str
    relationship: str
    relationship_label: str
    permissions: RelationshipPermissions


class PatientInfo(BaseModel):
    id: str
    name: str
    email: str
    phone: str | None = None


class DaySummary(BaseModel):
    total: int
    taken: int
    pending: int
    skipped: int


class PatientView(BaseModel):
    """Permission-gated snapshot of a patient's data."""

    patient: PatientInfo
    relationship: str
    relationship_label: str
    permissions: RelationshipPermissions
    medications: list[MedicationRead] | None = None
    dose_records: list[DoseRecordRead] | None = None
    today_summary: DaySummary | None = None


class CaregiverAlertCreate(BaseModel):
    """Help request sent from a patient to one of their caregivers."""

    caregiver_id: str = Field(min_length=1)
    type: Literal["difficulty", "panic", "side_effect", "other"] = "difficulty"
    message: str | None = Field(default=None, max_length=1000)
    medication_name: str | None = None


class CaregiverAlertResult(BaseModel):
    success: bool = True
    notification_id: str
    recipient_id: str
