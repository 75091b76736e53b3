"""Medication row schemas."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator

from medicontrol.models.medication import DoseUnit, FrequencyType, MedicationStatus
from medicontrol.schemas.common import ClockTime


class MedicationBase(BaseModel):
    """Shared medication fields."""

    name: str = Field(min_length=1, max_length=200)
    generic_name: str | None = None
    dose: float = Field(gt=0)
    dose_unit: DoseUnit
    frequency_type: FrequencyType = FrequencyType.DAILY
    frequency_value: int = Field(default=1, ge=1)
    schedules: list[ClockTime] = Field(default_factory=list)
    instructions: list[str] = Field(default_factory=list)
    status: MedicationStatus = MedicationStatus.ACTIVE
    start_date: date | None = None
    end_date: date | None = None
    notes: str | None = None
    stock: float | None = Field(default=None, ge=0)
    stock_unit: str | None = None
    low_stock_threshold: float | None = Field(default=None, ge=0)
    last_stock_update: datetime | None = None
    is_critical: bool = False
    critical_alert_delay: int | None = Field(default=None, ge=0)

    @model_validator(mode="after")
    def _active_needs_schedule(self) -> "MedicationBase":
        if self.status == MedicationStatus.ACTIVE and not self.schedules:
            raise ValueError("An active medication needs at least one scheduled time")
        return self


class MedicationUpsert(MedicationBase):
    """Full row written by the sync client."""


class MedicationUpdate(BaseModel):
    """Mutable medication fields."""

    name: str | None = Field(default=None, min_length=1, max_length=200)
    generic_name: str | None = None
    dose: float | None = Field(default=None, gt=0)
    dose_unit: DoseUnit | None = None
    frequency_type: FrequencyType | None = None
    frequency_value: int | None = Field(default=None, ge=1)
    schedules: list[ClockTime] | None = None
    instructions: list[str] | None = None
    status: MedicationStatus | None = None
    start_date: date | None = None
    end_date: date | None = None
    notes: str | None = None
    stock: float | None = Field(default=None, ge=0)
    stock_unit: str | None = None
    low_stock_threshold: float | None = Field(default=None, ge=0)
    last_stock_update: datetime | None = None
    is_critical: bool | None = None
    critical_alert_delay: int | None = Field(default=None, ge=0)


class MedicationRead(MedicationBase):
    """Serialized medication row."""

    id: str
    user_id: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
