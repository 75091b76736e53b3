"""Dose record row schemas."""

from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, ConfigDict, Field

from medicontrol.models.dose_record import DoseStatus
from medicontrol.schemas.common import ClockTime


class DoseRecordBase(BaseModel):
    medication_id: str = Field(min_length=1, max_length=36)
    scheduled_time: ClockTime
    date: dt.date
    status: DoseStatus = DoseStatus.PENDING
    actual_time: dt.datetime | None = None
    notes: str | None = None
    postponed_to: ClockTime | None = None


class DoseRecordUpsert(DoseRecordBase):
    """Full row written by the sync client."""


class DoseRecordBatchItem(DoseRecordBase):
    id: str = Field(min_length=1, max_length=36)


class DoseRecordBatch(BaseModel):
    records: list[DoseRecordBatchItem] = Field(min_length=1, max_length=500)


class DoseRecordUpdate(BaseModel):
    status: DoseStatus | None = None
    actual_time: dt.datetime | None = None
    notes: str | None = None
    postponed_to: ClockTime | None = None


class DoseRecordRead(DoseRecordBase):
    id: str
    user_id: str
    created_at: dt.datetime
    updated_at: dt.datetime

    model_config = ConfigDict(from_attributes=True)


class DoseDeleteResult(BaseModel):
    deleted: int
