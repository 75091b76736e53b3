"""Scheduled check result schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class CheckCounts(BaseModel):
    checked: int = 0
    alerts_sent: int = 0
    errors: list[str] = Field(default_factory=list)


class CheckRunResult(BaseModel):
    success: bool
    timestamp: datetime
    duration_ms: int
    results: CheckCounts
