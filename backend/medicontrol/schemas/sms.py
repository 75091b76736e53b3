"""Outbound SMS schemas."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel

SmsPriority = Literal["normal", "high", "critical", "emergency"]


class SmsAlertRequest(BaseModel):
    """Phone and message are checked in the service so errors map to 400."""

    to: str | None = None
    message: str | None = None
    priority: SmsPriority = "normal"


class SmsAlertResult(BaseModel):
    success: bool = True
    message_id: str
    simulated: bool
    status: str


class SmsStatus(BaseModel):
    configured: bool
    sender: str | None = None
