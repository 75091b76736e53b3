"""Medication label scan schemas."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class ScanRequest(BaseModel):
    image_base64: str | None = None


class ScanResult(BaseModel):
    success: bool = True
    data: dict[str, Any]
