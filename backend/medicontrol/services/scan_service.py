"""Medication label recognition."""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from medicontrol.core.config import get_settings
from medicontrol.integrations.vision_client import VisionClient, build_vision_client

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?\s*|\s*```")


class VisionUnavailableError(RuntimeError):
    """Raised when no vision model is configured."""


def get_vision_client() -> VisionClient | None:
    return build_vision_client(get_settings())


def as_image_url(image_base64: str) -> str:
    if image_base64.startswith(("data:", "https://")):
        return image_base64
    return f"data:image/jpeg;base64,{image_base64}"


def parse_label_answer(content: str) -> dict[str, Any]:
    """Decode the model's JSON answer, falling back to a low-confidence name."""
    cleaned = _FENCE_RE.sub("", content).strip()
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError:
        parsed = None
    if isinstance(parsed, dict):
        return parsed
    logger.warning("Vision answer was not a JSON object; using raw text")
    return {"name": content.strip(), "confidence": 0.5, "parse_error": True}


async def scan_label(image_base64: str | None) -> dict[str, Any]:
    if not image_base64:
        raise ValueError("No image provided")
    client = get_vision_client()
    if client is None:
        raise VisionUnavailableError("Label scanning is not configured")
    content = await client.describe_label(as_image_url(image_base64))
    return parse_label_answer(content)
