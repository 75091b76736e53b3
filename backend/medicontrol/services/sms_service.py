"""Outbound SMS alert dispatch."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import UTC, datetime

from medicontrol.core.config import get_settings
from medicontrol.integrations.twilio_client import TwilioClient, build_twilio_client
from medicontrol.security.redact import mask_phone

logger = logging.getLogger(__name__)

E164_RE = re.compile(r"^\+[1-9]\d{1,14}$")

_PRIORITY_PREFIX = {
    "emergency": "EMERGENCY: ",
    "critical": "URGENT: ",
    "high": "IMPORTANT: ",
}


@dataclass(slots=True)
class SmsDispatch:
    message_id: str
    simulated: bool
    status: str


def validate_phone(raw: str | None) -> str:
    """Return ``raw`` when it is an E.164 number (``+`` then 2-15 digits)."""
    if not raw:
        raise ValueError("Destination phone number is required")
    phone = raw.strip()
    if not E164_RE.match(phone):
        raise ValueError("Invalid phone number format. Use international format: +15551234567")
    return phone


def format_message(message: str, priority: str = "normal") -> str:
    return f"{_PRIORITY_PREFIX.get(priority, '')}{message.strip()}"


def get_twilio_client() -> TwilioClient | None:
    return build_twilio_client(get_settings())


async def send_alert_sms(
    *,
    to: str | None,
    message: str | None,
    priority: str = "normal",
) -> SmsDispatch:
    """Send an alert SMS, or simulate it when no provider is configured.

    Validation happens before the provider is looked up so a malformed
    destination never reaches it.
    """
    phone = validate_phone(to)
    if not message or not message.strip():
        raise ValueError("Message text is required")
    body = format_message(message, priority)

    client = get_twilio_client()
    if client is None:
        message_id = f"sim_{int(datetime.now(UTC).timestamp() * 1000)}"
        logger.info(
            "SMS provider not configured; simulated %s to %s (%s chars)",
            message_id,
            mask_phone(phone),
            len(body),
        )
        return SmsDispatch(message_id=message_id, simulated=True, status="simulated")

    sent = await client.send_message(to=phone, body=body)
    logger.info("SMS %s queued to %s", sent.sid, mask_phone(phone))
    return SmsDispatch(message_id=sent.sid, simulated=False, status=sent.status)
