"""Twilio SMS wrapper."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from twilio.base.exceptions import TwilioException
from twilio.rest import Client

from medicontrol.core.config import Settings

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SentMessage:
    """Provider acknowledgement for an outbound message."""

    sid: str
    status: str


class TwilioClientError(RuntimeError):
    """Raised when Twilio rejects or fails to deliver a request."""


class TwilioClient:
    """Thin async facade over the blocking Twilio REST client."""

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        *,
        from_number: str | None = None,
        messaging_service_sid: str | None = None,
    ) -> None:
        if not (from_number or messaging_service_sid):
            raise TwilioClientError("A sender number or messaging service is required")
        self._client = Client(account_sid, auth_token)
        self._from_number = from_number
        self._messaging_service_sid = messaging_service_sid

    @property
    def sender(self) -> str | None:
        return self._messaging_service_sid or self._from_number

    def _create(self, to: str, body: str) -> SentMessage:
        kwargs: dict[str, str] = {"to": to, "body": body}
        if self._messaging_service_sid:
            kwargs["messaging_service_sid"] = self._messaging_service_sid
        else:
            kwargs["from_"] = self._from_number or ""
        try:
            message = self._client.messages.create(**kwargs)
        except TwilioException as exc:
            raise TwilioClientError(str(exc)) from exc
        logger.info("Twilio accepted message %s", message.sid)
        return SentMessage(sid=message.sid, status=str(message.status))

    async def send_message(self, *, to: str, body: str) -> SentMessage:
        """Send ``body`` to ``to`` without blocking the event loop."""
        return await asyncio.to_thread(self._create, to, body)


def build_twilio_client(settings: Settings) -> TwilioClient | None:
    """Return a configured client, or ``None`` when credentials are absent."""
    if not settings.twilio_configured:
        return None
    return TwilioClient(
        settings.twilio_account_sid or "",
        settings.twilio_auth_token or "",
        from_number=settings.twilio_from_number,
        messaging_service_sid=settings.twilio_messaging_service_sid,
    )
