"""Outbound SMS alert endpoints."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from medicontrol.api import deps
from medicontrol.api.rate_limit import DEFAULT_RATE
from medicontrol.core.config import get_settings
from medicontrol.integrations.twilio_client import TwilioClientError
from medicontrol.schemas.sms import SmsAlertRequest, SmsAlertResult, SmsStatus
from medicontrol.services import sms_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sms", dependencies=[Depends(deps.get_current_active_user)])


@router.post(
    "/alerts",
    response_model=SmsAlertResult,
    summary="Send an alert SMS to an E.164 number",
    dependencies=[DEFAULT_RATE],
)
async def send_alert_sms(payload: SmsAlertRequest) -> SmsAlertResult:
    try:
        dispatch = await sms_service.send_alert_sms(
            to=payload.to, message=payload.message, priority=payload.priority
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except TwilioClientError as exc:
        logger.exception("SMS provider rejected alert")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to send SMS"
        ) from exc
    return SmsAlertResult(
        message_id=dispatch.message_id,
        simulated=dispatch.simulated,
        status=dispatch.status,
    )


@router.get("/status", response_model=SmsStatus, summary="SMS provider configuration")
async def sms_status() -> SmsStatus:
    settings = get_settings()
    sender = settings.twilio_messaging_service_sid or settings.twilio_from_number
    return SmsStatus(configured=settings.twilio_configured, sender=sender if sender else None)
