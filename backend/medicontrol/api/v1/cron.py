"""Scheduled check endpoints called by an external scheduler."""
from __future__ import annotations

import logging
import secrets
import time
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from medicontrol.api import deps
from medicontrol.core.config import get_settings
from medicontrol.schemas.checks import CheckCounts, CheckRunResult
from medicontrol.services import scheduled_checks_service
from medicontrol.services.scheduled_checks_service import CheckReport

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cron")


async def require_cron_secret(
    authorization: Annotated[str | None, Header()] = None,
) -> None:
    """Compare ``Authorization: Bearer <secret>`` with ``CRON_SECRET``.

    An unset secret rejects every call.
    """
    expected = get_settings().cron_secret
    scheme, _, supplied = (authorization or "").partition(" ")
    if (
        not expected
        or scheme.lower() != "bearer"
        or not secrets.compare_digest(supplied.strip().encode(), expected.encode())
    ):
        logger.warning("Rejected scheduled check call with missing or wrong secret")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )


async def _run(
    check: Callable[[AsyncSession], Awaitable[CheckReport]], session: AsyncSession
) -> CheckRunResult:
    started = time.perf_counter()
    report = await check(session)
    return CheckRunResult(
        success=not report.errors,
        timestamp=datetime.now(UTC),
        duration_ms=int((time.perf_counter() - started) * 1000),
        results=CheckCounts(
            checked=report.checked, alerts_sent=report.alerts_sent, errors=report.errors
        ),
    )


@router.api_route(
    "/check-missed-doses",
    methods=["GET", "POST"],
    response_model=CheckRunResult,
    summary="Alert patients and caregivers about late critical doses",
    dependencies=[Depends(require_cron_secret)],
)
async def check_missed_doses(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
) -> CheckRunResult:
    return await _run(scheduled_checks_service.run_missed_dose_check, session)


@router.api_route(
    "/send-reminders",
    methods=["GET", "POST"],
    response_model=CheckRunResult,
    summary="Send reminders for upcoming doses",
    dependencies=[Depends(require_cron_secret)],
)
async def send_reminders(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
) -> CheckRunResult:
    return await _run(scheduled_checks_service.run_reminder_check, session)
