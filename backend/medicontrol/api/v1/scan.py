"""Medication label scanning endpoint."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from medicontrol.api import deps
from medicontrol.api.rate_limit import DEFAULT_RATE
from medicontrol.integrations.vision_client import VisionClientError
from medicontrol.schemas.scan import ScanRequest, ScanResult
from medicontrol.services import scan_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/scan-medication",
    response_model=ScanResult,
    summary="Read medication details from a label photo",
    dependencies=[Depends(deps.get_current_active_user), DEFAULT_RATE],
)
async def scan_medication(payload: ScanRequest) -> ScanResult:
    try:
        data = await scan_service.scan_label(payload.image_base64)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except scan_service.VisionUnavailableError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)
        ) from exc
    except VisionClientError as exc:
        logger.exception("Label scan failed")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Could not process the image. Please try again.",
        ) from exc
    return ScanResult(data=data)
