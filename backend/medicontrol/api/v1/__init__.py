"""Versioned API router."""

from fastapi import APIRouter

from . import (
    auth,
    caregiver,
    cron,
    doses,
    health,
    medications,
    notifications,
    scan,
    sms,
    sync_user,
    voice_notes,
)

router = APIRouter()
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(medications.router, tags=["sync"])
router.include_router(doses.router, tags=["sync"])
router.include_router(sync_user.router, tags=["sync"])
router.include_router(caregiver.router, tags=["caregiver"])
router.include_router(notifications.router, tags=["notifications"])
router.include_router(voice_notes.router, tags=["voice-notes"])
router.include_router(cron.router, tags=["scheduled-checks"])
router.include_router(sms.router, tags=["sms"])
router.include_router(scan.router, tags=["scan"])

__all__ = ["router"]
