"""Per-login container wiring the sync client together."""

from __future__ import annotations

import logging

import httpx

from medicontrol.client.blob_store import BlobStore
from medicontrol.client.config import ClientSettings, get_client_settings
from medicontrol.client.ledger import PendingChangeLedger
from medicontrol.client.local_store import LocalStore
from medicontrol.client.mirror import RemoteMirror
from medicontrol.client.notifications import NotificationStore
from medicontrol.client.orchestrator import SyncOrchestrator
from medicontrol.client.voice_notes import VoiceNoteCache

logger = logging.getLogger(__name__)


class ClientSession:
    """Build every client component for one authenticated session.

    Use as ``async with ClientSession(token=...) as session:``. Entering
    starts the periodic sync timer; leaving stops it and closes the HTTP
    client when this session created it.
    """

    def __init__(
        self,
        *,
        token: str | None = None,
        settings: ClientSettings | None = None,
        blob_store: BlobStore | None = None,
        http_client: httpx.AsyncClient | None = None,
        autostart: bool = True,
    ) -> None:
        self.settings = settings or get_client_settings()
        self.blobs = blob_store if blob_store is not None else BlobStore(self.settings.data_dir)
        self.ledger = PendingChangeLedger(self.blobs)
        self.store = LocalStore(self.blobs, self.ledger)
        self.mirror = RemoteMirror(self.settings, token=token, http_client=http_client)
        self.notifications = NotificationStore(
            self.blobs, self.mirror, limit=self.settings.notification_cache_size
        )
        self.voice_notes = VoiceNoteCache(self.blobs, self.mirror)
        self.orchestrator = SyncOrchestrator(
            self.store,
            self.ledger,
            self.mirror,
            interval_seconds=self.settings.sync_interval_seconds,
        )
        self._autostart = autostart

    async def __aenter__(self) -> "ClientSession":
        if self._autostart:
            self.orchestrator.start()
        logger.debug("Client session opened (%s pending)", len(self.ledger))
        return self

    async def __aexit__(self, *exc_info) -> None:
        try:
            await self.orchestrator.stop()
        finally:
            await self.mirror.aclose()
