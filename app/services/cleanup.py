"""Periodic removal of expired session tokens."""

import asyncio
import contextlib
import logging

from app.config import get_settings
from app.database import SessionFactory, session_scope
from app.services.sessions import SessionTokenService, get_session_token_service

logger = logging.getLogger("roster")


class SessionCleanupScheduler:
    """Background task that sweeps expired session tokens on a fixed interval.

    Verification already rejects expired tokens; this only reclaims rows.
    Each run is a single predicate delete in its own transaction, so
    overlapping or cancelled runs leave the table consistent.
    """

    def __init__(
        self,
        session_factory: SessionFactory | None = None,
        interval_seconds: float | None = None,
        sessions: SessionTokenService | None = None,
    ) -> None:
        self.session_factory = session_factory
        self.interval_seconds = (
            interval_seconds if interval_seconds is not None else get_settings().SESSION_CLEANUP_INTERVAL_SECONDS
        )
        self.sessions = sessions or get_session_token_service()
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def run_once(self) -> int:
        """Delete expired tokens now. Returns the number of rows removed."""
        with session_scope(self.session_factory) as db:
            deleted = self.sessions.delete_expired(db)
        logger.info("Session cleanup removed %d expired token(s)", deleted)
        return deleted

    async def start(self) -> None:
        if self.running:
            logger.warning("Session cleanup already running")
            return
        self._task = asyncio.create_task(self._run_loop())
        logger.info("Session cleanup started (every %ss)", self.interval_seconds)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("Session cleanup stopped")

    async def _run_loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                await asyncio.to_thread(self.run_once)
            except Exception:
                logger.exception("Session cleanup run failed")
