import asyncio
from typing import Optional
from sqlalchemy.exc import SQLAlchemyError
from vybe_auth import logger
from vybe_auth.auth.sessions import SessionManager


class SessionSweeper:
    """Periodically deletes expired sessions from the durable store."""

    def __init__(self, session_manager: SessionManager, interval_seconds: int):
        self.session_manager = session_manager
        self.interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task] = None
        self._stop_event = asyncio.Event()

    def start(self):
        """Start the sweep loop as a Task on the current event loop."""
        if self.interval_seconds <= 0:
            logger.info("session_sweeper.disabled")
            return
        if self._task is None:
            self._stop_event.clear()
            self._task = asyncio.create_task(self._loop())
            logger.info("session_sweeper.started", extra={"interval_seconds": self.interval_seconds})

    async def stop(self, timeout: float = 5.0):
        if self._task is None:
            return
        self._stop_event.set()
        try:
            await asyncio.wait_for(self._task, timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning("session_sweeper.stop_timeout; cancelling")
            self._task.cancel()
        self._task = None
        logger.info("session_sweeper.stopped")

    async def run_once(self) -> int:
        try:
            return await self.session_manager.sweep_expired()
        except (SQLAlchemyError, OSError):
            logger.exception("session_sweeper.sweep_failed")
            return 0

    async def _loop(self):
        while not self._stop_event.is_set():
            await self.run_once()
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                continue
