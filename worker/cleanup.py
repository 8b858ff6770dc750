"""
Periodic purge of expired rate-limit windows, stale login attempts,
expired sessions and dead tokens.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import timedelta
from typing import Dict, Optional

from core.config import CLEANUP_INTERVAL_SECONDS, LOG_LEVEL, LOGIN_ATTEMPT_RETENTION_HOURS
from core.database import (
    delete_login_attempts_before,
    init_db,
    purge_expired_sessions,
    reset_tokens,
    verification_tokens,
)
from core.rate_limit import RateLimiter

log = logging.getLogger("worker.cleanup")


class CleanupScheduler:
    def __init__(
        self,
        limiter: RateLimiter,
        interval_seconds: int = CLEANUP_INTERVAL_SECONDS,
        retention: timedelta = timedelta(hours=LOGIN_ATTEMPT_RETENTION_HOURS),
    ):
        self.limiter = limiter
        self.interval_seconds = interval_seconds
        self.retention = retention
        self._task: Optional[asyncio.Task] = None

    def run_once(self) -> Dict[str, int]:
        """One sweep. A failing step is logged and the remaining steps still run."""
        now = self.limiter.clock()
        steps = {
            "rate_limits": self.limiter.purge_expired,
            "login_attempts": lambda: delete_login_attempts_before(now - self.retention),
            "sessions": lambda: purge_expired_sessions(now),
            "reset_tokens": lambda: reset_tokens.purge_expired(now),
            "verification_tokens": lambda: verification_tokens.purge_expired(now),
        }
        removed: Dict[str, int] = {}
        for name, step in steps.items():
            try:
                removed[name] = step()
            except Exception as e:
                log.exception("Cleanup step failed", extra={"step": name, "error": str(e)})
        log.info("Cleanup completed", extra={"removed": removed})
        return removed

    async def _loop(self) -> None:
        while True:
            try:
                await asyncio.to_thread(self.run_once)
            except Exception as e:
                log.exception("Error during cleanup", extra={"error": str(e)})
            await asyncio.sleep(self.interval_seconds)

    def start(self) -> asyncio.Task:
        """Sweep now, then every interval_seconds. Must be called from a running loop."""
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._loop(), name="cleanup-scheduler")
        return self._task

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass


async def main():
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    init_db()

    scheduler = CleanupScheduler(RateLimiter())
    scheduler.start()
    try:
        while scheduler.running:
            await asyncio.sleep(1)
    finally:
        await scheduler.stop()

