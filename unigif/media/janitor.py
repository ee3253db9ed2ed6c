"""Storage janitor - periodic sweep of stale temp files."""

import asyncio

from loguru import logger

from unigif.media.pool import TempPool

DEFAULT_SWEEP_INTERVAL_M = 10
DEFAULT_MAX_AGE_M = 15


class StorageJanitor:
    """
    Periodically removes temp pool files older than a fixed age.

    Backstop for staging files a crashed or abandoned request never released.
    Every failure is logged and swallowed; the janitor never stops the process.
    """

    def __init__(
        self,
        pool: TempPool,
        interval_m: float = DEFAULT_SWEEP_INTERVAL_M,
        max_age_m: float = DEFAULT_MAX_AGE_M,
    ):
        self.pool = pool
        self.interval_s = interval_m * 60
        self.max_age_s = max_age_m * 60
        self._running = False
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the sweep loop."""
        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info(
            f"Janitor started (every {self.interval_s:.0f}s, max age {self.max_age_s:.0f}s)"
        )

    def stop(self) -> None:
        """Stop the sweep loop."""
        self._running = False
        if self._task:
            self._task.cancel()
            self._task = None

    async def _run_loop(self) -> None:
        while self._running:
            try:
                await asyncio.sleep(self.interval_s)
                if self._running:
                    self.sweep()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Janitor error: {e}")

    def sweep(self, now: float | None = None) -> int:
        """Delete every stale file once. Returns how many were removed."""
        removed = 0
        for path in self.pool.stale_files(self.max_age_s, now=now):
            try:
                path.unlink()
                removed += 1
            except OSError as e:
                logger.debug(f"Janitor could not delete {path.name}: {e}")
        if removed:
            logger.info(f"Janitor removed {removed} stale file(s)")
        else:
            logger.debug("Janitor: nothing to remove")
        return removed
