"""Recurring ingestion scheduler.

Owns a private `schedule.Scheduler` and one daemon thread. Lifecycle is explicit:
nothing runs until `start()`, and `stop()` cancels the in-flight run and joins.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional

import schedule

from cryptowire.ingestion.cryptopanic import UpstreamUnavailable
from cryptowire.ingestion.pipeline import IngestionPipeline

logger = logging.getLogger(__name__)


class IngestionScheduler:
    def __init__(
        self,
        pipeline: IngestionPipeline,
        *,
        interval_minutes: int = 60,
        run_on_start: bool = True,
        poll_seconds: float = 1.0,
    ):
        self.pipeline = pipeline
        self.interval_minutes = interval_minutes
        self.run_on_start = run_on_start
        self.poll_seconds = poll_seconds
        self._scheduler = schedule.Scheduler()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.is_running:
            return
        self._stop.clear()
        self._scheduler.clear()
        self._scheduler.every(self.interval_minutes).minutes.do(self.trigger)
        self._thread = threading.Thread(target=self._loop, name="ingestion-scheduler", daemon=True)
        self._thread.start()
        logger.info(f"Ingestion scheduled every {self.interval_minutes} minutes")

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        self.pipeline.cancel()
        if self._thread is not None:
            self._thread.join(timeout)
            if self._thread.is_alive():
                logger.warning("Ingestion thread did not stop within timeout")
            else:
                self._thread = None
        self._scheduler.clear()
        logger.info("Ingestion scheduler stopped")

    def trigger(self) -> Optional[int]:
        """Run one ingestion job now; errors are logged, never raised."""
        try:
            return self.pipeline.run()
        except UpstreamUnavailable as e:
            logger.error(f"Headline feed unavailable, skipping this run: {e}")
        except Exception as e:
            logger.error(f"Error in ingestion run: {e}", exc_info=True)
        return None

    def _loop(self) -> None:
        if self.run_on_start and not self._stop.is_set():
            self.trigger()
        while not self._stop.wait(self.poll_seconds):
            self._scheduler.run_pending()
