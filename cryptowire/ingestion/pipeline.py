"""Ingestion pipeline: headline feed -> renderer -> store.

Strictly sequential: the renderer session (one browser page) is shared and
stateful across items, so items are processed one at a time in feed order.
"""

from __future__ import annotations

import logging
import threading
from contextlib import AbstractContextManager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from cryptowire.extraction.renderer import ArticleRenderer, RenderError, RenderTimeout
from cryptowire.ingestion.cryptopanic import CryptoPanicClient
from cryptowire.ingestion.news_types import NewsRow
from cryptowire.storage.base import NewsStore

logger = logging.getLogger(__name__)

RendererFactory = Callable[[], AbstractContextManager]


@dataclass(frozen=True)
class IngestionReport:
    fetched: int
    stored: int
    duplicates: int
    failed: int
    cancelled: bool
    started_at: datetime
    finished_at: datetime

    def to_dict(self) -> dict:
        return {
            "fetched": self.fetched,
            "stored": self.stored,
            "duplicates": self.duplicates,
            "failed": self.failed,
            "cancelled": self.cancelled,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat(),
        }


class IngestionPipeline:
    def __init__(
        self,
        client: CryptoPanicClient,
        store: NewsStore,
        renderer_factory: RendererFactory = ArticleRenderer,
        *,
        currency: str = "BTC",
        kind: str = "news",
        limit: int = 10,
    ):
        self.client = client
        self.store = store
        self.renderer_factory = renderer_factory
        self.currency = currency
        self.kind = kind
        self.limit = limit
        self.last_report: Optional[IngestionReport] = None
        self._run_lock = threading.Lock()
        self._cancel = threading.Event()

    @property
    def running(self) -> bool:
        return self._run_lock.locked()

    def cancel(self) -> None:
        """Stop the in-flight run before its next item (no-op when idle)."""
        if self.running:
            self._cancel.set()

    def run(self) -> int:
        """Run one ingestion cycle; returns the number of newly stored rows.

        Raises UpstreamUnavailable when the headline list cannot be fetched.
        A call made while another run is in flight returns 0 without doing anything.
        """
        if not self._run_lock.acquire(blocking=False):
            logger.warning("Ingestion run already in progress; skipping overlapping run")
            return 0
        try:
            return self._run_locked()
        finally:
            self._cancel.clear()
            self._run_lock.release()

    def _run_locked(self) -> int:
        started_at = datetime.now(timezone.utc)
        logger.info("Fetching latest news...")
        headlines = self.client.list_latest(self.currency, self.kind, self.limit)

        stored = duplicates = failed = 0
        cancelled = False
        if headlines:
            with self.renderer_factory() as renderer:
                for headline in headlines:
                    if self._cancel.is_set():
                        cancelled = True
                        logger.info("Ingestion run cancelled")
                        break
                    try:
                        extraction = renderer.render(headline.url)
                    except RenderTimeout as e:
                        failed += 1
                        logger.warning(f"Timed out fetching content for: {headline.title} ({e})")
                        continue
                    except RenderError as e:
                        failed += 1
                        logger.warning(f"Failed to fetch content for: {headline.title} ({e})")
                        continue
                    if self.store.insert_if_absent(NewsRow.from_headline(headline, extraction)):
                        stored += 1
                    else:
                        duplicates += 1

        self.last_report = IngestionReport(
            fetched=len(headlines),
            stored=stored,
            duplicates=duplicates,
            failed=failed,
            cancelled=cancelled,
            started_at=started_at,
            finished_at=datetime.now(timezone.utc),
        )
        logger.info(
            f"Ingestion finished: fetched={len(headlines)} stored={stored} "
            f"duplicates={duplicates} failed={failed}"
        )
        return stored
