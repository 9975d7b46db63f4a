#!/usr/bin/env python3
"""Standalone news ingestion worker.

Runs one ingestion cycle (default) or the hourly schedule in the foreground:
- CryptoPanic headline list
- headless-browser render of each post for body text + original source link
- dedup-insert into the configured store

INGEST_MODE=once|scheduled
"""

from __future__ import annotations

import logging
import os
import sys
import time

from dotenv import load_dotenv

from cryptowire.config import Config
from cryptowire.extraction.renderer import ArticleRenderer
from cryptowire.ingestion.cryptopanic import CryptoPanicClient, UpstreamUnavailable
from cryptowire.ingestion.pipeline import IngestionPipeline
from cryptowire.ingestion.scheduler import IngestionScheduler
from cryptowire.storage.factory import open_store

logger = logging.getLogger("news_ingest_worker")


def build_pipeline(config: Config) -> IngestionPipeline:
    store = open_store(config)
    client = CryptoPanicClient(config.cryptopanic_auth_token, timeout=config.request_timeout)

    def renderer_factory():
        return ArticleRenderer(
            marker_timeout_ms=config.render_marker_timeout_ms,
            navigation_timeout_ms=config.render_navigation_timeout_ms,
        )

    return IngestionPipeline(
        client,
        store,
        renderer_factory,
        currency=config.news_currencies,
        kind=config.news_kind,
        limit=config.news_limit,
    )


def run_once(pipeline: IngestionPipeline) -> int:
    try:
        stored = pipeline.run()
    except UpstreamUnavailable as e:
        logger.error(f"[ingest] headline feed unavailable: {e}")
        return 1
    logger.info(f"[ingest] stored={stored} distinct_in_db={pipeline.store.count()}")
    return 0


def run_scheduled(pipeline: IngestionPipeline, interval_minutes: int) -> int:
    scheduler = IngestionScheduler(pipeline, interval_minutes=interval_minutes)
    scheduler.start()
    try:
        while scheduler.is_running:
            time.sleep(5)
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user")
    finally:
        scheduler.stop(timeout=30)
    return 0


def main() -> int:
    load_dotenv()
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    try:
        config = Config.from_env()
    except ValueError as e:
        logger.error(f"Configuration error:\n{e}")
        return 1

    pipeline = build_pipeline(config)
    mode = (os.environ.get("INGEST_MODE") or "once").lower().strip()
    if mode in ("scheduled", "daemon"):
        return run_scheduled(pipeline, config.ingest_interval_minutes)
    return run_once(pipeline)


if __name__ == "__main__":
    raise SystemExit(main())
