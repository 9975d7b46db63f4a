"""Pick a store backend from configuration."""

from __future__ import annotations

import logging

from cryptowire.config import Config
from cryptowire.storage.base import NewsStore

logger = logging.getLogger(__name__)


def open_store(config: Config) -> NewsStore:
    """Prefer Postgres when PG_DSN is set; otherwise SQLite at DB_PATH. Schema is ensured."""
    if config.pg_dsn:
        from cryptowire.storage.postgres_store import PostgresNewsStore

        store: NewsStore = PostgresNewsStore(config.pg_dsn)
        logger.info("Using Postgres news store")
    else:
        from cryptowire.storage.sqlite_store import SQLiteNewsStore

        store = SQLiteNewsStore(config.db_path)
        logger.info(f"Using SQLite news store at {config.db_path}")
    store.ensure_schema()
    return store
