#!/usr/bin/env python3
"""
SQLite news store (default backend).
Short-lived connections per operation, WAL mode, retry on lock contention.
"""

import logging
import sqlite3
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from cryptowire.ingestion.news_types import NewsRow
from cryptowire.storage.base import NewsStore, StoreError, page_window

logger = logging.getLogger(__name__)


class SQLiteNewsStore(NewsStore):
    """SQLite-backed news store"""

    def __init__(self, db_path: str = "cryptowire.db"):
        self.db_path = db_path
        self.max_retries = 3
        self.retry_delay = 1.0
        self._ensure_db_directory()

    def _ensure_db_directory(self):
        """Ensure database directory exists"""
        db_dir = Path(self.db_path).parent
        db_dir.mkdir(parents=True, exist_ok=True)

    def _connect(self) -> sqlite3.Connection:
        """Open a connection, retrying while another writer holds the lock"""
        for attempt in range(self.max_retries):
            conn = None
            try:
                conn = sqlite3.connect(
                    self.db_path,
                    timeout=30.0,
                    check_same_thread=False
                )
                conn.row_factory = sqlite3.Row
                conn.execute('PRAGMA journal_mode=WAL;')  # concurrent readers during ingestion writes
                conn.execute('PRAGMA synchronous=NORMAL;')
                return conn
            except sqlite3.OperationalError as e:
                if conn:
                    conn.close()
                if "database is locked" in str(e) and attempt < self.max_retries - 1:
                    logger.warning(f"Database locked, retrying in {self.retry_delay}s (attempt {attempt + 1})")
                    time.sleep(self.retry_delay)
                    continue
                raise StoreError(f"Database connection failed: {e}") from e
            except sqlite3.Error as e:
                if conn:
                    conn.close()
                raise StoreError(f"Unexpected database error: {e}") from e
        raise StoreError("Database connection failed: retries exhausted")

    @contextmanager
    def get_connection(self):
        """Yield a connection; sqlite errors surface as StoreError"""
        conn = self._connect()
        try:
            yield conn
        except sqlite3.Error as e:
            raise StoreError(f"Database operation failed: {e}") from e
        finally:
            conn.close()

    def ensure_schema(self) -> None:
        """Create the news table if absent"""
        with self.get_connection() as conn:
            conn.execute('''
                CREATE TABLE IF NOT EXISTS news (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    title TEXT NOT NULL,
                    content TEXT,
                    published_at TEXT NOT NULL,
                    cryptopanic_url TEXT NOT NULL UNIQUE,
                    source_link TEXT,
                    source_title TEXT,
                    source_domain TEXT,
                    created_at TEXT DEFAULT (strftime('%Y-%m-%dT%H:%M:%f+00:00', 'now'))
                )
            ''')
            conn.execute('CREATE INDEX IF NOT EXISTS idx_news_published ON news(published_at)')
            conn.commit()

    def insert_if_absent(self, row: NewsRow) -> bool:
        # The UNIQUE constraint makes check-and-insert a single atomic statement.
        with self.get_connection() as conn:
            cursor = conn.execute('''
                INSERT OR IGNORE INTO news
                (title, content, published_at, cryptopanic_url, source_link, source_title, source_domain)
                VALUES (?, ?, ?, ?, ?, ?, ?)
            ''', (
                row.title,
                row.content,
                _utc_iso(row.published_at),
                row.cryptopanic_url,
                row.source_link,
                row.source_title,
                row.source_domain,
            ))
            conn.commit()
            return cursor.rowcount > 0

    def list_page(self, page: int, page_size: int) -> List[NewsRow]:
        offset, limit = page_window(page, page_size)
        with self.get_connection() as conn:
            cursor = conn.execute(
                'SELECT * FROM news ORDER BY published_at DESC, id DESC LIMIT ? OFFSET ?',
                (limit, offset)
            )
            return [NewsRow.from_db(r) for r in cursor.fetchall()]

    def get_by_url(self, cryptopanic_url: str) -> Optional[NewsRow]:
        with self.get_connection() as conn:
            r = conn.execute('SELECT * FROM news WHERE cryptopanic_url = ?', (cryptopanic_url,)).fetchone()
            return NewsRow.from_db(r) if r else None

    def count(self) -> int:
        with self.get_connection() as conn:
            return int(conn.execute('SELECT COUNT(*) FROM news').fetchone()[0] or 0)


def _utc_iso(dt: datetime) -> str:
    # Fixed-width UTC text keeps lexical order equal to chronological order.
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).strftime('%Y-%m-%dT%H:%M:%S.%f+00:00')
