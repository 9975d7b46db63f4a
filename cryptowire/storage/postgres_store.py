"""Postgres news store (selected when PG_DSN is configured).

Lightweight psycopg + SQL, same contract as the SQLite store.
"""

from __future__ import annotations

from typing import Iterable, List, Optional

import psycopg
from psycopg.rows import dict_row

from cryptowire.ingestion.news_types import NewsRow
from cryptowire.storage.base import NewsStore, StoreError, page_window


SCHEMA_STATEMENTS: list[str] = [
    """
    CREATE TABLE IF NOT EXISTS news (
      id BIGSERIAL PRIMARY KEY,
      title TEXT NOT NULL,
      content TEXT,
      published_at TIMESTAMPTZ NOT NULL,
      cryptopanic_url TEXT NOT NULL UNIQUE,
      source_link TEXT,
      source_title TEXT,
      source_domain TEXT,
      created_at TIMESTAMPTZ NOT NULL DEFAULT now()
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_news_published_at ON news(published_at DESC);",
]


class PostgresNewsStore(NewsStore):
    def __init__(self, pg_dsn: str):
        self.pg_dsn = pg_dsn

    def _connect(self):
        try:
            return psycopg.connect(self.pg_dsn, autocommit=True, row_factory=dict_row)
        except psycopg.Error as e:
            raise StoreError(f"Postgres connection failed: {e.__class__.__name__}") from e

    def ensure_schema(self, *, statements: Optional[Iterable[str]] = None) -> None:
        """Ensure the news table exists (idempotent)."""
        stmts = list(statements) if statements is not None else SCHEMA_STATEMENTS
        try:
            with self._connect() as conn:
                with conn.cursor() as cur:
                    for s in stmts:
                        cur.execute(s)
        except psycopg.Error as e:
            raise StoreError(f"Schema creation failed: {e}") from e

    def insert_if_absent(self, row: NewsRow) -> bool:
        try:
            with self._connect() as conn:
                with conn.cursor() as cur:
                    cur.execute(
                        """
                        INSERT INTO news (
                          title, content, published_at, cryptopanic_url, source_link, source_title, source_domain
                        )
                        VALUES (
                          %(title)s, %(content)s, %(published_at)s, %(cryptopanic_url)s,
                          %(source_link)s, %(source_title)s, %(source_domain)s
                        )
                        ON CONFLICT (cryptopanic_url) DO NOTHING
                        RETURNING id
                        """,
                        {
                            "title": row.title,
                            "content": row.content,
                            "published_at": row.published_at,
                            "cryptopanic_url": row.cryptopanic_url,
                            "source_link": row.source_link,
                            "source_title": row.source_title,
                            "source_domain": row.source_domain,
                        },
                    )
                    return cur.fetchone() is not None
        except psycopg.Error as e:
            raise StoreError(f"Insert failed: {e}") from e

    def list_page(self, page: int, page_size: int) -> List[NewsRow]:
        offset, limit = page_window(page, page_size)
        try:
            with self._connect() as conn:
                with conn.cursor() as cur:
                    cur.execute(
                        """
                        SELECT id, title, content, published_at, cryptopanic_url, source_link,
                               source_title, source_domain, created_at
                        FROM news
                        ORDER BY published_at DESC, id DESC
                        LIMIT %s OFFSET %s
                        """,
                        (limit, offset),
                    )
                    rows = cur.fetchall()
        except psycopg.Error as e:
            raise StoreError(f"Query failed: {e}") from e
        return [NewsRow.from_db(r) for r in rows]

    def get_by_url(self, cryptopanic_url: str) -> Optional[NewsRow]:
        try:
            with self._connect() as conn:
                with conn.cursor() as cur:
                    cur.execute("SELECT * FROM news WHERE cryptopanic_url = %s", (cryptopanic_url,))
                    r = cur.fetchone()
        except psycopg.Error as e:
            raise StoreError(f"Query failed: {e}") from e
        return NewsRow.from_db(r) if r else None

    def count(self) -> int:
        try:
            with self._connect() as conn:
                with conn.cursor() as cur:
                    cur.execute("SELECT COUNT(*) AS n FROM news")
                    return int(cur.fetchone()["n"] or 0)
        except psycopg.Error as e:
            raise StoreError(f"Query failed: {e}") from e
