"""Store interface shared by the SQLite and Postgres backends."""

from __future__ import annotations

from typing import List, Optional

from cryptowire.ingestion.news_types import NewsRow


class StoreError(Exception):
    """Custom exception for storage backend failures"""


def page_window(page: int, page_size: int) -> tuple:
    """Return (offset, limit) for a 1-based page number."""
    if int(page) < 1:
        raise ValueError("page must be >= 1")
    if int(page_size) < 1:
        raise ValueError("page_size must be >= 1")
    return (int(page) - 1) * int(page_size), int(page_size)


class NewsStore:
    """Single-table news store keyed by `cryptopanic_url`.

    Rows are inserted once and never updated or deleted.
    """

    def ensure_schema(self) -> None:
        raise NotImplementedError

    def insert_if_absent(self, row: NewsRow) -> bool:
        """Insert `row` unless its `cryptopanic_url` exists; True if a row was added."""
        raise NotImplementedError

    def list_page(self, page: int, page_size: int) -> List[NewsRow]:
        """Rows ordered newest `published_at` first; empty past the last page."""
        raise NotImplementedError

    def get_by_url(self, cryptopanic_url: str) -> Optional[NewsRow]:
        raise NotImplementedError

    def count(self) -> int:
        raise NotImplementedError
