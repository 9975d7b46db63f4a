"""Shared ingestion data types.

HeadlineRecord -> (render) -> ArticleExtraction -> NewsRow -> Store.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from cryptowire.contracts.payloads import validate_feed_item


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 value into an aware UTC datetime (None if unparseable)."""
    if not value:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        s = str(value).strip()
        if not s:
            return None
        if s.endswith("Z"):
            s = s[:-1] + "+00:00"
        if " " in s and "T" not in s:
            s = s.replace(" ", "T", 1)
        try:
            parsed = datetime.fromisoformat(s)
        except ValueError:
            return None
    # Normalize naive to UTC
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _clean_text(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


@dataclass(frozen=True)
class HeadlineSource:
    title: str
    domain: str


@dataclass(frozen=True)
class HeadlineRecord:
    """A headline as listed by the feed; not persisted as-is."""

    title: str
    url: str
    published_at: datetime
    source: HeadlineSource

    @classmethod
    def from_feed(cls, item: Mapping[str, Any]) -> "HeadlineRecord":
        """Build from a raw feed item; raises ValueError if the item is malformed."""
        errors = validate_feed_item(item)
        if errors:
            raise ValueError("; ".join(errors))
        published_at = parse_timestamp(item["published_at"])
        if published_at is None:
            raise ValueError(f"published_at: unparseable timestamp {item['published_at']!r}")
        title = item["title"].strip()
        url = item["url"].strip()
        if not title or not url:
            raise ValueError("title and url must not be blank")
        src = item["source"]
        return cls(
            title=title,
            url=url,
            published_at=published_at,
            source=HeadlineSource(title=src.get("title") or "", domain=src.get("domain") or ""),
        )


@dataclass(frozen=True)
class ArticleExtraction:
    """Best-effort values read from a rendered article page.

    `content=None` means the body could not be read; that is not an error.
    """

    content: Optional[str] = None
    source_link: Optional[str] = None

    @classmethod
    def from_dom(cls, result: Optional[Mapping[str, Any]]) -> "ArticleExtraction":
        if not isinstance(result, Mapping):
            return cls()
        return cls(
            content=_clean_text(result.get("content")),
            source_link=_clean_text(result.get("sourceLink")),
        )


@dataclass(frozen=True)
class NewsRow:
    """Persisted news row. `id` and `created_at` are assigned by the store."""

    title: str
    content: Optional[str]
    published_at: datetime
    cryptopanic_url: str
    source_link: Optional[str]
    source_title: str
    source_domain: str
    id: Optional[int] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_headline(cls, headline: HeadlineRecord, extraction: ArticleExtraction) -> "NewsRow":
        return cls(
            title=headline.title,
            content=extraction.content,
            published_at=headline.published_at,
            cryptopanic_url=headline.url,
            source_link=extraction.source_link,
            source_title=headline.source.title,
            source_domain=headline.source.domain,
        )

    @classmethod
    def from_db(cls, row: Mapping[str, Any]) -> "NewsRow":
        return cls(
            id=int(row["id"]),
            title=row["title"],
            content=row["content"],
            published_at=parse_timestamp(row["published_at"]),
            cryptopanic_url=row["cryptopanic_url"],
            source_link=row["source_link"],
            source_title=row["source_title"] or "",
            source_domain=row["source_domain"] or "",
            created_at=parse_timestamp(row["created_at"]),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "published_at": self.published_at.isoformat() if self.published_at else None,
            "cryptopanic_url": self.cryptopanic_url,
            "source_link": self.source_link,
            "source_title": self.source_title,
            "source_domain": self.source_domain,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
