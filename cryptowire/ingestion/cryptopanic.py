"""CryptoPanic headline feed client.

The feed lists recent posts with metadata (title, link, publish time, source)
but not the article body; bodies come from the renderer.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

import requests

from cryptowire.ingestion.news_types import HeadlineRecord

logger = logging.getLogger(__name__)

USER_AGENT = "cryptowire/1.0"


class UpstreamUnavailable(Exception):
    """An upstream HTTP API could not be reached or returned a non-success response."""


@dataclass
class CryptoPanicClient:
    auth_token: str
    endpoint: str = "https://cryptopanic.com/api/v1/posts/"
    timeout: int = 30
    session: Optional[requests.Session] = field(default=None, repr=False)

    name: str = "cryptopanic"

    def list_latest(self, currency: str = "BTC", kind: str = "news", limit: int = 10) -> List[HeadlineRecord]:
        """Return up to `limit` headlines, newest first as the feed orders them."""
        params = {
            "auth_token": self.auth_token,
            "currencies": currency,
            "kind": kind,
            "limit": limit,
        }
        http = self.session or requests
        try:
            resp = http.get(
                self.endpoint,
                params=params,
                headers={"User-Agent": USER_AGENT},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise UpstreamUnavailable(f"{self.name}: request failed: {e.__class__.__name__}") from e
        if not resp.ok:
            raise UpstreamUnavailable(f"{self.name}: HTTP {resp.status_code}")
        try:
            data = resp.json() or {}
        except ValueError as e:
            raise UpstreamUnavailable(f"{self.name}: response was not JSON") from e

        results = data.get("results") if isinstance(data, dict) else None
        if not isinstance(results, list):
            raise UpstreamUnavailable(f"{self.name}: response has no results list")

        out: List[HeadlineRecord] = []
        for item in results[: max(0, limit)]:
            try:
                out.append(HeadlineRecord.from_feed(item))
            except ValueError as e:
                logger.warning(f"Dropping malformed feed item: {e}")
        logger.info(f"Fetched {len(out)} headlines from {self.name} (currency={currency}, kind={kind})")
        return out
