"""OHLCV candles for the price chart (OKX public market API)."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import requests

from cryptowire.ingestion.cryptopanic import USER_AGENT, UpstreamUnavailable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Candle:
    time: int  # unix seconds
    open: float
    high: float
    low: float
    close: float
    volume: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def parse_candles(rows: Sequence[Sequence[Any]]) -> List[Candle]:
    """OKX rows -> candles sorted by time; a repeated timestamp keeps the last row."""
    by_time: Dict[int, Candle] = {}
    for row in rows:
        if not isinstance(row, (list, tuple)) or len(row) < 6:
            continue
        try:
            candle = Candle(
                time=int(row[0]) // 1000,
                open=float(row[1]),
                high=float(row[2]),
                low=float(row[3]),
                close=float(row[4]),
                volume=float(row[5]),
            )
        except (TypeError, ValueError):
            logger.debug(f"Skipping malformed candle row: {row!r}")
            continue
        by_time[candle.time] = candle
    return [by_time[t] for t in sorted(by_time)]


@dataclass
class OKXCandleClient:
    endpoint: str = "https://www.okx.com/api/v5/market/history-candles"
    timeout: int = 30
    session: Optional[requests.Session] = field(default=None, repr=False)

    def fetch_candles(self, inst_id: str = "BTC-USDT", bar: str = "1H", limit: int = 720) -> List[Candle]:
        params = {"instId": inst_id, "bar": bar, "limit": limit}
        http = self.session or requests
        try:
            resp = http.get(self.endpoint, params=params, headers={"User-Agent": USER_AGENT}, timeout=self.timeout)
        except requests.RequestException as e:
            raise UpstreamUnavailable(f"okx: request failed: {e.__class__.__name__}") from e
        if not resp.ok:
            raise UpstreamUnavailable(f"okx: HTTP {resp.status_code}")
        try:
            data = resp.json() or {}
        except ValueError as e:
            raise UpstreamUnavailable("okx: response was not JSON") from e
        rows = data.get("data") if isinstance(data, dict) else None
        if not isinstance(rows, list):
            raise UpstreamUnavailable("okx: response has no data list")
        return parse_candles(rows)
