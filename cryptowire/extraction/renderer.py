"""Headless-browser article rendering + extraction.

CryptoPanic post pages render their body client-side, so a plain HTTP fetch
returns an empty shell. We drive Chromium via Playwright, wait for the body
marker, then read two values from the DOM:
- the marker's text (article body)
- the href of the title-block anchor (original publisher URL)

One renderer session = one browser + one page, reused across items.
"""

from __future__ import annotations

import ipaddress
import logging
from typing import Optional
from urllib.parse import urlparse

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError
from playwright.sync_api import sync_playwright

from cryptowire.ingestion.news_types import ArticleExtraction

logger = logging.getLogger(__name__)


class RenderError(Exception):
    """Navigation failed (DNS, TLS, refused connection, HTTP error status)."""


class RenderTimeout(RenderError):
    """The page or its content marker did not become ready in time."""


_PRIVATE_NETS = [
    ipaddress.ip_network("127.0.0.0/8"),
    ipaddress.ip_network("10.0.0.0/8"),
    ipaddress.ip_network("172.16.0.0/12"),
    ipaddress.ip_network("192.168.0.0/16"),
    ipaddress.ip_network("169.254.0.0/16"),
    ipaddress.ip_network("0.0.0.0/8"),
    ipaddress.ip_network("::1/128"),
    ipaddress.ip_network("fc00::/7"),
    ipaddress.ip_network("fe80::/10"),
]


def _is_private_ip(hostname: str) -> bool:
    try:
        ip = ipaddress.ip_address(hostname)
    except ValueError:
        return False
    return any(ip in net for net in _PRIVATE_NETS)


def validate_fetch_url(url: str) -> Optional[str]:
    """Return error string if URL should not be rendered (SSRF/abuse protections)."""
    if not url:
        return "empty_url"
    try:
        p = urlparse(url)
    except ValueError:
        return "invalid_url"
    if p.scheme not in ("http", "https"):
        return "bad_scheme"
    host = (p.hostname or "").strip().lower()
    if not host:
        return "missing_host"
    if host in ("localhost", "localhost.localdomain"):
        return "blocked_host"
    if _is_private_ip(host):
        return "blocked_private_ip"
    return None


# Both reads are best-effort: a missing element yields null, never an exception.
_EXTRACT_JS = """
([contentSelector, linkSelector]) => {
  const contentElement = document.querySelector(contentSelector);
  const sourceLinkElement = document.querySelector(linkSelector);
  return {
    content: contentElement ? contentElement.innerText : null,
    sourceLink: sourceLinkElement ? sourceLinkElement.href : null
  };
}
"""


class ArticleRenderer:
    """Playwright-backed renderer; use as a context manager around one run."""

    def __init__(
        self,
        *,
        content_selector: str = ".description-body",
        source_link_selector: str = ".post-title a",
        marker_timeout_ms: int = 5000,
        navigation_timeout_ms: int = 30000,
        headless: bool = True,
    ):
        self.content_selector = content_selector
        self.source_link_selector = source_link_selector
        self.marker_timeout_ms = marker_timeout_ms
        self.navigation_timeout_ms = navigation_timeout_ms
        self.headless = headless
        self._playwright = None
        self._browser = None
        self._page = None

    def __enter__(self) -> "ArticleRenderer":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def is_open(self) -> bool:
        return self._page is not None

    def open(self) -> None:
        if self.is_open:
            return
        try:
            self._playwright = sync_playwright().start()
            self._browser = self._playwright.chromium.launch(
                headless=self.headless,
                args=["--no-sandbox", "--disable-setuid-sandbox"],
            )
            self._page = self._browser.new_page()
        except Exception:
            # Partially started sessions still own OS processes
            self.close()
            raise
        logger.info("Browser session opened")

    def close(self) -> None:
        # Each stage runs even when an earlier one fails
        had_session = self._playwright is not None
        for label, handle, method in (
            ("page", self._page, "close"),
            ("browser", self._browser, "close"),
            ("playwright", self._playwright, "stop"),
        ):
            if handle is None:
                continue
            try:
                getattr(handle, method)()
            except PlaywrightError as e:
                logger.warning(f"Failed to close {label} cleanly: {e}")
        self._page = None
        self._browser = None
        self._playwright = None
        if had_session:
            logger.info("Browser session closed")

    def render(self, url: str) -> ArticleExtraction:
        """Load `url`, wait for the content marker and extract body + source link."""
        if self._page is None:
            raise RenderError("renderer session is not open")
        page = self._page

        try:
            response = page.goto(url, wait_until="networkidle", timeout=self.navigation_timeout_ms)
        except PlaywrightTimeoutError as e:
            raise RenderTimeout(f"navigation timed out after {self.navigation_timeout_ms}ms: {url}") from e
        except PlaywrightError as e:
            raise RenderError(f"navigation failed for {url}: {e.message}") from e
        if response is not None and response.status >= 400:
            raise RenderError(f"HTTP {response.status} for {url}")

        try:
            page.wait_for_selector(self.content_selector, timeout=self.marker_timeout_ms)
        except PlaywrightTimeoutError as e:
            raise RenderTimeout(
                f"content marker {self.content_selector!r} not found within {self.marker_timeout_ms}ms: {url}"
            ) from e
        except PlaywrightError as e:
            raise RenderError(f"waiting for content failed for {url}: {e.message}") from e

        try:
            result = page.evaluate(_EXTRACT_JS, [self.content_selector, self.source_link_selector])
        except PlaywrightError as e:
            raise RenderError(f"extraction failed for {url}: {e.message}") from e
        return ArticleExtraction.from_dom(result)
