"""Browser-automation image discovery on a shared Playwright browser."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator
from typing import Any
from urllib.parse import quote_plus

from playwright.async_api import Browser, Page, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError

from deckassist.backends.http import USER_AGENT
from deckassist.concurrency.rate_limiter import CooldownLimiter
from deckassist.errors.exceptions import BackendError, ServiceUnavailableError
from deckassist.types import ImageResult

logger = logging.getLogger(__name__)

_SERVICE = "Image scraper"
_SEARCH_URL = "https://www.google.com/search?q={query}&tbm=isch"
_NAVIGATION_TIMEOUT_MS = 30_000
_SELECTOR_TIMEOUT_MS = 10_000

# Placeholder sprites and CDN-internal thumbnails, not real results
_BLOCKED_SOURCES = ("gstatic.com",)

# Extra <img> tags inspected beyond ``count`` to make up for filtered ones
_LOOKAHEAD = 5

_EXTRACT_IMAGES_JS = """
(limit) => Array.from(document.querySelectorAll('img'))
    .slice(0, limit)
    .map((img) => ({
        src: img.src || (img.dataset && img.dataset.src) || '',
        alt: img.alt || '',
    }))
"""


class BrowserResource:
    """One headless browser, launched on first use and kept until ``close``.

    Pages are short-lived and closed after each use; the browser is not.
    """

    def __init__(self, headless: bool = True) -> None:
        self._headless = headless
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._lock = asyncio.Lock()

    @property
    def is_open(self) -> bool:
        return self._browser is not None

    async def acquire(self) -> Browser:
        async with self._lock:
            if self._browser is None:
                logger.info("Launching headless browser for scraping")
                self._playwright = await async_playwright().start()
                self._browser = await self._playwright.chromium.launch(headless=self._headless)
            return self._browser

    @contextlib.asynccontextmanager
    async def page(self, **kwargs: Any) -> AsyncIterator[Page]:
        """Open a page; launch or page failures raise ServiceUnavailableError."""
        try:
            browser = await self.acquire()
            page = await browser.new_page(**kwargs)
        except PlaywrightError as e:
            logger.error("Scraping browser unavailable: %s", e)
            raise ServiceUnavailableError(
                f"Scraping browser is not available: {e}", service=_SERVICE, original=e
            ) from e
        try:
            yield page
        finally:
            await page.close()

    async def close(self) -> None:
        async with self._lock:
            if self._browser is not None:
                await self._browser.close()
                self._browser = None
            if self._playwright is not None:
                await self._playwright.stop()
                self._playwright = None
                logger.info("Scraping browser closed")


class ScrapeBackend:
    """Scrapes a public image results page when API search is not an option."""

    def __init__(
        self,
        browser: BrowserResource | None = None,
        limiter: CooldownLimiter | None = None,
    ) -> None:
        self._browser = browser or BrowserResource()
        self._limiter = limiter or CooldownLimiter()

    @property
    def limiter(self) -> CooldownLimiter:
        return self._limiter

    @property
    def browser(self) -> BrowserResource:
        return self._browser

    async def scrape_images(self, query: str, count: int = 10) -> list[ImageResult]:
        """Collect up to ``count`` image URLs. Raises RateLimitError in cooldown."""
        self._limiter.acquire()

        url = _SEARCH_URL.format(query=quote_plus(query))
        async with self._browser.page(user_agent=USER_AGENT) as page:
            try:
                await page.goto(url, wait_until="networkidle", timeout=_NAVIGATION_TIMEOUT_MS)
                await page.wait_for_selector("img", timeout=_SELECTOR_TIMEOUT_MS)
                raw = await page.evaluate(_EXTRACT_IMAGES_JS, count + _LOOKAHEAD)
            except PlaywrightError as e:
                logger.error("Image scraping failed for %r: %s", query, e)
                raise BackendError(f"Image scraping failed: {e}", service=_SERVICE) from e

        results = extract_candidates(raw, count)
        logger.debug("Scraped %d images for %r", len(results), query)
        return results

    async def close(self) -> None:
        await self._browser.close()


def extract_candidates(raw: list[dict[str, str]], count: int) -> list[ImageResult]:
    """Keep absolute http(s) sources that are not placeholders, up to ``count``."""
    results: list[ImageResult] = []
    for item in raw:
        src = item.get("src") or ""
        if not src.startswith("http"):
            continue
        if any(blocked in src for blocked in _BLOCKED_SOURCES):
            continue
        results.append(ImageResult(url=src, title=item.get("alt") or "Image", thumbnail=src))
        if len(results) >= count:
            break
    return results
