"""Image search through the Google Custom Search JSON API."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from deckassist.backends.http import build_client, classify_http_error, ensure_success
from deckassist.errors.exceptions import ConfigurationError
from deckassist.types import ImageResult

logger = logging.getLogger(__name__)

_SERVICE = "Google Image Search"
_ENDPOINT = "https://www.googleapis.com/customsearch/v1"
_MAX_RESULTS = 10  # API ceiling per request


class SearchBackend:
    """API-based image search. Needs both an API key and a search engine id."""

    def __init__(
        self,
        api_key: str | None = None,
        search_engine_id: str | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._search_engine_id = search_engine_id
        self._client = build_client(timeout=timeout, transport=transport)

    @property
    def configured(self) -> bool:
        return bool(self._api_key and self._search_engine_id)

    async def search_images(self, query: str, count: int = 10) -> list[ImageResult]:
        """Return up to ``count`` results; an empty result set is not an error."""
        if not self._api_key:
            raise ConfigurationError(
                "Google API credentials not configured", setting="google_api_key"
            )
        if not self._search_engine_id:
            raise ConfigurationError(
                "Google API credentials not configured", setting="google_search_engine_id"
            )

        params = {
            "key": self._api_key,
            "cx": self._search_engine_id,
            "q": query,
            "searchType": "image",
            "num": max(1, min(count, _MAX_RESULTS)),
        }
        try:
            response = await self._client.get(_ENDPOINT, params=params)
        except httpx.HTTPError as e:
            raise classify_http_error(e, _SERVICE) from e
        ensure_success(response, _SERVICE)

        items = response.json().get("items") or []
        logger.debug("Image search for %r returned %d items", query, len(items))
        return [self._to_result(item) for item in items]

    async def close(self) -> None:
        await self._client.aclose()

    @staticmethod
    def _to_result(item: dict[str, Any]) -> ImageResult:
        image = item.get("image") or {}
        return ImageResult(
            url=item.get("link", ""),
            title=item.get("title") or "Image",
            thumbnail=image.get("thumbnailLink", ""),
        )
