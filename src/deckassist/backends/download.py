"""Fetch remote images into the local images directory."""

from __future__ import annotations

import logging

import httpx

from deckassist.backends.http import (
    USER_AGENT,
    build_client,
    classify_http_error,
    ensure_success,
)
from deckassist.imaging.files import ImageStore, extension_for_content_type

logger = logging.getLogger(__name__)

_SERVICE = "Image download"


class ImageDownloader:
    def __init__(
        self,
        images: ImageStore,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._images = images
        self._client = build_client(timeout=timeout, transport=transport)

    async def download_image(self, url: str) -> str:
        """Download ``url`` and return the stored filename."""
        try:
            response = await self._client.get(
                url, headers={"User-Agent": USER_AGENT}, follow_redirects=True
            )
        except httpx.HTTPError as e:
            raise classify_http_error(e, _SERVICE) from e
        ensure_success(response, _SERVICE)

        ext = extension_for_content_type(response.headers.get("content-type"))
        filename = self._images.save(response.content, prefix="dl", extension=ext)
        logger.info("Downloaded %s -> %s", url, filename)
        return filename

    async def close(self) -> None:
        await self._client.aclose()
