"""Tests for remote image download."""

import httpx
import pytest

from deckassist.backends.download import ImageDownloader
from deckassist.errors.exceptions import BackendError


class TestDownloadImage:
    async def test_saves_with_content_type_extension(self, image_store, sample_image_bytes):
        def handler(request):
            assert "Mozilla" in request.headers["user-agent"]
            return httpx.Response(
                200, content=sample_image_bytes, headers={"content-type": "image/png"}
            )

        downloader = ImageDownloader(image_store, transport=httpx.MockTransport(handler))
        try:
            filename = await downloader.download_image("https://img.test/cat")
        finally:
            await downloader.close()

        assert filename.startswith("dl_")
        assert filename.endswith(".png")
        assert image_store.read(filename) == sample_image_bytes

    async def test_unknown_content_type_defaults_to_jpg(self, image_store):
        downloader = ImageDownloader(
            image_store,
            transport=httpx.MockTransport(lambda r: httpx.Response(200, content=b"\xff\xd8")),
        )
        try:
            filename = await downloader.download_image("https://img.test/raw")
        finally:
            await downloader.close()
        assert filename.endswith(".jpg")

    async def test_not_found(self, image_store):
        downloader = ImageDownloader(
            image_store, transport=httpx.MockTransport(lambda r: httpx.Response(404))
        )
        with pytest.raises(BackendError):
            await downloader.download_image("https://img.test/missing.png")
        await downloader.close()
        assert not image_store.root.exists()
