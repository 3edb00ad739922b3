import io

import pytest
from PIL import Image

from deckassist.cache.service import CacheService
from deckassist.cache.store import ContentCache
from deckassist.config.settings import Settings
from deckassist.imaging.files import ImageStore


@pytest.fixture
def sample_image_bytes():
    """Minimal valid PNG for testing (1x1 white pixel)."""
    import base64
    return base64.b64decode(
        "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR4"
        "nGP4z8BQDwAEgAF/pooBPQAAAABJRU5ErkJggg=="
    )


@pytest.fixture
def make_png():
    """Build PNG bytes of a solid colour at the given size."""
    def _make(width=64, height=48, color=(200, 30, 30), mode="RGB"):
        buf = io.BytesIO()
        Image.new(mode, (width, height), color).save(buf, format="PNG")
        return buf.getvalue()
    return _make


@pytest.fixture
def image_store(tmp_path):
    return ImageStore(tmp_path / "images")


@pytest.fixture
def content_cache(tmp_path):
    cache = ContentCache(db_path=tmp_path / "cache.db")
    yield cache
    cache.close()


@pytest.fixture
def cache_service(content_cache):
    return CacheService(content_cache, Settings())
