"""Top-level entry point: the DeckAssist service and its lifecycle."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any

import httpx

from deckassist.backends.download import ImageDownloader
from deckassist.backends.generation import GenerationBackend
from deckassist.backends.scrape import BrowserResource, ScrapeBackend
from deckassist.backends.search import SearchBackend
from deckassist.backends.text import TextBackend
from deckassist.backends.translation import TranslationBackend
from deckassist.cache.service import CacheService
from deckassist.cache.store import ContentCache
from deckassist.concurrency.job_queue import JobQueue
from deckassist.concurrency.rate_limiter import CooldownLimiter
from deckassist.config.settings import Settings
from deckassist.imaging.files import ImageStore
from deckassist.imaging.pipeline import ImagePipeline
from deckassist.types import (
    DetectionResult,
    GenerationJob,
    GenerationRequest,
    ImageResult,
    LanguageInfo,
    PresentationRequest,
    PresentationResult,
    ProcessOptions,
)

logger = logging.getLogger(__name__)


class DeckAssist:
    """Owns the cache, backend adapters, image pipeline and job queue.

    The job registry and the scraping browser are process-scoped state held
    here, created by ``start`` (or lazily) and released by ``close``.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        cache_db_path: Path | None = None,
        images_dir: Path | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """``transport`` replaces the network for every HTTP backend (tests)."""
        self._settings = settings or Settings()
        s = self._settings

        self._store = ContentCache(db_path=cache_db_path or s.cache_db_path)
        self._cache = CacheService(self._store, s)
        self._images = ImageStore(images_dir or s.images_dir)
        self._pipeline = ImagePipeline(self._images)

        self._generation = GenerationBackend(
            s.sd_webui_url,
            timeout=s.generation_timeout,
            health_timeout=s.health_timeout,
            transport=transport,
        )
        self._text = TextBackend(
            s.ollama_url,
            model=s.text_model,
            timeout=s.generation_timeout,
            health_timeout=s.health_timeout,
            cache=self._cache,
            http_client=httpx.AsyncClient(transport=transport) if transport else None,
        )
        self._search = SearchBackend(
            s.google_api_key,
            s.google_search_engine_id,
            timeout=s.request_timeout,
            transport=transport,
        )
        self._scrape = ScrapeBackend(
            BrowserResource(), CooldownLimiter(interval=s.scrape_cooldown)
        )
        self._translation = TranslationBackend(
            s.libretranslate_url,
            self._cache,
            timeout=s.request_timeout,
            health_timeout=s.health_timeout,
            transport=transport,
        )
        self._downloader = ImageDownloader(
            self._images, timeout=s.request_timeout, transport=transport
        )
        self._jobs = JobQueue(self._generate_to_file)

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def cache(self) -> CacheService:
        return self._cache

    @property
    def pipeline(self) -> ImagePipeline:
        return self._pipeline

    @property
    def jobs(self) -> JobQueue:
        return self._jobs

    @property
    def text(self) -> TextBackend:
        return self._text

    @property
    def translation(self) -> TranslationBackend:
        return self._translation

    async def start(self) -> None:
        """Start the generation worker. Must run inside the event loop."""
        self._jobs.start()

    async def close(self) -> None:
        """Stop the worker, close the browser, HTTP clients and cache."""
        await self._jobs.shutdown()
        await self._scrape.close()
        await asyncio.gather(
            self._generation.close(),
            self._text.close(),
            self._search.close(),
            self._translation.close(),
            self._downloader.close(),
        )
        self._store.close()

    async def __aenter__(self) -> DeckAssist:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # ── Image generation ──

    def submit_generation(self, request: GenerationRequest | str) -> str:
        if isinstance(request, str):
            request = GenerationRequest(prompt=request)
        return self._jobs.submit(request)

    def get_job(self, job_id: str) -> GenerationJob | None:
        return self._jobs.get_status(job_id)

    async def _generate_to_file(self, request: GenerationRequest) -> str:
        image_bytes = await self._generation.generate(request)
        filename = self._images.save(image_bytes, prefix="sd", extension="png")
        return self._pipeline.compress_if_large(filename, self._settings.compress_threshold_mb)

    # ── Image search ──

    async def search_images(self, query: str, count: int = 10) -> list[ImageResult]:
        results = await self._cache.image_cache(
            query, lambda: self._search_as_dicts(query, count), count=count
        )
        return [ImageResult(**r) for r in results]

    async def scrape_images(self, query: str, count: int = 10) -> list[ImageResult]:
        return await self._scrape.scrape_images(query, count)

    async def download_image(self, url: str) -> str:
        return await self._downloader.download_image(url)

    async def _search_as_dicts(self, query: str, count: int) -> list[dict[str, Any]]:
        return [r.model_dump() for r in await self._search.search_images(query, count)]

    # ── Image processing ──

    def process_image(self, filename: str, options: ProcessOptions | None = None) -> str:
        return self._pipeline.process_image(filename, options)

    def compress_if_large(self, filename: str, threshold_mb: float | None = None) -> str:
        if threshold_mb is None:
            threshold_mb = self._settings.compress_threshold_mb
        return self._pipeline.compress_if_large(filename, threshold_mb)

    def remove_background(self, filename: str) -> str:
        return self._pipeline.remove_background(filename)

    # ── Text ──

    async def generate_text(
        self, prompt: str, model: str | None = None, temperature: float | None = None
    ) -> str:
        return await self._text.generate_cached(prompt, model, temperature)

    async def generate_presentation(
        self, request: PresentationRequest | str, slide_count: int = 5
    ) -> PresentationResult:
        if isinstance(request, str):
            request = PresentationRequest(prompt=request, slide_count=slide_count)
        return await self._text.generate_presentation(request)

    # ── Translation ──

    async def translate(
        self, text: str, target_language: str, source_language: str | None = None
    ) -> str:
        return await self._translation.translate(text, target_language, source_language)

    async def detect_language(self, text: str) -> DetectionResult:
        return await self._translation.detect_language(text)

    async def languages(self) -> list[LanguageInfo]:
        return await self._translation.get_available_languages()

    # ── Maintenance ──

    async def health(self) -> dict[str, bool]:
        image_ok, text_ok, translation_ok = await asyncio.gather(
            self._generation.check_availability(),
            self._text.check_health(),
            self._translation.check_health(),
        )
        return {
            "image_generation": image_ok,
            "text_generation": text_ok,
            "image_search_configured": self._search.configured,
            "translation": translation_ok,
        }

    def sweep_cache(self) -> int:
        """Remove expired rows from every cache table."""
        return self._cache.clear_expired()
