"""Machine translation through a LibreTranslate server, with caching."""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from typing import Any

import httpx

from deckassist.backends.http import build_client, classify_http_error, ensure_success
from deckassist.cache.keys import derive_key
from deckassist.cache.service import CacheService
from deckassist.errors.exceptions import BackendError, ServiceUnavailableError
from deckassist.types import CacheType, DetectionResult, LanguageInfo

logger = logging.getLogger(__name__)

_SERVICE = "LibreTranslate"

FALLBACK_LANGUAGES: list[LanguageInfo] = [
    LanguageInfo(code="en", name="English"),
    LanguageInfo(code="es", name="Spanish"),
    LanguageInfo(code="fr", name="French"),
    LanguageInfo(code="de", name="German"),
    LanguageInfo(code="it", name="Italian"),
    LanguageInfo(code="pt", name="Portuguese"),
    LanguageInfo(code="ru", name="Russian"),
    LanguageInfo(code="zh", name="Chinese"),
    LanguageInfo(code="ja", name="Japanese"),
    LanguageInfo(code="ko", name="Korean"),
    LanguageInfo(code="ar", name="Arabic"),
    LanguageInfo(code="hi", name="Hindi"),
]


class TranslationBackend:
    """Detects languages and translates text.

    Every call that reaches the server is preceded by a health check; a
    failed check raises ServiceUnavailableError and nothing is cached.
    Detections are cached by a hash of the text, translations by
    (text, source, target).
    """

    def __init__(
        self,
        base_url: str,
        cache: CacheService,
        timeout: float = 30.0,
        health_timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._cache = cache
        self._health_timeout = health_timeout
        self._client = build_client(base_url, timeout=timeout, transport=transport)

    async def check_health(self) -> bool:
        try:
            response = await self._client.get("/languages", timeout=self._health_timeout)
        except Exception as e:
            logger.debug("%s health check failed: %s", _SERVICE, e)
            return False
        return response.is_success

    async def get_available_languages(self) -> list[LanguageInfo]:
        """Languages the server supports, or a built-in list when it is down."""
        try:
            response = await self._client.get("/languages")
            ensure_success(response, _SERVICE)
            return [LanguageInfo(**item) for item in response.json()]
        except (httpx.HTTPError, BackendError, ValueError, TypeError) as e:
            logger.warning("Failed to fetch available languages, using fallback: %s", e)
            return list(FALLBACK_LANGUAGES)

    async def detect_language(self, text: str) -> DetectionResult:
        key = derive_key("detect", {"text": text})
        data = await self._cache.get_or_set_json(
            key,
            CacheType.LANGUAGE_DETECTION,
            lambda: self._detect_remote(text),
            self._cache.default_ttl(CacheType.LANGUAGE_DETECTION),
        )
        return DetectionResult(**data)

    async def translate(
        self,
        text: str,
        target_language: str,
        source_language: str | None = None,
    ) -> str:
        """Translate ``text``; a missing or ``"auto"`` source is detected first."""
        if not text or not text.strip():
            return text

        if not source_language or source_language == "auto":
            source_language = (await self.detect_language(text)).language

        if source_language == target_language:
            return text

        cached = self._cached_translation(text, source_language, target_language)
        if cached is not None:
            return cached

        await self._ensure_healthy()
        data = await self._post(
            "/translate",
            {"q": text, "source": source_language, "target": target_language, "format": "text"},
        )
        translated = data.get("translatedText")
        if translated is None:
            raise BackendError(f"{_SERVICE} returned no translation", service=_SERVICE)

        self._store_translation(text, source_language, target_language, translated)
        return translated

    async def translate_batch(
        self,
        texts: list[str],
        target_language: str,
        source_language: str | None = None,
    ) -> list[str]:
        return list(
            await asyncio.gather(
                *(self.translate(t, target_language, source_language) for t in texts)
            )
        )

    def clear_cache(self) -> int:
        """Drop cached translations and language detections."""
        store = self._cache.store
        return store.clear_translations() + store.clear_by_type(CacheType.LANGUAGE_DETECTION)

    def clear_expired_cache(self) -> int:
        return self._cache.clear_expired()

    async def close(self) -> None:
        await self._client.aclose()

    async def _detect_remote(self, text: str) -> dict[str, Any]:
        await self._ensure_healthy()
        results = await self._post("/detect", {"q": text})
        if not results:
            raise BackendError(f"{_SERVICE} could not detect a language", service=_SERVICE)
        best = results[0] if isinstance(results, list) else None
        if not isinstance(best, dict) or not isinstance(best.get("language"), str):
            raise BackendError(
                f"{_SERVICE} returned a malformed detection: {results!r}", service=_SERVICE
            )
        return {"language": best["language"], "confidence": best.get("confidence", 0.0)}

    async def _ensure_healthy(self) -> None:
        if not await self.check_health():
            raise ServiceUnavailableError(
                f"{_SERVICE} service is not available", service=_SERVICE
            )

    async def _post(self, path: str, body: dict[str, Any]) -> Any:
        try:
            response = await self._client.post(path, json=body)
        except httpx.HTTPError as e:
            raise classify_http_error(e, _SERVICE) from e
        ensure_success(response, _SERVICE)
        return response.json()

    def _cached_translation(self, text: str, source: str, target: str) -> str | None:
        try:
            return self._cache.store.get_translation(text, source, target)
        except sqlite3.Error as e:
            logger.warning("Error reading translation cache: %s", e)
            return None

    def _store_translation(self, text: str, source: str, target: str, translated: str) -> None:
        try:
            self._cache.store.set_translation(
                text, source, target, translated,
                ttl=self._cache.default_ttl(CacheType.TRANSLATION),
            )
        except sqlite3.Error as e:
            logger.warning("Error caching translation: %s", e)
