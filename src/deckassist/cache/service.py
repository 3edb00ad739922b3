"""Read-through cache service with per-namespace convenience wrappers."""

from __future__ import annotations

import inspect
import json
import logging
import sqlite3
from collections.abc import Awaitable, Callable
from typing import Any

from deckassist.cache.keys import derive_key
from deckassist.cache.stats import CacheStats
from deckassist.cache.store import ContentCache
from deckassist.config.settings import Settings
from deckassist.types import CacheType

logger = logging.getLogger(__name__)

Producer = Callable[[], "Awaitable[Any] | Any"]


def _identity(value: Any) -> Any:
    return value


def _encode_json(value: Any) -> str:
    return value if isinstance(value, str) else json.dumps(value, default=str)


class CacheService:
    """Wraps a ContentCache with ``get_or_set`` and hit/miss accounting.

    ``get_or_set`` is not single-flight: two concurrent misses on
    the same key both run their producer, and the later ``set`` wins. Writes
    are idempotent replacements of the (key, type) row, so the cache stays
    consistent and only the duplicated backend call is lost.
    """

    def __init__(self, store: ContentCache, settings: Settings | None = None) -> None:
        self._store = store
        self._settings = settings or Settings()
        self._hits = 0
        self._misses = 0

    @property
    def store(self) -> ContentCache:
        return self._store

    def default_ttl(self, cache_type: CacheType) -> float | None:
        return self._settings.ttl_seconds(cache_type)

    async def get_or_set(
        self,
        key: str,
        cache_type: CacheType,
        producer: Producer,
        ttl: float | None = None,
        encode: Callable[[Any], str | bytes] = _identity,
        decode: Callable[[str | bytes], Any] = _identity,
    ) -> Any:
        """Return the cached value or produce, store and return a fresh one.

        Store failures are not fatal: a broken read is treated as a miss and a
        broken write, or a value that cannot be encoded, just skips caching.
        """
        try:
            cached = self._store.get(key, cache_type)
        except sqlite3.Error as e:
            logger.warning("Cache read failed for %s: %s", key, e)
            cached = None

        if cached is not None:
            self._hits += 1
            logger.debug("Cache hit: %s", key)
            return decode(cached)

        self._misses += 1
        value = producer()
        if inspect.isawaitable(value):
            value = await value

        try:
            self._store.set(key, encode(value), cache_type, ttl)
        except (sqlite3.Error, ValueError, TypeError) as e:
            logger.warning("Cache write failed for %s, skipping: %s", key, e)
        return value

    async def get_or_set_json(
        self,
        key: str,
        cache_type: CacheType,
        producer: Producer,
        ttl: float | None = None,
    ) -> Any:
        """``get_or_set`` for JSON-serializable values."""
        return await self.get_or_set(
            key, cache_type, producer, ttl, encode=_encode_json, decode=json.loads
        )

    async def ai_cache(
        self,
        prompt: str,
        producer: Producer,
        ttl: float | None = None,
        **params: Any,
    ) -> str:
        """Cache generated text keyed by the prompt plus any generation params."""
        key = derive_key(CacheType.AI.value, {"prompt": prompt, **params})
        return await self.get_or_set(
            key, CacheType.AI, producer, ttl if ttl is not None else self.default_ttl(CacheType.AI)
        )

    async def image_cache(
        self,
        query: str,
        producer: Producer,
        ttl: float | None = None,
        **params: Any,
    ) -> Any:
        """Cache JSON image results keyed by the query plus search params."""
        key = derive_key(CacheType.IMAGE.value, {"query": query, **params})
        return await self.get_or_set_json(
            key,
            CacheType.IMAGE,
            producer,
            ttl if ttl is not None else self.default_ttl(CacheType.IMAGE),
        )

    async def translation_cache(
        self,
        text: str,
        target_language: str,
        producer: Producer,
        ttl: float | None = None,
    ) -> str:
        key = derive_key(
            CacheType.TRANSLATION.value, {"text": text, "target_language": target_language}
        )
        return await self.get_or_set(
            key,
            CacheType.TRANSLATION,
            producer,
            ttl if ttl is not None else self.default_ttl(CacheType.TRANSLATION),
        )

    def invalidate(self, key: str, cache_type: CacheType) -> bool:
        return self._store.delete(key, cache_type)

    def clear_expired(self) -> int:
        return self._store.clear_expired()

    def clear_by_type(self, cache_type: CacheType) -> int:
        return self._store.clear_by_type(cache_type)

    def clear_all(self) -> int:
        """Clear generic entries and translations; resets statistics."""
        count = self._store.clear_all() + self._store.clear_translations()
        self._hits = 0
        self._misses = 0
        return count

    def stats(self) -> CacheStats:
        return CacheStats(
            entries=self._store.entry_count,
            translation_entries=self._store.translation_count,
            by_type=self._store.count_by_type(),
            hits=self._hits,
            misses=self._misses,
        )
