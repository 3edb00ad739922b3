"""Cache subsystem — SQLite TTL store with namespaced, order-insensitive keys."""

from deckassist.cache.keys import derive_key, fingerprint, hash_text
from deckassist.cache.service import CacheService
from deckassist.cache.stats import CacheEntry, CacheStats, TranslationCacheEntry
from deckassist.cache.store import ContentCache

__all__ = [
    "CacheService",
    "ContentCache",
    "CacheEntry",
    "CacheStats",
    "TranslationCacheEntry",
    "derive_key",
    "fingerprint",
    "hash_text",
]
