"""Cache entry and statistics models."""

from __future__ import annotations

import time
import uuid

from pydantic import BaseModel, Field

from deckassist.types import CacheType


def _new_id() -> str:
    return uuid.uuid4().hex


class CacheEntry(BaseModel):
    """A single (key, type) row of the content cache."""

    id: str = Field(default_factory=_new_id)
    key: str
    type: CacheType = CacheType.OTHER
    value: str | bytes
    created_at: float = Field(default_factory=time.time)
    expires_at: float | None = None  # None = never expires

    def is_expired(self, now: float | None = None) -> bool:
        if self.expires_at is None:
            return False
        return self.expires_at < (time.time() if now is None else now)


class TranslationCacheEntry(BaseModel):
    """A translation row addressed by (text, source_language, target_language)."""

    id: str = Field(default_factory=_new_id)
    text: str
    source_language: str
    target_language: str
    translated_text: str
    created_at: float = Field(default_factory=time.time)
    expires_at: float | None = None

    def is_expired(self, now: float | None = None) -> bool:
        if self.expires_at is None:
            return False
        return self.expires_at < (time.time() if now is None else now)


class CacheStats(BaseModel):
    """Aggregate cache statistics."""

    entries: int = 0
    translation_entries: int = 0
    by_type: dict[str, int] = Field(default_factory=dict)
    hits: int = 0
    misses: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0
