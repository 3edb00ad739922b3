"""Pydantic model for resolved service settings."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field

from deckassist.config import defaults
from deckassist.types import CacheType

_DAY_SECONDS = 24 * 3600


class Settings(BaseModel):
    sd_webui_url: str = defaults.DEFAULT_SD_WEBUI_URL
    ollama_url: str = defaults.DEFAULT_OLLAMA_URL
    libretranslate_url: str = defaults.DEFAULT_LIBRETRANSLATE_URL
    text_model: str = defaults.DEFAULT_TEXT_MODEL
    google_api_key: str | None = None
    google_search_engine_id: str | None = None

    health_timeout: float = Field(default=defaults.DEFAULT_HEALTH_TIMEOUT, gt=0)
    generation_timeout: float = Field(default=defaults.DEFAULT_GENERATION_TIMEOUT, gt=0)
    request_timeout: float = Field(default=defaults.DEFAULT_REQUEST_TIMEOUT, gt=0)
    scrape_cooldown: float = Field(default=defaults.DEFAULT_SCRAPE_COOLDOWN, ge=0)

    ttl_ai_days: float = defaults.DEFAULT_TTL_AI_DAYS
    ttl_image_days: float = defaults.DEFAULT_TTL_IMAGE_DAYS
    ttl_translation_days: float = defaults.DEFAULT_TTL_TRANSLATION_DAYS
    compress_threshold_mb: float = defaults.DEFAULT_COMPRESS_THRESHOLD_MB

    cache_db_path: Path | None = None
    images_dir: Path | None = None
    log_level: str = defaults.DEFAULT_LOG_LEVEL

    def ttl_seconds(self, cache_type: CacheType) -> float | None:
        """Default TTL for a cache namespace; None means never expires."""
        days = {
            CacheType.AI: self.ttl_ai_days,
            CacheType.IMAGE: self.ttl_image_days,
            CacheType.TRANSLATION: self.ttl_translation_days,
            CacheType.LANGUAGE_DETECTION: self.ttl_translation_days,
        }.get(cache_type)
        return days * _DAY_SECONDS if days is not None else None
