"""Package-level default configuration values."""

from __future__ import annotations

from typing import Any

# Backend endpoints
DEFAULT_SD_WEBUI_URL = "http://127.0.0.1:7860"
DEFAULT_OLLAMA_URL = "http://localhost:11434"
DEFAULT_LIBRETRANSLATE_URL = "http://localhost:5000"
DEFAULT_TEXT_MODEL = "llama3"

# Timeouts (seconds)
DEFAULT_HEALTH_TIMEOUT = 5.0
DEFAULT_GENERATION_TIMEOUT = 120.0
DEFAULT_REQUEST_TIMEOUT = 30.0

# Scrape rate limiting
DEFAULT_SCRAPE_COOLDOWN = 2.0

# Cache TTLs per namespace, in days
DEFAULT_TTL_AI_DAYS = 7.0
DEFAULT_TTL_IMAGE_DAYS = 30.0
DEFAULT_TTL_TRANSLATION_DAYS = 90.0

# Image pipeline
DEFAULT_COMPRESS_THRESHOLD_MB = 10.0

# Log level
DEFAULT_LOG_LEVEL = "WARNING"


def get_defaults() -> dict[str, Any]:
    """Return all defaults as a flat dictionary for merging."""
    return {
        "sd_webui_url": DEFAULT_SD_WEBUI_URL,
        "ollama_url": DEFAULT_OLLAMA_URL,
        "libretranslate_url": DEFAULT_LIBRETRANSLATE_URL,
        "text_model": DEFAULT_TEXT_MODEL,
        "google_api_key": None,
        "google_search_engine_id": None,
        "health_timeout": DEFAULT_HEALTH_TIMEOUT,
        "generation_timeout": DEFAULT_GENERATION_TIMEOUT,
        "request_timeout": DEFAULT_REQUEST_TIMEOUT,
        "scrape_cooldown": DEFAULT_SCRAPE_COOLDOWN,
        "ttl_ai_days": DEFAULT_TTL_AI_DAYS,
        "ttl_image_days": DEFAULT_TTL_IMAGE_DAYS,
        "ttl_translation_days": DEFAULT_TTL_TRANSLATION_DAYS,
        "compress_threshold_mb": DEFAULT_COMPRESS_THRESHOLD_MB,
        "cache_db_path": None,
        "images_dir": None,
        "log_level": DEFAULT_LOG_LEVEL,
    }
