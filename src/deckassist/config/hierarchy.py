"""Configuration hierarchy — merges sources in priority order.

Precedence (later overrides earlier):
  1. Package defaults
  2. Global config   (~/.deckassist/config.yaml)
  3. Project config   (./deckassist.yaml)
  4. Environment variables (SD_WEBUI_URL, GOOGLE_API_KEY, DECKASSIST_*)
  5. Runtime arguments
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml

from deckassist.config.defaults import get_defaults
from deckassist.config.settings import Settings

logger = logging.getLogger(__name__)

_GLOBAL_CONFIG_PATH = Path.home() / ".deckassist" / "config.yaml"
_PROJECT_CONFIG_NAME = "deckassist.yaml"

# Map of environment variables to config keys
_ENV_MAP: dict[str, str] = {
    "SD_WEBUI_URL": "sd_webui_url",
    "OLLAMA_URL": "ollama_url",
    "LIBRETRANSLATE_URL": "libretranslate_url",
    "GOOGLE_API_KEY": "google_api_key",
    "GOOGLE_SEARCH_ENGINE_ID": "google_search_engine_id",
    "DECKASSIST_TEXT_MODEL": "text_model",
    "DECKASSIST_SCRAPE_COOLDOWN": "scrape_cooldown",
    "DECKASSIST_CACHE_DB_PATH": "cache_db_path",
    "DECKASSIST_IMAGES_DIR": "images_dir",
    "DECKASSIST_TTL_AI_DAYS": "ttl_ai_days",
    "DECKASSIST_TTL_IMAGE_DAYS": "ttl_image_days",
    "DECKASSIST_TTL_TRANSLATION_DAYS": "ttl_translation_days",
    "DECKASSIST_LOG_LEVEL": "log_level",
}

# Keys that should be parsed as specific types
_TYPE_MAP: dict[str, type] = {
    "scrape_cooldown": float,
    "ttl_ai_days": float,
    "ttl_image_days": float,
    "ttl_translation_days": float,
    "health_timeout": float,
    "generation_timeout": float,
    "request_timeout": float,
    "compress_threshold_mb": float,
}


def load_config_hierarchy(**runtime_overrides: Any) -> dict[str, Any]:
    """Load and merge configuration from all sources.

    Returns a merged dict with the final resolved values.
    """
    config = get_defaults()

    # Layer 2: Global config
    global_cfg = _load_yaml_config(_GLOBAL_CONFIG_PATH)
    if global_cfg:
        config.update(global_cfg)

    # Layer 3: Project config (search from cwd upward)
    project_path = _find_project_config()
    if project_path:
        project_cfg = _load_yaml_config(project_path)
        if project_cfg:
            config.update(project_cfg)

    # Layer 4: Environment variables
    config.update(_load_env_vars())

    # Layer 5: Runtime arguments, only when explicitly set
    for key, value in runtime_overrides.items():
        if value is not None:
            config[key] = value

    return config


def load_settings(**runtime_overrides: Any) -> Settings:
    """Resolve the hierarchy and validate it into a Settings model."""
    return Settings(**load_config_hierarchy(**runtime_overrides))


def _load_yaml_config(path: Path) -> dict[str, Any] | None:
    """Load a YAML config file if it exists."""
    if not path.exists() or not path.is_file():
        return None
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
        if isinstance(data, dict):
            return data
        logger.warning("Config file %s is not a mapping, ignoring", path)
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Failed to load config %s: %s", path, e)
    return None


def _find_project_config() -> Path | None:
    """Search for deckassist.yaml from cwd upward."""
    cwd = Path.cwd()
    for parent in [cwd, *cwd.parents]:
        candidate = parent / _PROJECT_CONFIG_NAME
        if candidate.exists():
            return candidate
    return None


def _load_env_vars() -> dict[str, Any]:
    """Read backend URLs, credentials and DECKASSIST_* variables."""
    result: dict[str, Any] = {}
    for env_key, config_key in _ENV_MAP.items():
        value = os.environ.get(env_key)
        if value is None:
            continue
        coerced = _coerce_env_value(config_key, value)
        if coerced is not None:
            result[config_key] = coerced
    return result


def _coerce_env_value(key: str, value: str) -> Any:
    """Coerce an environment variable string to the appropriate type."""
    target_type = _TYPE_MAP.get(key)
    if target_type:
        try:
            return target_type(value)
        except (ValueError, TypeError):
            logger.warning(
                "Cannot convert env var for '%s' to %s: %s", key, target_type.__name__, value
            )
            return None
    # Empty credentials count as unset
    return value or None
