"""Cache key derivation — namespaced fingerprints of normalized inputs."""

from __future__ import annotations

import hashlib
import json
from typing import Any


def derive_key(namespace: str, inputs: Any) -> str:
    """Build ``namespace:sha256(normalize(inputs))``.

    Mapping keys are sorted before hashing, so two requests that differ only
    in field insertion order produce the same key.
    """
    return f"{namespace}:{fingerprint(inputs)}"


def fingerprint(inputs: Any) -> str:
    """Deterministic SHA256 of the normalized inputs."""
    return hashlib.sha256(normalize(inputs).encode("utf-8")).hexdigest()


def normalize(inputs: Any) -> str:
    """Serialize inputs to canonical JSON (sorted keys, no whitespace)."""
    if hasattr(inputs, "model_dump"):
        inputs = inputs.model_dump(mode="json")
    return json.dumps(inputs, sort_keys=True, separators=(",", ":"), default=str)


def hash_text(text: str) -> str:
    """Hash raw text for cache key use."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()
