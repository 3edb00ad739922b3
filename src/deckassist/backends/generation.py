"""Image synthesis client for a Stable Diffusion WebUI server."""

from __future__ import annotations

import base64
import binascii
import logging
from typing import Any

import httpx

from deckassist.backends.http import build_client, classify_http_error, ensure_success
from deckassist.errors.exceptions import BackendError
from deckassist.types import GenerationRequest

logger = logging.getLogger(__name__)

_SERVICE = "Stable Diffusion"

_DEFAULT_NEGATIVE_PROMPT = "low quality, blurry, distorted"
_DEFAULT_SIZE = 512
_DEFAULT_STEPS = 20
_DEFAULT_CFG_SCALE = 7.0
_DEFAULT_SAMPLER = "Euler a"
_DEFAULT_SEED = -1


class GenerationBackend:
    """Calls ``/sdapi/v1/txt2img`` and returns decoded PNG bytes."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 120.0,
        health_timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._health_timeout = health_timeout
        self._client = build_client(base_url, timeout=timeout, transport=transport)

    async def check_availability(self) -> bool:
        """True if the models endpoint answers 200 within the health timeout."""
        try:
            response = await self._client.get(
                "/sdapi/v1/sd-models", timeout=self._health_timeout
            )
        except Exception as e:
            logger.debug("%s availability check failed: %s", _SERVICE, e)
            return False
        return response.status_code == 200

    async def generate(self, request: GenerationRequest) -> bytes:
        """Run one txt2img call. Raises ServiceUnavailableError or BackendError."""
        payload = self.build_payload(request)
        try:
            response = await self._client.post("/sdapi/v1/txt2img", json=payload)
        except httpx.HTTPError as e:
            raise classify_http_error(e, _SERVICE) from e
        ensure_success(response, _SERVICE)

        images = response.json().get("images") or []
        if not images:
            raise BackendError("No images generated", service=_SERVICE)
        try:
            return base64.b64decode(images[0])
        except (binascii.Error, ValueError) as e:
            raise BackendError(f"Invalid image payload: {e}", service=_SERVICE) from e

    @staticmethod
    def build_payload(request: GenerationRequest) -> dict[str, Any]:
        """Fill in default generation parameters for anything not supplied."""
        return {
            "prompt": request.prompt,
            "negative_prompt": request.negative_prompt or _DEFAULT_NEGATIVE_PROMPT,
            "width": request.width or _DEFAULT_SIZE,
            "height": request.height or _DEFAULT_SIZE,
            "steps": request.steps or _DEFAULT_STEPS,
            "cfg_scale": request.cfg_scale or _DEFAULT_CFG_SCALE,
            "sampler_name": request.sampler_name or _DEFAULT_SAMPLER,
            "seed": request.seed if request.seed is not None else _DEFAULT_SEED,
        }

    async def close(self) -> None:
        await self._client.aclose()
