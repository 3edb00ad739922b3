"""Async text generation client for Ollama's OpenAI-compatible API."""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator
from typing import TYPE_CHECKING

import httpx
import openai
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from deckassist.errors.exceptions import (
    BackendError,
    DeckAssistError,
    ServiceUnavailableError,
)
from deckassist.types import (
    PresentationOutline,
    PresentationRequest,
    PresentationResult,
    SlideOutline,
)

if TYPE_CHECKING:
    from deckassist.cache.service import CacheService

logger = logging.getLogger(__name__)

_SERVICE = "Ollama"

# Server-side hiccups worth retrying; timeouts and refused connections are not
_TRANSIENT_EXCEPTIONS = (
    openai.RateLimitError,
    openai.InternalServerError,
)

_OUTLINE_PROMPT = """Create a slide presentation about: {prompt}

Write exactly {slide_count} slides{language_clause}. Each slide has a short title,
3 to 5 bullet points and optional speaker notes.

Respond with a JSON object only (no markdown fences):
{{
  "title": "<presentation title>",
  "slides": [
    {{"title": "<slide title>", "content": ["<bullet>", "<bullet>"], "notes": "<notes>"}}
  ]
}}"""


class _MalformedOutlineError(Exception):
    """The model replied with something that is not a usable outline."""


def classify_openai_error(exc: openai.OpenAIError) -> DeckAssistError:
    """Convert an openai exception to our exception hierarchy."""
    if isinstance(exc, openai.APITimeoutError):
        return ServiceUnavailableError("AI request timed out", service=_SERVICE, original=exc)
    if isinstance(exc, openai.APIConnectionError):
        return ServiceUnavailableError(
            f"{_SERVICE} is not reachable: {exc}", service=_SERVICE, original=exc
        )
    if isinstance(exc, openai.APIStatusError):
        return BackendError(
            f"{_SERVICE} API error: {exc.message}",
            service=_SERVICE,
            status_code=exc.status_code,
        )
    return BackendError(f"{_SERVICE} API error: {exc}", service=_SERVICE)


def build_outline_prompt(request: PresentationRequest) -> str:
    language_clause = f", written in {request.language}" if request.language else ""
    return _OUTLINE_PROMPT.format(
        prompt=request.prompt,
        slide_count=request.slide_count,
        language_clause=language_clause,
    )


def parse_outline(raw_text: str) -> PresentationOutline | None:
    """Parse the model's JSON outline, or None when it is unusable."""
    text = raw_text.strip()
    # Strip markdown fences if present
    if text.startswith("```"):
        text = text.split("\n", 1)[-1]
    if text.endswith("```"):
        text = text.rsplit("```", 1)[0]
    text = text.strip()

    try:
        return PresentationOutline.model_validate(json.loads(text))
    except ValueError:
        logger.warning("Could not parse presentation outline: %s", text[:200])
        return None


class TextBackend:
    """Generates slide text through an Ollama server's ``/v1`` endpoint."""

    def __init__(
        self,
        base_url: str,
        model: str = "llama3",
        timeout: float = 120.0,
        health_timeout: float = 5.0,
        cache: CacheService | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._model = model
        self._health_timeout = health_timeout
        self._cache = cache
        self._client = openai.AsyncOpenAI(
            api_key="ollama",  # ignored by Ollama, required by the SDK
            base_url=f"{base_url.rstrip('/')}/v1",
            timeout=timeout,
            max_retries=0,
            http_client=http_client,
        )

    @property
    def model(self) -> str:
        return self._model

    async def check_health(self) -> bool:
        try:
            await self._client.with_options(timeout=self._health_timeout).models.list()
        except Exception as e:
            logger.debug("%s health check failed: %s", _SERVICE, e)
            return False
        return True

    async def list_models(self) -> list[str]:
        """Installed model names; empty when the server cannot be reached."""
        try:
            page = await self._client.with_options(timeout=self._health_timeout).models.list()
        except openai.OpenAIError as e:
            logger.warning("Failed to list %s models: %s", _SERVICE, e)
            return []
        return [m.id for m in page.data]

    async def generate(
        self,
        prompt: str,
        model: str | None = None,
        temperature: float | None = None,
    ) -> str:
        try:
            return await self._complete(prompt, model or self._model, temperature)
        except openai.OpenAIError as e:
            raise classify_openai_error(e) from e

    async def generate_cached(
        self,
        prompt: str,
        model: str | None = None,
        temperature: float | None = None,
    ) -> str:
        """``generate`` through the ai cache namespace when a cache is attached."""
        if self._cache is None:
            return await self.generate(prompt, model, temperature)
        return await self._cache.ai_cache(
            prompt,
            lambda: self.generate(prompt, model, temperature),
            model=model or self._model,
            temperature=temperature,
        )

    async def generate_stream(
        self,
        prompt: str,
        model: str | None = None,
        temperature: float | None = None,
    ) -> AsyncIterator[str]:
        """Yield text chunks as the server produces them."""
        try:
            stream = await self._client.chat.completions.create(
                **self._request_kwargs(prompt, model or self._model, temperature),
                stream=True,
            )
            async for chunk in stream:
                if not chunk.choices:
                    continue
                content = chunk.choices[0].delta.content
                if content:
                    yield content
        except openai.OpenAIError as e:
            raise classify_openai_error(e) from e

    async def generate_presentation(self, request: PresentationRequest) -> PresentationResult:
        """Draft a slide outline for ``request.prompt``.

        Backend failures come back as a ``failed`` result with no slides. An
        unparseable reply is a ``success`` holding a single "Error" slide, and
        is not cached. Outlines longer than ``slide_count`` are truncated.
        """
        prompt = build_outline_prompt(request)
        try:
            if self._cache is None:
                data = await self._draft_outline(prompt, request)
            else:
                data = await self._cache.ai_cache(
                    prompt,
                    lambda: self._draft_outline(prompt, request),
                    model=request.model or self._model,
                    temperature=request.temperature,
                    kind="outline",
                )
        except _MalformedOutlineError:
            return PresentationResult(
                title="Error",
                slides=[
                    SlideOutline(
                        title="Error",
                        content=["Error: the generated outline could not be parsed"],
                    )
                ],
            )
        except DeckAssistError as e:
            logger.error("Presentation generation failed: %s", e.message)
            return PresentationResult(status="failed", error=e.message)

        outline = PresentationOutline.model_validate_json(data)
        logger.info("Generated outline %r with %d slides", outline.title, len(outline.slides))
        return PresentationResult(
            title=outline.title,
            slides=outline.slides[: request.slide_count],
        )

    async def close(self) -> None:
        await self._client.close()

    @retry(
        retry=retry_if_exception_type(_TRANSIENT_EXCEPTIONS),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        stop=stop_after_attempt(3),
        reraise=True,
    )
    async def _complete(self, prompt: str, model: str, temperature: float | None) -> str:
        response = await self._client.chat.completions.create(
            **self._request_kwargs(prompt, model, temperature)
        )
        if not response.choices:
            raise BackendError(f"{_SERVICE} returned no choices", service=_SERVICE)
        return response.choices[0].message.content or ""

    async def _draft_outline(self, prompt: str, request: PresentationRequest) -> str:
        raw = await self.generate(prompt, request.model, request.temperature)
        outline = parse_outline(raw)
        if outline is None:
            raise _MalformedOutlineError(raw[:200])
        return outline.model_dump_json()

    @staticmethod
    def _request_kwargs(prompt: str, model: str, temperature: float | None) -> dict:
        kwargs: dict = {
            "model": model,
            "messages": [{"role": "user", "content": prompt}],
        }
        if temperature is not None:
            kwargs["temperature"] = temperature
        return kwargs
