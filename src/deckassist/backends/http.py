"""Shared httpx helpers — client construction and error classification."""

from __future__ import annotations

import httpx

from deckassist.errors.exceptions import (
    BackendError,
    DeckAssistError,
    ServiceUnavailableError,
)

USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"


def build_client(
    base_url: str = "",
    timeout: float = 30.0,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Create an AsyncClient; tests pass an ``httpx.MockTransport``."""
    return httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)


def classify_http_error(exc: httpx.HTTPError, service: str) -> DeckAssistError:
    """Convert an httpx exception to our exception hierarchy."""
    if isinstance(exc, httpx.TimeoutException):
        return ServiceUnavailableError(
            f"{service} request timed out", service=service, original=exc
        )
    if isinstance(exc, httpx.HTTPStatusError):
        return BackendError(
            f"{service} API error: {exc.response.reason_phrase or exc.response.status_code}",
            service=service,
            status_code=exc.response.status_code,
        )
    return ServiceUnavailableError(
        f"{service} is not reachable: {exc}", service=service, original=exc
    )


def ensure_success(response: httpx.Response, service: str) -> None:
    """Raise BackendError for any non-2xx response, keeping the backend's message."""
    if response.is_success:
        return
    detail = response.reason_phrase or str(response.status_code)
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        inner = body.get("error")
        if isinstance(inner, dict):
            inner = inner.get("message")
        if inner:
            detail = str(inner)
    raise BackendError(
        f"{service} API error: {detail}",
        service=service,
        status_code=response.status_code,
    )
