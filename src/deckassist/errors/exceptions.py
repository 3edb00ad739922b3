"""Custom exception hierarchy for deckassist."""

from __future__ import annotations

from typing import Any


class DeckAssistError(Exception):
    """Base exception for all deckassist errors."""

    def __init__(self, message: str = "", **kwargs: Any) -> None:
        super().__init__(message)
        self.message = message


class ConfigurationError(DeckAssistError):
    """Required configuration is missing; raised before any network call.

    Examples: search API key or engine id not set.
    """

    def __init__(self, message: str = "", setting: str | None = None) -> None:
        super().__init__(message)
        self.setting = setting


class ServiceUnavailableError(DeckAssistError):
    """Backend health check failed, connection refused or request timed out."""

    def __init__(
        self,
        message: str = "",
        service: str = "",
        original: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.service = service
        self.original = original


class BackendError(DeckAssistError):
    """Backend reachable but answered with a non-success response."""

    def __init__(
        self,
        message: str = "",
        service: str = "",
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.service = service
        self.status_code = status_code


class RateLimitError(DeckAssistError):
    """Call issued inside a cooldown window. Carries the remaining wait."""

    def __init__(self, message: str = "", retry_after: float = 0.0) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class ProcessingError(DeckAssistError):
    """An image pipeline step failed (missing, unreadable or undecodable file)."""

    def __init__(self, message: str = "", path: str | None = None) -> None:
        super().__init__(message)
        self.path = path
