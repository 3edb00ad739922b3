"""Error handling — exception taxonomy shared by adapters, cache and queue."""

from deckassist.errors.exceptions import (
    BackendError,
    ConfigurationError,
    DeckAssistError,
    ProcessingError,
    RateLimitError,
    ServiceUnavailableError,
)

__all__ = [
    "DeckAssistError",
    "ConfigurationError",
    "ServiceUnavailableError",
    "BackendError",
    "RateLimitError",
    "ProcessingError",
]
