"""External backend adapters — image synthesis, text, search, scrape, translation."""

from deckassist.backends.download import ImageDownloader
from deckassist.backends.generation import GenerationBackend
from deckassist.backends.scrape import BrowserResource, ScrapeBackend
from deckassist.backends.search import SearchBackend
from deckassist.backends.text import TextBackend
from deckassist.backends.translation import TranslationBackend

__all__ = [
    "BrowserResource",
    "GenerationBackend",
    "ImageDownloader",
    "ScrapeBackend",
    "SearchBackend",
    "TextBackend",
    "TranslationBackend",
]
