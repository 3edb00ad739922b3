"""Concurrency — single-worker job queue and scrape cooldown limiter."""

from deckassist.concurrency.job_queue import JobQueue
from deckassist.concurrency.rate_limiter import CooldownLimiter

__all__ = ["JobQueue", "CooldownLimiter"]
