"""Exception taxonomy for the feed aggregator.

Only AdapterFetchError crosses a component boundary, and even then the
Aggregator catches it per source. The other errors are raised and handled
inside the component that owns the failing dependency.
"""

from __future__ import annotations


class FeedAggregatorError(Exception):
    """Base class for all package errors."""


class AdapterFetchError(FeedAggregatorError):
    """A source adapter could not produce articles (network, timeout, payload)."""

    def __init__(self, source: str, message: str, status_code: int | None = None):
        super().__init__(f"{source}: {message}")
        self.source = source
        self.message = message
        self.status_code = status_code


class CacheError(FeedAggregatorError):
    """The cache backend failed; callers treat it as a miss or a no-op."""


class DedupeLookupError(FeedAggregatorError):
    """The persistent store lookup failed; deduplication fails open."""


class TaggingError(FeedAggregatorError):
    """Primary keyword extraction failed; the fallback tagger is used."""


class ConfigurationError(FeedAggregatorError):
    """Required credentials or settings are missing for an adapter."""
