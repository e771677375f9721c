"""
Abstract base class for news source adapters.

New adapters should inherit from SourceAdapter, set ``name`` and
``display_name``, and implement fetch_headlines and search_news. The base
class owns credentials, the HTTP settings and the normalization helpers
every adapter shares (ids, title tags).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
import hashlib
import logging
from typing import Any, Mapping

import httpx

from ..config import SourceConfig, get_api_key
from ..constants import DOMAIN_TAGS
from ..core.dedup import normalize_url
from ..core.errors import AdapterFetchError
from ..core.text import tokenize
from ..core.types import Article, Category, FetchOptions
from ..fetch.fetcher import get_json, get_text


logger = logging.getLogger(__name__)


class SourceAdapter(ABC):
    """Abstract base class for news providers.

    Concrete implementations translate one provider's API into canonical
    Articles. Both fetch methods raise AdapterFetchError on any failure.

    Args:
        cfg: Provider settings (credentials, base URL, weight, timeout)
        user_agent: HTTP User-Agent header string
        client: Shared httpx client; a short-lived one is used per call if None
    """

    name: str = ""
    display_name: str = ""
    requires_key: bool = True

    def __init__(
        self,
        cfg: SourceConfig,
        user_agent: str = "FeedAggregator/1.0",
        client: httpx.AsyncClient | None = None,
    ):
        self.cfg = cfg
        self.weight = cfg.weight
        self.base_url = cfg.base_url.rstrip("/")
        self.timeout = cfg.timeout_seconds
        self.user_agent = user_agent
        self._client = client
        self.api_key = get_api_key(cfg) if self.requires_key else None
        if self.requires_key and not self.api_key and cfg.enabled:
            logger.warning("%s API key not configured; %s adapter disabled", self.name, self.display_name)

    def is_available(self) -> bool:
        return self.cfg.enabled and (not self.requires_key or bool(self.api_key))

    @abstractmethod
    async def fetch_headlines(self, options: FetchOptions) -> list[Article]:
        """Fetch the provider's current headlines for a category.

        Args:
            options: Category, page size and provider-specific hints

        Returns:
            Canonical articles, at most ``options.page_size`` of them
        """
        raise NotImplementedError

    @abstractmethod
    async def search_news(self, options: FetchOptions) -> list[Article]:
        """Search the provider for ``options.query``.

        Adapters fall back to headlines when the query is blank.
        """
        raise NotImplementedError

    def _require_key(self) -> str:
        if not self.api_key:
            raise AdapterFetchError(self.name, f"{self.display_name} API key not configured")
        return self.api_key

    async def _get_json(self, path: str, params: Mapping[str, Any] | None = None) -> Any:
        return await get_json(
            self.name,
            f"{self.base_url}{path}",
            params=params,
            timeout=self.timeout,
            user_agent=self.user_agent,
            client=self._client,
        )

    async def _get_text(self, path: str, params: Mapping[str, Any] | None = None) -> str:
        return await get_text(
            self.name,
            f"{self.base_url}{path}",
            params=params,
            timeout=self.timeout,
            user_agent=self.user_agent,
            client=self._client,
        )

    def _malformed(self, detail: str) -> AdapterFetchError:
        return AdapterFetchError(self.name, f"malformed payload: {detail}")

    def make_id(self, url: str) -> str:
        digest = hashlib.sha256(normalize_url(url).encode("utf-8")).hexdigest()
        return f"{self.name}_{digest[:16]}"

    def __repr__(self) -> str:
        return f"{type(self).__name__}(available={self.is_available()}, weight={self.weight})"


def title_tags(title: str | None) -> list[str]:
    """Domain keywords found at the start of any title word."""
    words = [word.lower() for word in tokenize(title or "")]
    return [tag for tag in DOMAIN_TAGS if any(word.startswith(tag) for word in words)]


def map_category(value: str | None, table: Mapping[str, str]) -> Category:
    """Map a provider section or category onto the canonical enum."""
    mapped = table.get(value or "", "general")
    return Category.coerce(mapped) or Category.GENERAL
