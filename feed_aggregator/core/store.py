"""
Persistent article store interface.

The store is the single source of truth for "does this article already
exist". The deduplicator and tagger only depend on the abstract
ArticleStore; MemoryArticleStore is the in-process implementation used by
the CLI and the test suite.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
import itertools
from typing import Callable, Iterable

from .text import normalize_text
from .types import Article


@dataclass
class StoredArticle:
    """A persisted article together with its store-assigned record key.

    Article ids derive from the canonical URL, so two stored copies of one
    story can share an id. The key identifies exactly one record.
    """

    key: str
    article: Article


class ArticleStore(ABC):
    """Async collaborator interface for persisted articles."""

    @abstractmethod
    async def find_by_url(self, url: str) -> Article | None:
        """Return the active article stored under exactly this URL."""
        raise NotImplementedError

    @abstractmethod
    async def find_by_content_hash(self, content_hash: str) -> Article | None:
        """Return the active article saved with this title/source/date hash."""
        raise NotImplementedError

    @abstractmethod
    async def find_by_text_search(self, query: str, limit: int = 100) -> list[Article]:
        """Return active articles matching a free-text query."""
        raise NotImplementedError

    @abstractmethod
    async def group_active_by_url(
        self, canonicalize: Callable[[str], str] | None = None
    ) -> list[list[StoredArticle]]:
        """Group all active records by URL, each group in insertion order.

        ``canonicalize`` maps a stored URL to its grouping key. Without it
        records are grouped by their raw URL.
        """
        raise NotImplementedError

    @abstractmethod
    async def load_recent(self, n: int) -> list[Article]:
        """Return up to ``n`` active articles, newest first."""
        raise NotImplementedError

    @abstractmethod
    async def bulk_delete(self, keys: Iterable[str]) -> int:
        """Delete records by store key and return how many were removed.

        Each key names one record. Unknown keys are ignored.
        """
        raise NotImplementedError

    @abstractmethod
    async def save(self, article: Article, content_hash: str | None = None) -> str:
        """Persist ``article`` and return its record key."""
        raise NotImplementedError

    @abstractmethod
    async def count_active(self) -> int:
        raise NotImplementedError


class MemoryArticleStore(ArticleStore):
    """List-backed store. Records keep insertion order so grouping is stable."""

    def __init__(self, articles: Iterable[Article] | None = None):
        self._records: list[tuple[str, Article, str | None]] = []
        self._keys = itertools.count(1)
        self._lock = asyncio.Lock()
        for article in articles or []:
            self._records.append((self._next_key(), article, None))

    def _next_key(self) -> str:
        return f"rec_{next(self._keys)}"

    async def find_by_url(self, url: str) -> Article | None:
        for _, article, _ in self._records:
            if article.url == url:
                return article
        return None

    async def find_by_content_hash(self, content_hash: str) -> Article | None:
        for _, article, stored_hash in self._records:
            if stored_hash and stored_hash == content_hash:
                return article
        return None

    async def find_by_text_search(self, query: str, limit: int = 100) -> list[Article]:
        terms = {term for term in normalize_text(query).split() if len(term) >= 3}
        if not terms:
            return []
        matches: list[Article] = []
        for _, article, _ in self._records:
            haystack = set(normalize_text(f"{article.title} {article.description}").split())
            if terms & haystack:
                matches.append(article)
                if len(matches) >= limit:
                    break
        return matches

    async def group_active_by_url(
        self, canonicalize: Callable[[str], str] | None = None
    ) -> list[list[StoredArticle]]:
        groups: dict[str, list[StoredArticle]] = {}
        for key, article, _ in self._records:
            group_key = canonicalize(article.url) if canonicalize else article.url
            groups.setdefault(group_key, []).append(StoredArticle(key=key, article=article))
        return list(groups.values())

    async def load_recent(self, n: int) -> list[Article]:
        oldest = datetime.min.replace(tzinfo=timezone.utc)
        ordered = sorted(
            (article for _, article, _ in self._records),
            key=lambda article: article.published_at or oldest,
            reverse=True,
        )
        return ordered[: max(n, 0)]

    async def bulk_delete(self, keys: Iterable[str]) -> int:
        doomed = set(keys)
        async with self._lock:
            before = len(self._records)
            self._records = [record for record in self._records if record[0] not in doomed]
            return before - len(self._records)

    async def save(self, article: Article, content_hash: str | None = None) -> str:
        async with self._lock:
            key = self._next_key()
            self._records.append((key, article, content_hash))
            return key

    async def count_active(self) -> int:
        return len(self._records)
