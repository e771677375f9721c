"""
Article deduplication using canonical URLs, content hashes and fuzzy titles.

Two entry points share the same normalization rules:
1. dedup_articles: in-batch pass used by the aggregator when merging sources
2. Deduplicator: ingestion-time check against a bounded in-memory hash cache
   and the persistent article store
"""

from __future__ import annotations

from collections import deque
from datetime import datetime, timezone
import hashlib
import logging
import threading
import time
from typing import Iterable
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from ..logging_utils import log_event
from .errors import DedupeLookupError
from .store import ArticleStore, StoredArticle
from .text import normalize_text, set_similarity, word_set
from .types import Article, DedupStats, RemovalResult, SimilarArticle


DEFAULT_TRACKING_PARAMS: tuple[str, ...] = (
    "utm_*",
    "fbclid",
    "gclid",
    "ref",
    "source",
    "campaign",
)

logger = logging.getLogger(__name__)


def normalize_url(url: str, tracking_params: Iterable[str] = DEFAULT_TRACKING_PARAMS) -> str:
    """Return the canonical form of an article URL.

    The URL is lower-cased, tracking query parameters are removed, the
    fragment is dropped and a trailing slash on the path is stripped.
    Entries ending in ``*`` in ``tracking_params`` match by prefix.

    Examples:
        >>> normalize_url("https://Example.com/News/?utm_source=x&id=7#top")
        'https://example.com/news?id=7'
    """
    lowered = (url or "").strip().lower()
    exact = {param for param in tracking_params if not param.endswith("*")}
    prefixes = tuple(param[:-1] for param in tracking_params if param.endswith("*"))
    try:
        parts = urlsplit(lowered)
        query = [
            (key, value)
            for key, value in parse_qsl(parts.query, keep_blank_values=True)
            if key not in exact and not (prefixes and key.startswith(prefixes))
        ]
        path = parts.path.rstrip("/")
        normalized = urlunsplit((parts.scheme, parts.netloc, path, urlencode(query), ""))
    except ValueError:
        return lowered
    return normalized.rstrip("/")


def _sha256(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def url_hash(url: str, tracking_params: Iterable[str] = DEFAULT_TRACKING_PARAMS) -> str:
    return _sha256(normalize_url(url, tracking_params))


def content_hash(title: str, source: str, published_at: datetime) -> str:
    """Hash of normalized title, normalized source and publication day."""
    if published_at.tzinfo is not None:
        published_at = published_at.astimezone(timezone.utc)
    day = published_at.date().isoformat()
    return _sha256(f"{normalize_text(title)}|{normalize_text(source)}|{day}")


def dedup_articles(
    articles: list[Article],
    threshold: float = 0.8,
    tracking_params: Iterable[str] = DEFAULT_TRACKING_PARAMS,
) -> list[Article]:
    """Remove duplicate articles from a merged batch.

    Deduplication happens in two checks per article:
    1. Skip exact canonical-URL duplicates
    2. Skip articles whose normalized title has a Jaccard similarity of at
       least ``threshold`` with an already-kept title

    Args:
        articles: Articles in priority order (earlier wins)
        threshold: Jaccard similarity (0-1) at which titles are duplicates
        tracking_params: Query parameters ignored when comparing URLs

    Returns:
        Deduplicated list of articles, preserving original order
    """
    seen_urls: set[str] = set()
    kept: list[Article] = []
    titles: list[set[str]] = []

    for article in articles:
        key = normalize_url(article.url, tracking_params)
        if key in seen_urls:
            continue
        words = word_set(article.title)
        if _is_similar_title(words, titles, threshold):
            continue
        seen_urls.add(key)
        titles.append(words)
        kept.append(article)

    return kept


def _is_similar_title(words: set[str], titles: list[set[str]], threshold: float) -> bool:
    if not words:
        return False
    for existing in titles:
        if set_similarity(words, existing) >= threshold:
            return True
    return False


class FifoHashCache:
    """Bounded hash index with strict first-in-first-out eviction.

    Insertion order lives in a ring buffer (``deque``); the dict maps each
    hash to its insertion time. Lookups never change eviction order.
    """

    def __init__(self, capacity: int = 10_000):
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._order: deque[str] = deque()
        self._index: dict[str, float] = {}
        self._lock = threading.Lock()

    def __contains__(self, key: object) -> bool:
        return key in self._index

    def __len__(self) -> int:
        return len(self._index)

    def add(self, key: str) -> str | None:
        """Insert ``key`` and return the evicted hash, if any."""
        with self._lock:
            if key in self._index:
                return None
            evicted = None
            if len(self._order) >= self.capacity:
                evicted = self._order.popleft()
                del self._index[evicted]
            self._order.append(key)
            self._index[key] = time.time()
            return evicted

    def discard(self, key: str) -> None:
        with self._lock:
            if self._index.pop(key, None) is not None:
                self._order.remove(key)

    def oldest(self) -> str | None:
        with self._lock:
            return self._order[0] if self._order else None

    def inserted_at(self, key: str) -> float | None:
        return self._index.get(key)

    def clear(self) -> None:
        with self._lock:
            self._order.clear()
            self._index.clear()


class Deduplicator:
    """Ingestion-time duplicate detection backed by an ArticleStore.

    Store failures fail open: the article is treated as new so that an
    infrastructure hiccup never blocks ingestion.
    """

    def __init__(
        self,
        store: ArticleStore,
        capacity: int = 10_000,
        similarity_threshold: float = 0.8,
        tracking_params: Iterable[str] = DEFAULT_TRACKING_PARAMS,
        seed_limit: int = 1000,
    ):
        self._store = store
        self._capacity = capacity
        self._cache: FifoHashCache | None = None
        self._cache_guard = threading.Lock()
        self.similarity_threshold = similarity_threshold
        self.tracking_params = tuple(tracking_params)
        self.seed_limit = seed_limit

    @property
    def cache(self) -> FifoHashCache:
        if self._cache is None:
            with self._cache_guard:
                if self._cache is None:
                    self._cache = FifoHashCache(self._capacity)
        return self._cache

    async def is_duplicate(
        self,
        url: str,
        title: str | None = None,
        source: str | None = None,
        published_at: datetime | None = None,
    ) -> bool:
        """Check whether an article was already seen or stored.

        The URL hash is checked against the in-memory cache, then the store.
        When title, source and published_at are all given, the content hash
        is checked the same way. A miss records the URL hash as seen.
        """
        try:
            primary = url_hash(url, self.tracking_params)
            if primary in self.cache:
                return True

            existing = await self._lookup(self._store.find_by_url, url)
            if existing is not None:
                self.cache.add(primary)
                return True

            if title and source and published_at:
                secondary = content_hash(title, source, published_at)
                if secondary in self.cache:
                    return True
                existing = await self._lookup(self._store.find_by_content_hash, secondary)
                if existing is not None:
                    self.cache.add(secondary)
                    return True

            self.cache.add(primary)
            return False
        except DedupeLookupError as exc:
            log_event(
                logger,
                "Duplicate lookup failed, treating as new",
                event="dedupe_lookup_failed",
                url=url,
                error=str(exc),
            )
            return False

    async def _lookup(self, method, value):
        try:
            return await method(value)
        except Exception as exc:  # noqa: BLE001
            raise DedupeLookupError(f"{type(exc).__name__}: {exc}") from exc

    async def find_similar_articles(
        self,
        title: str,
        description: str | None = None,
        threshold: float | None = None,
    ) -> list[SimilarArticle]:
        """Find stored articles whose titles resemble ``title``.

        Candidates come from a text search on the title, widened with the
        description when one is given. Similarity is always title-to-title.

        Returns:
            Matches with similarity >= threshold, most similar first
        """
        threshold = self.similarity_threshold if threshold is None else threshold
        try:
            candidates = await self._store.find_by_text_search(title, limit=100)
            if description:
                extra = await self._store.find_by_text_search(description, limit=100)
                known = {id(article) for article in candidates}
                candidates.extend(article for article in extra if id(article) not in known)
        except Exception as exc:  # noqa: BLE001
            logger.error("Similar article search failed: %s", exc)
            return []

        query_words = word_set(title)
        similar: list[SimilarArticle] = []
        for article in candidates:
            similarity = set_similarity(query_words, word_set(article.title))
            if similarity >= threshold:
                similar.append(SimilarArticle(article=article, similarity=similarity))
        similar.sort(key=lambda item: item.similarity, reverse=True)
        return similar

    async def remove_duplicates(self) -> RemovalResult:
        """Delete stored articles sharing a canonical URL, keeping the first of each group.

        Near-duplicates with different URLs are not touched here.
        """
        logger.info("Starting duplicate removal")
        groups = await self._find_duplicate_groups()
        to_remove = [record.key for group in groups for record in group[1:]]
        removed = await self._store.bulk_delete(to_remove) if to_remove else 0
        for group in groups:
            logger.debug("Removed %d duplicates of %s", len(group) - 1, group[0].article.title)
        log_event(
            logger,
            "Duplicate removal complete",
            event="dedupe_removed",
            removed=removed,
            groups=len(groups),
        )
        return RemovalResult(removed_count=removed, duplicate_groups=len(groups))

    async def _find_duplicate_groups(self) -> list[list[StoredArticle]]:
        groups = await self._store.group_active_by_url(self._canonical_url)
        return [group for group in groups if len(group) > 1]

    async def get_stats(self) -> DedupStats | None:
        try:
            total = await self._store.count_active()
            groups = await self._find_duplicate_groups()
        except Exception as exc:  # noqa: BLE001
            logger.error("Failed to collect deduplication stats: %s", exc)
            return None
        duplicate_count = sum(len(group) - 1 for group in groups)
        return DedupStats(
            total_articles=total,
            duplicate_groups=len(groups),
            duplicate_count=duplicate_count,
            unique_articles=total - duplicate_count,
            cache_size=len(self._cache) if self._cache is not None else 0,
            cache_max_size=self._capacity,
        )

    async def initialize(self) -> int:
        """Pre-populate the hash cache from recently stored articles."""
        try:
            recent = await self._store.load_recent(self.seed_limit)
        except Exception as exc:  # noqa: BLE001
            logger.error("Failed to initialize deduplication cache: %s", exc)
            return 0
        for article in recent:
            self.cache.add(url_hash(article.url, self.tracking_params))
        logger.info("Deduplication cache initialized with %d URLs", len(self.cache))
        return len(self.cache)

    def clear_cache(self) -> None:
        if self._cache is not None:
            self._cache.clear()
        logger.info("Deduplication cache cleared")

    def forget(self, url: str) -> None:
        """Drop the URL hash recorded for ``url`` so it is checked afresh."""
        if self._cache is not None:
            self._cache.discard(url_hash(url, self.tracking_params))

    def _canonical_url(self, url: str) -> str:
        return normalize_url(url, self.tracking_params)
