"""
Batch ingestion: fetch live feeds, drop duplicates, tag and store.

Pipeline stages per article:
1. Dedup: URL hash, then content hash, against cache and store
2. Tag: keyword and category tags merged into the adapter's tags
3. Store: saved with its content hash for later duplicate lookups

After the batch the tagger corpus absorbs the saved articles and every
cached listing derived from stored articles is invalidated.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
import time
from typing import Iterable

from .aggregator import Aggregator, Components
from .cache import Cache
from .core.dedup import Deduplicator, content_hash
from .core.store import ArticleStore
from .core.tagger import Tagger
from .core.types import Article, Category
from .logging_utils import log_event


logger = logging.getLogger(__name__)

INVALIDATED_PATTERNS = ("articles:*", "trending:*", "live_news:*")


@dataclass
class IngestStats:
    """Statistics collected during one ingestion run.

    Attributes:
        total: Articles returned by the aggregator across categories
        saved: New articles written to the store
        skipped: Articles recognized as duplicates
        failed: Articles whose processing raised
        duration_ms: Wall time of the run
        categories: Categories fetched in this run
    """

    total: int = 0
    saved: int = 0
    skipped: int = 0
    failed: int = 0
    duration_ms: int = 0
    categories: list[str] = field(default_factory=list)


class Ingestor:
    def __init__(
        self,
        aggregator: Aggregator,
        deduplicator: Deduplicator,
        tagger: Tagger,
        store: ArticleStore,
        cache: Cache,
    ):
        self.aggregator = aggregator
        self.deduplicator = deduplicator
        self.tagger = tagger
        self.store = store
        self.cache = cache
        self.is_running = False

    @classmethod
    def from_components(cls, components: Components) -> "Ingestor":
        return cls(
            aggregator=components.aggregator,
            deduplicator=components.deduplicator,
            tagger=components.tagger,
            store=components.store,
            cache=components.cache,
        )

    async def run(
        self,
        categories: Iterable[str] = ("general",),
        query: str = "",
        page_size: int = 50,
    ) -> IngestStats | None:
        """Ingest one batch per category.

        Returns None without doing anything when a run is already in
        progress. Per-article failures are counted and do not stop the batch.
        """
        if self.is_running:
            logger.warning("Ingestion already running, skipping this run")
            return None
        self.is_running = True
        start = time.perf_counter()
        stats = IngestStats(categories=list(categories))
        saved: list[Article] = []
        try:
            for category in stats.categories:
                feed = await self.aggregator.fetch_live_news(
                    category=category, query=query, limit=page_size, use_cache=False
                )
                for article in feed.articles:
                    stats.total += 1
                    try:
                        stored = await self._ingest_article(article)
                    except Exception as exc:  # noqa: BLE001
                        stats.failed += 1
                        log_event(
                            logger,
                            "Article ingestion failed",
                            level=logging.WARNING,
                            event="ingest_failed",
                            url=article.url,
                            error=f"{type(exc).__name__}: {exc}",
                        )
                        continue
                    if stored:
                        stats.saved += 1
                        saved.append(article)
                    else:
                        stats.skipped += 1

            if saved:
                self.tagger.update_corpus(saved)
                await self.cache.invalidate_pattern(INVALIDATED_PATTERNS)
        finally:
            self.is_running = False

        stats.duration_ms = int((time.perf_counter() - start) * 1000)
        log_event(
            logger,
            "Ingestion complete",
            event="ingest_done",
            total=stats.total,
            saved=stats.saved,
            skipped=stats.skipped,
            failed=stats.failed,
            duration_ms=stats.duration_ms,
        )
        return stats

    async def _ingest_article(self, article: Article) -> bool:
        if await self.deduplicator.is_duplicate(
            article.url, article.title, article.source.name, article.published_at
        ):
            return False

        tags = self.tagger.extract_tags(article.title, article.description)
        article.add_tags(tags)
        if article.category in (None, Category.GENERAL):
            for tag in tags:
                category = Category.coerce(tag)
                if category is not None and category is not Category.GENERAL:
                    article.category = category
                    break

        digest = None
        if article.published_at is not None:
            digest = content_hash(article.title, article.source.name, article.published_at)
        try:
            await self.store.save(article, content_hash=digest)
        except Exception:
            self.deduplicator.forget(article.url)
            raise
        return True
