"""
Live feed aggregation across every configured news source.

The aggregator fans out one task per available adapter, waits for all of
them under an overall deadline, merges what succeeded, removes in-batch
duplicates, ranks by recency and source weight, and caches the result.
Source failures never fail the call; they are tallied in the metadata.
"""

from __future__ import annotations

import asyncio
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timezone
import logging
import time
from typing import Iterable

import httpx

from .cache import Cache, build_cache, build_cache_key
from .config import AggregatorConfig, AppConfig
from .core.dedup import DEFAULT_TRACKING_PARAMS, Deduplicator, dedup_articles
from .core.store import ArticleStore, MemoryArticleStore
from .core.tagger import Tagger
from .core.types import (
    Article,
    FeedMetadata,
    FeedResult,
    FetchOptions,
    SourceHealth,
    SourceInfo,
    SourceResult,
)
from .logging_utils import log_event
from .providers.base import SourceAdapter
from .providers.factory import build_adapters


logger = logging.getLogger(__name__)

DEADLINE_EXCEEDED = "request deadline exceeded"


class Aggregator:
    """Fan-out, merge and rank articles from a set of source adapters.

    Args:
        adapters: Adapters in priority order; earlier ones win dedup ties
        cache: Result cache for aggregated feeds
        cfg: Aggregation settings (TTL, limits, deadline, threshold)
        tracking_params: Query parameters ignored when merging URLs
    """

    def __init__(
        self,
        adapters: Iterable[SourceAdapter],
        cache: Cache,
        cfg: AggregatorConfig | None = None,
        tracking_params: Iterable[str] = DEFAULT_TRACKING_PARAMS,
    ):
        self.adapters = list(adapters)
        self.cache = cache
        self.cfg = cfg or AggregatorConfig()
        self.tracking_params = tuple(tracking_params)

    async def fetch_live_news(
        self,
        category: str = "general",
        query: str = "",
        limit: int | None = None,
        use_cache: bool = True,
        timeout: float | None = None,
    ) -> FeedResult:
        """Return the merged, deduplicated and ranked feed.

        Args:
            category: Canonical category used as each provider's locus
            query: Search query; blank means headlines
            limit: Maximum articles returned (default from config)
            use_cache: Serve a fresh cached feed when one exists
            timeout: Overall fan-out deadline in seconds (default from config)

        Returns:
            FeedResult whose metadata reports per-source outcomes
        """
        if limit is None:
            limit = self.cfg.default_limit
        key = build_cache_key("live_news", {"category": category, "query": query, "limit": limit})

        if use_cache:
            cached = await self._cached_feed(key)
            if cached is not None:
                log_event(
                    logger,
                    "Returning cached live news",
                    event="live_news_cache_hit",
                    category=category,
                    query=query,
                    limit=limit,
                )
                return cached

        adapters = [adapter for adapter in self.adapters if adapter.is_available()]
        log_event(
            logger,
            "Fetching live news",
            event="live_news_fetch",
            category=category,
            query=query,
            limit=limit,
            sources=[adapter.name for adapter in adapters],
        )
        options = FetchOptions(category=category, query=query, page_size=self.cfg.page_size)
        deadline = timeout if timeout is not None else self.cfg.request_timeout
        results = await self._fan_out(adapters, options, deadline)

        merged: list[Article] = []
        for adapter, result in zip(adapters, results):
            if not result.success:
                continue
            for article in result.articles:
                article.source_weight = adapter.weight
                merged.append(article)

        unique = dedup_articles(merged, self.cfg.similarity_threshold, self.tracking_params)
        ranked = rank_articles(unique)[:limit]
        feed = FeedResult(articles=ranked, metadata=build_metadata(ranked, results))

        if feed.metadata.sources_used:
            await self.cache.set(key, feed.to_dict(), self.cfg.cache_ttl)
        log_event(
            logger,
            "Live news aggregated",
            event="live_news_done",
            merged=len(merged),
            returned=len(ranked),
            sources_used=feed.metadata.sources_used,
            sources_failed=feed.metadata.sources_failed,
        )
        return feed

    async def _cached_feed(self, key: str) -> FeedResult | None:
        cached = await self.cache.get(key)
        if cached is None:
            return None
        try:
            feed = FeedResult.from_dict(cached)
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            logger.warning("Discarding unreadable cached feed %s: %s", key, exc)
            return None
        feed.metadata.cache_hit = True
        return feed

    async def _fan_out(
        self,
        adapters: list[SourceAdapter],
        options: FetchOptions,
        deadline: float | None,
    ) -> list[SourceResult]:
        """Run every adapter concurrently and collect one result per adapter.

        Tasks still pending at the deadline are cancelled and reported as
        failures. If the caller is cancelled, every task is cancelled and
        awaited before the cancellation propagates.
        """
        if not adapters:
            return []
        tasks = [
            asyncio.create_task(self._call_adapter(adapter, options), name=f"fetch:{adapter.name}")
            for adapter in adapters
        ]
        try:
            _, pending = await asyncio.wait(tasks, timeout=deadline)
        except asyncio.CancelledError:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        results = []
        for adapter, task in zip(adapters, tasks):
            if task in pending or task.cancelled():
                log_event(
                    logger,
                    f"Source {adapter.name} cancelled at deadline",
                    level=logging.WARNING,
                    event="source_failed",
                    source=adapter.name,
                    error=DEADLINE_EXCEEDED,
                )
                duration = int(deadline * 1000) if deadline is not None else None
                results.append(
                    SourceResult(adapter.name, success=False, duration_ms=duration, error=DEADLINE_EXCEEDED)
                )
            else:
                results.append(task.result())
        return results

    async def _call_adapter(self, adapter: SourceAdapter, options: FetchOptions) -> SourceResult:
        start = time.perf_counter()
        call = adapter.search_news if options.query.strip() else adapter.fetch_headlines
        try:
            articles = await asyncio.wait_for(call(options), timeout=adapter.timeout)
        except asyncio.TimeoutError:
            error = f"timed out after {adapter.timeout}s"
        except Exception as exc:  # noqa: BLE001
            error = str(exc) or type(exc).__name__
        else:
            duration_ms = _elapsed_ms(start)
            log_event(
                logger,
                f"Fetched {len(articles)} articles from {adapter.name}",
                event="source_fetched",
                source=adapter.name,
                count=len(articles),
                duration_ms=duration_ms,
            )
            return SourceResult(adapter.name, articles=list(articles), duration_ms=duration_ms)

        duration_ms = _elapsed_ms(start)
        log_event(
            logger,
            f"Failed to fetch from {adapter.name}",
            level=logging.WARNING,
            event="source_failed",
            source=adapter.name,
            error=error,
            duration_ms=duration_ms,
        )
        return SourceResult(adapter.name, success=False, duration_ms=duration_ms, error=error)

    def get_available_sources(self) -> list[SourceInfo]:
        return [
            SourceInfo(name=adapter.name, weight=adapter.weight, available=True)
            for adapter in self.adapters
            if adapter.is_available()
        ]

    async def health_check(self) -> dict[str, SourceHealth]:
        """Probe every adapter with a single-item fetch. Never raises."""
        checks = await asyncio.gather(*(self._check_adapter(adapter) for adapter in self.adapters))
        return {adapter.name: health for adapter, health in zip(self.adapters, checks)}

    async def _check_adapter(self, adapter: SourceAdapter) -> SourceHealth:
        if not adapter.is_available():
            return SourceHealth(status="disabled", message="Source not configured")
        start = time.perf_counter()
        try:
            articles = await asyncio.wait_for(
                adapter.fetch_headlines(FetchOptions(page_size=1)), timeout=adapter.timeout
            )
        except asyncio.TimeoutError:
            return SourceHealth(
                status="error",
                message=f"timed out after {adapter.timeout}s",
                response_time_ms=_elapsed_ms(start),
            )
        except Exception as exc:  # noqa: BLE001
            return SourceHealth(
                status="error",
                message=str(exc) or type(exc).__name__,
                response_time_ms=_elapsed_ms(start),
            )
        return SourceHealth(
            status="healthy",
            message="Source responding",
            response_time_ms=_elapsed_ms(start),
            articles_count=len(articles),
        )

    async def invalidate(self) -> int:
        """Drop every cached live feed."""
        return await self.cache.invalidate_pattern("live_news:*")


def rank_articles(articles: list[Article]) -> list[Article]:
    """Newest first; ties broken by source weight; undated articles last."""
    return sorted(
        articles,
        key=lambda article: (
            article.published_at is not None,
            article.published_at.timestamp() if article.published_at else 0.0,
            article.source_weight,
        ),
        reverse=True,
    )


def build_metadata(articles: list[Article], results: list[SourceResult]) -> FeedMetadata:
    source_breakdown = Counter(article.api_source for article in articles)
    category_breakdown = Counter(
        article.category.value if article.category else "general" for article in articles
    )
    return FeedMetadata(
        total_articles=len(articles),
        sources_used=sum(1 for result in results if result.success),
        sources_failed=sum(1 for result in results if not result.success),
        source_breakdown=dict(source_breakdown),
        category_breakdown=dict(category_breakdown),
        fetched_at=datetime.now(timezone.utc).isoformat(),
        cache_hit=False,
        sources=[result.summary() for result in results],
    )


@dataclass
class Components:
    """Wired application graph shared by the CLI and the ingestion path."""

    cfg: AppConfig
    adapters: list[SourceAdapter]
    cache: Cache
    store: ArticleStore
    deduplicator: Deduplicator
    tagger: Tagger
    aggregator: Aggregator


def build_components(
    cfg: AppConfig,
    store: ArticleStore | None = None,
    client: httpx.AsyncClient | None = None,
) -> Components:
    """Build every component from configuration with explicit wiring."""
    store = store or MemoryArticleStore()
    adapters = build_adapters(cfg.sources, client=client)
    cache = build_cache(cfg.cache)
    deduplicator = Deduplicator(
        store,
        capacity=cfg.dedup.cache_capacity,
        similarity_threshold=cfg.dedup.similarity_threshold,
        tracking_params=cfg.dedup.tracking_params,
        seed_limit=cfg.dedup.seed_limit,
    )
    return Components(
        cfg=cfg,
        adapters=adapters,
        cache=cache,
        store=store,
        deduplicator=deduplicator,
        tagger=Tagger(cfg.tagger),
        aggregator=Aggregator(adapters, cache, cfg.aggregator, cfg.dedup.tracking_params),
    )


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)
