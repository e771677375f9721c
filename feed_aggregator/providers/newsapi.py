"""NewsAPI.org adapter (top headlines and full-text search)."""

from __future__ import annotations

import logging
from typing import Any

from ..core.text import clean_text
from ..core.types import Article, ArticleSource, Category, FetchOptions, parse_datetime
from .base import SourceAdapter, map_category, title_tags


logger = logging.getLogger(__name__)

CATEGORY_MAP = {
    "business": "business",
    "entertainment": "entertainment",
    "general": "general",
    "health": "health",
    "science": "science",
    "sports": "sports",
    "technology": "technology",
}


class NewsApiAdapter(SourceAdapter):
    name = "newsapi"
    display_name = "NewsAPI"

    async def fetch_headlines(self, options: FetchOptions) -> list[Article]:
        api_key = self._require_key()
        category = options.category if options.category in CATEGORY_MAP else "general"
        logger.info("Fetching headlines from NewsAPI (country=%s category=%s)", options.country, category)
        payload = await self._get_json(
            "/top-headlines",
            {
                "country": options.country,
                "category": category,
                "pageSize": options.page_size,
                "apiKey": api_key,
            },
        )
        return self._normalize(self._extract(payload), map_category(category, CATEGORY_MAP))[: options.page_size]

    async def search_news(self, options: FetchOptions) -> list[Article]:
        api_key = self._require_key()
        if not options.query.strip():
            return await self.fetch_headlines(options)
        logger.info("Searching NewsAPI for %r", options.query)
        payload = await self._get_json(
            "/everything",
            {
                "q": options.query,
                "language": options.language,
                "sortBy": "publishedAt",
                "pageSize": options.page_size,
                "apiKey": api_key,
            },
        )
        return self._normalize(self._extract(payload), Category.GENERAL)[: options.page_size]

    def _extract(self, payload: Any) -> list[dict[str, Any]]:
        if not isinstance(payload, dict):
            raise self._malformed("expected a JSON object")
        if payload.get("status") != "ok":
            raise self._malformed(payload.get("message") or f"status={payload.get('status')!r}")
        articles = payload.get("articles")
        if not isinstance(articles, list):
            raise self._malformed("missing articles list")
        return articles

    def _normalize(self, items: list[dict[str, Any]], category: Category) -> list[Article]:
        articles = []
        for item in items:
            title = (item.get("title") or "").strip()
            url = item.get("url")
            # NewsAPI blanks out takedowns instead of dropping them.
            if not title or not url or title == "[Removed]":
                continue
            source = item.get("source") or {}
            articles.append(
                Article(
                    id=self.make_id(url),
                    title=title,
                    description=clean_text(item.get("description")),
                    url=url,
                    published_at=parse_datetime(item.get("publishedAt")),
                    source=ArticleSource(
                        id=source.get("id") or self.name,
                        name=source.get("name") or "Unknown Source",
                    ),
                    source_weight=self.weight,
                    image_url=item.get("urlToImage"),
                    author=item.get("author"),
                    category=category,
                    tags=title_tags(title),
                    api_source=self.name,
                )
            )
        return articles
