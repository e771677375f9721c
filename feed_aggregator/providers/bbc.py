"""BBC News adapter over the public RSS feeds (no credentials needed)."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
import logging
from typing import Any

import feedparser

from ..core.text import clean_text
from ..core.types import Article, ArticleSource, Category, FetchOptions
from .base import SourceAdapter, map_category, title_tags


logger = logging.getLogger(__name__)

SEARCH_POOL_SIZE = 50

FEED_PATHS = {
    "world": "/news/world/rss.xml",
    "uk": "/news/uk/rss.xml",
    "politics": "/news/politics/rss.xml",
    "business": "/news/business/rss.xml",
    "technology": "/news/technology/rss.xml",
    "science_and_environment": "/news/science_and_environment/rss.xml",
    "health": "/news/health/rss.xml",
    "entertainment_and_arts": "/news/entertainment_and_arts/rss.xml",
    "sport": "/sport/rss.xml",
}

FEED_FOR_CATEGORY = {
    "general": "world",
    "politics": "politics",
    "business": "business",
    "technology": "technology",
    "science": "science_and_environment",
    "health": "health",
    "entertainment": "entertainment_and_arts",
    "sports": "sport",
}

# BBC path segment -> canonical category
CATEGORY_MAP = {
    "business": "business",
    "technology": "technology",
    "science_and_environment": "science",
    "health": "health",
    "entertainment_and_arts": "entertainment",
    "sport": "sports",
    "politics": "politics",
    "world": "politics",
    "uk": "politics",
}


class BbcAdapter(SourceAdapter):
    name = "bbc"
    display_name = "BBC News"
    requires_key = False

    async def fetch_headlines(self, options: FetchOptions) -> list[Article]:
        feed_key = options.section if options.section in FEED_PATHS else None
        feed_key = feed_key or FEED_FOR_CATEGORY.get(options.category or "general", "world")
        logger.info("Fetching headlines from BBC News (feed=%s)", feed_key)
        body = await self._get_text(FEED_PATHS[feed_key])
        parsed = feedparser.parse(body)
        if parsed.bozo and not parsed.entries:
            raise self._malformed(f"feed parse error: {parsed.get('bozo_exception')}")
        return self._normalize(parsed.entries[: options.page_size], feed_key)

    async def search_news(self, options: FetchOptions) -> list[Article]:
        """Filter a pool of recent headlines by case-insensitive substring."""
        pool = await self.fetch_headlines(replace(options, page_size=SEARCH_POOL_SIZE))
        needle = options.query.strip().lower()
        if not needle:
            return pool[: options.page_size]
        matches = [
            article
            for article in pool
            if needle in article.title.lower()
            or needle in article.description.lower()
            or any(needle in tag.lower() for tag in article.tags)
        ]
        return matches[: options.page_size]

    def _normalize(self, entries: list[Any], feed_key: str) -> list[Article]:
        articles = []
        for entry in entries:
            title = (entry.get("title") or "").strip()
            url = entry.get("link")
            if not title or not url:
                continue
            entry_tags = [tag.get("term", "").lower() for tag in entry.get("tags") or [] if tag.get("term")]
            articles.append(
                Article(
                    id=self.make_id(url),
                    title=title,
                    description=clean_text(entry.get("summary") or entry.get("description")),
                    url=url,
                    published_at=_published_at(entry),
                    source=ArticleSource(id=self.name, name=self.display_name),
                    source_weight=self.weight,
                    image_url=_image_url(entry),
                    author=None,
                    category=_category(url, feed_key),
                    tags=[*entry_tags, *title_tags(title)],
                    api_source=self.name,
                )
            )
        return articles


def _published_at(entry: Any) -> datetime | None:
    published_parsed = entry.get("published_parsed") or entry.get("updated_parsed")
    if published_parsed:
        try:
            return datetime(*published_parsed[:6], tzinfo=timezone.utc)
        except (TypeError, ValueError):
            return None
    return None


def _image_url(entry: Any) -> str | None:
    for key in ("media_thumbnail", "media_content"):
        media = entry.get(key)
        if media and isinstance(media, list) and media[0].get("url"):
            return media[0]["url"]
    return None


def _category(url: str, feed_key: str) -> Category:
    for segment in CATEGORY_MAP:
        if f"/{segment}" in url:
            return map_category(segment, CATEGORY_MAP)
    return map_category(feed_key, CATEGORY_MAP)
