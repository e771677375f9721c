"""The Guardian content API adapter."""

from __future__ import annotations

import logging
from typing import Any

from ..core.text import clean_text
from ..core.types import Article, ArticleSource, FetchOptions, parse_datetime
from .base import SourceAdapter, map_category, title_tags


logger = logging.getLogger(__name__)

SHOW_FIELDS = "headline,trailText,thumbnail,byline,publication"

# Guardian sectionId -> canonical category
CATEGORY_MAP = {
    "business": "business",
    "world": "politics",
    "politics": "politics",
    "sport": "sports",
    "technology": "technology",
    "science": "science",
    "culture": "entertainment",
    "lifeandstyle": "health",
    "environment": "science",
    "global-development": "politics",
}

# canonical category -> Guardian section queried for headlines
SECTION_FOR_CATEGORY = {
    "general": "world",
    "business": "business",
    "technology": "technology",
    "sports": "sport",
    "science": "science",
    "health": "lifeandstyle",
    "entertainment": "culture",
    "politics": "politics",
}


class GuardianAdapter(SourceAdapter):
    name = "guardian"
    display_name = "The Guardian"

    async def fetch_headlines(self, options: FetchOptions) -> list[Article]:
        api_key = self._require_key()
        section = options.section or SECTION_FOR_CATEGORY.get(options.category or "general", "world")
        logger.info("Fetching headlines from The Guardian (section=%s)", section)
        params = self._params(api_key, options.page_size)
        params["section"] = section
        payload = await self._get_json("/search", params)
        return self._normalize(self._extract(payload))[: options.page_size]

    async def search_news(self, options: FetchOptions) -> list[Article]:
        api_key = self._require_key()
        if not options.query.strip():
            return await self.fetch_headlines(options)
        logger.info("Searching The Guardian for %r", options.query)
        params = self._params(api_key, options.page_size)
        params["q"] = options.query
        if options.section:
            params["section"] = options.section
        payload = await self._get_json("/search", params)
        return self._normalize(self._extract(payload))[: options.page_size]

    def _params(self, api_key: str, page_size: int) -> dict[str, Any]:
        return {
            "api-key": api_key,
            "page-size": page_size,
            "show-fields": SHOW_FIELDS,
            "show-tags": "keyword",
            "order-by": "newest",
        }

    def _extract(self, payload: Any) -> list[dict[str, Any]]:
        response = payload.get("response") if isinstance(payload, dict) else None
        if not isinstance(response, dict):
            raise self._malformed("missing response object")
        if response.get("status") != "ok":
            raise self._malformed(response.get("message") or f"status={response.get('status')!r}")
        results = response.get("results")
        if not isinstance(results, list):
            raise self._malformed("missing results list")
        return results

    def _normalize(self, items: list[dict[str, Any]]) -> list[Article]:
        articles = []
        for item in items:
            title = (item.get("webTitle") or "").strip()
            url = item.get("webUrl")
            if not title or not url:
                continue
            fields = item.get("fields") or {}
            keyword_tags = [
                tag["webTitle"].lower()
                for tag in item.get("tags") or []
                if isinstance(tag, dict) and tag.get("webTitle")
            ]
            articles.append(
                Article(
                    id=self.make_id(url),
                    title=title,
                    description=clean_text(fields.get("trailText")),
                    url=url,
                    published_at=parse_datetime(item.get("webPublicationDate")),
                    source=ArticleSource(id=self.name, name=self.display_name),
                    source_weight=self.weight,
                    image_url=fields.get("thumbnail"),
                    author=fields.get("byline"),
                    category=map_category(item.get("sectionId"), CATEGORY_MAP),
                    tags=[*keyword_tags, *title_tags(title)],
                    api_source=self.name,
                )
            )
        return articles
