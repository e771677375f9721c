"""New York Times adapter (Top Stories and Article Search APIs).

The two APIs return differently shaped records; _normalize accepts both.
"""

from __future__ import annotations

import logging
from typing import Any

from ..core.text import clean_text
from ..core.types import Article, ArticleSource, FetchOptions, parse_datetime
from .base import SourceAdapter, map_category, title_tags


logger = logging.getLogger(__name__)

IMAGE_HOST = "https://static01.nyt.com/"
SEARCH_FIELDS = "headline,abstract,snippet,web_url,multimedia,byline,pub_date,section_name,subsection_name"

# NYT section (lower-cased) -> canonical category
CATEGORY_MAP = {
    "business": "business",
    "world": "politics",
    "u.s.": "politics",
    "us": "politics",
    "politics": "politics",
    "sports": "sports",
    "technology": "technology",
    "science": "science",
    "health": "health",
    "arts": "entertainment",
    "movies": "entertainment",
    "books": "entertainment",
    "food": "health",
    "travel": "general",
    "real estate": "business",
    "realestate": "business",
    "automobiles": "technology",
}

SECTION_FOR_CATEGORY = {
    "general": "world",
    "business": "business",
    "technology": "technology",
    "sports": "sports",
    "science": "science",
    "health": "health",
    "entertainment": "arts",
    "politics": "politics",
}


class NytAdapter(SourceAdapter):
    name = "nyt"
    display_name = "The New York Times"

    async def fetch_headlines(self, options: FetchOptions) -> list[Article]:
        api_key = self._require_key()
        section = options.section or SECTION_FOR_CATEGORY.get(options.category or "general", "world")
        logger.info("Fetching top stories from NYT (section=%s)", section)
        payload = await self._get_json(f"/topstories/v2/{section}.json", {"api-key": api_key})
        results = payload.get("results") if isinstance(payload, dict) else None
        if not isinstance(results, list):
            raise self._malformed("missing results list")
        return self._normalize(results[: options.page_size])

    async def search_news(self, options: FetchOptions) -> list[Article]:
        api_key = self._require_key()
        if not options.query.strip():
            return await self.fetch_headlines(options)
        logger.info("Searching NYT for %r", options.query)
        payload = await self._get_json(
            "/search/v2/articlesearch.json",
            {"api-key": api_key, "q": options.query, "sort": "newest", "fl": SEARCH_FIELDS},
        )
        response = payload.get("response") if isinstance(payload, dict) else None
        docs = response.get("docs") if isinstance(response, dict) else None
        if not isinstance(docs, list):
            raise self._malformed("missing response.docs list")
        return self._normalize(docs[: options.page_size])

    def _normalize(self, items: list[dict[str, Any]]) -> list[Article]:
        articles = []
        for item in items:
            headline = item.get("headline")
            title = ((headline or {}).get("main") if isinstance(headline, dict) else None) or item.get("title")
            url = item.get("web_url") or item.get("url")
            if not title or not url:
                continue
            title = title.strip()
            section = item.get("section_name") or item.get("section")
            articles.append(
                Article(
                    id=self.make_id(url),
                    title=title,
                    description=clean_text(item.get("abstract") or item.get("snippet")),
                    url=url,
                    published_at=parse_datetime(item.get("pub_date") or item.get("published_date")),
                    source=ArticleSource(id=self.name, name=self.display_name),
                    source_weight=self.weight,
                    image_url=extract_image_url(item),
                    author=extract_author(item),
                    category=map_category((section or "").lower(), CATEGORY_MAP),
                    tags=[*_section_tags(item), *title_tags(title)],
                    api_source=self.name,
                )
            )
        return articles


def extract_image_url(item: dict[str, Any]) -> str | None:
    multimedia = item.get("multimedia")
    if isinstance(multimedia, dict):
        default = multimedia.get("default") or {}
        return default.get("url") or None
    if isinstance(multimedia, list):
        for media in multimedia:
            if not isinstance(media, dict) or not media.get("url"):
                continue
            if media.get("subtype") in ("large", "medium") or media.get("format") in ("Super Jumbo", "Large"):
                url = media["url"]
                return url if url.startswith("http") else f"{IMAGE_HOST}{url.lstrip('/')}"

    media_list = item.get("media")
    if isinstance(media_list, list) and media_list and isinstance(media_list[0], dict):
        for meta in media_list[0].get("media-metadata") or []:
            if meta.get("format") == "Large" and meta.get("url"):
                return meta["url"]
    return None


def extract_author(item: dict[str, Any]) -> str | None:
    byline = item.get("byline")
    if isinstance(byline, dict):
        byline = byline.get("original")
    if not byline or not isinstance(byline, str):
        return None
    return byline.replace("By ", "", 1).strip() or None


def _section_tags(item: dict[str, Any]) -> list[str]:
    tags = []
    for key in ("section_name", "section", "subsection_name", "subsection"):
        value = item.get(key)
        if value:
            tags.append(value.lower())
    for keyword in item.get("des_facet") or []:
        if keyword:
            tags.append(keyword.lower())
    return tags
