"""
Core data types for the feed aggregator.

This module defines the fundamental data structures used throughout the pipeline:
- Article: Canonical article shape shared by every source adapter
- FetchOptions: Explicit per-call options passed to adapters
- SourceResult / FeedMetadata / FeedResult: Aggregator outputs
- SourceHealth / SourceInfo: Adapter status reporting
- SimilarArticle / RemovalResult / DedupStats / TaggerStats: Maintenance reports
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
import re
from typing import Any, Iterable, Mapping


OFFSET_RE = re.compile(r"([+-]\d{2})(\d{2})$")


class Category(str, Enum):
    """Fixed set of canonical article categories."""

    TECHNOLOGY = "technology"
    BUSINESS = "business"
    SPORTS = "sports"
    HEALTH = "health"
    SCIENCE = "science"
    ENTERTAINMENT = "entertainment"
    POLITICS = "politics"
    GENERAL = "general"

    @classmethod
    def coerce(cls, value: Any) -> "Category | None":
        """Map a string or Category onto the enum, or None when unknown."""
        if value is None or isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None


@dataclass
class ArticleSource:
    """Publisher identity as reported by the provider."""

    id: str
    name: str


@dataclass
class Article:
    """Canonical article produced by a source adapter.

    Attributes:
        id: Provider-derived identifier, stable per source
        title: The article headline
        description: Short summary or trail text
        url: Link to the article, the identity key after normalization
        published_at: Publication timestamp (timezone aware), if known
        source: Publisher identity
        source_weight: Ranking multiplier in [0, 1]
        image_url: Optional lead image
        author: Optional byline
        category: Canonical category, or None
        tags: Case-insensitively unique tags
        api_source: Name of the adapter that produced the article
    """

    id: str
    title: str
    description: str
    url: str
    published_at: datetime | None
    source: ArticleSource
    source_weight: float = 0.5
    image_url: str | None = None
    author: str | None = None
    category: Category | None = None
    tags: list[str] = field(default_factory=list)
    api_source: str = ""

    def __post_init__(self) -> None:
        self.category = Category.coerce(self.category)
        self.tags = unique_tags(self.tags)
        self.source_weight = min(max(float(self.source_weight), 0.0), 1.0)

    def add_tags(self, tags: Iterable[str]) -> None:
        self.tags = unique_tags([*self.tags, *tags])

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["published_at"] = self.published_at.isoformat() if self.published_at else None
        data["category"] = self.category.value if self.category else None
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Article":
        source = data.get("source") or {}
        return cls(
            id=data.get("id", ""),
            title=data.get("title", ""),
            description=data.get("description") or "",
            url=data.get("url", ""),
            published_at=parse_datetime(data.get("published_at")),
            source=ArticleSource(id=source.get("id", ""), name=source.get("name", "")),
            source_weight=data.get("source_weight", 0.5),
            image_url=data.get("image_url"),
            author=data.get("author"),
            category=data.get("category"),
            tags=list(data.get("tags") or []),
            api_source=data.get("api_source", ""),
        )


@dataclass
class FetchOptions:
    """Options for a single adapter call.

    Attributes:
        category: Canonical category used as the provider locus
        query: Free-text search query; empty means headlines
        page_size: Result-size hint
        country: Country code for providers that support it
        section: Explicit provider section, overrides the category mapping
        language: Language code for search
    """

    category: str | None = "general"
    query: str = ""
    page_size: int = 20
    country: str = "us"
    section: str | None = None
    language: str = "en"


@dataclass
class SourceResult:
    """Outcome of one adapter call during fan-out."""

    source: str
    articles: list[Article] = field(default_factory=list)
    success: bool = True
    duration_ms: int | None = None
    error: str | None = None

    @property
    def count(self) -> int:
        return len(self.articles)

    def summary(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "success": self.success,
            "count": self.count,
            "duration_ms": self.duration_ms,
            "error": self.error,
        }


@dataclass
class FeedMetadata:
    """Statistics describing an aggregated feed."""

    total_articles: int = 0
    sources_used: int = 0
    sources_failed: int = 0
    source_breakdown: dict[str, int] = field(default_factory=dict)
    category_breakdown: dict[str, int] = field(default_factory=dict)
    fetched_at: str = ""
    cache_hit: bool = False
    sources: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FeedMetadata":
        return cls(
            total_articles=data.get("total_articles", 0),
            sources_used=data.get("sources_used", 0),
            sources_failed=data.get("sources_failed", 0),
            source_breakdown=dict(data.get("source_breakdown") or {}),
            category_breakdown=dict(data.get("category_breakdown") or {}),
            fetched_at=data.get("fetched_at", ""),
            cache_hit=bool(data.get("cache_hit", False)),
            sources=list(data.get("sources") or []),
        )


@dataclass
class FeedResult:
    """Articles plus metadata returned by the aggregator."""

    articles: list[Article]
    metadata: FeedMetadata

    def to_dict(self) -> dict[str, Any]:
        return {
            "articles": [article.to_dict() for article in self.articles],
            "metadata": self.metadata.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FeedResult":
        return cls(
            articles=[Article.from_dict(item) for item in data.get("articles") or []],
            metadata=FeedMetadata.from_dict(data.get("metadata") or {}),
        )


@dataclass
class SourceInfo:
    name: str
    weight: float
    available: bool = True


@dataclass
class SourceHealth:
    """Health of a single adapter: "healthy", "disabled" or "error"."""

    status: str
    message: str
    response_time_ms: int | None = None
    articles_count: int | None = None


@dataclass
class SimilarArticle:
    article: Article
    similarity: float


@dataclass
class RemovalResult:
    removed_count: int
    duplicate_groups: int


@dataclass
class DedupStats:
    total_articles: int
    duplicate_groups: int
    duplicate_count: int
    unique_articles: int
    cache_size: int
    cache_max_size: int


@dataclass
class TaggerStats:
    corpus_size: int
    corpus_documents: int
    max_keywords: int
    min_keyword_length: int
    min_term_frequency: int
    stopwords_count: int


def unique_tags(tags: Iterable[str]) -> list[str]:
    """Drop empty and case-variant duplicate tags, keeping first spelling."""
    seen: set[str] = set()
    result: list[str] = []
    for tag in tags:
        if not isinstance(tag, str):
            continue
        cleaned = tag.strip()
        key = cleaned.lower()
        if not cleaned or key in seen:
            continue
        seen.add(key)
        result.append(cleaned)
    return result


def parse_datetime(value: Any) -> datetime | None:
    """Parse ISO 8601 strings (with or without ``Z``) into aware datetimes."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = OFFSET_RE.sub(r"\1:\2", str(value).strip().replace("Z", "+00:00"))
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
