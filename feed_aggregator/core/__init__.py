"""
Core domain models and business logic.

This package contains data types, deduplication, tagging and the
article store interface, independent of any specific news provider.
"""

from .types import Article, ArticleSource, Category, FeedMetadata, FeedResult, FetchOptions
from .dedup import Deduplicator, FifoHashCache, dedup_articles, normalize_url
from .store import ArticleStore, MemoryArticleStore, StoredArticle
from .tagger import Tagger

__all__ = [
    "Article",
    "ArticleSource",
    "Category",
    "FeedMetadata",
    "FeedResult",
    "FetchOptions",
    "Deduplicator",
    "FifoHashCache",
    "dedup_articles",
    "normalize_url",
    "ArticleStore",
    "MemoryArticleStore",
    "StoredArticle",
    "Tagger",
]
