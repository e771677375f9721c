"""
Feed Aggregator - multi-source news aggregation pipeline.

This package fans out to several news providers (NewsAPI, The Guardian,
The New York Times, BBC RSS), normalizes their articles into one shape,
removes duplicates, tags articles with keywords and categories, and
caches aggregated feeds.

Main entry point is the CLI via the `feed-aggregator` command.

Example:
    $ feed-aggregator live --category technology --limit 20
"""

__all__ = ["__version__", "Aggregator", "build_components", "Article", "FeedResult"]
__version__ = "0.1.0"

from .aggregator import Aggregator, build_components
from .core.types import Article, FeedResult
