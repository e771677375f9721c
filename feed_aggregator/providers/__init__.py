"""
News source adapters.

This package contains the abstract SourceAdapter and one implementation
per provider (NewsAPI, The Guardian, The New York Times, BBC RSS).

To add a new source:
1. Inherit from SourceAdapter and set ``name`` and ``display_name``
2. Implement fetch_headlines() and search_news()
3. Register the class in factory._ADAPTER_REGISTRY
4. Add a SourceConfig field for it to SourcesConfig in config.py
"""

from .base import SourceAdapter, map_category, title_tags
from .bbc import BbcAdapter
from .factory import available_adapters, build_adapters, create_adapter
from .guardian import GuardianAdapter
from .newsapi import NewsApiAdapter
from .nyt import NytAdapter

__all__ = [
    "SourceAdapter",
    "map_category",
    "title_tags",
    "BbcAdapter",
    "GuardianAdapter",
    "NewsApiAdapter",
    "NytAdapter",
    "available_adapters",
    "build_adapters",
    "create_adapter",
]
