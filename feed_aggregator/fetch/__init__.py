"""
Outbound HTTP for source adapters.

This package wraps httpx with the timeout and error policy every
adapter shares.
"""

from .fetcher import FetchResult, fetch_url, get_json, get_text

__all__ = [
    "FetchResult",
    "fetch_url",
    "get_json",
    "get_text",
]
