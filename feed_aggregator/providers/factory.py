"""Adapter factory and registry for the configured news sources."""

from __future__ import annotations

import httpx

from ..config import SourceConfig, SourcesConfig
from ..core.errors import ConfigurationError
from .base import SourceAdapter
from .bbc import BbcAdapter
from .guardian import GuardianAdapter
from .newsapi import NewsApiAdapter
from .nyt import NytAdapter


AdapterBuilder = type[SourceAdapter]

_ADAPTER_REGISTRY: dict[str, AdapterBuilder] = {
    "newsapi": NewsApiAdapter,
    "guardian": GuardianAdapter,
    "nyt": NytAdapter,
    "bbc": BbcAdapter,
}


def available_adapters() -> list[str]:
    """Return the set of registered adapter names."""
    return sorted(_ADAPTER_REGISTRY.keys())


def create_adapter(
    name: str,
    source_cfg: SourceConfig,
    user_agent: str = "FeedAggregator/1.0",
    client: httpx.AsyncClient | None = None,
) -> SourceAdapter:
    """Build one adapter instance by registry name."""
    builder = _ADAPTER_REGISTRY.get(name.lower().strip())
    if builder is None:
        supported = ", ".join(available_adapters())
        raise ConfigurationError(f"Unsupported source: {name}. Supported: {supported}")
    return builder(source_cfg, user_agent=user_agent, client=client)


def build_adapters(cfg: SourcesConfig, client: httpx.AsyncClient | None = None) -> list[SourceAdapter]:
    """Build every enabled adapter in priority order (NewsAPI first)."""
    adapters = []
    for name in ("newsapi", "guardian", "nyt", "bbc"):
        source_cfg: SourceConfig = getattr(cfg, name)
        if not source_cfg.enabled:
            continue
        adapters.append(create_adapter(name, source_cfg, user_agent=cfg.user_agent, client=client))
    return adapters
