"""
Configuration management using YAML files and dataclasses.

This module defines all configuration dataclasses and provides loading
from YAML files with defaults. Configuration sections:
- SourcesConfig: Per-provider credentials, base URLs and ranking weights
- AggregatorConfig: Fan-out, ranking and result-cache settings
- DedupConfig: Deduplication cache and URL normalization settings
- TaggerConfig: Keyword extraction thresholds and word lists
- CacheConfig: Cache backend selection and key namespace
- LoggingConfig: Logging behavior
- AppConfig: Root configuration container
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
import os
from typing import Any

import yaml

from .constants import CATEGORY_KEYWORDS, COMMON_WORDS, STOPWORDS


@dataclass
class SourceConfig:
    """Configuration for a single news provider.

    Attributes:
        enabled: Whether the adapter takes part in fan-out at all
        api_key: Optional inline API key (overrides env var)
        api_key_env: Environment variable name containing the API key
        base_url: Provider API (or feed) root URL
        weight: Ranking multiplier in [0, 1] used to break date ties
        timeout_seconds: Per-call network timeout
    """

    enabled: bool = True
    api_key: str | None = None
    api_key_env: str | None = None
    base_url: str = ""
    weight: float = 0.5
    timeout_seconds: float = 10.0


@dataclass
class SourcesConfig:
    """Configuration for all providers.

    Attributes:
        newsapi: NewsAPI.org settings (requires NEWSAPI_KEY)
        guardian: The Guardian content API settings (requires GUARDIAN_API_KEY)
        nyt: New York Times API settings (requires NYT_API_KEY)
        bbc: BBC News RSS settings (no credentials needed)
        user_agent: HTTP User-Agent header string
    """

    newsapi: SourceConfig = field(
        default_factory=lambda: SourceConfig(
            api_key_env="NEWSAPI_KEY", base_url="https://newsapi.org/v2", weight=1.0
        )
    )
    guardian: SourceConfig = field(
        default_factory=lambda: SourceConfig(
            api_key_env="GUARDIAN_API_KEY",
            base_url="https://content.guardianapis.com",
            weight=0.9,
        )
    )
    nyt: SourceConfig = field(
        default_factory=lambda: SourceConfig(
            api_key_env="NYT_API_KEY", base_url="https://api.nytimes.com/svc", weight=0.9
        )
    )
    bbc: SourceConfig = field(
        default_factory=lambda: SourceConfig(base_url="https://feeds.bbci.co.uk", weight=0.8)
    )
    user_agent: str = "FeedAggregator/1.0"


@dataclass
class AggregatorConfig:
    """Configuration for live feed aggregation.

    Attributes:
        cache_ttl: Seconds an aggregated feed stays cached
        default_limit: Number of articles returned when no limit is given
        similarity_threshold: Jaccard threshold for in-batch title dedup
        request_timeout: Overall deadline for one fan-out, in seconds
        page_size: Result-size hint passed to each adapter
    """

    cache_ttl: int = 300
    default_limit: int = 50
    similarity_threshold: float = 0.8
    request_timeout: float | None = 30.0
    page_size: int = 20


@dataclass
class DedupConfig:
    """Configuration for ingestion-time deduplication.

    Attributes:
        cache_capacity: Maximum URL/content hashes kept in memory (FIFO)
        similarity_threshold: Jaccard threshold for find_similar_articles
        tracking_params: Query parameters stripped during URL normalization;
                         a trailing ``*`` matches by prefix
        seed_limit: Recent stored articles used to warm the hash cache
    """

    cache_capacity: int = 10_000
    similarity_threshold: float = 0.8
    tracking_params: list[str] = field(
        default_factory=lambda: ["utm_*", "fbclid", "gclid", "ref", "source", "campaign"]
    )
    seed_limit: int = 1000


@dataclass
class TaggerConfig:
    """Configuration for keyword extraction and category tagging.

    Attributes:
        max_keywords: Maximum tags returned per article
        min_keyword_length: Shortest token considered a keyword
        min_term_frequency: Minimum occurrences of a term within one document
        stopwords: Words never used as keywords
        common_words: Words dropped from the final tag list
        category_keywords: Category lexicon used for category tags
        corpus_seed_limit: Recent stored articles used to seed the corpus
    """

    max_keywords: int = 5
    min_keyword_length: int = 3
    min_term_frequency: int = 2
    stopwords: list[str] = field(default_factory=lambda: list(STOPWORDS))
    common_words: list[str] = field(default_factory=lambda: list(COMMON_WORDS))
    category_keywords: dict[str, list[str]] = field(
        default_factory=lambda: {name: list(words) for name, words in CATEGORY_KEYWORDS.items()}
    )
    corpus_seed_limit: int = 1000


@dataclass
class CacheConfig:
    """Configuration for the key/value cache.

    Attributes:
        backend: "memory" for an in-process store, "redis" for a shared server
        redis_url: Connection URL when backend is "redis"
        prefix: Namespace prepended to every key
        default_ttl: TTL in seconds used when a caller gives none
    """

    backend: str = "memory"
    redis_url: str = "redis://localhost:6379/0"
    prefix: str = "news-aggregator:"
    default_ttl: int = 300


@dataclass
class LoggingConfig:
    """Configuration for logging behavior.

    Attributes:
        level: Logging level ("DEBUG", "INFO", "WARNING", "ERROR")
        console: Whether to log to console
        file: Whether to log to file
        format: Log file format ("jsonl" or "plain")
        filename: Name of the log file
        log_dir: Directory for the log file; file logging is skipped when unset
    """

    level: str = "INFO"
    console: bool = True
    file: bool = False
    format: str = "jsonl"
    filename: str = "feed.jsonl"
    log_dir: str | None = None


@dataclass
class AppConfig:
    """Root configuration container aggregating all config sections."""

    sources: SourcesConfig = field(default_factory=SourcesConfig)
    aggregator: AggregatorConfig = field(default_factory=AggregatorConfig)
    dedup: DedupConfig = field(default_factory=DedupConfig)
    tagger: TaggerConfig = field(default_factory=TaggerConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def load_config(path: str | None) -> AppConfig:
    """Load configuration from a YAML file with defaults."""
    if not path:
        return AppConfig()

    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    return _merge_config(AppConfig(), raw)


def _merge_config(base: AppConfig, raw: dict[str, Any]) -> AppConfig:
    """Merge raw YAML config into base AppConfig.

    Sections merge key by key; the ``sources`` section merges one level
    deeper so a file can override a single provider field.
    """
    data = asdict(base)
    for key, value in raw.items():
        if key not in data:
            continue
        if key == "sources" and isinstance(value, dict):
            for source_name, source_value in value.items():
                current = data["sources"].get(source_name)
                if isinstance(source_value, dict) and isinstance(current, dict):
                    current.update(source_value)
                elif source_name in data["sources"]:
                    data["sources"][source_name] = source_value
        elif isinstance(value, dict) and isinstance(data[key], dict):
            data[key].update(value)
        else:
            data[key] = value
    return _fromdict(data)


def _fromdict(data: dict[str, Any]) -> AppConfig:
    """Reconstruct AppConfig from nested dictionary."""
    sources = dict(data["sources"])
    user_agent = sources.pop("user_agent", SourcesConfig().user_agent)
    return AppConfig(
        sources=SourcesConfig(
            **{name: SourceConfig(**values) for name, values in sources.items()},
            user_agent=user_agent,
        ),
        aggregator=AggregatorConfig(**data["aggregator"]),
        dedup=DedupConfig(**data["dedup"]),
        tagger=TaggerConfig(**data["tagger"]),
        cache=CacheConfig(**data["cache"]),
        logging=LoggingConfig(**data["logging"]),
    )


def get_api_key(cfg: SourceConfig) -> str | None:
    """Get API key from inline config or environment variable."""
    if cfg.api_key:
        return cfg.api_key
    if cfg.api_key_env:
        return os.getenv(cfg.api_key_env) or None
    return None
