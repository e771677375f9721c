"""Tests for YAML configuration loading and API key resolution."""

from __future__ import annotations

from feed_aggregator.config import AppConfig, SourceConfig, get_api_key, load_config


def test_load_config_without_path_returns_defaults():
    cfg = load_config(None)

    assert cfg == AppConfig()
    assert cfg.aggregator.cache_ttl == 300
    assert cfg.dedup.cache_capacity == 10_000
    assert cfg.sources.newsapi.weight == 1.0
    assert cfg.sources.bbc.weight == 0.8


def test_load_config_merges_sections_over_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "\n".join(
            [
                "aggregator:",
                "  cache_ttl: 60",
                "sources:",
                "  user_agent: TestAgent/2.0",
                "  newsapi:",
                "    weight: 0.7",
                "  nyt:",
                "    enabled: false",
                "dedup:",
                "  cache_capacity: 5",
                "cache:",
                "  backend: redis",
                "unknown_section:",
                "  ignored: true",
            ]
        ),
        encoding="utf-8",
    )

    cfg = load_config(str(path))

    assert cfg.aggregator.cache_ttl == 60
    assert cfg.aggregator.default_limit == 50
    assert cfg.sources.user_agent == "TestAgent/2.0"
    assert cfg.sources.newsapi.weight == 0.7
    assert cfg.sources.newsapi.base_url == "https://newsapi.org/v2"
    assert cfg.sources.newsapi.api_key_env == "NEWSAPI_KEY"
    assert cfg.sources.nyt.enabled is False
    assert cfg.sources.guardian.weight == 0.9
    assert cfg.dedup.cache_capacity == 5
    assert cfg.dedup.tracking_params[0] == "utm_*"
    assert cfg.cache.backend == "redis"


def test_load_config_handles_empty_file(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")

    assert load_config(str(path)) == AppConfig()


def test_get_api_key_prefers_inline_then_env(monkeypatch):
    monkeypatch.setenv("TEST_FEED_KEY", "env-key")

    assert get_api_key(SourceConfig(api_key="inline", api_key_env="TEST_FEED_KEY")) == "inline"
    assert get_api_key(SourceConfig(api_key_env="TEST_FEED_KEY")) == "env-key"

    monkeypatch.setenv("TEST_FEED_KEY", "")
    assert get_api_key(SourceConfig(api_key_env="TEST_FEED_KEY")) is None
    assert get_api_key(SourceConfig()) is None
