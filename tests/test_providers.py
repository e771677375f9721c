"""Tests for the source adapters against mocked provider payloads."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import httpx
import pytest

from feed_aggregator.config import SourceConfig, SourcesConfig
from feed_aggregator.core.errors import AdapterFetchError, ConfigurationError
from feed_aggregator.core.types import Category, FetchOptions
from feed_aggregator.fetch.fetcher import fetch_url
from feed_aggregator.providers import (
    BbcAdapter,
    GuardianAdapter,
    NewsApiAdapter,
    NytAdapter,
    available_adapters,
    build_adapters,
    create_adapter,
)


BBC_RSS = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:media="http://search.yahoo.com/mrss/">
  <channel>
    <title>BBC News - Health</title>
    <link>https://www.bbc.co.uk/news</link>
    <description>BBC News - Health</description>
    <item>
      <title>NHS waiting lists fall</title>
      <description>Health service figures improve for a third month</description>
      <link>https://www.bbc.co.uk/news/health-123</link>
      <pubDate>Wed, 01 May 2024 10:00:00 GMT</pubDate>
      <media:thumbnail width="240" height="135" url="https://ichef.bbci.co.uk/a.jpg"/>
    </item>
    <item>
      <title>Markets rally on tech earnings</title>
      <description>Shares rise sharply</description>
      <link>https://www.bbc.co.uk/news/business-456</link>
      <pubDate>Wed, 01 May 2024 09:00:00 GMT</pubDate>
    </item>
  </channel>
</rss>
"""


def _run(adapter_cls, cfg, handler, call):
    async def scenario():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            adapter = adapter_cls(cfg, client=client)
            return await call(adapter)

    return asyncio.run(scenario())


def test_newsapi_headlines_are_normalized():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        seen["agent"] = request.headers["User-Agent"]
        return httpx.Response(
            200,
            json={
                "status": "ok",
                "articles": [
                    {
                        "title": "AI chips surge",
                        "url": "https://wired.com/ai-chips",
                        "description": "<b>Demand</b> keeps rising",
                        "publishedAt": "2024-05-01T10:00:00Z",
                        "source": {"id": None, "name": "Wired"},
                        "urlToImage": "https://wired.com/img.jpg",
                        "author": "Sam Writer",
                    },
                    {"title": "[Removed]", "url": "https://removed.com"},
                    {"title": "No link"},
                ],
            },
        )

    cfg = SourceConfig(api_key="k", base_url="https://newsapi.org/v2", weight=1.0)
    articles = _run(
        NewsApiAdapter, cfg, handler, lambda a: a.fetch_headlines(FetchOptions(category="technology"))
    )

    assert seen["path"] == "/v2/top-headlines"
    assert seen["params"]["category"] == "technology"
    assert seen["params"]["apiKey"] == "k"
    assert seen["agent"] == "FeedAggregator/1.0"
    assert len(articles) == 1
    article = articles[0]
    assert article.id.startswith("newsapi_")
    assert len(article.id) == len("newsapi_") + 16
    assert article.api_source == "newsapi"
    assert article.source.id == "newsapi"
    assert article.source.name == "Wired"
    assert article.category is Category.TECHNOLOGY
    assert article.description == "Demand keeps rising"
    assert article.published_at == datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)
    assert "ai" in article.tags


def test_newsapi_error_status_is_malformed_payload():
    def handler(request):
        return httpx.Response(200, json={"status": "error", "message": "apiKey invalid"})

    cfg = SourceConfig(api_key="bad", base_url="https://newsapi.org/v2")
    with pytest.raises(AdapterFetchError, match="apiKey invalid"):
        _run(NewsApiAdapter, cfg, handler, lambda a: a.search_news(FetchOptions(query="rates")))


def test_newsapi_blank_search_falls_back_to_headlines():
    paths = []

    def handler(request):
        paths.append(request.url.path)
        return httpx.Response(200, json={"status": "ok", "articles": []})

    cfg = SourceConfig(api_key="k", base_url="https://newsapi.org/v2")
    assert _run(NewsApiAdapter, cfg, handler, lambda a: a.search_news(FetchOptions(query="  "))) == []
    assert paths == ["/v2/top-headlines"]


def test_missing_key_makes_adapter_unavailable(monkeypatch):
    monkeypatch.delenv("NEWSAPI_KEY", raising=False)
    adapter = NewsApiAdapter(SourceConfig(api_key_env="NEWSAPI_KEY", base_url="https://newsapi.org/v2"))

    assert adapter.is_available() is False
    with pytest.raises(AdapterFetchError, match="not configured"):
        asyncio.run(adapter.fetch_headlines(FetchOptions()))


def test_guardian_maps_section_and_keyword_tags():
    seen = {}

    def handler(request):
        seen["params"] = dict(request.url.params)
        return httpx.Response(
            200,
            json={
                "response": {
                    "status": "ok",
                    "results": [
                        {
                            "webTitle": "Champions league final set",
                            "webUrl": "https://www.theguardian.com/football/2024/may/01/final",
                            "webPublicationDate": "2024-05-01T12:00:00Z",
                            "sectionId": "sport",
                            "fields": {
                                "trailText": "<p>Big <b>night</b> ahead</p>",
                                "thumbnail": "https://i.guim.co.uk/t.jpg",
                                "byline": "A Writer",
                            },
                            "tags": [{"webTitle": "Football"}, {"id": "no-title"}],
                        }
                    ],
                }
            },
        )

    cfg = SourceConfig(api_key="g", base_url="https://content.guardianapis.com", weight=0.9)
    articles = _run(GuardianAdapter, cfg, handler, lambda a: a.fetch_headlines(FetchOptions(category="sports")))

    assert seen["params"]["section"] == "sport"
    assert seen["params"]["show-tags"] == "keyword"
    assert seen["params"]["order-by"] == "newest"
    article = articles[0]
    assert article.category is Category.SPORTS
    assert article.description == "Big night ahead"
    assert article.author == "A Writer"
    assert article.image_url == "https://i.guim.co.uk/t.jpg"
    assert article.source.name == "The Guardian"
    assert "football" in article.tags


def test_guardian_non_ok_response_raises():
    def handler(request):
        return httpx.Response(200, json={"response": {"status": "error", "message": "Invalid key"}})

    cfg = SourceConfig(api_key="g", base_url="https://content.guardianapis.com")
    with pytest.raises(AdapterFetchError, match="Invalid key"):
        _run(GuardianAdapter, cfg, handler, lambda a: a.fetch_headlines(FetchOptions()))


def test_nyt_top_stories_are_normalized():
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        return httpx.Response(
            200,
            json={
                "results": [
                    {
                        "title": "Tech giants bet on AI",
                        "url": "https://www.nytimes.com/2024/05/01/technology/ai.html",
                        "abstract": "Spending keeps climbing.",
                        "published_date": "2024-05-01T08:00:00-04:00",
                        "section": "technology",
                        "subsection": "",
                        "des_facet": ["Artificial Intelligence"],
                        "byline": "By Jane Doe",
                        "multimedia": [
                            {"url": "https://static01.nyt.com/images/thumb.jpg", "format": "Standard Thumbnail"},
                            {"url": "https://static01.nyt.com/images/big.jpg", "format": "Super Jumbo"},
                        ],
                    },
                    {"title": "", "url": "https://www.nytimes.com/empty"},
                ]
            },
        )

    cfg = SourceConfig(api_key="n", base_url="https://api.nytimes.com/svc", weight=0.9)
    articles = _run(NytAdapter, cfg, handler, lambda a: a.fetch_headlines(FetchOptions(category="technology")))

    assert seen["path"] == "/svc/topstories/v2/technology.json"
    assert len(articles) == 1
    article = articles[0]
    assert article.author == "Jane Doe"
    assert article.image_url == "https://static01.nyt.com/images/big.jpg"
    assert article.category is Category.TECHNOLOGY
    assert article.published_at == datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    assert {"technology", "artificial intelligence", "ai"} <= set(article.tags)


def test_nyt_search_uses_article_search_shape():
    def handler(request):
        assert request.url.path == "/svc/search/v2/articlesearch.json"
        assert request.url.params["q"] == "election"
        return httpx.Response(
            200,
            json={
                "response": {
                    "docs": [
                        {
                            "headline": {"main": "Election results are in"},
                            "web_url": "https://www.nytimes.com/2024/05/02/us/election.html",
                            "pub_date": "2024-05-02T00:00:00+0000",
                            "section_name": "U.S.",
                            "byline": {"original": "By John Roe"},
                            "multimedia": [{"url": "images/2024/x.jpg", "subtype": "large"}],
                        }
                    ]
                }
            },
        )

    cfg = SourceConfig(api_key="n", base_url="https://api.nytimes.com/svc")
    articles = _run(NytAdapter, cfg, handler, lambda a: a.search_news(FetchOptions(query="election")))

    article = articles[0]
    assert article.title == "Election results are in"
    assert article.category is Category.POLITICS
    assert article.author == "John Roe"
    assert article.image_url == "https://static01.nyt.com/images/2024/x.jpg"
    assert article.published_at == datetime(2024, 5, 2, tzinfo=timezone.utc)


def test_bbc_parses_rss_without_credentials():
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        return httpx.Response(200, text=BBC_RSS, headers={"Content-Type": "application/rss+xml"})

    cfg = SourceConfig(base_url="https://feeds.bbci.co.uk", weight=0.8)
    articles = _run(BbcAdapter, cfg, handler, lambda a: a.fetch_headlines(FetchOptions(category="health")))

    assert seen["path"] == "/news/health/rss.xml"
    assert [a.title for a in articles] == ["NHS waiting lists fall", "Markets rally on tech earnings"]
    first, second = articles
    assert first.category is Category.HEALTH
    assert first.image_url == "https://ichef.bbci.co.uk/a.jpg"
    assert first.published_at == datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)
    assert first.author is None
    assert second.category is Category.BUSINESS
    assert BbcAdapter(cfg).is_available() is True


def test_bbc_search_filters_headlines_by_substring():
    def handler(request):
        return httpx.Response(200, text=BBC_RSS)

    cfg = SourceConfig(base_url="https://feeds.bbci.co.uk")
    articles = _run(BbcAdapter, cfg, handler, lambda a: a.search_news(FetchOptions(query="MARKETS")))

    assert [a.title for a in articles] == ["Markets rally on tech earnings"]


def test_http_error_status_raises_adapter_fetch_error():
    def handler(request):
        return httpx.Response(503, text="unavailable")

    cfg = SourceConfig(base_url="https://feeds.bbci.co.uk")
    with pytest.raises(AdapterFetchError) as exc_info:
        _run(BbcAdapter, cfg, handler, lambda a: a.fetch_headlines(FetchOptions()))

    assert exc_info.value.status_code == 503
    assert exc_info.value.source == "bbc"


def test_malformed_json_raises_adapter_fetch_error():
    def handler(request):
        return httpx.Response(200, text="<html>not json</html>")

    cfg = SourceConfig(api_key="n", base_url="https://api.nytimes.com/svc")
    with pytest.raises(AdapterFetchError, match="malformed JSON"):
        _run(NytAdapter, cfg, handler, lambda a: a.fetch_headlines(FetchOptions()))


def test_fetch_url_reports_timeouts_and_transport_errors():
    def timeout_handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    def broken_handler(request):
        raise httpx.ConnectError("refused", request=request)

    async def scenario(handler):
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await fetch_url("https://example.com/feed", timeout=2.0, client=client)

    timed_out = asyncio.run(scenario(timeout_handler))
    refused = asyncio.run(scenario(broken_handler))

    assert timed_out.error == "timed out after 2.0s"
    assert timed_out.text is None
    assert refused.error.startswith("ConnectError")
    assert refused.status_code is None


def test_factory_builds_enabled_adapters_in_priority_order():
    cfg = SourcesConfig()
    cfg.nyt.enabled = False

    adapters = build_adapters(cfg)

    assert [adapter.name for adapter in adapters] == ["newsapi", "guardian", "bbc"]
    assert available_adapters() == ["bbc", "guardian", "newsapi", "nyt"]
    assert isinstance(create_adapter("BBC", cfg.bbc), BbcAdapter)
    with pytest.raises(ConfigurationError, match="Unsupported source"):
        create_adapter("reuters", cfg.bbc)
