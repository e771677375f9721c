"""Tests for keyword extraction, category mapping and the fallback tagger."""

from __future__ import annotations

import asyncio

from feed_aggregator.config import TaggerConfig
from feed_aggregator.core.store import MemoryArticleStore
from feed_aggregator.core.tagger import Tagger
from feed_aggregator.core.types import Article, ArticleSource


def test_extract_tags_returns_keywords_and_categories():
    tagger = Tagger()

    tags = tagger.extract_tags(
        "Python Python release",
        "Python developers celebrate the Python release",
    )

    assert "python" in tags
    assert "release" in tags
    assert "technology" in tags
    assert len(tags) <= tagger.max_keywords


def test_extract_tags_never_exceeds_max_keywords():
    tagger = Tagger(TaggerConfig(max_keywords=2))

    tags = tagger.extract_tags(
        "Football football election election vaccine vaccine",
        "Football election vaccine coverage across the football season",
    )

    assert 0 < len(tags) <= 2


def test_keywords_prefer_terms_rare_in_corpus():
    tagger = Tagger(TaggerConfig(max_keywords=1))
    tagger.update_corpus(
        [
            {"title": "Markets open", "description": "market update"},
            {"title": "Markets close", "description": "market wrap"},
            {"title": "Markets flat", "description": "market calm"},
        ]
    )

    assert tagger.extract_keywords("markets markets rally rallies") == ["rally"]


def test_category_lexicon_matches_word_starts_only():
    tagger = Tagger()

    assert tagger.map_to_categories([], "officials said on thursday") == []
    assert tagger.map_to_categories([], "New AI model from a startup") == ["technology"]
    assert "sports" in tagger.map_to_categories(["footballers"], "")


def test_filter_tags_drops_short_stopword_common_and_numeric_tags():
    tagger = Tagger()

    assert tagger.filter_tags(["ai", "the", "said", "2024", "robotics"]) == ["robotics"]


def test_primary_failure_uses_fallback(monkeypatch):
    tagger = Tagger()

    def explode(title, description):
        raise RuntimeError("boom")

    monkeypatch.setattr(tagger, "_extract_primary", explode)

    tags = tagger.extract_tags("Football championship final tonight", None)

    assert tags[0] == "sports"
    assert "football" in tags
    assert len(tags) <= tagger.max_keywords


def test_empty_primary_result_uses_fallback():
    tagger = Tagger()

    assert tagger._extract_primary("Stock market rally", "") == []

    tags = tagger.extract_tags("Stock market rally", None)

    assert "business" in tags
    assert "stock" in tags
    assert "rally" in tags
    assert len(tags) <= tagger.max_keywords


def test_empty_input_yields_no_tags_without_raising():
    tagger = Tagger()

    assert tagger.extract_tags(None, None) == []
    assert tagger.fallback_tags("", "") == []


def test_update_corpus_counts_each_term_once_per_document():
    tagger = Tagger()

    processed = tagger.update_corpus(
        [
            {"title": "Vaccine vaccine vaccine", "description": ""},
            {"title": "Vaccine trial", "description": "results"},
        ]
    )

    assert processed == 2
    assert tagger.document_frequency("vaccines") == 2
    assert tagger.document_frequency("trial") == 1
    stats = tagger.get_stats()
    assert stats.corpus_documents == 2

    tagger.clear_corpus()
    assert tagger.get_stats().corpus_size == 0


def test_initialize_seeds_corpus_from_store():
    store = MemoryArticleStore(
        [
            Article(
                id=f"t_{index}",
                title=f"Climate report {index}",
                description="Scientists publish findings",
                url=f"https://example.com/{index}",
                published_at=None,
                source=ArticleSource(id="t", name="Test"),
            )
            for index in range(3)
        ]
    )
    tagger = Tagger()

    assert asyncio.run(tagger.initialize(store)) == 3
    assert tagger.document_frequency("climate") == 3
