"""
Keyword and category tagging for articles.

Keywords are ranked by term frequency times an approximate inverse document
frequency. The document frequencies come from an online corpus counter that
grows as articles are absorbed, not from a fixed snapshot, so the IDF of a
term drifts as the corpus grows. Category tags come from a static lexicon.
"""

from __future__ import annotations

from collections import Counter, defaultdict
import logging
import math
import re
import threading
from typing import Any, Iterable, Mapping

from nltk.stem import PorterStemmer

from ..config import TaggerConfig
from .errors import TaggingError
from .store import ArticleStore
from .text import clean_text, tokenize
from .types import TaggerStats, unique_tags


logger = logging.getLogger(__name__)

LETTER_RE = re.compile(r"[A-Za-z]")


class Tagger:
    """TF-IDF keyword extractor with a category lexicon and a fallback path."""

    def __init__(self, cfg: TaggerConfig | None = None):
        cfg = cfg or TaggerConfig()
        self.max_keywords = cfg.max_keywords
        self.min_keyword_length = cfg.min_keyword_length
        self.min_term_frequency = cfg.min_term_frequency
        self.corpus_seed_limit = cfg.corpus_seed_limit
        self.stopwords = frozenset(word.lower() for word in cfg.stopwords)
        self.common_words = frozenset(word.lower() for word in cfg.common_words)
        self.category_keywords = {
            category: [keyword.lower() for keyword in keywords]
            for category, keywords in cfg.category_keywords.items()
        }
        self._category_patterns = {
            category: [re.compile(r"\b" + re.escape(keyword)) for keyword in keywords]
            for category, keywords in self.category_keywords.items()
        }
        self._stemmer = PorterStemmer()
        self._corpus: Counter[str] = Counter()
        self._documents = 0
        self._lock = threading.Lock()

    def extract_tags(self, title: str | None, description: str | None) -> list[str]:
        """Extract up to ``max_keywords`` tags from an article's title and description.

        Never raises: any failure in the primary path, or an empty result,
        switches to the lexicon-based fallback.
        """
        title = title or ""
        description = description or ""
        try:
            tags = self._extract_primary(title, description)
        except Exception as exc:  # noqa: BLE001
            error = TaggingError(f"{type(exc).__name__}: {exc}")
            logger.error("Tag extraction failed, using fallback: %s", error)
            return self.fallback_tags(title, description)
        if not tags:
            return self.fallback_tags(title, description)
        logger.debug("Extracted %d tags from %.50s", len(tags), title)
        return tags

    def _extract_primary(self, title: str, description: str) -> list[str]:
        cleaned = clean_text(f"{title} {description}")
        keywords = self.extract_keywords(cleaned)
        category_tags = self.map_to_categories(keywords, cleaned)
        return self.filter_tags(unique_tags([*keywords, *category_tags]))[: self.max_keywords]

    def extract_keywords(self, text: str) -> list[str]:
        """Return the top-scoring keywords of ``text`` in their surface form.

        Terms are grouped by stem; each stem is reported using the spelling
        that occurs most often in the text.
        """
        term_freq: Counter[str] = Counter()
        surface: dict[str, Counter[str]] = defaultdict(Counter)
        for token in tokenize(text):
            word = token.lower()
            if not self._is_valid_token(word):
                continue
            stem = self._stemmer.stem(word)
            term_freq[stem] += 1
            surface[stem][word] += 1

        candidates = [
            (term, freq) for term, freq in term_freq.most_common() if freq >= self.min_term_frequency
        ]
        total_docs = max(self._documents, 1)
        scored = []
        for term, freq in candidates:
            idf = math.log(total_docs / max(self._corpus.get(term, 0), 1))
            scored.append((freq * idf, freq, term))
        scored.sort(key=lambda item: (item[0], item[1]), reverse=True)
        return [surface[term].most_common(1)[0][0] for _, _, term in scored[: self.max_keywords]]

    def map_to_categories(self, keywords: Iterable[str], text: str) -> list[str]:
        """Return categories whose lexicon matches the text or a keyword.

        Lexicon entries match case-insensitively at the start of a word, so
        "sport" matches "sports" but "ai" does not match "said".
        """
        lowered = text.lower()
        keywords = [keyword.lower() for keyword in keywords]
        matched = []
        for category, patterns in self._category_patterns.items():
            lexicon = self.category_keywords[category]
            if any(pattern.search(lowered) for pattern in patterns) or any(
                keyword == entry or (len(entry) >= 3 and keyword.startswith(entry))
                for keyword in keywords
                for entry in lexicon
            ):
                matched.append(category)
        return matched

    def filter_tags(self, tags: Iterable[str]) -> list[str]:
        return [
            tag
            for tag in tags
            if len(tag) >= self.min_keyword_length
            and tag.lower() not in self.stopwords
            and tag.lower() not in self.common_words
            and LETTER_RE.search(tag)
        ]

    def fallback_tags(self, title: str | None, description: str | None) -> list[str]:
        """Lexicon categories plus the first few long words of the text."""
        try:
            cleaned = clean_text(f"{title or ''} {description or ''}")
            categories = self.map_to_categories([], cleaned)
            words = [
                word
                for word in (token.lower() for token in tokenize(cleaned))
                if len(word) >= 4 and LETTER_RE.search(word) and word not in self.stopwords
            ][:3]
            return unique_tags([*categories, *words])[: self.max_keywords]
        except Exception as exc:  # noqa: BLE001
            logger.error("Fallback tagging failed: %s", exc)
            return []

    def _is_valid_token(self, word: str) -> bool:
        return len(word) >= self.min_keyword_length and word not in self.stopwords and not word.isdigit()

    def update_corpus(self, documents: Iterable[Any]) -> int:
        """Count each distinct stemmed term once per document.

        Documents are Articles or mappings with ``title`` and ``description``.

        Returns:
            Number of documents absorbed
        """
        processed = 0
        for doc in documents:
            title, description = _document_text(doc)
            terms = {
                self._stemmer.stem(token.lower())
                for token in tokenize(clean_text(f"{title} {description}"))
            }
            with self._lock:
                self._corpus.update(terms)
                self._documents += 1
            processed += 1
        logger.info("Updated corpus with %d documents", processed)
        return processed

    async def initialize(self, store: ArticleStore) -> int:
        """Seed the corpus from recently stored articles."""
        try:
            recent = await store.load_recent(self.corpus_seed_limit)
        except Exception as exc:  # noqa: BLE001
            logger.error("Failed to initialize tagger corpus: %s", exc)
            return 0
        if not recent:
            return 0
        count = self.update_corpus(recent)
        logger.info("Tagger initialized with %d articles", count)
        return count

    def document_frequency(self, word: str) -> int:
        return self._corpus.get(self._stemmer.stem(word.lower()), 0)

    def get_stats(self) -> TaggerStats:
        return TaggerStats(
            corpus_size=len(self._corpus),
            corpus_documents=self._documents,
            max_keywords=self.max_keywords,
            min_keyword_length=self.min_keyword_length,
            min_term_frequency=self.min_term_frequency,
            stopwords_count=len(self.stopwords),
        )

    def clear_corpus(self) -> None:
        with self._lock:
            self._corpus.clear()
            self._documents = 0
        logger.info("Tagger corpus cleared")


def _document_text(doc: Any) -> tuple[str, str]:
    if isinstance(doc, Mapping):
        return str(doc.get("title") or ""), str(doc.get("description") or "")
    return str(getattr(doc, "title", "") or ""), str(getattr(doc, "description", "") or "")
