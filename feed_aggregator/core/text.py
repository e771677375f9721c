"""
Text cleaning and comparison helpers.

Used by the deduplicator (title normalization, Jaccard similarity,
content hashing) and the tagger (markup stripping before tokenization).
"""

from __future__ import annotations

import html
import re


TAG_RE = re.compile(r"<!--.*?-->|</?[A-Za-z][^<>]*>", re.DOTALL)
WHITESPACE_RE = re.compile(r"\s+")
SPECIAL_RE = re.compile(r"[^\w\s.,!?;:'\"-]")
PUNCT_RE = re.compile(r"[^\w\s]")
WORD_RE = re.compile(r"[A-Za-z0-9]+(?:'[A-Za-z]+)?")


def clean_text(text: str | None) -> str:
    """Strip markup, decode entities, collapse whitespace.

    Characters other than word characters, whitespace and basic
    punctuation are removed.

    Examples:
        >>> clean_text("<p>Tom &amp; Jerry</p>  return")
        'Tom Jerry return'
    """
    if not text or not isinstance(text, str):
        return ""
    cleaned = TAG_RE.sub(" ", text)
    cleaned = html.unescape(cleaned)
    cleaned = WHITESPACE_RE.sub(" ", cleaned)
    cleaned = SPECIAL_RE.sub("", cleaned)
    return WHITESPACE_RE.sub(" ", cleaned).strip()


def normalize_text(text: str | None) -> str:
    """Lower-cased, punctuation-free form of ``clean_text`` for comparisons."""
    cleaned = clean_text(text).lower()
    cleaned = PUNCT_RE.sub("", cleaned)
    return WHITESPACE_RE.sub(" ", cleaned).strip()


def tokenize(text: str) -> list[str]:
    return WORD_RE.findall(text)


def word_set(text: str | None) -> set[str]:
    normalized = normalize_text(text)
    return set(normalized.split()) if normalized else set()


def jaccard_similarity(first: str | None, second: str | None) -> float:
    """Intersection over union of the normalized word sets of two strings.

    Returns 0.0 when both strings are empty after normalization.
    """
    return set_similarity(word_set(first), word_set(second))


def set_similarity(words1: set[str], words2: set[str]) -> float:
    union = words1 | words2
    if not union:
        return 0.0
    return len(words1 & words2) / len(union)
