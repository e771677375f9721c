"""Static word lists shared by the tagger, the adapters and configuration defaults."""

from __future__ import annotations


STOPWORDS: tuple[str, ...] = (
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for",
    "of", "with", "by", "from", "up", "about", "into", "through", "during",
    "before", "after", "above", "below", "between", "among", "is", "are",
    "was", "were", "be", "been", "being", "have", "has", "had", "do",
    "does", "did", "will", "would", "could", "should", "may", "might",
    "must", "can", "this", "that", "these", "those", "i", "you", "he",
    "she", "it", "we", "they", "me", "him", "her", "us", "them",
)

# Words too generic to be useful as tags even when they score well.
COMMON_WORDS: tuple[str, ...] = (
    "said", "say", "says", "new", "news", "report", "reports",
    "year", "years", "day", "days", "time", "times", "people",
    "world", "country", "state", "city", "government", "company",
    "business", "market", "money", "million", "billion", "percent",
)

CATEGORY_KEYWORDS: dict[str, tuple[str, ...]] = {
    "technology": (
        "tech", "software", "ai", "artificial intelligence", "machine learning",
        "startup", "google", "microsoft", "apple", "facebook", "amazon", "tesla",
        "programming", "coding", "developer", "app", "mobile", "internet",
    ),
    "business": (
        "business", "market", "stock", "revenue", "earnings", "economy", "finance",
        "investment", "trading", "cryptocurrency", "bitcoin", "company", "corporate",
    ),
    "sports": (
        "sport", "football", "basketball", "soccer", "baseball", "tennis", "olympics",
        "nba", "nfl", "mlb", "championship", "tournament", "match", "game", "player",
    ),
    "health": (
        "health", "medical", "doctor", "hospital", "covid", "vaccine", "treatment",
        "disease", "medicine", "drug", "research", "study", "patient", "surgery",
    ),
    "science": (
        "science", "research", "study", "discovery", "experiment", "space", "nasa",
        "climate", "environment", "nature", "biology", "chemistry", "physics",
    ),
    "entertainment": (
        "movie", "film", "music", "celebrity", "show", "television", "netflix",
        "hollywood", "actor", "actress", "director", "award", "festival",
    ),
    "politics": (
        "politics", "government", "election", "president", "minister", "congress",
        "parliament", "policy", "law", "bill", "vote", "campaign", "democracy",
    ),
}

# Title keywords every adapter checks to seed an article's tags.
DOMAIN_TAGS: tuple[str, ...] = (
    "ai", "technology", "business", "politics", "sports", "health", "science",
)
