"""Enumerations, product constants and the genre-similarity table."""

import enum
import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType

logger = logging.getLogger(__name__)


class RecommendationType(str, enum.Enum):
    GENRE_BASED = "genre_based"
    RATING_BASED = "rating_based"
    SIMILAR_USERS = "similar_users"
    TRENDING = "trending"
    NEW_RELEASES = "new_releases"
    FALLBACK = "fallback"


class ShelfStatus(str, enum.Enum):
    WANT_TO_READ = "wantToRead"
    CURRENTLY_READING = "currentlyReading"
    READ = "read"


class ReviewStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Role(str, enum.Enum):
    USER = "user"
    ADMIN = "admin"


RECOMMENDATION_LIMIT = 12
MAX_RECOMMENDATIONS = 18
RECOMMENDATION_EXPIRY_DAYS = 7
MIN_BOOKS_FOR_PERSONALIZATION = 3
MIN_CONFIDENCE_SCORE = 30
DUPLICATE_BOOST = 10
CACHE_MIN_HITS = 5
MAX_SCORE = 100


@dataclass(frozen=True)
class RecommendationParams:
    """Tunable product constants shared by the engine and the store."""

    default_limit: int = RECOMMENDATION_LIMIT
    max_limit: int = MAX_RECOMMENDATIONS
    expiry_days: int = RECOMMENDATION_EXPIRY_DAYS
    min_books_for_personalization: int = MIN_BOOKS_FOR_PERSONALIZATION
    min_confidence_score: int = MIN_CONFIDENCE_SCORE
    duplicate_boost: int = DUPLICATE_BOOST
    cache_min_hits: int = CACHE_MIN_HITS
    strategy_timeout: float | None = None
    store_timeout: float | None = None

    @classmethod
    def from_settings(cls, settings) -> "RecommendationParams":
        return cls(
            default_limit=settings.recommendation_limit,
            max_limit=settings.max_recommendations,
            expiry_days=settings.recommendation_expiry_days,
            min_books_for_personalization=settings.min_books_for_personalization,
            min_confidence_score=settings.min_confidence_score,
            duplicate_boost=settings.duplicate_boost,
            cache_min_hits=settings.cache_min_hits,
            strategy_timeout=settings.strategy_timeout_seconds,
            store_timeout=settings.store_timeout_seconds,
        )

    def clamp_limit(self, limit: int | None) -> int:
        """Apply the default and the hard cap to a requested limit."""
        if limit is None or limit <= 0:
            limit = self.default_limit
        return min(limit, self.max_limit)


GenreSimilarity = Mapping[str, tuple[str, ...]]


def freeze_similarity(table: Mapping[str, list[str] | tuple[str, ...]]) -> GenreSimilarity:
    return MappingProxyType({name: tuple(related) for name, related in table.items()})


GENRE_SIMILARITY: GenreSimilarity = freeze_similarity(
    {
        "Fiction": ["Classics", "Literary Fiction", "Contemporary"],
        "Mystery": ["Thriller", "Crime", "Suspense"],
        "Science Fiction": ["Fantasy", "Dystopian", "Speculative Fiction"],
        "Fantasy": ["Science Fiction", "Adventure", "Young Adult"],
        "Romance": ["Contemporary", "Chick Lit", "Women's Fiction"],
        "Biography": ["Memoir", "History", "Non-Fiction"],
        "Self-Help": ["Psychology", "Business", "Personal Development"],
        "History": ["Biography", "Non-Fiction", "Politics"],
    }
)


def load_genre_similarity(path: str | None) -> GenreSimilarity:
    """Load a replacement similarity table from JSON, or return the built-in one."""
    if not path:
        return GENRE_SIMILARITY
    with Path(path).open(encoding="utf-8") as f:
        raw = json.load(f)
    table = freeze_similarity(raw)
    logger.info("Loaded genre similarity table from %s (%d genres)", path, len(table))
    return table


def similar_genres(favorites: list[str], table: GenreSimilarity) -> list[str]:
    """Related genre names for the given favorites, de-duplicated in order."""
    related: list[str] = []
    for name in favorites:
        for candidate in table.get(name, ()):
            if candidate not in related:
                related.append(candidate)
    return related
