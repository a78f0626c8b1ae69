"""Pure scoring rules and derived book fields.

Every function here takes plain values or a `BookSnapshot`, so the rules can
be tested without a database and without knowing how books are stored.
"""

import math
from datetime import datetime

from app.domain.constants import MAX_SCORE, MIN_CONFIDENCE_SCORE
from app.ports.catalog import BookSnapshot

WORDS_PER_PAGE = 250
WORDS_PER_MINUTE = 200
READING_HOURS_PER_DAY = 1


def clamp(score: float, low: float = 0, high: float = MAX_SCORE) -> float:
    return max(low, min(high, score))


# ── Strategy scores ──────────────────────────────────────────────


def genre_score(book: BookSnapshot, is_favorite: bool, is_similar: bool) -> float:
    score = 70
    if is_favorite:
        score += 20
    elif is_similar:
        score += 10
    if book.average_rating >= 4:
        score += 10
    if book.total_shelved > 1000:
        score += 10
    return min(MAX_SCORE, score)


def rating_score(
    book: BookSnapshot, user_average: float, floor: float = MIN_CONFIDENCE_SCORE
) -> float:
    score = 80 - abs(book.average_rating - user_average) * 10
    if book.total_shelved > 500:
        score += 10
    if book.total_reviews > 50:
        score += 10
    return clamp(score, floor)


def co_occurrence_score(count: int, max_count: int) -> float:
    """Scale a co-occurrence count onto 30-100 relative to the strongest one."""
    if max_count <= 0:
        return MIN_CONFIDENCE_SCORE
    return min(MAX_SCORE, (count / max_count) * 70 + 30)


def trending_score(
    book: BookSnapshot, position: int, floor: float = MIN_CONFIDENCE_SCORE
) -> float:
    score = 60
    if book.total_shelved > 1000:
        score += 20
    if book.total_shelved > 5000:
        score += 10
    if book.average_rating >= 4.5:
        score += 10
    score -= position * 2
    return clamp(score, floor)


def new_release_score(
    is_favorite: bool, position: int, floor: float = MIN_CONFIDENCE_SCORE
) -> float:
    score = 50
    if is_favorite:
        score += 30
    score -= position * 3
    return clamp(score, floor)


def fallback_score(position: int, floor: float = MIN_CONFIDENCE_SCORE) -> float:
    return clamp(80 - position * 5, floor)


def rating_to_score(average_rating: float) -> int:
    """Convert a 5-star average to the 100-point scale."""
    return min(MAX_SCORE, math.floor(average_rating * 20))


# ── Derived book fields ──────────────────────────────────────────


def estimated_reading_hours(total_pages: int) -> int:
    minutes = total_pages * WORDS_PER_PAGE / WORDS_PER_MINUTE
    return math.ceil(minutes / 60)


def estimated_reading_days(total_pages: int) -> int:
    return math.ceil(estimated_reading_hours(total_pages) / READING_HOURS_PER_DAY)


def popularity_score(average_rating: float, total_shelved: int) -> float:
    """Weighted blend of rating (60%) and log-scaled shelf count (40%)."""
    normalized_rating = average_rating / 5
    normalized_shelved = math.log10(total_shelved + 1) / math.log10(1000)
    return (normalized_rating * 0.6 + normalized_shelved * 0.4) * 100


def time_ago(created_at: datetime, now: datetime) -> str:
    days = max(0, (now - created_at).days)
    if days < 7:
        return f"{days} days ago"
    if days < 30:
        return f"{days // 7} weeks ago"
    return f"{days // 30} months ago"
