"""
Structured, reusable explanation templates for recommendations.

Design Principles:
  1. Templates are immutable dataclass objects, no inline strings in strategies.
  2. Each template has a fallback sentence used when rendering fails.
  3. Reason helpers format numbers the same way everywhere.
"""

import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)

GENERIC_EXPLANATION = "Recommended for you"


@dataclass(frozen=True)
class ExplanationTemplate:
    """
    Immutable explanation template.

    Attributes:
        name:     Unique identifier for logging.
        text:     Sentence with {variable} placeholders.
        fallback: Sentence used when placeholders cannot be filled.
    """

    name: str
    text: str
    fallback: str = GENERIC_EXPLANATION

    def render(self, **kwargs: object) -> str:
        """Fill the placeholders, degrading to the fallback sentence on error."""
        try:
            return self.text.format(**kwargs)
        except (KeyError, IndexError, ValueError) as exc:
            logger.warning("Explanation template %s failed to render: %s", self.name, exc)
            return self.fallback


GENRE_BASED = ExplanationTemplate(
    name="genre_based",
    text="You enjoy {genre} books and have read {count} of them",
    fallback="Matches genres you enjoy",
)

RATING_BASED = ExplanationTemplate(
    name="rating_based",
    text="Matches your average rating of {avg_rating:.1f} stars",
    fallback="Matches your rating preferences",
)

SIMILAR_USERS = ExplanationTemplate(
    name="similar_users",
    text="{count} readers with similar tastes enjoyed this book",
    fallback="Readers with similar tastes enjoyed this book",
)

TRENDING = ExplanationTemplate(
    name="trending",
    text="Currently popular in the BookWorm community",
)

NEW_RELEASES = ExplanationTemplate(
    name="new_releases",
    text="New release in your favorite genre{plural}: {genres}",
    fallback="Fresh addition to the BookWorm catalog",
)

FALLBACK = ExplanationTemplate(
    name="fallback",
    text="Popular choice among BookWorm readers",
)

MULTI_FACTOR = ExplanationTemplate(
    name="multi_factor",
    text="Recommended based on {count} factors",
)


# ── Render Helpers ───────────────────────────────────────────────


def render_new_releases(genre_names: list[str]) -> str:
    if not genre_names:
        return NEW_RELEASES.fallback
    return NEW_RELEASES.render(
        plural="s" if len(genre_names) > 1 else "",
        genres=", ".join(genre_names),
    )


def rated_reason(average_rating: float, prefix: str = "Highly rated") -> str:
    return f"{prefix} ({average_rating:.1f} stars)"


def readers_reason(total_shelved: int, prefix: str = "Popular choice") -> str:
    return f"{prefix} ({total_shelved:,} readers)"


def reviews_reason(total_reviews: int, prefix: str = "Well-reviewed") -> str:
    return f"{prefix} ({total_reviews:,} reviews)"
