"""Rule-based recommender: independent scoring strategies merged by the aggregator."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from uuid import UUID

from app.domain import scoring
from app.domain.aggregation import aggregate
from app.domain.constants import (
    GENRE_SIMILARITY,
    GenreSimilarity,
    RecommendationParams,
    RecommendationType,
    ShelfStatus,
    similar_genres,
)
from app.domain.models import utcnow
from app.explanations import templates
from app.ports.catalog import BookOrder, BookSnapshot, CatalogPort
from app.ports.recommender import BookRecommendation, RecommenderPort, StrategyResult

logger = logging.getLogger(__name__)

Strategy = Callable[[UUID, int], Awaitable[list[BookRecommendation]]]

PERSONALIZED_STRATEGIES = (
    RecommendationType.GENRE_BASED,
    RecommendationType.RATING_BASED,
    RecommendationType.SIMILAR_USERS,
    RecommendationType.TRENDING,
    RecommendationType.NEW_RELEASES,
)
COLD_START_STRATEGIES = (RecommendationType.FALLBACK, RecommendationType.TRENDING)

HIGH_RATING = 4
NEW_RELEASE_WINDOW = timedelta(days=182)


@dataclass
class _CoOccurrence:
    count: int
    book: BookSnapshot


class RuleBasedRecommenderAdapter(RecommenderPort):
    """
    Combines genre, rating, similar-user, trending and new-release strategies.

    Users with fewer than `min_books_for_personalization` books marked read get
    the cold-start blend (fallback + trending) instead. Unknown users get the
    fallback strategy only.
    """

    def __init__(
        self,
        catalog: CatalogPort,
        params: RecommendationParams | None = None,
        similarity: GenreSimilarity = GENRE_SIMILARITY,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._catalog = catalog
        self._params = params or RecommendationParams()
        self._similarity = similarity
        self._clock = clock
        self.strategies: dict[RecommendationType, Strategy] = {
            RecommendationType.GENRE_BASED: self._genre_based,
            RecommendationType.RATING_BASED: self._rating_based,
            RecommendationType.SIMILAR_USERS: self._similar_users,
            RecommendationType.TRENDING: self._trending,
            RecommendationType.NEW_RELEASES: self._new_releases,
            RecommendationType.FALLBACK: self._fallback,
        }

    async def recommend(
        self, user_id: UUID, limit: int | None = None
    ) -> list[BookRecommendation]:
        limit = self._params.clamp_limit(limit)
        kinds = await self.select_strategies(user_id)

        results = await self.run_strategies(user_id, kinds, limit)
        recommendations = aggregate(results, limit, boost=self._params.duplicate_boost)
        logger.info(
            "Generated %d recommendations for user %s (strategies=%s)",
            len(recommendations),
            user_id,
            ",".join(kind.value for kind in kinds),
        )
        return recommendations

    async def select_strategies(self, user_id: UUID) -> tuple[RecommendationType, ...]:
        """Strategies for this user; the cold-start blend when the lookup fails."""
        try:
            user = await asyncio.wait_for(
                self._catalog.get_user(user_id), timeout=self._params.strategy_timeout
            )
            if user is None:
                return (RecommendationType.FALLBACK,)
            enough = await asyncio.wait_for(
                self.has_enough_history(user_id), timeout=self._params.strategy_timeout
            )
        except asyncio.TimeoutError:
            logger.warning("History lookup timed out for user %s, using cold start", user_id)
            return COLD_START_STRATEGIES
        except Exception as exc:
            logger.warning("History lookup failed for user %s, using cold start: %s", user_id, exc)
            return COLD_START_STRATEGIES
        return PERSONALIZED_STRATEGIES if enough else COLD_START_STRATEGIES

    async def has_enough_history(self, user_id: UUID) -> bool:
        read_count = await self._catalog.count_shelf_entries(user_id, ShelfStatus.READ)
        return read_count >= self._params.min_books_for_personalization

    async def run_strategies(
        self,
        user_id: UUID,
        kinds: tuple[RecommendationType, ...],
        limit: int,
    ) -> list[StrategyResult]:
        """Run the given strategies concurrently; each failure becomes a failed result."""
        return list(
            await asyncio.gather(*(self._run(kind, user_id, limit) for kind in kinds))
        )

    async def _run(
        self, kind: RecommendationType, user_id: UUID, limit: int
    ) -> StrategyResult:
        try:
            candidates = await asyncio.wait_for(
                self.strategies[kind](user_id, limit),
                timeout=self._params.strategy_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("Strategy %s timed out for user %s", kind.value, user_id)
            return StrategyResult.failure(kind, "timeout")
        except Exception as exc:
            logger.warning("Strategy %s failed for user %s: %s", kind.value, user_id, exc)
            return StrategyResult.failure(kind, str(exc) or type(exc).__name__)
        return StrategyResult.success(kind, candidates)

    # ── Strategies ─────────────────────────────────

    async def _genre_based(self, user_id: UUID, limit: int) -> list[BookRecommendation]:
        user = await self._catalog.get_user(user_id)
        if user is None or not user.favorite_genres:
            return []

        favorite_ids = {g.id for g in user.favorite_genres}
        related_names = similar_genres([g.name for g in user.favorite_genres], self._similarity)
        related_ids = await self._catalog.genre_ids_by_name(related_names)
        excluded = await self._catalog.shelved_book_ids(
            user_id, (ShelfStatus.READ, ShelfStatus.CURRENTLY_READING)
        )
        read_counts = await self._catalog.read_counts_by_genre(user_id)

        books = await self._catalog.find_books(
            genre_ids=favorite_ids | set(related_ids),
            exclude_ids=excluded,
            min_rating=3.5,
            order_by=(BookOrder.RATING, BookOrder.SHELVED),
            limit=limit * 2,
        )

        recommendations = []
        for book in books:
            genre = book.genre.name
            score = scoring.genre_score(
                book,
                is_favorite=book.genre.id in favorite_ids,
                is_similar=genre in related_names,
            )
            recommendations.append(
                BookRecommendation(
                    book=book,
                    recommendation_type=RecommendationType.GENRE_BASED,
                    score=score,
                    explanation=templates.GENRE_BASED.render(
                        genre=genre, count=read_counts.get(book.genre.id, 0)
                    ),
                    reasons=(
                        f"Matches your interest in {genre}",
                        templates.rated_reason(book.average_rating),
                        templates.readers_reason(book.total_shelved),
                    ),
                )
            )
        return recommendations

    async def _rating_based(self, user_id: UUID, limit: int) -> list[BookRecommendation]:
        reviews = await self._catalog.approved_reviews(user_id)
        if not reviews:
            return []

        user_average = sum(r.rating for r in reviews) / len(reviews)
        shelved = await self._catalog.shelved_book_ids(user_id)
        books = await self._catalog.find_books(
            exclude_ids=shelved,
            min_rating=user_average - 0.5,
            max_rating=user_average + 0.5,
            min_reviews=10,
            order_by=(BookOrder.SHELVED, BookOrder.CREATED),
            limit=limit,
        )

        return [
            BookRecommendation(
                book=book,
                recommendation_type=RecommendationType.RATING_BASED,
                score=scoring.rating_score(
                    book, user_average, self._params.min_confidence_score
                ),
                explanation=templates.RATING_BASED.render(avg_rating=user_average),
                reasons=(
                    templates.rated_reason(book.average_rating, "Rating matches your preferences"),
                    f"Based on {book.total_reviews:,} reviews",
                    f"Trusted by {book.total_shelved:,} readers",
                ),
            )
            for book in books
        ]

    async def _similar_users(self, user_id: UUID, limit: int) -> list[BookRecommendation]:
        liked = await self._catalog.approved_reviews(user_id, min_rating=HIGH_RATING)
        if not liked:
            return []

        similar = await self._catalog.users_who_rated(
            {r.book_id for r in liked}, HIGH_RATING, exclude_user=user_id
        )
        if not similar:
            return []

        shelved = await self._catalog.shelved_book_ids(user_id)
        reviews = await self._catalog.reviews_by_users(
            similar, HIGH_RATING, exclude_book_ids=shelved, limit=limit * 3
        )
        books = await self._catalog.get_books({r.book_id for r in reviews})

        tally: dict[UUID, _CoOccurrence] = {}
        for review in reviews:
            book = books.get(review.book_id)
            if book is None:
                continue
            entry = tally.get(book.id)
            if entry is None:
                tally[book.id] = _CoOccurrence(count=1, book=book)
            else:
                entry.count += 1
        if not tally:
            return []

        max_count = max(entry.count for entry in tally.values())
        recommendations = [
            BookRecommendation(
                book=entry.book,
                recommendation_type=RecommendationType.SIMILAR_USERS,
                score=scoring.co_occurrence_score(entry.count, max_count),
                explanation=templates.SIMILAR_USERS.render(count=entry.count),
                reasons=(
                    f"Liked by {entry.count} readers with similar taste",
                    templates.rated_reason(entry.book.average_rating),
                    "Community favorite",
                ),
            )
            for entry in tally.values()
        ]
        recommendations.sort(key=lambda r: r.score, reverse=True)
        return recommendations[:limit]

    async def _trending(self, user_id: UUID, limit: int) -> list[BookRecommendation]:
        shelved = await self._catalog.shelved_book_ids(user_id)
        books = await self._catalog.find_books(
            exclude_ids=shelved,
            min_rating=3.8,
            min_shelved=100,
            order_by=(BookOrder.SHELVED, BookOrder.CREATED),
            limit=limit,
        )
        return [
            BookRecommendation(
                book=book,
                recommendation_type=RecommendationType.TRENDING,
                score=scoring.trending_score(book, index, self._params.min_confidence_score),
                explanation=templates.TRENDING.render(),
                reasons=(
                    templates.readers_reason(book.total_shelved, "Currently popular"),
                    templates.rated_reason(book.average_rating),
                    "Community favorite",
                ),
            )
            for index, book in enumerate(books)
        ]

    async def _new_releases(self, user_id: UUID, limit: int) -> list[BookRecommendation]:
        user = await self._catalog.get_user(user_id)
        favorites = user.favorite_genres if user else ()
        favorite_ids = {g.id for g in favorites}
        shelved = await self._catalog.shelved_book_ids(user_id)
        now = self._clock()

        books = await self._catalog.find_books(
            genre_ids=favorite_ids or None,
            exclude_ids=shelved,
            min_rating=3.5,
            created_after=now - NEW_RELEASE_WINDOW,
            order_by=(BookOrder.CREATED, BookOrder.RATING),
            limit=limit,
        )

        explanation = templates.render_new_releases([g.name for g in favorites])
        recommendations = []
        for index, book in enumerate(books):
            is_favorite = book.genre.id in favorite_ids
            released = scoring.time_ago(book.created_at, now) if book.created_at else "recently"
            recommendations.append(
                BookRecommendation(
                    book=book,
                    recommendation_type=RecommendationType.NEW_RELEASES,
                    score=scoring.new_release_score(
                        is_favorite, index, self._params.min_confidence_score
                    ),
                    explanation=explanation,
                    reasons=(
                        f"New release ({released})",
                        "In your favorite genre" if is_favorite else "Fresh addition",
                        templates.rated_reason(book.average_rating, "Well-rated"),
                    ),
                )
            )
        return recommendations

    async def _fallback(self, user_id: UUID, limit: int) -> list[BookRecommendation]:
        books = await self._catalog.find_books(
            min_rating=4,
            min_shelved=1000,
            order_by=(BookOrder.SHELVED, BookOrder.RATING),
            limit=limit,
        )
        return [
            BookRecommendation(
                book=book,
                recommendation_type=RecommendationType.FALLBACK,
                score=scoring.fallback_score(index, self._params.min_confidence_score),
                explanation=templates.FALLBACK.render(),
                reasons=(
                    templates.readers_reason(book.total_shelved, "Highly popular"),
                    templates.rated_reason(book.average_rating, "Excellent rating"),
                    "Community favorite",
                ),
            )
            for index, book in enumerate(books)
        ]
