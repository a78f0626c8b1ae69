"""Recommendation store: cache decisions, batch persistence, explanations and engagement."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain import scoring
from app.domain.constants import RecommendationParams, RecommendationType
from app.domain.models import Recommendation, utcnow
from app.explanations import templates
from app.ports.catalog import CatalogPort
from app.ports.recommender import BookRecommendation, RecommenderPort

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecommendationQuery:
    limit: int | None = None
    refresh: bool = False
    type: RecommendationType | None = None
    include_viewed: bool = False


@dataclass(frozen=True)
class WhyRecommended:
    reasons: list[str]
    score: float


async def delete_expired(session: AsyncSession, now: datetime) -> int:
    """Delete every row whose expiry has passed; return how many were removed."""
    result = await session.execute(
        delete(Recommendation)
        .where(Recommendation.expires_at <= now)
        .execution_options(synchronize_session=False)
    )
    deleted = result.rowcount or 0
    logger.info("Cleaned up %d expired recommendations", deleted)
    return deleted


class RecommendationService:
    """Serves stored recommendations when fresh enough, regenerating them otherwise."""

    def __init__(
        self,
        session: AsyncSession,
        recommender: RecommenderPort,
        catalog: CatalogPort,
        params: RecommendationParams | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._session = session
        self._recommender = recommender
        self._catalog = catalog
        self._params = params or RecommendationParams()
        self._clock = clock

    async def get_personalized_recommendations(
        self, user_id: UUID, query: RecommendationQuery
    ) -> tuple[list[BookRecommendation], bool]:
        """Return `(recommendations, from_cache)`."""
        limit = self._params.clamp_limit(query.limit)

        if not query.refresh:
            cached = await self._lookup_cached(user_id, query, limit)
            if cached is not None and len(cached) >= min(limit, self._params.cache_min_hits):
                logger.debug("Serving %d cached recommendations for user %s", len(cached), user_id)
                return cached, True

        return await self.generate_recommendations(user_id, limit), False

    async def generate_recommendations(
        self, user_id: UUID, limit: int | None = None
    ) -> list[BookRecommendation]:
        """Run the full strategy pipeline and persist the result as the active batch."""
        recommendations = await self._recommender.recommend(user_id, limit)
        await self.store_recommendations(user_id, recommendations)
        return recommendations

    async def store_recommendations(
        self, user_id: UUID, recommendations: list[BookRecommendation]
    ) -> list[Recommendation]:
        """Replace the user's active rows with a new batch expiring after the TTL."""
        now = self._clock()
        expires_at = now + timedelta(days=self._params.expiry_days)

        await self._delete_active(user_id, now)
        rows = [
            Recommendation(
                user_id=user_id,
                book_id=rec.book.id,
                recommendation_type=rec.recommendation_type,
                score=rec.score,
                explanation=rec.explanation,
                expires_at=expires_at,
                created_at=now,
                updated_at=now,
            )
            for rec in recommendations
        ]
        self._session.add_all(rows)
        await self._session.flush()
        logger.info("Stored %d recommendations for user %s", len(rows), user_id)
        return rows

    async def refresh_recommendations(self, user_id: UUID) -> list[BookRecommendation]:
        """Drop the active batch unconditionally and regenerate it."""
        deleted = await self._delete_active(user_id, self._clock())
        logger.info("Refreshing recommendations for user %s (%d dropped)", user_id, deleted)
        return await self.generate_recommendations(user_id)

    async def get_why_recommended(self, user_id: UUID, book_id: UUID) -> WhyRecommended:
        """
        Explain a recommendation.

        Looks at the most recent stored row first, then at a fresh in-memory
        run of the pipeline, and finally builds generic reasons from the book.
        """
        result = await self._session.execute(
            select(Recommendation)
            .where(Recommendation.user_id == user_id, Recommendation.book_id == book_id)
            .order_by(Recommendation.created_at.desc())
            .limit(1)
        )
        previous = result.scalar_one_or_none()
        if previous is not None:
            return WhyRecommended(reasons=[previous.explanation], score=previous.score)

        for rec in await self._recommender.recommend(user_id):
            if rec.book.id == book_id:
                return WhyRecommended(reasons=list(rec.reasons), score=rec.score)

        book = await self._catalog.get_book(book_id)
        if book is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Book not found")
        return WhyRecommended(
            reasons=[
                templates.rated_reason(book.average_rating),
                templates.readers_reason(book.total_shelved),
                templates.reviews_reason(book.total_reviews),
            ],
            score=scoring.rating_to_score(book.average_rating),
        )

    async def mark_viewed(self, user_id: UUID, recommendation_id: UUID) -> Recommendation | None:
        return await self._mark(user_id, recommendation_id, "viewed")

    async def mark_clicked(self, user_id: UUID, recommendation_id: UUID) -> Recommendation | None:
        return await self._mark(user_id, recommendation_id, "clicked")

    async def mark_added_to_shelf(self, user_id: UUID, book_id: UUID) -> int:
        """Flag every active recommendation of this book for this user as shelved."""
        result = await self._session.execute(
            update(Recommendation)
            .where(
                Recommendation.user_id == user_id,
                Recommendation.book_id == book_id,
                Recommendation.expires_at > self._clock(),
                Recommendation.added_to_shelf.is_(False),
            )
            .values(added_to_shelf=True, updated_at=self._clock())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    async def cleanup_expired_recommendations(self) -> int:
        return await delete_expired(self._session, self._clock())

    # ── Internals ──────────────────────────────────

    async def _lookup_cached(
        self, user_id: UUID, query: RecommendationQuery, limit: int
    ) -> list[BookRecommendation] | None:
        """Active stored rows as view objects, or None when the lookup fails."""
        stmt = select(Recommendation).where(
            Recommendation.user_id == user_id,
            Recommendation.expires_at > self._clock(),
        )
        if not query.include_viewed:
            stmt = stmt.where(Recommendation.viewed.is_(False))
        if query.type is not None:
            stmt = stmt.where(Recommendation.recommendation_type == query.type)
        stmt = stmt.order_by(
            Recommendation.score.desc(), Recommendation.created_at.desc()
        ).limit(limit)

        try:
            result = await asyncio.wait_for(
                self._session.execute(stmt), timeout=self._params.store_timeout
            )
            rows = list(result.scalars().all())
            books = await asyncio.wait_for(
                self._catalog.get_books({row.book_id for row in rows}),
                timeout=self._params.store_timeout,
            )
        except (asyncio.TimeoutError, SQLAlchemyError) as exc:
            logger.warning("Cache lookup failed for user %s, regenerating: %s", user_id, exc)
            await self._session.rollback()
            return None

        return [
            BookRecommendation(
                book=books[row.book_id],
                recommendation_type=row.recommendation_type,
                score=row.score,
                explanation=row.explanation,
                reasons=(row.explanation,),
            )
            for row in rows
            if row.book_id in books
        ]

    async def _delete_active(self, user_id: UUID, now: datetime) -> int:
        result = await self._session.execute(
            delete(Recommendation)
            .where(Recommendation.user_id == user_id, Recommendation.expires_at > now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    async def _mark(
        self, user_id: UUID, recommendation_id: UUID, flag: str
    ) -> Recommendation | None:
        result = await self._session.execute(
            select(Recommendation).where(
                Recommendation.id == recommendation_id,
                Recommendation.user_id == user_id,
            )
        )
        recommendation = result.scalar_one_or_none()
        if recommendation is None:
            return None
        if not getattr(recommendation, flag):
            setattr(recommendation, flag, True)
            await self._session.flush()
        return recommendation
