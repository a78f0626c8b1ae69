"""Read-only engagement statistics over stored recommendations."""

from collections.abc import Callable
from datetime import datetime
from uuid import UUID

from sqlalchemy import ColumnElement, Integer, case, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute

from app.api.schemas import (
    BookBrief,
    EngagementStats,
    RecommendedBookStats,
    SystemRecommendationStats,
    TypePerformance,
    TypeScoreStats,
    UserRecommendationStats,
)
from app.domain.models import Book, Recommendation, utcnow

TOP_TYPES = 3
TOP_BOOKS = 10


def rate(part: int | None, whole: int | None) -> float:
    """Percentage of `part` in `whole`; zero when `whole` is zero."""
    if not whole:
        return 0.0
    return round((part or 0) / whole * 100, 2)


def _flag_sum(column: InstrumentedAttribute[bool]) -> ColumnElement[int]:
    return func.coalesce(func.sum(case((column.is_(True), 1), else_=0)), 0).cast(Integer)


class RecommendationStatsService:
    """Per-user and system-wide aggregations. No side effects."""

    def __init__(self, session: AsyncSession, clock: Callable[[], datetime] = utcnow) -> None:
        self._session = session
        self._clock = clock

    async def get_user_stats(self, user_id: UUID) -> UserRecommendationStats:
        result = await self._session.execute(
            select(
                Recommendation.recommendation_type,
                func.count(Recommendation.id),
                _flag_sum(Recommendation.viewed),
                _flag_sum(Recommendation.clicked),
                _flag_sum(Recommendation.added_to_shelf),
            )
            .where(Recommendation.user_id == user_id)
            .group_by(Recommendation.recommendation_type)
        )
        rows = result.all()

        total = sum(count for _, count, *_ in rows)
        viewed = sum(row[2] for row in rows)
        clicked = sum(row[3] for row in rows)
        added = sum(row[4] for row in rows)

        performance = [
            TypePerformance(type=kind, count=count, view_rate=rate(type_viewed, count))
            for kind, count, type_viewed, _, _ in rows
        ]
        performance.sort(key=lambda p: p.view_rate, reverse=True)

        return UserRecommendationStats(
            total_recommendations=total,
            recommendations_by_type={kind.value: count for kind, count, *_ in rows},
            view_rate=rate(viewed, total),
            click_rate=rate(clicked, viewed),
            conversion_rate=rate(added, clicked),
            top_performing_types=performance[:TOP_TYPES],
        )

    async def get_system_stats(self) -> SystemRecommendationStats:
        totals = await self._session.execute(
            select(
                func.count(Recommendation.id),
                _flag_sum(Recommendation.viewed),
                _flag_sum(Recommendation.clicked),
                _flag_sum(Recommendation.added_to_shelf),
            )
        )
        total, viewed, clicked, added = totals.one()

        active = await self._session.execute(
            select(func.count(Recommendation.id)).where(
                Recommendation.expires_at > self._clock()
            )
        )

        by_type = await self._session.execute(
            select(
                Recommendation.recommendation_type,
                func.count(Recommendation.id),
                func.avg(Recommendation.score),
            ).group_by(Recommendation.recommendation_type)
        )

        count_col = func.count(Recommendation.id).label("count")
        top_books = await self._session.execute(
            select(
                Book.id,
                Book.title,
                Book.author,
                Book.cover_image,
                count_col,
                func.avg(Recommendation.score),
            )
            .join(Book, Book.id == Recommendation.book_id)
            .group_by(Book.id, Book.title, Book.author, Book.cover_image)
            .order_by(count_col.desc())
            .limit(TOP_BOOKS)
        )

        return SystemRecommendationStats(
            total_recommendations=total or 0,
            active_recommendations=active.scalar_one(),
            recommendations_by_type=[
                TypeScoreStats(type=kind, count=count, avg_score=round(avg or 0.0, 2))
                for kind, count, avg in by_type.all()
            ],
            engagement=EngagementStats(
                total=total or 0,
                viewed=viewed or 0,
                clicked=clicked or 0,
                added_to_shelf=added or 0,
                view_rate=rate(viewed, total),
                click_rate=rate(clicked, viewed),
                conversion_rate=rate(added, clicked),
            ),
            top_recommended_books=[
                RecommendedBookStats(
                    book=BookBrief(id=book_id, title=title, author=author, cover_image=cover),
                    count=count,
                    avg_score=round(avg or 0.0, 2),
                )
                for book_id, title, author, cover, count, avg in top_books.all()
            ],
        )
