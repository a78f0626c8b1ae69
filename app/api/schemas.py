"""Pydantic request/response schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.domain import scoring
from app.domain.constants import RecommendationType, ShelfStatus
from app.ports.catalog import BookSnapshot
from app.ports.recommender import BookRecommendation

# ── Books ──────────────────────────────────────────


class BookBrief(BaseModel):
    id: UUID
    title: str
    author: str
    cover_image: str | None = None


class BookSummary(BookBrief):
    genre: str
    average_rating: float
    total_reviews: int
    total_shelved: int
    total_pages: int
    created_at: datetime | None = None
    estimated_reading_hours: int
    estimated_reading_days: int
    popularity_score: float

    @classmethod
    def from_snapshot(cls, book: BookSnapshot) -> "BookSummary":
        return cls(
            id=book.id,
            title=book.title,
            author=book.author,
            cover_image=book.cover_image,
            genre=book.genre.name,
            average_rating=book.average_rating,
            total_reviews=book.total_reviews,
            total_shelved=book.total_shelved,
            total_pages=book.total_pages,
            created_at=book.created_at,
            estimated_reading_hours=scoring.estimated_reading_hours(book.total_pages),
            estimated_reading_days=scoring.estimated_reading_days(book.total_pages),
            popularity_score=round(
                scoring.popularity_score(book.average_rating, book.total_shelved), 2
            ),
        )


# ── Recommendations ────────────────────────────────


class RecommendationItem(BaseModel):
    book: BookSummary
    recommendation_type: RecommendationType
    score: float = Field(ge=0, le=100)
    explanation: str
    reasons: list[str]

    @classmethod
    def from_domain(cls, rec: BookRecommendation) -> "RecommendationItem":
        return cls(
            book=BookSummary.from_snapshot(rec.book),
            recommendation_type=rec.recommendation_type,
            score=rec.score,
            explanation=rec.explanation,
            reasons=list(rec.reasons),
        )


class RecommendationsResponse(BaseModel):
    recommendations: list[RecommendationItem]
    from_cache: bool = False


class RecommendationRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    book_id: UUID
    recommendation_type: RecommendationType
    score: float
    explanation: str
    viewed: bool
    clicked: bool
    added_to_shelf: bool
    expires_at: datetime
    created_at: datetime | None = None


class WhyRecommendedResponse(BaseModel):
    reasons: list[str]
    score: float


class CleanupResponse(BaseModel):
    deleted_count: int


# ── Stats ──────────────────────────────────────────


class TypePerformance(BaseModel):
    type: RecommendationType
    count: int
    view_rate: float


class UserRecommendationStats(BaseModel):
    total_recommendations: int = 0
    recommendations_by_type: dict[str, int] = Field(default_factory=dict)
    view_rate: float = 0.0
    click_rate: float = 0.0
    conversion_rate: float = 0.0
    top_performing_types: list[TypePerformance] = Field(default_factory=list)


class TypeScoreStats(BaseModel):
    type: RecommendationType
    count: int
    avg_score: float


class EngagementStats(BaseModel):
    total: int = 0
    viewed: int = 0
    clicked: int = 0
    added_to_shelf: int = 0
    view_rate: float = 0.0
    click_rate: float = 0.0
    conversion_rate: float = 0.0


class RecommendedBookStats(BaseModel):
    book: BookBrief
    count: int
    avg_score: float


class SystemRecommendationStats(BaseModel):
    total_recommendations: int = 0
    active_recommendations: int = 0
    recommendations_by_type: list[TypeScoreStats] = Field(default_factory=list)
    engagement: EngagementStats = Field(default_factory=EngagementStats)
    top_recommended_books: list[RecommendedBookStats] = Field(default_factory=list)


# ── Shelves ────────────────────────────────────────


class ShelfCreateRequest(BaseModel):
    book_id: UUID
    status: ShelfStatus
    rating: int | None = Field(default=None, ge=1, le=5)


class ShelfResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    book_id: UUID
    status: ShelfStatus
    rating: int | None = None
    recommendations_converted: int = 0
