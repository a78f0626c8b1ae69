"""Recommendation routes."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query

from app.api.dependencies import get_recommendation_service, get_stats_service
from app.api.middleware.auth import get_current_user, require_admin
from app.api.schemas import (
    CleanupResponse,
    RecommendationItem,
    RecommendationRecord,
    RecommendationsResponse,
    SystemRecommendationStats,
    UserRecommendationStats,
    WhyRecommendedResponse,
)
from app.domain.constants import RecommendationType
from app.domain.models import User
from app.services.recommendation import RecommendationQuery, RecommendationService
from app.services.recommendation_stats import RecommendationStatsService

router = APIRouter(prefix="/recommendations", tags=["Recommendations"])


@router.get("/personalized", response_model=RecommendationsResponse)
async def get_personalized_recommendations(
    limit: int | None = Query(default=None, ge=1),
    refresh: bool = False,
    type: RecommendationType | None = None,
    include_viewed: bool = False,
    service: RecommendationService = Depends(get_recommendation_service),
    user: User = Depends(get_current_user),
) -> RecommendationsResponse:
    """Ranked suggestions, served from the stored batch when it is fresh enough."""
    query = RecommendationQuery(
        limit=limit, refresh=refresh, type=type, include_viewed=include_viewed
    )
    recommendations, from_cache = await service.get_personalized_recommendations(user.id, query)
    return RecommendationsResponse(
        recommendations=[RecommendationItem.from_domain(r) for r in recommendations],
        from_cache=from_cache,
    )


@router.get("/stats", response_model=UserRecommendationStats)
async def get_recommendation_stats(
    stats: RecommendationStatsService = Depends(get_stats_service),
    user: User = Depends(get_current_user),
) -> UserRecommendationStats:
    return await stats.get_user_stats(user.id)


@router.post("/refresh", response_model=RecommendationsResponse)
async def refresh_recommendations(
    service: RecommendationService = Depends(get_recommendation_service),
    user: User = Depends(get_current_user),
) -> RecommendationsResponse:
    recommendations = await service.refresh_recommendations(user.id)
    return RecommendationsResponse(
        recommendations=[RecommendationItem.from_domain(r) for r in recommendations]
    )


@router.get("/why-recommended/{book_id}", response_model=WhyRecommendedResponse)
async def get_why_recommended(
    book_id: UUID,
    service: RecommendationService = Depends(get_recommendation_service),
    user: User = Depends(get_current_user),
) -> WhyRecommendedResponse:
    why = await service.get_why_recommended(user.id, book_id)
    return WhyRecommendedResponse(reasons=why.reasons, score=why.score)


@router.patch("/{recommendation_id}/view", response_model=RecommendationRecord)
async def mark_recommendation_viewed(
    recommendation_id: UUID,
    service: RecommendationService = Depends(get_recommendation_service),
    user: User = Depends(get_current_user),
) -> RecommendationRecord:
    recommendation = await service.mark_viewed(user.id, recommendation_id)
    if not recommendation:
        raise HTTPException(status_code=404, detail="Recommendation not found")
    return RecommendationRecord.model_validate(recommendation)


@router.patch("/{recommendation_id}/click", response_model=RecommendationRecord)
async def mark_recommendation_clicked(
    recommendation_id: UUID,
    service: RecommendationService = Depends(get_recommendation_service),
    user: User = Depends(get_current_user),
) -> RecommendationRecord:
    recommendation = await service.mark_clicked(user.id, recommendation_id)
    if not recommendation:
        raise HTTPException(status_code=404, detail="Recommendation not found")
    return RecommendationRecord.model_validate(recommendation)


# ── Admin ──────────────────────────────────────────


@router.get("/admin/stats", response_model=SystemRecommendationStats)
async def get_system_recommendation_stats(
    stats: RecommendationStatsService = Depends(get_stats_service),
    _admin: User = Depends(require_admin),
) -> SystemRecommendationStats:
    return await stats.get_system_stats()


@router.delete("/admin/cleanup", response_model=CleanupResponse)
async def cleanup_expired_recommendations(
    service: RecommendationService = Depends(get_recommendation_service),
    _admin: User = Depends(require_admin),
) -> CleanupResponse:
    deleted = await service.cleanup_expired_recommendations()
    return CleanupResponse(deleted_count=deleted)
