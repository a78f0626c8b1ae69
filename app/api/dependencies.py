"""Service wiring for route handlers."""

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.adapters.catalog.sqlalchemy import SqlAlchemyCatalogAdapter
from app.adapters.recommender.rule_based import RuleBasedRecommenderAdapter
from app.config import settings
from app.database import get_session, get_session_factory
from app.domain.constants import GENRE_SIMILARITY, RecommendationParams
from app.services.recommendation import RecommendationService
from app.services.recommendation_stats import RecommendationStatsService
from app.services.shelf import ShelfService


def get_params() -> RecommendationParams:
    return RecommendationParams.from_settings(settings)


def get_catalog(
    factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> SqlAlchemyCatalogAdapter:
    return SqlAlchemyCatalogAdapter(factory)


def get_recommender(
    request: Request,
    catalog: SqlAlchemyCatalogAdapter = Depends(get_catalog),
    params: RecommendationParams = Depends(get_params),
) -> RuleBasedRecommenderAdapter:
    similarity = getattr(request.app.state, "genre_similarity", GENRE_SIMILARITY)
    return RuleBasedRecommenderAdapter(catalog, params=params, similarity=similarity)


def get_recommendation_service(
    session: AsyncSession = Depends(get_session),
    recommender: RuleBasedRecommenderAdapter = Depends(get_recommender),
    catalog: SqlAlchemyCatalogAdapter = Depends(get_catalog),
    params: RecommendationParams = Depends(get_params),
) -> RecommendationService:
    return RecommendationService(session, recommender, catalog, params=params)


def get_stats_service(
    session: AsyncSession = Depends(get_session),
) -> RecommendationStatsService:
    return RecommendationStatsService(session)


def get_shelf_service(
    session: AsyncSession = Depends(get_session),
    recommendations: RecommendationService = Depends(get_recommendation_service),
) -> ShelfService:
    return ShelfService(session, recommendations)
