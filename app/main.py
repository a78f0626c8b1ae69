"""FastAPI application factory: entry point for BookWorm recommendations."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.routes.recommendations import router as recommendations_router
from app.api.routes.shelves import router as shelves_router
from app.config import settings
from app.database import async_session_factory
from app.domain.constants import load_genre_similarity
from app.jobs.cleanup import create_cleanup_scheduler

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: startup and shutdown events."""
    logger.info("BookWorm starting up...")
    logger.info(
        "Recommendations: limit=%d max=%d expiry=%dd personalization>=%d books",
        settings.recommendation_limit,
        settings.max_recommendations,
        settings.recommendation_expiry_days,
        settings.min_books_for_personalization,
    )
    app.state.genre_similarity = load_genre_similarity(settings.genre_similarity_path)

    scheduler = None
    if settings.cleanup_enabled:
        scheduler = create_cleanup_scheduler(
            async_session_factory,
            hour=settings.cleanup_cron_hour,
            minute=settings.cleanup_cron_minute,
        )
        scheduler.start()
    yield
    if scheduler is not None:
        scheduler.shutdown(wait=False)
    logger.info("BookWorm shutting down...")


def create_app() -> FastAPI:
    """Build and configure the FastAPI application."""
    application = FastAPI(
        title="BookWorm",
        description="Book tracking with rule-based, explained recommendations",
        version="1.0.0",
        lifespan=lifespan,
    )

    # ── Middleware ──────────────────────────────────
    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── Routes ─────────────────────────────────────
    application.include_router(recommendations_router)
    application.include_router(shelves_router)

    # ── Health Check ───────────────────────────────
    @application.get("/health", tags=["System"])
    async def health() -> dict[str, str]:
        return {"status": "healthy", "service": "bookworm"}

    return application


app = create_app()
