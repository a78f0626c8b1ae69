"""Recommender port: abstract interface for the recommendation engine."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from uuid import UUID

from app.domain.constants import RecommendationType
from app.ports.catalog import BookSnapshot


@dataclass(frozen=True)
class BookRecommendation:
    """A single scored candidate with its explanation and supporting reasons."""

    book: BookSnapshot
    recommendation_type: RecommendationType
    score: float
    explanation: str
    reasons: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class StrategyResult:
    """Outcome of one strategy run: candidates on success, a reason on failure."""

    strategy: RecommendationType
    ok: bool
    candidates: tuple[BookRecommendation, ...] = ()
    reason: str | None = None

    @classmethod
    def success(
        cls, strategy: RecommendationType, candidates: list[BookRecommendation]
    ) -> "StrategyResult":
        return cls(strategy=strategy, ok=True, candidates=tuple(candidates))

    @classmethod
    def failure(cls, strategy: RecommendationType, reason: str) -> "StrategyResult":
        return cls(strategy=strategy, ok=False, reason=reason)


class RecommenderPort(ABC):
    """Abstraction for the book recommendation engine."""

    @abstractmethod
    async def recommend(
        self,
        user_id: UUID,
        limit: int | None = None,
    ) -> list[BookRecommendation]:
        """Return ranked, de-duplicated book recommendations for a user."""
        ...
