"""Merge strategy outputs into one ranked, de-duplicated list."""

from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from uuid import UUID

from app.domain.constants import DUPLICATE_BOOST, MAX_SCORE, RecommendationType
from app.explanations.templates import MULTI_FACTOR
from app.ports.recommender import BookRecommendation, StrategyResult


@dataclass
class _Merged:
    """Accumulator for one book: the first payload plus evidence from later hits."""

    payload: BookRecommendation
    strategies: list[RecommendationType] = field(default_factory=list)
    reasons: list[str] = field(default_factory=list)
    score: float = 0.0

    def build(self) -> BookRecommendation:
        if len(self.strategies) == 1:
            return replace(self.payload, score=self.score, reasons=tuple(self.reasons))
        return replace(
            self.payload,
            score=self.score,
            reasons=tuple(self.reasons),
            explanation=MULTI_FACTOR.render(count=len(self.strategies)),
        )


def aggregate(
    results: Iterable[StrategyResult],
    limit: int,
    boost: int = DUPLICATE_BOOST,
) -> list[BookRecommendation]:
    """
    Combine strategy results.

    Failed results are skipped. The first occurrence of a book is the base
    record; each later hit from a different strategy adds `boost` (capped at
    100) and merges in new reasons. Output is sorted by score (stable) and
    truncated to `limit`.
    """
    merged: dict[UUID, _Merged] = {}
    for result in results:
        if not result.ok:
            continue
        for candidate in result.candidates:
            entry = merged.get(candidate.book.id)
            if entry is None:
                merged[candidate.book.id] = _Merged(
                    payload=candidate,
                    strategies=[candidate.recommendation_type],
                    reasons=_unique(candidate.reasons),
                    score=min(MAX_SCORE, candidate.score),
                )
                continue
            if candidate.recommendation_type in entry.strategies:
                continue
            entry.strategies.append(candidate.recommendation_type)
            entry.score = min(MAX_SCORE, max(entry.score, candidate.score) + boost)
            for reason in candidate.reasons:
                if reason not in entry.reasons:
                    entry.reasons.append(reason)

    ranked = sorted((entry.build() for entry in merged.values()), key=lambda r: r.score, reverse=True)
    return ranked[:limit]


def _unique(reasons: Iterable[str]) -> list[str]:
    seen: list[str] = []
    for reason in reasons:
        if reason not in seen:
            seen.append(reason)
    return seen
