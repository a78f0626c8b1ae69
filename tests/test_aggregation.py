"""Aggregator: de-duplication, evidence merging, boosting and truncation."""

from app.domain.aggregation import aggregate
from app.domain.constants import RecommendationType
from app.ports.recommender import StrategyResult
from tests.fakes import candidate, make_book, make_genre

MYSTERY = make_genre("Mystery")


def test_duplicate_across_strategies_is_merged_and_boosted():
    book = make_book(MYSTERY)
    genre_hit = candidate(
        book,
        RecommendationType.GENRE_BASED,
        score=80,
        reasons=("Matches your interest in Mystery", "Highly rated (4.2 stars)"),
    )
    trending_hit = candidate(
        book,
        RecommendationType.TRENDING,
        score=85,
        reasons=("Currently popular (1,500 readers)", "Highly rated (4.2 stars)"),
    )

    merged = aggregate(
        [
            StrategyResult.success(RecommendationType.GENRE_BASED, [genre_hit]),
            StrategyResult.success(RecommendationType.TRENDING, [trending_hit]),
        ],
        limit=12,
    )

    assert len(merged) == 1
    rec = merged[0]
    assert rec.recommendation_type == RecommendationType.GENRE_BASED
    assert rec.score >= max(genre_hit.score, trending_hit.score)
    assert rec.score == 95
    assert rec.reasons == (
        "Matches your interest in Mystery",
        "Highly rated (4.2 stars)",
        "Currently popular (1,500 readers)",
    )
    assert rec.explanation == "Recommended based on 2 factors"


def test_boost_is_capped_at_100():
    book = make_book(MYSTERY)
    results = [
        StrategyResult.success(kind, [candidate(book, kind, score=98)])
        for kind in (
            RecommendationType.GENRE_BASED,
            RecommendationType.RATING_BASED,
            RecommendationType.TRENDING,
        )
    ]

    merged = aggregate(results, limit=12)

    assert merged[0].score == 100
    assert merged[0].explanation == "Recommended based on 3 factors"


def test_single_hit_keeps_its_own_explanation():
    book = make_book(MYSTERY)
    hit = candidate(book, explanation="Currently popular in the BookWorm community")

    merged = aggregate([StrategyResult.success(RecommendationType.TRENDING, [hit])], limit=12)

    assert merged == [hit]


def test_repeat_from_same_strategy_is_not_boosted():
    book = make_book(MYSTERY)
    hit = candidate(book, score=60)

    merged = aggregate(
        [StrategyResult.success(RecommendationType.TRENDING, [hit, hit])], limit=12
    )

    assert len(merged) == 1
    assert merged[0].score == 60


def test_failed_results_are_ignored():
    book = make_book(MYSTERY)
    merged = aggregate(
        [
            StrategyResult.failure(RecommendationType.GENRE_BASED, "store unavailable"),
            StrategyResult.success(RecommendationType.TRENDING, [candidate(book)]),
        ],
        limit=12,
    )
    assert [r.book.id for r in merged] == [book.id]


def test_all_strategies_failing_yields_empty_list():
    results = [
        StrategyResult.failure(kind, "boom")
        for kind in (RecommendationType.FALLBACK, RecommendationType.TRENDING)
    ]
    assert aggregate(results, limit=12) == []


def test_sorted_by_score_and_truncated():
    books = [make_book(MYSTERY, title=f"Book {i}") for i in range(5)]
    hits = [candidate(book, score=40 + i * 10) for i, book in enumerate(books)]

    merged = aggregate([StrategyResult.success(RecommendationType.TRENDING, hits)], limit=3)

    assert [r.score for r in merged] == [80, 70, 60]


def test_equal_scores_keep_insertion_order():
    first, second = make_book(MYSTERY, title="First"), make_book(MYSTERY, title="Second")
    merged = aggregate(
        [
            StrategyResult.success(
                RecommendationType.FALLBACK,
                [candidate(first, RecommendationType.FALLBACK, score=70)],
            ),
            StrategyResult.success(
                RecommendationType.TRENDING,
                [candidate(second, RecommendationType.TRENDING, score=70)],
            ),
        ],
        limit=12,
    )
    assert [r.book.title for r in merged] == ["First", "Second"]
