"""Integration tests for the BookWorm recommendations API."""

from datetime import timedelta
from uuid import uuid4

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from app.domain.constants import RecommendationType, Role, ShelfStatus
from app.domain.models import Recommendation, utcnow


@pytest.fixture
async def catalog(seed):
    """A reader with no history, an admin and a handful of popular books."""
    genre = await seed.genre("Fantasy")
    books = [
        await seed.book(genre, title=f"Saga {i}", average_rating=4.0 + i / 10, total_shelved=1200 + i * 100)
        for i in range(6)
    ]
    reader = await seed.user()
    admin = await seed.user(role=Role.ADMIN)
    return reader, admin, books


# ── Health & Auth ──────────────────────────────────


async def test_health(client: AsyncClient):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "healthy", "service": "bookworm"}


async def test_recommendations_require_token(client: AsyncClient):
    resp = await client.get("/recommendations/personalized")
    assert resp.status_code == 401


async def test_invalid_token_rejected(client: AsyncClient):
    resp = await client.get(
        "/recommendations/personalized",
        headers={"Authorization": "Bearer not-a-token"},
    )
    assert resp.status_code == 401


# ── Personalized ───────────────────────────────────


async def test_cold_start_user_gets_popular_books_then_cache(client, catalog, headers_for):
    reader, _, books = catalog

    first = await client.get("/recommendations/personalized", headers=headers_for(reader))
    assert first.status_code == 200
    body = first.json()
    assert body["from_cache"] is False
    recommendations = body["recommendations"]
    assert len(recommendations) == len(books)
    assert {r["recommendation_type"] for r in recommendations} <= {"fallback", "trending"}
    assert all(0 <= r["score"] <= 100 for r in recommendations)
    scores = [r["score"] for r in recommendations]
    assert scores == sorted(scores, reverse=True)
    assert recommendations[0]["book"]["genre"] == "Fantasy"
    assert recommendations[0]["book"]["estimated_reading_hours"] > 0

    second = await client.get("/recommendations/personalized", headers=headers_for(reader))
    assert second.json()["from_cache"] is True
    assert len(second.json()["recommendations"]) == len(books)


async def test_reader_with_history_gets_personalized_books(client, seed, headers_for):
    fantasy = await seed.genre("Fantasy")
    mystery = await seed.genre("Mystery")
    reader = await seed.user(favorites=[fantasy])
    read_books = [await seed.book(mystery, title=f"Solved {i}") for i in range(3)]
    for book in read_books:
        await seed.shelf(reader, book, ShelfStatus.READ)
    for i in range(6):
        await seed.book(fantasy, title=f"Quest {i}", average_rating=4.1 + i / 10)

    first = await client.get("/recommendations/personalized", headers=headers_for(reader))

    assert first.status_code == 200
    assert first.json()["from_cache"] is False
    recommendations = first.json()["recommendations"]
    book_ids = [r["book"]["id"] for r in recommendations]
    assert len(book_ids) == len(set(book_ids))
    assert not {str(b.id) for b in read_books} & set(book_ids)
    assert "genre_based" in {r["recommendation_type"] for r in recommendations}
    assert "fallback" not in {r["recommendation_type"] for r in recommendations}
    assert all(0 <= r["score"] <= 100 for r in recommendations)

    second = await client.get("/recommendations/personalized", headers=headers_for(reader))
    assert second.json()["from_cache"] is True


async def test_limit_is_respected(client, catalog, headers_for):
    reader, _, _ = catalog
    resp = await client.get(
        "/recommendations/personalized", params={"limit": 2}, headers=headers_for(reader)
    )
    assert resp.status_code == 200
    assert len(resp.json()["recommendations"]) == 2


async def test_refresh_regenerates(client, catalog, headers_for):
    reader, _, _ = catalog
    await client.get("/recommendations/personalized", headers=headers_for(reader))

    resp = await client.post("/recommendations/refresh", headers=headers_for(reader))

    assert resp.status_code == 200
    assert resp.json()["from_cache"] is False
    assert resp.json()["recommendations"]


async def test_why_recommended(client, catalog, headers_for):
    reader, _, books = catalog
    listing = await client.get("/recommendations/personalized", headers=headers_for(reader))
    top = listing.json()["recommendations"][0]

    resp = await client.get(
        f"/recommendations/why-recommended/{top['book']['id']}", headers=headers_for(reader)
    )

    assert resp.status_code == 200
    assert resp.json()["reasons"] == [top["explanation"]]
    assert resp.json()["score"] == top["score"]


async def test_why_recommended_unknown_book(client, catalog, headers_for):
    reader, _, _ = catalog
    resp = await client.get(
        f"/recommendations/why-recommended/{uuid4()}", headers=headers_for(reader)
    )
    assert resp.status_code == 404


# ── Engagement ─────────────────────────────────────


async def _stored_rows(session_factory, user):
    async with session_factory() as session:
        result = await session.execute(
            select(Recommendation).where(Recommendation.user_id == user.id)
        )
        return list(result.scalars().all())


async def test_view_and_click(client, catalog, headers_for, session_factory):
    reader, _, _ = catalog
    await client.get("/recommendations/personalized", headers=headers_for(reader))
    row = (await _stored_rows(session_factory, reader))[0]

    viewed = await client.patch(f"/recommendations/{row.id}/view", headers=headers_for(reader))
    clicked = await client.patch(f"/recommendations/{row.id}/click", headers=headers_for(reader))

    assert viewed.status_code == 200
    assert viewed.json()["viewed"] is True
    assert clicked.json()["clicked"] is True
    assert clicked.json()["viewed"] is True

    stats = await client.get("/recommendations/stats", headers=headers_for(reader))
    assert stats.status_code == 200
    assert stats.json()["total_recommendations"] == 6
    assert stats.json()["click_rate"] == 100


async def test_cannot_mark_another_users_recommendation(client, catalog, headers_for, seed, session_factory):
    reader, _, _ = catalog
    stranger = await seed.user()
    await client.get("/recommendations/personalized", headers=headers_for(reader))
    row = (await _stored_rows(session_factory, reader))[0]

    resp = await client.patch(f"/recommendations/{row.id}/view", headers=headers_for(stranger))
    assert resp.status_code == 404

    missing = await client.patch(f"/recommendations/{uuid4()}/click", headers=headers_for(reader))
    assert missing.status_code == 404


async def test_shelving_a_recommended_book_counts_as_conversion(client, catalog, headers_for, session_factory):
    reader, _, _ = catalog
    listing = await client.get("/recommendations/personalized", headers=headers_for(reader))
    book_id = listing.json()["recommendations"][0]["book"]["id"]

    resp = await client.post(
        "/shelves",
        json={"book_id": book_id, "status": "wantToRead"},
        headers=headers_for(reader),
    )

    assert resp.status_code == 201
    assert resp.json()["status"] == "wantToRead"
    assert resp.json()["recommendations_converted"] == 1
    rows = await _stored_rows(session_factory, reader)
    assert [str(r.book_id) for r in rows if r.added_to_shelf] == [book_id]


async def test_shelving_unknown_book(client, catalog, headers_for):
    reader, _, _ = catalog
    resp = await client.post(
        "/shelves",
        json={"book_id": str(uuid4()), "status": "read"},
        headers=headers_for(reader),
    )
    assert resp.status_code == 404


# ── Admin ──────────────────────────────────────────


async def test_admin_routes_forbidden_for_readers(client, catalog, headers_for):
    reader, _, _ = catalog
    stats = await client.get("/recommendations/admin/stats", headers=headers_for(reader))
    cleanup = await client.delete("/recommendations/admin/cleanup", headers=headers_for(reader))
    assert stats.status_code == 403
    assert cleanup.status_code == 403


async def test_admin_stats_and_cleanup(client, catalog, headers_for, session_factory):
    reader, admin, books = catalog
    await client.get("/recommendations/personalized", headers=headers_for(reader))
    async with session_factory() as session:
        session.add(
            Recommendation(
                user_id=reader.id,
                book_id=books[0].id,
                recommendation_type=RecommendationType.FALLBACK,
                score=40,
                explanation="Stale",
                expires_at=utcnow() - timedelta(days=1),
            )
        )
        await session.commit()

    stats = await client.get("/recommendations/admin/stats", headers=headers_for(admin))
    assert stats.status_code == 200
    assert stats.json()["total_recommendations"] == 7
    assert stats.json()["active_recommendations"] == 6

    cleanup = await client.delete("/recommendations/admin/cleanup", headers=headers_for(admin))
    assert cleanup.status_code == 200
    assert cleanup.json() == {"deleted_count": 1}
