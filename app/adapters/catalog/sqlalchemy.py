"""SQLAlchemy implementation of the catalog port."""

import logging
from collections.abc import Collection, Sequence
from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.domain.constants import ReviewStatus, ShelfStatus
from app.domain.models import Book, Genre, Review, Shelf, User
from app.ports.catalog import (
    BookOrder,
    BookSnapshot,
    CatalogPort,
    GenreRef,
    ReviewSnapshot,
    UserProfile,
)

logger = logging.getLogger(__name__)

_ORDER_COLUMNS = {
    BookOrder.RATING: Book.average_rating,
    BookOrder.SHELVED: Book.total_shelved,
    BookOrder.CREATED: Book.created_at,
}


def to_snapshot(book: Book) -> BookSnapshot:
    return BookSnapshot(
        id=book.id,
        title=book.title,
        author=book.author,
        genre=GenreRef(id=book.genre.id, name=book.genre.name),
        average_rating=book.average_rating or 0.0,
        total_reviews=book.total_reviews or 0,
        total_shelved=book.total_shelved or 0,
        total_pages=book.total_pages or 0,
        cover_image=book.cover_image,
        created_at=book.created_at,
    )


class SqlAlchemyCatalogAdapter(CatalogPort):
    """Each query opens its own short-lived session so callers may run them concurrently."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_user(self, user_id: UUID) -> UserProfile | None:
        async with self._session_factory() as session:
            user = await session.get(User, user_id)
            if user is None:
                return None
            return UserProfile(
                id=user.id,
                role=user.role,
                favorite_genres=tuple(
                    GenreRef(id=g.id, name=g.name) for g in user.favorite_genres
                ),
            )

    async def count_shelf_entries(self, user_id: UUID, status: ShelfStatus) -> int:
        async with self._session_factory() as session:
            result = await session.execute(
                select(func.count(Shelf.id)).where(
                    Shelf.user_id == user_id, Shelf.status == status
                )
            )
            return result.scalar_one()

    async def shelved_book_ids(
        self,
        user_id: UUID,
        statuses: Collection[ShelfStatus] | None = None,
    ) -> set[UUID]:
        stmt = select(Shelf.book_id).where(Shelf.user_id == user_id)
        if statuses:
            stmt = stmt.where(Shelf.status.in_(list(statuses)))
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return set(result.scalars().all())

    async def genre_ids_by_name(self, names: Collection[str]) -> list[UUID]:
        if not names:
            return []
        async with self._session_factory() as session:
            result = await session.execute(
                select(Genre.id).where(Genre.name.in_(list(names)))
            )
            return list(result.scalars().all())

    async def find_books(
        self,
        *,
        genre_ids: Collection[UUID] | None = None,
        exclude_ids: Collection[UUID] = (),
        min_rating: float | None = None,
        max_rating: float | None = None,
        min_reviews: int | None = None,
        min_shelved: int | None = None,
        created_after: datetime | None = None,
        order_by: Sequence[BookOrder] = (),
        limit: int = 20,
    ) -> list[BookSnapshot]:
        stmt = select(Book)
        if genre_ids is not None:
            stmt = stmt.where(Book.genre_id.in_(list(genre_ids)))
        if exclude_ids:
            stmt = stmt.where(Book.id.not_in(list(exclude_ids)))
        if min_rating is not None:
            stmt = stmt.where(Book.average_rating >= min_rating)
        if max_rating is not None:
            stmt = stmt.where(Book.average_rating <= max_rating)
        if min_reviews is not None:
            stmt = stmt.where(Book.total_reviews >= min_reviews)
        if min_shelved is not None:
            stmt = stmt.where(Book.total_shelved >= min_shelved)
        if created_after is not None:
            stmt = stmt.where(Book.created_at >= created_after)
        stmt = stmt.order_by(*(_ORDER_COLUMNS[key].desc() for key in order_by)).limit(limit)

        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [to_snapshot(book) for book in result.scalars().all()]

    async def approved_reviews(
        self, user_id: UUID, min_rating: int | None = None
    ) -> list[ReviewSnapshot]:
        stmt = select(Review.user_id, Review.book_id, Review.rating).where(
            Review.user_id == user_id, Review.status == ReviewStatus.APPROVED
        )
        if min_rating is not None:
            stmt = stmt.where(Review.rating >= min_rating)
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [ReviewSnapshot(*row) for row in result.all()]

    async def users_who_rated(
        self, book_ids: Collection[UUID], min_rating: int, exclude_user: UUID
    ) -> set[UUID]:
        if not book_ids:
            return set()
        async with self._session_factory() as session:
            result = await session.execute(
                select(Review.user_id)
                .where(
                    Review.book_id.in_(list(book_ids)),
                    Review.user_id != exclude_user,
                    Review.rating >= min_rating,
                    Review.status == ReviewStatus.APPROVED,
                )
                .distinct()
            )
            return set(result.scalars().all())

    async def reviews_by_users(
        self,
        user_ids: Collection[UUID],
        min_rating: int,
        exclude_book_ids: Collection[UUID] = (),
        limit: int = 50,
    ) -> list[ReviewSnapshot]:
        if not user_ids:
            return []
        stmt = select(Review.user_id, Review.book_id, Review.rating).where(
            Review.user_id.in_(list(user_ids)),
            Review.rating >= min_rating,
            Review.status == ReviewStatus.APPROVED,
        )
        if exclude_book_ids:
            stmt = stmt.where(Review.book_id.not_in(list(exclude_book_ids)))
        async with self._session_factory() as session:
            result = await session.execute(stmt.limit(limit))
            return [ReviewSnapshot(*row) for row in result.all()]

    async def get_books(self, book_ids: Collection[UUID]) -> dict[UUID, BookSnapshot]:
        if not book_ids:
            return {}
        async with self._session_factory() as session:
            result = await session.execute(select(Book).where(Book.id.in_(list(book_ids))))
            return {book.id: to_snapshot(book) for book in result.scalars().all()}

    async def read_counts_by_genre(self, user_id: UUID) -> dict[UUID, int]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(Book.genre_id, func.count(Shelf.id))
                .join(Book, Book.id == Shelf.book_id)
                .where(Shelf.user_id == user_id, Shelf.status == ShelfStatus.READ)
                .group_by(Book.genre_id)
            )
            return {genre_id: count for genre_id, count in result.all()}
