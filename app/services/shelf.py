"""Shelf placement service with recommendation conversion tracking."""

from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.schemas import ShelfCreateRequest
from app.domain.models import Book, Shelf
from app.services.recommendation import RecommendationService


class ShelfService:
    """Puts books on a user's shelves and credits matching recommendations."""

    def __init__(self, session: AsyncSession, recommendations: RecommendationService) -> None:
        self._session = session
        self._recommendations = recommendations

    async def add_to_shelf(
        self, user_id: UUID, data: ShelfCreateRequest
    ) -> tuple[Shelf, int]:
        """
        Shelve a book, or move it to another shelf if it is already shelved.

        A new entry increments the book's shelved count. Returns the entry and
        the number of active recommendations flagged as added-to-shelf.
        Raises 404 if the book does not exist.
        """
        book = await self._session.get(Book, data.book_id)
        if book is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Book not found",
            )

        result = await self._session.execute(
            select(Shelf).where(Shelf.user_id == user_id, Shelf.book_id == data.book_id)
        )
        shelf = result.scalar_one_or_none()

        if shelf:
            shelf.status = data.status
            if data.rating is not None:
                shelf.rating = data.rating
        else:
            shelf = Shelf(
                user_id=user_id,
                book_id=data.book_id,
                status=data.status,
                rating=data.rating,
            )
            self._session.add(shelf)
            book.total_shelved = (book.total_shelved or 0) + 1

        await self._session.flush()
        converted = await self._recommendations.mark_added_to_shelf(user_id, data.book_id)
        return shelf, converted
