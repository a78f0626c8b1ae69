"""Catalog port: read-only access to books, genres, shelves, reviews and users."""

import enum
from abc import ABC, abstractmethod
from collections.abc import Collection, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

from app.domain.constants import Role, ShelfStatus


@dataclass(frozen=True)
class GenreRef:
    id: UUID
    name: str


@dataclass(frozen=True)
class BookSnapshot:
    """Plain copy of a book row, detached from the persistence layer."""

    id: UUID
    title: str
    author: str
    genre: GenreRef
    average_rating: float = 0.0
    total_reviews: int = 0
    total_shelved: int = 0
    total_pages: int = 0
    cover_image: str | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class ReviewSnapshot:
    user_id: UUID
    book_id: UUID
    rating: int


@dataclass(frozen=True)
class UserProfile:
    id: UUID
    role: Role
    favorite_genres: tuple[GenreRef, ...] = field(default_factory=tuple)


class BookOrder(str, enum.Enum):
    """Descending sort keys accepted by `CatalogPort.find_books`."""

    RATING = "average_rating"
    SHELVED = "total_shelved"
    CREATED = "created_at"


class CatalogPort(ABC):
    """Collaborator queries the recommendation engine depends on."""

    @abstractmethod
    async def get_user(self, user_id: UUID) -> UserProfile | None:
        """Return the user with favorite genres populated."""
        ...

    @abstractmethod
    async def count_shelf_entries(self, user_id: UUID, status: ShelfStatus) -> int:
        ...

    @abstractmethod
    async def shelved_book_ids(
        self,
        user_id: UUID,
        statuses: Collection[ShelfStatus] | None = None,
    ) -> set[UUID]:
        """Book ids on the user's shelves, optionally limited to some statuses."""
        ...

    @abstractmethod
    async def genre_ids_by_name(self, names: Collection[str]) -> list[UUID]:
        ...

    @abstractmethod
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
        ...

    @abstractmethod
    async def approved_reviews(
        self, user_id: UUID, min_rating: int | None = None
    ) -> list[ReviewSnapshot]:
        ...

    @abstractmethod
    async def users_who_rated(
        self, book_ids: Collection[UUID], min_rating: int, exclude_user: UUID
    ) -> set[UUID]:
        """Users other than `exclude_user` with an approved review >= min_rating."""
        ...

    @abstractmethod
    async def reviews_by_users(
        self,
        user_ids: Collection[UUID],
        min_rating: int,
        exclude_book_ids: Collection[UUID] = (),
        limit: int = 50,
    ) -> list[ReviewSnapshot]:
        ...

    @abstractmethod
    async def get_books(self, book_ids: Collection[UUID]) -> dict[UUID, BookSnapshot]:
        """Books by id; unknown ids are simply absent from the result."""
        ...

    async def get_book(self, book_id: UUID) -> BookSnapshot | None:
        books = await self.get_books([book_id])
        return books.get(book_id)

    @abstractmethod
    async def read_counts_by_genre(self, user_id: UUID) -> dict[UUID, int]:
        """Number of books the user has marked read, per genre id."""
        ...
