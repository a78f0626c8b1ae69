from collections.abc import AsyncGenerator
from datetime import datetime

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.api.middleware.auth import create_access_token
from app.database import get_session_factory
from app.domain.constants import ReviewStatus, Role, ShelfStatus
from app.domain.models import Base, Book, Genre, Review, Shelf, User
from app.main import app


@pytest.fixture
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """A fresh on-disk SQLite database per test, tables created up front."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as s:
        yield s


@pytest.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


class Seeder:
    """Creates committed rows for tests that need a populated catalog."""

    def __init__(self, factory: async_sessionmaker[AsyncSession]) -> None:
        self._factory = factory
        self._counter = 0

    async def _save(self, *objects):
        async with self._factory() as s:
            s.add_all(objects)
            await s.commit()
        return objects[0] if len(objects) == 1 else objects

    async def genre(self, name: str) -> Genre:
        return await self._save(Genre(name=name))

    async def user(self, role: Role = Role.USER, favorites: list[Genre] | None = None) -> User:
        self._counter += 1
        async with self._factory() as s:
            user = User(email=f"reader{self._counter}@example.com", name=f"Reader {self._counter}", role=role)
            if favorites:
                user.favorite_genres = [await s.merge(g) for g in favorites]
            s.add(user)
            await s.commit()
            return user

    async def book(self, genre: Genre, **overrides) -> Book:
        self._counter += 1
        values = {
            "title": f"Book {self._counter}",
            "author": "Author",
            "genre_id": genre.id,
            "average_rating": 4.2,
            "total_reviews": 20,
            "total_shelved": 1500,
            "total_pages": 320,
            "created_at": datetime(2020, 1, 1),
        }
        values.update(overrides)
        return await self._save(Book(**values))

    async def shelf(self, user: User, book: Book, status: ShelfStatus = ShelfStatus.READ) -> Shelf:
        return await self._save(Shelf(user_id=user.id, book_id=book.id, status=status))

    async def review(
        self, user: User, book: Book, rating: int, status: ReviewStatus = ReviewStatus.APPROVED
    ) -> Review:
        return await self._save(Review(user_id=user.id, book_id=book.id, rating=rating, status=status))


@pytest.fixture
def seed(session_factory) -> Seeder:
    return Seeder(session_factory)


@pytest.fixture
def headers_for():
    return auth_headers
