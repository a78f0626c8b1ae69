"""SQLAlchemy ORM models."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import DeclarativeBase, relationship

from app.domain.constants import RecommendationType, ReviewStatus, Role, ShelfStatus


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _enum(enum_cls: type, name: str) -> Enum:
    return Enum(
        enum_cls,
        name=name,
        values_callable=lambda members: [m.value for m in members],
    )


class Base(DeclarativeBase):
    pass


user_favorite_genres = Table(
    "user_favorite_genres",
    Base.metadata,
    Column("user_id", Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("genre_id", Uuid, ForeignKey("genres.id", ondelete="CASCADE"), primary_key=True),
)


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(200), nullable=False)
    role = Column(_enum(Role, "role_enum"), nullable=False, default=Role.USER)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    favorite_genres = relationship("Genre", secondary=user_favorite_genres, lazy="selectin")
    shelves = relationship("Shelf", back_populates="user", lazy="noload")
    reviews = relationship("Review", back_populates="user", lazy="noload")


class Genre(Base):
    __tablename__ = "genres"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(100), unique=True, nullable=False, index=True)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow)


class Book(Base):
    __tablename__ = "books"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String(500), nullable=False, index=True)
    author = Column(String(300), nullable=False, index=True)
    genre_id = Column(Uuid, ForeignKey("genres.id"), nullable=False, index=True)
    description = Column(Text, nullable=True)
    cover_image = Column(String(1000), nullable=True)
    total_pages = Column(Integer, nullable=False, default=0)
    publication_year = Column(Integer, nullable=True)
    isbn = Column(String(20), unique=True, nullable=True)
    average_rating = Column(Float, nullable=False, default=0.0, index=True)
    total_reviews = Column(Integer, nullable=False, default=0)
    total_shelved = Column(Integer, nullable=False, default=0, index=True)
    created_at = Column(DateTime, default=utcnow, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    genre = relationship("Genre", lazy="selectin")


class Shelf(Base):
    __tablename__ = "shelves"
    __table_args__ = (UniqueConstraint("user_id", "book_id", name="uq_shelf_user_book"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    book_id = Column(Uuid, ForeignKey("books.id", ondelete="CASCADE"), nullable=False)
    status = Column(_enum(ShelfStatus, "shelf_status_enum"), nullable=False)
    rating = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="shelves")
    book = relationship("Book", lazy="selectin")


class Review(Base):
    __tablename__ = "reviews"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    book_id = Column(Uuid, ForeignKey("books.id", ondelete="CASCADE"), nullable=False, index=True)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=False, default="")
    status = Column(
        _enum(ReviewStatus, "review_status_enum"),
        nullable=False,
        default=ReviewStatus.PENDING,
    )
    created_at = Column(DateTime, default=utcnow)

    user = relationship("User", back_populates="reviews")


class Recommendation(Base):
    __tablename__ = "recommendations"
    __table_args__ = (Index("ix_recommendations_user_expires", "user_id", "expires_at"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    book_id = Column(Uuid, ForeignKey("books.id", ondelete="CASCADE"), nullable=False, index=True)
    recommendation_type = Column(
        _enum(RecommendationType, "recommendation_type_enum"), nullable=False
    )
    score = Column(Float, nullable=False)
    explanation = Column(Text, nullable=False)
    viewed = Column(Boolean, nullable=False, default=False)
    clicked = Column(Boolean, nullable=False, default=False)
    added_to_shelf = Column(Boolean, nullable=False, default=False)
    expires_at = Column(DateTime, nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
