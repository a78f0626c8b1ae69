"""Initial schema.

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""

import sqlalchemy as sa

from alembic import op

revision = "001"
down_revision = None
branch_labels = None
depends_on = None

ROLE = sa.Enum("user", "admin", name="role_enum")
SHELF_STATUS = sa.Enum("wantToRead", "currentlyReading", "read", name="shelf_status_enum")
REVIEW_STATUS = sa.Enum("pending", "approved", "rejected", name="review_status_enum")
RECOMMENDATION_TYPE = sa.Enum(
    "genre_based",
    "rating_based",
    "similar_users",
    "trending",
    "new_releases",
    "fallback",
    name="recommendation_type_enum",
)


def _fk(column: str, target: str, **kwargs) -> sa.Column:
    return sa.Column(
        column,
        sa.Uuid,
        sa.ForeignKey(target, ondelete="CASCADE"),
        nullable=False,
        **kwargs,
    )


def upgrade() -> None:
    # Users
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("email", sa.String(255), unique=True, nullable=False, index=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("role", ROLE, nullable=False, server_default="user"),
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime, server_default=sa.func.now()),
    )

    # Genres
    op.create_table(
        "genres",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("name", sa.String(100), unique=True, nullable=False, index=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
    )

    op.create_table(
        "user_favorite_genres",
        sa.Column("user_id", sa.Uuid, sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("genre_id", sa.Uuid, sa.ForeignKey("genres.id", ondelete="CASCADE"), primary_key=True),
    )

    # Books
    op.create_table(
        "books",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("title", sa.String(500), nullable=False, index=True),
        sa.Column("author", sa.String(300), nullable=False, index=True),
        sa.Column("genre_id", sa.Uuid, sa.ForeignKey("genres.id"), nullable=False, index=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("cover_image", sa.String(1000), nullable=True),
        sa.Column("total_pages", sa.Integer, nullable=False, server_default="0"),
        sa.Column("publication_year", sa.Integer, nullable=True),
        sa.Column("isbn", sa.String(20), unique=True, nullable=True),
        sa.Column("average_rating", sa.Float, nullable=False, server_default="0", index=True),
        sa.Column("total_reviews", sa.Integer, nullable=False, server_default="0"),
        sa.Column("total_shelved", sa.Integer, nullable=False, server_default="0", index=True),
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now(), index=True),
        sa.Column("updated_at", sa.DateTime, server_default=sa.func.now()),
    )

    # Shelves: one entry per user per book
    op.create_table(
        "shelves",
        sa.Column("id", sa.Uuid, primary_key=True),
        _fk("user_id", "users.id", index=True),
        _fk("book_id", "books.id"),
        sa.Column("status", SHELF_STATUS, nullable=False),
        sa.Column("rating", sa.Integer, nullable=True),
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime, server_default=sa.func.now()),
        sa.UniqueConstraint("user_id", "book_id", name="uq_shelf_user_book"),
    )

    # Reviews
    op.create_table(
        "reviews",
        sa.Column("id", sa.Uuid, primary_key=True),
        _fk("user_id", "users.id", index=True),
        _fk("book_id", "books.id", index=True),
        sa.Column("rating", sa.Integer, nullable=False),
        sa.Column("comment", sa.Text, nullable=False, server_default=""),
        sa.Column("status", REVIEW_STATUS, nullable=False, server_default="pending"),
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
    )

    # Recommendations: no uniqueness on (user, book), history is kept until expiry
    op.create_table(
        "recommendations",
        sa.Column("id", sa.Uuid, primary_key=True),
        _fk("user_id", "users.id"),
        _fk("book_id", "books.id", index=True),
        sa.Column("recommendation_type", RECOMMENDATION_TYPE, nullable=False),
        sa.Column("score", sa.Float, nullable=False),
        sa.Column("explanation", sa.Text, nullable=False),
        sa.Column("viewed", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("clicked", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("added_to_shelf", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("expires_at", sa.DateTime, nullable=False, index=True),
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index(
        "ix_recommendations_user_expires", "recommendations", ["user_id", "expires_at"]
    )


def downgrade() -> None:
    op.drop_index("ix_recommendations_user_expires", table_name="recommendations")
    op.drop_table("recommendations")
    op.drop_table("reviews")
    op.drop_table("shelves")
    op.drop_table("books")
    op.drop_table("user_favorite_genres")
    op.drop_table("genres")
    op.drop_table("users")
    bind = op.get_bind()
    for enum_type in (RECOMMENDATION_TYPE, REVIEW_STATUS, SHELF_STATUS, ROLE):
        enum_type.drop(bind, checkfirst=True)
