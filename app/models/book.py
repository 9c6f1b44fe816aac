"""
Book Model

The central model of the Book Catalogue API.

Rating Aggregate:
=================
Individual ratings live in the `ratings` table (source of truth).
`average_rating` on the book is a cached, derived value: it is recomputed
from the full list on every rating mutation and is never written from
request payloads.

Cover Image:
============
`image_url` is the absolute URL of a normalized file in the image
directory. The file is exclusively owned by the book and is reclaimed
when the reference changes or the book is deleted.
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, Float, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base

if TYPE_CHECKING:
    from app.models.rating import Rating
    from app.models.user import User


def utcnow() -> datetime:
    return datetime.now(UTC)


class Book(Base):
    """
    Book model representing a catalogued book.

    Table: books

    Fields:
    - owner_id: Account that created the book (immutable)
    - title, author, genre: Required text fields
    - year: Publication year
    - image_url: Absolute URL of the normalized cover image
    - average_rating: Cached mean of ratings, one decimal, 0 when unrated

    Relationships:
    - owner: Many-to-One with User
    - ratings: One-to-Many with Rating, in submission order

    Indexes:
    - (average_rating, created_at): supports the best-rated query

    Example:
        book = Book(
            owner_id=1,
            title="Dune",
            author="Frank Herbert",
            genre="Science Fiction",
            year=1965,
            image_url="http://localhost:4000/images/dune-1712.webp",
        )
    """

    __tablename__ = "books"

    id: Mapped[int] = mapped_column(primary_key=True)

    owner_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Account that created the book"
    )

    # -------------------------------------------------------------------------
    # Basic Fields
    # -------------------------------------------------------------------------
    title: Mapped[str] = mapped_column(
        String(500),
        index=True,
        nullable=False,
        comment="Book title"
    )

    author: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Author name"
    )

    genre: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        comment="Literary genre"
    )

    year: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Publication year"
    )

    image_url: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Absolute URL of the normalized cover image"
    )

    # -------------------------------------------------------------------------
    # Rating Aggregate
    # -------------------------------------------------------------------------
    average_rating: Mapped[float] = mapped_column(
        Float,
        default=0.0,
        nullable=False,
        comment="Mean grade rounded to one decimal, 0 when unrated"
    )

    # -------------------------------------------------------------------------
    # Timestamps
    # -------------------------------------------------------------------------
    # Python-side defaults keep sub-second precision, which the best-rated
    # tie-break on created_at relies on.
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )

    # -------------------------------------------------------------------------
    # Relationships
    # -------------------------------------------------------------------------
    owner: Mapped["User"] = relationship("User", back_populates="books")

    ratings: Mapped[list["Rating"]] = relationship(
        "Rating",
        back_populates="book",
        cascade="all, delete-orphan",
        order_by="Rating.id",
        lazy="selectin",
    )

    __table_args__ = (
        Index("ix_books_average_rating_created_at", "average_rating", "created_at"),
    )

    def __repr__(self) -> str:
        return f"Book(id={self.id}, title='{self.title}', owner_id={self.owner_id})"
