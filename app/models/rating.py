"""
Rating Model

A single user's grade for a book.

Business Rules:
- One rating per user per book (unique constraint)
- Grade must be 1-5
- A rating is final: there is no update or delete endpoint
"""

from datetime import UTC, datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base


class Rating(Base):
    """
    Rating model.

    Attributes:
        id: Primary key, increasing in submission order
        book_id: Foreign key to books table
        user_id: Foreign key to users table
        grade: 1-5
        created_at: When the rating was submitted
    """

    __tablename__ = "ratings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)

    book_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("books.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    grade: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Grade from 1-5",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    book = relationship("Book", back_populates="ratings")

    __table_args__ = (
        # The storage-level guard behind "at most one rating per user"
        UniqueConstraint("book_id", "user_id", name="uq_rating_book_user"),
        CheckConstraint("grade >= 1 AND grade <= 5", name="ck_rating_grade_range"),
    )

    def __repr__(self) -> str:
        return f"<Rating(id={self.id}, book_id={self.book_id}, user_id={self.user_id}, grade={self.grade})>"
