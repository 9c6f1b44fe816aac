"""
User Model

Represents an account that can create books and rate them.

Emails are stored normalized (trimmed, lower-cased) so that signup and
login match regardless of case or surrounding whitespace.
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base

if TYPE_CHECKING:
    from app.models.book import Book


class User(Base):
    """
    User model representing registered accounts.

    Table: users

    Indexes:
    - Primary key on id (automatic)
    - email: Unique index for login lookups

    Example:
        user = User(
            email="john@example.com",
            hashed_password=hash_password("secret123"),
        )
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False,
        comment="Normalized email address (used for login)"
    )

    hashed_password: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Bcrypt hashed password"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
        comment="When the user registered"
    )

    books: Mapped[list["Book"]] = relationship(
        "Book",
        back_populates="owner",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        """Developer-friendly string representation."""
        return f"User(id={self.id}, email='{self.email}')"
