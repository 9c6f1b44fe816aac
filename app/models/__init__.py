"""
SQLAlchemy Models Package

Model Relationships:
- User <-> Book: One-to-Many (a user owns the books they created)
- Book <-> Rating: One-to-Many (ratings in submission order)
- User <-> Rating: One-to-Many (at most one rating per book)

Import all models here so they are available as
`from app.models import Book, Rating, User` and so Alembic discovers them.
"""

from app.models.user import User
from app.models.book import Book
from app.models.rating import Rating

__all__ = [
    "User",
    "Book",
    "Rating",
]
