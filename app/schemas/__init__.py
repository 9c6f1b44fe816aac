"""
Pydantic Schemas Package

Schemas validate request bodies and shape responses:
- book.py: BookCreate, BookUpdate, BookResponse, MessageResponse
- rating.py: RatingCreate
- user.py: UserCreate, UserLogin, LoginResponse

Usage:
    from app.schemas import BookCreate, BookResponse
"""

from app.schemas.book import (
    BookCreate,
    BookResponse,
    BookUpdate,
    MessageResponse,
    RatingResponse,
)
from app.schemas.rating import RatingCreate
from app.schemas.user import LoginResponse, UserCreate, UserLogin

__all__ = [
    "BookCreate",
    "BookUpdate",
    "BookResponse",
    "RatingResponse",
    "MessageResponse",
    "RatingCreate",
    "UserCreate",
    "UserLogin",
    "LoginResponse",
]
