"""
Book Pydantic Schemas

The wire format uses camelCase names (userId, imageUrl, averageRating),
so every schema here uses a camelCase alias generator while the Python
side keeps snake_case attributes.

Protected fields:
=================
BookCreate and BookUpdate only declare the editable text fields. Anything
else a client sends (id, userId, imageUrl, ratings, averageRating) is
ignored, so the cached average and the owner can never be written from a
request payload.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for schemas exchanged with clients in camelCase."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


def strip_required_text(v: str) -> str:
    if not v.strip():
        raise ValueError("must not be empty or whitespace")
    return v.strip()


class BookBase(CamelModel):
    """
    Base schema with the editable book fields.

    All text fields are trimmed and must not be blank.
    """

    title: str = Field(
        ...,
        min_length=1,
        max_length=500,
        description="Book title",
        examples=["Dune"],
    )

    author: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="Author name",
        examples=["Frank Herbert"],
    )

    genre: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Literary genre",
        examples=["Science Fiction"],
    )

    year: int = Field(
        ...,
        ge=0,
        le=9999,
        description="Publication year",
        examples=[1965],
    )

    @field_validator("title", "author", "genre")
    @classmethod
    def text_must_not_be_empty(cls, v: str) -> str:
        return strip_required_text(v)


class BookCreate(BookBase):
    """
    Schema for creating a new book.

    Sent as the `book` form field (a JSON string) alongside the `image`
    file, or as flat form fields.

    Example `book` value:
    {
        "title": "Dune",
        "author": "Frank Herbert",
        "genre": "Science Fiction",
        "year": 1965
    }
    """

    pass


class BookUpdate(CamelModel):
    """
    Schema for updating a book.

    All fields optional; only provided fields are applied.
    """

    title: str | None = Field(default=None, min_length=1, max_length=500)
    author: str | None = Field(default=None, min_length=1, max_length=255)
    genre: str | None = Field(default=None, min_length=1, max_length=100)
    year: int | None = Field(default=None, ge=0, le=9999)

    @field_validator("title", "author", "genre")
    @classmethod
    def text_must_not_be_empty(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return strip_required_text(v)


class RatingResponse(CamelModel):
    """One user's grade, as embedded in a book."""

    user_id: int = Field(..., description="User who submitted the grade")
    grade: int = Field(..., description="Grade from 1 to 5")

    model_config = ConfigDict(from_attributes=True)


class BookResponse(CamelModel):
    """
    Schema for book responses.

    Example:
    {
        "id": 1,
        "userId": 3,
        "title": "Dune",
        "author": "Frank Herbert",
        "genre": "Science Fiction",
        "year": 1965,
        "imageUrl": "http://localhost:4000/images/dune-1712.webp",
        "ratings": [{"userId": 3, "grade": 5}],
        "averageRating": 5.0,
        "createdAt": "...",
        "updatedAt": "..."
    }
    """

    id: int
    owner_id: int = Field(..., alias="userId", description="Owner of the book")
    title: str
    author: str
    genre: str
    year: int
    image_url: str
    ratings: list[RatingResponse] = Field(default_factory=list)
    average_rating: float = Field(default=0.0)
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MessageResponse(BaseModel):
    """Plain acknowledgement body."""

    message: str
