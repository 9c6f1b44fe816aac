"""
Rating Pydantic Schemas

The submission body follows the client contract:

    {"userId": "3", "rating": 4}

`userId` is optional: the rater is always the authenticated user, and a
body value that disagrees with the token is rejected.

Grades are accepted in [1, 5], the same bound the ratings table enforces,
so 0 is refused at the entry point instead of failing at persistence.
JSON booleans are refused as well, although Python treats True as 1.
"""

from pydantic import Field, field_validator

from app.schemas.book import CamelModel


class RatingCreate(CamelModel):
    """Schema for submitting a rating."""

    rating: int = Field(
        ...,
        ge=1,
        le=5,
        description="Grade from 1 to 5",
        examples=[4],
    )

    user_id: int | str | None = Field(
        default=None,
        description="Optional rater id; must match the authenticated user",
    )

    @field_validator("rating", mode="before")
    @classmethod
    def reject_booleans(cls, v):
        if isinstance(v, bool):
            raise ValueError("rating must be a number, not a boolean")
        return v
