"""
User Pydantic Schemas

Schemas:
- UserCreate: Signup data (email, password)
- UserLogin: Login credentials
- LoginResponse: Issued bearer token and the user's id

Email Normalization:
====================
Both signup and login trim and lower-case the email before validation,
so " Foo@Bar.com " and "foo@bar.com" identify the same account.
"""

import re

from pydantic import BaseModel, EmailStr, Field, field_validator

from app.schemas.book import CamelModel


def normalize_email(v):
    if isinstance(v, str):
        return v.strip().lower()
    return v


class UserCreate(BaseModel):
    """Schema for user signup."""

    email: EmailStr = Field(
        ...,
        description="User's email address",
        examples=["john@example.com"],
    )

    password: str = Field(
        ...,
        min_length=8,
        max_length=72,  # bcrypt ignores anything beyond 72 bytes
        description="Password (min 8 chars, must include uppercase and number)",
        examples=["SecurePass123"],
    )

    @field_validator("email", mode="before")
    @classmethod
    def normalize(cls, v):
        return normalize_email(v)

    @field_validator("password")
    @classmethod
    def password_must_be_strong(cls, v: str) -> str:
        """
        Validate password strength.

        Requirements:
        - At least 8 characters (enforced by min_length)
        - At least 1 uppercase letter
        - At least 1 lowercase letter
        - At least 1 number
        """
        if not re.search(r"[A-Z]", v):
            raise ValueError("Password must contain at least one uppercase letter")
        if not re.search(r"[a-z]", v):
            raise ValueError("Password must contain at least one lowercase letter")
        if not re.search(r"\d", v):
            raise ValueError("Password must contain at least one number")
        return v


class UserLogin(BaseModel):
    """Login credentials. Not validated as an email so bad input is a 401."""

    email: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1, max_length=128)

    @field_validator("email", mode="before")
    @classmethod
    def normalize(cls, v):
        return normalize_email(v)


class LoginResponse(CamelModel):
    """
    Response for a successful login.

    Usage:
        Authorization: Bearer <token>
    """

    user_id: int
    token: str
