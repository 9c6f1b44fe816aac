"""
FastAPI Dependencies Module

Dependencies are reusable components injected into route handlers.
FastAPI's Depends() function manages their lifecycle.

Provided here:
- DbSession: per-request SQLAlchemy session
- CurrentUser: user resolved from the "Authorization: Bearer <token>" header
- BookPayloadData: book fields (and optional image) from either a JSON body
  or a multipart form
- validate_payload(): schema validation that reports errors as HTTP 400
"""

import json
from dataclasses import dataclass
from typing import Annotated, Any

from fastapi import Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, ValidationError
from sqlalchemy import select
from sqlalchemy.orm import Session
from starlette.datastructures import UploadFile

from app.database import get_db
from app.exceptions import InvalidInputError, InvalidUploadError, UnauthenticatedError
from app.models.user import User
from app.services.security import get_token_subject

DbSession = Annotated[Session, Depends(get_db)]


# =============================================================================
# Bearer Authentication
# =============================================================================
# auto_error=False so a missing header becomes our own 401 ("Token missing")
# instead of FastAPI's default response.
bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    """
    Extract and validate the current user from the bearer token.

    Raises:
        UnauthenticatedError: Missing, expired or invalid token, or the
            account it names no longer exists
        ConfigurationError: No secret key configured
    """
    if credentials is None or not credentials.credentials:
        raise UnauthenticatedError("Token missing")

    user_id = get_token_subject(credentials.credentials)

    user = db.execute(select(User).where(User.id == user_id)).scalar_one_or_none()
    if user is None:
        raise UnauthenticatedError("Invalid token")

    return user


CurrentUser = Annotated[User, Depends(get_current_user)]


# =============================================================================
# Book Payload
# =============================================================================
@dataclass
class BookPayload:
    """Raw book fields plus the uploaded image, if any."""

    data: dict[str, Any]
    image: UploadFile | None = None


def parse_book_json(raw: str | bytes) -> dict[str, Any]:
    try:
        data = json.loads(raw)
    except (ValueError, UnicodeDecodeError):
        raise InvalidInputError("Malformed JSON payload")
    if not isinstance(data, dict):
        raise InvalidInputError("Book payload must be a JSON object")
    return data


async def get_book_payload(request: Request) -> BookPayload:
    """
    Read book fields from a JSON body or a multipart form.

    Multipart requests carry the fields either as a `book` field holding a
    JSON string, or as flat form fields; the cover goes in `image`.
    At most one file is accepted.

    Raises:
        InvalidInputError: Malformed JSON
        InvalidUploadError: More than one file, or a file outside `image`
    """
    content_type = request.headers.get("content-type", "")

    if content_type.startswith(("multipart/form-data", "application/x-www-form-urlencoded")):
        form = await request.form()
        files = [(key, value) for key, value in form.multi_items() if isinstance(value, UploadFile)]

        if len(files) > 1:
            raise InvalidUploadError("Exactly one image file is allowed")
        if files and files[0][0] != "image":
            raise InvalidUploadError("The image must be sent in the 'image' field")

        raw_book = form.get("book")
        if isinstance(raw_book, str):
            data = parse_book_json(raw_book)
        else:
            data = {key: value for key, value in form.multi_items() if isinstance(value, str)}

        return BookPayload(data=data, image=files[0][1] if files else None)

    body = await request.body()
    if not body.strip():
        return BookPayload(data={})
    return BookPayload(data=parse_book_json(body))


BookPayloadData = Annotated[BookPayload, Depends(get_book_payload)]


def validate_payload(schema: type[BaseModel], data: dict[str, Any]) -> Any:
    """
    Validate manually parsed data against a schema.

    Errors are re-raised as RequestValidationError so they reach the same
    400 handler as body validation done by FastAPI.
    """
    try:
        return schema.model_validate(data)
    except ValidationError as e:
        raise RequestValidationError(e.errors(include_url=False))
