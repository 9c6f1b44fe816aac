"""
Books Router

CRUD endpoints for books, cover image handling and ratings.

Endpoints:
- GET    /books              - List all books (newest first)
- GET    /books/bestrating   - Best-rated books
- GET    /books/{book_id}    - Get one book
- POST   /books              - Create a book with its cover (authenticated)
- PUT    /books/{book_id}    - Update a book, optionally replacing its cover (owner only)
- DELETE /books/{book_id}    - Delete a book and its cover (owner only)
- POST   /books/{book_id}/rating - Rate a book once (authenticated)

Image ordering rules:
=====================
- Create: fields are validated before the upload is written; if anything
  fails afterwards the written file is removed.
- Replace: the previous cover is deleted only after the new reference is
  committed. If the commit fails, the new file is removed and the old one
  is left in place.
- Delete: the record is deleted first, the cover afterwards (best-effort).
"""

import logging

from fastapi import APIRouter, Query, Request, status
from sqlalchemy import select

from app.config import get_settings
from app.dependencies import (
    BookPayloadData,
    CurrentUser,
    DbSession,
    validate_payload,
)
from app.exceptions import ForbiddenError, InvalidInputError, NotFoundError
from app.models import Book, User
from app.schemas import (
    BookCreate,
    BookResponse,
    BookUpdate,
    MessageResponse,
    RatingCreate,
)
from app.services.images import discard_file, image_url_for, normalize_upload, remove_image
from app.services.rate_limiter import limiter
from app.services.ratings import get_best_rated, submit_rating
from app.services.uploads import stage_upload

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(
    prefix="/books",
    tags=["Books"],
    responses={
        404: {"description": "Book not found"},
    },
)


# =============================================================================
# Helper Functions
# =============================================================================
def get_book_or_404(db: DbSession, book_id: int) -> Book:
    """
    Get a book by ID or raise NotFoundError.

    Raises:
        NotFoundError: 404 if book not found
    """
    book = db.get(Book, book_id)

    if book is None:
        raise NotFoundError(f"Book with id {book_id} not found")

    return book


def ensure_owner(book: Book, user: User) -> None:
    """Only the account that created a book may change or delete it."""
    if book.owner_id != user.id:
        logger.warning(f"User {user.id} attempted to modify book {book.id} owned by {book.owner_id}")
        raise ForbiddenError("Forbidden: you are not the owner of this book")


# =============================================================================
# Read Endpoints
# =============================================================================
@router.get(
    "",
    response_model=list[BookResponse],
    summary="List all books",
)
@limiter.limit(settings.rate_limit_default)
def list_books(request: Request, db: DbSession) -> list[BookResponse]:
    """List every book, newest first."""
    stmt = select(Book).order_by(Book.created_at.desc(), Book.id.desc())
    books = db.execute(stmt).scalars().all()
    return [BookResponse.model_validate(book) for book in books]


@router.get(
    "/bestrating",
    response_model=list[BookResponse],
    summary="Best-rated books",
    description="Books with the highest average rating. Unrated books are excluded.",
)
@limiter.limit(settings.rate_limit_default)
def best_rated_books(
    request: Request,
    db: DbSession,
    limit: int | None = Query(
        default=None,
        ge=1,
        le=50,
        description="Number of books to return (default 3)",
    ),
) -> list[BookResponse]:
    """
    Books sorted by average rating (descending), most recent first on ties.

    Declared before /{book_id} so "bestrating" is not parsed as an id.
    """
    books = get_best_rated(db, limit or settings.best_rated_limit)
    return [BookResponse.model_validate(book) for book in books]


@router.get(
    "/{book_id}",
    response_model=BookResponse,
    summary="Get a book by ID",
)
@limiter.limit(settings.rate_limit_default)
def get_book(request: Request, book_id: int, db: DbSession) -> BookResponse:
    book = get_book_or_404(db, book_id)
    return BookResponse.model_validate(book)


# =============================================================================
# Write Endpoints
# =============================================================================
@router.post(
    "",
    response_model=BookResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new book",
    description=(
        "Multipart form with a `book` field (JSON string) or flat fields, "
        "plus the cover in `image`. Requires authentication."
    ),
)
@limiter.limit(settings.rate_limit_write)
def create_book(
    request: Request,
    db: DbSession,
    current_user: CurrentUser,
    payload: BookPayloadData,
) -> BookResponse:
    """
    Create a new book owned by the authenticated user.

    The book starts with no ratings and an average of 0.

    Raises:
        InvalidInputError: 400 for missing/invalid fields or missing image
        InvalidUploadError: 400 for a rejected file
        InvalidImageError: 400 for undecodable image bytes
    """
    book_data = validate_payload(BookCreate, payload.data)
    if payload.image is None:
        raise InvalidInputError("Image is required (field 'image')")

    normalized = None
    try:
        normalized = normalize_upload(stage_upload(payload.image).path)
        book = Book(
            owner_id=current_user.id,
            **book_data.model_dump(),
            image_url=image_url_for(request, normalized),
            average_rating=0.0,
        )
        db.add(book)
        db.commit()
    except Exception:
        db.rollback()
        discard_file(normalized)
        raise

    db.refresh(book)
    logger.info(f"Book {book.id} created by user {current_user.id}")

    return BookResponse.model_validate(book)


@router.put(
    "/{book_id}",
    response_model=BookResponse,
    summary="Update a book",
    description=(
        "JSON body for text fields, or a multipart form with `book` and a new "
        "`image` to replace the cover. Owner only."
    ),
)
@limiter.limit(settings.rate_limit_write)
def update_book(
    request: Request,
    book_id: int,
    db: DbSession,
    current_user: CurrentUser,
    payload: BookPayloadData,
) -> BookResponse:
    """
    Update an existing book.

    Only provided fields are updated. Owner, image URL, ratings and the
    average are not editable through this endpoint.

    Raises:
        NotFoundError: 404 if book not found
        ForbiddenError: 403 if the caller is not the owner
    """
    book = get_book_or_404(db, book_id)
    ensure_owner(book, current_user)

    update_data = validate_payload(BookUpdate, payload.data).model_dump(
        exclude_unset=True,
        exclude_none=True,
    )
    previous_image_url = book.image_url

    new_image = None
    try:
        if payload.image is not None:
            new_image = normalize_upload(stage_upload(payload.image).path)
            book.image_url = image_url_for(request, new_image)
        for field, value in update_data.items():
            setattr(book, field, value)
        db.commit()
    except Exception:
        db.rollback()
        discard_file(new_image)
        raise

    if new_image is not None:
        remove_image(previous_image_url)

    db.refresh(book)
    logger.info(f"Book {book_id} updated by user {current_user.id}")

    return BookResponse.model_validate(book)


@router.delete(
    "/{book_id}",
    response_model=MessageResponse,
    summary="Delete a book",
    description="Delete a book and its cover image. Owner only.",
)
@limiter.limit(settings.rate_limit_write)
def delete_book(
    request: Request,
    book_id: int,
    db: DbSession,
    current_user: CurrentUser,
) -> MessageResponse:
    """
    Delete a book, then reclaim its cover.

    A failure to remove the file is logged and does not fail the request.

    Raises:
        NotFoundError: 404 if book not found
        ForbiddenError: 403 if the caller is not the owner
    """
    book = get_book_or_404(db, book_id)
    ensure_owner(book, current_user)

    image_url = book.image_url
    db.delete(book)
    db.commit()

    remove_image(image_url)
    logger.info(f"Book {book_id} deleted by user {current_user.id}")

    return MessageResponse(message="Book deleted")


@router.post(
    "/{book_id}/rating",
    response_model=BookResponse,
    summary="Rate a book",
    description="Submit a 1-5 grade. Each user can rate a book once.",
    responses={409: {"description": "Book already rated by this user"}},
)
@limiter.limit(settings.rate_limit_write)
def rate_book(
    request: Request,
    book_id: int,
    rating_data: RatingCreate,
    db: DbSession,
    current_user: CurrentUser,
) -> BookResponse:
    """
    Add the authenticated user's rating and return the updated book.

    Raises:
        InvalidInputError: 400 if body userId differs from the token's user
        NotFoundError: 404 if book not found
        AlreadyRatedError: 409 if the user already rated this book
    """
    if rating_data.user_id is not None and str(rating_data.user_id) != str(current_user.id):
        raise InvalidInputError("userId in body does not match the authenticated user")

    book = submit_rating(db, book_id, current_user.id, rating_data.rating)
    return BookResponse.model_validate(book)
