"""
Ratings Service

Maintains the rating aggregate of each book.

Individual ratings are the source of truth. The book's `average_rating`
is a denormalized cache: it is always recomputed from the full list of
grades after a mutation, never adjusted incrementally, so concurrent
submissions cannot make it drift.

Concurrency:
============
The read-check-then-append in submit_rating runs with the book row
locked (SELECT ... FOR UPDATE), which serializes mutations per book on
PostgreSQL. The (book_id, user_id) unique constraint on the ratings table
is the storage-level guard: a duplicate that slips past the check fails
with IntegrityError and is reported as AlreadyRatedError.
"""

import logging
import math
from collections.abc import Iterable, Sequence

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.exceptions import AlreadyRatedError, NotFoundError
from app.models import Book, Rating

logger = logging.getLogger(__name__)


def compute_average(grades: Iterable[int]) -> float:
    """
    Mean of the grades rounded half-up to one decimal.

    Returns 0.0 for an empty list.

    Example:
        >>> compute_average([4, 2])
        3.0
        >>> compute_average([5, 4, 4, 4])
        4.3
    """
    grades = list(grades)
    if not grades:
        return 0.0
    mean = sum(grades) / len(grades)
    return math.floor(mean * 10 + 0.5) / 10


def recalculate_book_rating(book: Book) -> float:
    """
    Recompute a book's cached average from its ratings.

    Does not commit; the caller owns the transaction.
    """
    book.average_rating = compute_average(r.grade for r in book.ratings)
    return book.average_rating


def submit_rating(db: Session, book_id: int, user_id: int, grade: int) -> Book:
    """
    Append a user's rating to a book and refresh the average.

    Args:
        db: Database session
        book_id: Book being rated
        user_id: Authenticated rater
        grade: Grade, already validated by the request schema

    Returns:
        The updated book

    Raises:
        NotFoundError: Unknown book
        AlreadyRatedError: The user already rated this book
    """
    stmt = select(Book).where(Book.id == book_id).with_for_update()
    book = db.execute(stmt).scalar_one_or_none()

    if book is None:
        raise NotFoundError(f"Book with id {book_id} not found")

    if any(r.user_id == user_id for r in book.ratings):
        db.rollback()
        raise AlreadyRatedError()

    book.ratings.append(Rating(user_id=user_id, grade=grade))
    recalculate_book_rating(book)

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.info(f"Concurrent duplicate rating rejected: book={book_id} user={user_id}")
        raise AlreadyRatedError()

    db.refresh(book)
    logger.info(
        f"Book {book_id} rated {grade} by user {user_id}; "
        f"average now {book.average_rating}"
    )
    return book


def get_best_rated(db: Session, limit: int = 3) -> Sequence[Book]:
    """
    Books with the highest average, most recent first on ties.

    Unrated books (average 0) are excluded.
    """
    stmt = (
        select(Book)
        .where(Book.average_rating > 0)
        .order_by(
            Book.average_rating.desc(),
            Book.created_at.desc(),
            Book.id.desc(),
        )
        .limit(limit)
    )
    return db.execute(stmt).scalars().all()


def recalculate_all_book_ratings(db: Session) -> int:
    """
    Recalculate the cached average of every book.

    Useful for data migrations or fixing inconsistencies.

    Returns:
        Number of books updated
    """
    books = db.execute(select(Book)).scalars().all()

    for book in books:
        recalculate_book_rating(book)

    db.commit()
    return len(books)
