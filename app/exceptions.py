"""
Domain Exceptions

Services raise these instead of HTTPException so they stay usable outside
of a request. Each exception carries the HTTP status it maps to, and a
single handler registered in app.main turns them into JSON responses:

    {"detail": "<message>"}

Taxonomy:
- 400: InvalidInputError, InvalidUploadError, InvalidImageError
- 401: UnauthenticatedError
- 403: ForbiddenError
- 404: NotFoundError
- 409: ConflictError, AlreadyRatedError
- 500: ConfigurationError
"""

from fastapi import status


class CatalogueError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "An internal error occurred."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidInputError(CatalogueError):
    """Malformed payload, missing field or out-of-range value."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid input"


class InvalidUploadError(InvalidInputError):
    """Uploaded file rejected before any decoding (type, size, count)."""

    default_message = "Invalid upload"


class InvalidImageError(InvalidInputError):
    """Uploaded bytes could not be decoded or re-encoded as an image."""

    default_message = "Unreadable or unsupported image"


class UnauthenticatedError(CatalogueError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Authentication required"


class ForbiddenError(CatalogueError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Forbidden"


class NotFoundError(CatalogueError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class ConflictError(CatalogueError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Conflict"


class AlreadyRatedError(ConflictError):
    default_message = "You have already rated this book"


class ConfigurationError(CatalogueError):
    """Server is missing configuration required by the operation."""

    default_message = "Server configuration is invalid"
