"""
Security Service

Handles password hashing and JWT token operations.

Security Features:
==================
1. Password hashing with bcrypt (passlib)
2. JWT access token generation and validation (python-jose)
3. Expired and invalid tokens are told apart for the client message

Usage:
    from app.services.security import hash_password, verify_password

    hashed = hash_password("SecurePass123")
    is_valid = verify_password("SecurePass123", hashed)
"""

import logging
from datetime import UTC, datetime, timedelta

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from app.config import get_settings
from app.exceptions import ConfigurationError, UnauthenticatedError

logger = logging.getLogger(__name__)
settings = get_settings()

# -------------------------------------------------------------------------
# Password Hashing Configuration
# -------------------------------------------------------------------------
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    """
    Hash a plain text password using bcrypt.

    Example:
        >>> hashed = hash_password("SecurePass123")
        >>> hashed.startswith("$2b$")
        True
    """
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plain password against a hashed password.

    Uses constant-time comparison to prevent timing attacks.
    """
    return pwd_context.verify(plain_password, hashed_password)


# -------------------------------------------------------------------------
# JWT Token Configuration
# -------------------------------------------------------------------------
ALGORITHM = "HS256"


def get_secret_key() -> str:
    """
    Return the configured signing key.

    Raises:
        ConfigurationError: If SECRET_KEY is not configured
    """
    if not settings.secret_key:
        logger.error("SECRET_KEY is not configured; refusing credential operation")
        raise ConfigurationError("Server configuration is invalid (missing secret key)")
    return settings.secret_key


def create_access_token(
    data: dict,
    expires_delta: timedelta | None = None,
) -> str:
    """
    Create a JWT access token.

    Args:
        data: Payload data to encode in the token
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token string

    Raises:
        ConfigurationError: If no secret key is configured
    """
    secret_key = get_secret_key()
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.now(UTC) + expires_delta
    else:
        expire = datetime.now(UTC) + timedelta(hours=settings.access_token_expire_hours)

    to_encode.update({"exp": expire, "type": "access"})

    return jwt.encode(to_encode, secret_key, algorithm=ALGORITHM)


def decode_token(token: str) -> dict:
    """
    Decode and validate a JWT token.

    Returns:
        Decoded payload

    Raises:
        UnauthenticatedError: "Token expired" or "Invalid token"
        ConfigurationError: If no secret key is configured
    """
    secret_key = get_secret_key()
    try:
        return jwt.decode(token, secret_key, algorithms=[ALGORITHM])
    except ExpiredSignatureError:
        raise UnauthenticatedError("Token expired")
    except JWTError as e:
        logger.warning(f"JWT decode error: {e}")
        raise UnauthenticatedError("Invalid token")


def get_token_subject(token: str) -> int:
    """
    Decode an access token and return the user id it was issued to.

    Raises:
        UnauthenticatedError: If the token is not a valid access token
    """
    payload = decode_token(token)

    if payload.get("type") != "access":
        logger.warning("Token type mismatch: expected access")
        raise UnauthenticatedError("Invalid token")

    subject = payload.get("sub")
    try:
        return int(subject)
    except (TypeError, ValueError):
        raise UnauthenticatedError("Invalid token")
