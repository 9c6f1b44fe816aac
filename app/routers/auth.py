"""
Authentication Router

Handles account endpoints:
- Signup (email/password)
- Login (email/password → bearer token)

Security:
=========
- Passwords are hashed with bcrypt before storage
- Plain text passwords are never logged or stored
- Emails are trimmed and lower-cased at signup and login
- Login failures are reported generically ("Invalid credentials"),
  whether the email was unknown or the password wrong
"""

import logging

from fastapi import APIRouter, Request, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from app.config import get_settings
from app.dependencies import DbSession
from app.exceptions import ConflictError, UnauthenticatedError
from app.models import User
from app.schemas import LoginResponse, MessageResponse, UserCreate, UserLogin
from app.services.rate_limiter import limiter
from app.services.security import (
    create_access_token,
    get_secret_key,
    hash_password,
    verify_password,
)

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(
    prefix="/auth",
    tags=["Authentication"],
    responses={
        400: {"description": "Bad request"},
        401: {"description": "Unauthorized"},
        409: {"description": "Conflict (email already exists)"},
    },
)


@router.post(
    "/signup",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an account",
    description="""
    Create a new account with email and password.

    **Password Requirements:**
    - Minimum 8 characters
    - At least 1 uppercase letter
    - At least 1 lowercase letter
    - At least 1 number
    """,
)
@limiter.limit(settings.rate_limit_auth)
def signup(
    request: Request,
    user_data: UserCreate,
    db: DbSession,
) -> MessageResponse:
    """
    Register a new user with email and password.

    1. Validates and normalizes email, checks password strength (Pydantic)
    2. Checks for a duplicate email
    3. Hashes the password with bcrypt
    4. Creates the user record
    """
    stmt = select(User).where(User.email == user_data.email)
    if db.execute(stmt).scalar_one_or_none():
        raise ConflictError("Email already registered")

    user = User(
        email=user_data.email,
        hashed_password=hash_password(user_data.password),
    )
    db.add(user)

    # Two concurrent signups can both pass the check above
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Email already registered")

    logger.info(f"New user registered: {user.email}")

    return MessageResponse(message="User created")


@router.post(
    "/login",
    response_model=LoginResponse,
    summary="Login with email and password",
    description="""
    Authenticate with email and password to receive a bearer token.

    **Usage:**
    Include the token in the Authorization header:
    ```
    Authorization: Bearer <token>
    ```
    """,
)
@limiter.limit(settings.rate_limit_auth)
def login(
    request: Request,
    credentials: UserLogin,
    db: DbSession,
) -> LoginResponse:
    """
    Authenticate user and return a signed access token.

    Raises:
        UnauthenticatedError: 401 "Invalid credentials"
        ConfigurationError: 500 if no secret key is configured, checked
            before the credentials so the status never reveals a correct password
    """
    get_secret_key()

    stmt = select(User).where(User.email == credentials.email)
    user = db.execute(stmt).scalar_one_or_none()

    if user is None:
        logger.warning(f"Login failed: user not found for {credentials.email}")
        raise UnauthenticatedError("Invalid credentials")

    if not verify_password(credentials.password, user.hashed_password):
        logger.warning(f"Login failed: incorrect password for {credentials.email}")
        raise UnauthenticatedError("Invalid credentials")

    token = create_access_token({"sub": str(user.id)})
    logger.info(f"User logged in: {user.email}")

    return LoginResponse(user_id=user.id, token=token)
