"""
Authentication Router

Handles user authentication endpoints:
- Registration (email/password, welcome email in the background)
- Login (email/password → JWT access token)
- Get current user (from JWT token)

The lending endpoints only ever see the user id resolved here.

Security:
=========
- Passwords are hashed with bcrypt before storage
- Plain text passwords are never logged or stored
- Access tokens expire after settings.access_token_expire_minutes
"""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy import or_, select

from booknet.config import get_settings
from booknet.dependencies import ActiveUser, DbSession, Notifier
from booknet.models.user import User
from booknet.schemas.user import TokenResponse, UserCreate, UserResponse
from booknet.services.rate_limiter import limiter
from booknet.services.security import hash_password, issue_access_token, verify_password

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(
    prefix="/auth",
    tags=["Authentication"],
    responses={
        401: {"description": "Unauthorized"},
        409: {"description": "Conflict (email/username already exists)"},
    },
)


# -------------------------------------------------------------------------
# Registration Endpoint
# -------------------------------------------------------------------------
@router.post(
    "/register",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
    description="""
    Create a new member account with email and password.

    **Password Requirements:**
    - Minimum 8 characters
    - At least 1 uppercase letter
    - At least 1 lowercase letter
    - At least 1 number
    """,
)
@limiter.limit("5/minute")  # Strict rate limit to prevent spam registrations
def register(
    request: Request,
    user_data: UserCreate,
    db: DbSession,
    notifier: Notifier,
    background_tasks: BackgroundTasks,
) -> UserResponse:
    """
    Register a new user with email and password.

    1. Validates email and password format (handled by Pydantic)
    2. Checks for duplicate email/username
    3. Hashes password with bcrypt
    4. Creates user record and schedules the welcome email
    """
    stmt = select(User).where(
        or_(User.email == user_data.email, User.username == user_data.username)
    )
    existing = db.execute(stmt).scalars().first()

    if existing is not None:
        detail = (
            "Email already registered"
            if existing.email == user_data.email
            else "Username already taken"
        )
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail)

    user = User(
        email=user_data.email,
        username=user_data.username,
        hashed_password=hash_password(user_data.password),
        full_name=user_data.full_name,
        is_active=True,
    )

    db.add(user)
    db.commit()
    db.refresh(user)

    logger.info(f"New user registered: {user.email}")
    background_tasks.add_task(notifier.send_welcome, user.email, user.username)

    return UserResponse.model_validate(user)


# -------------------------------------------------------------------------
# Login Endpoint
# -------------------------------------------------------------------------
@router.post(
    "/login",
    response_model=TokenResponse,
    summary="Login with email and password",
    description="""
    Authenticate with email and password to receive a JWT access token.

    Include the token in the Authorization header:
    ```
    Authorization: Bearer <access_token>
    ```

    **Note:** Use email address in the 'username' field (OAuth2 standard).
    """,
)
@limiter.limit("10/minute")  # Rate limit login attempts
def login(
    request: Request,
    db: DbSession,
    form_data: OAuth2PasswordRequestForm = Depends(),
) -> TokenResponse:
    """Authenticate user and return an access token."""
    email = form_data.username  # OAuth2 uses 'username' field for the identifier

    stmt = select(User).where(User.email == email)
    user = db.execute(stmt).scalar_one_or_none()

    if user is None or not verify_password(form_data.password, user.hashed_password):
        logger.warning(f"Login failed for {email}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is inactive",
        )

    access_token = issue_access_token(user.id)
    logger.info(f"User logged in: {user.email}")

    return TokenResponse(
        access_token=access_token,
        token_type="bearer",
        expires_in=settings.access_token_expire_minutes * 60,
    )


# -------------------------------------------------------------------------
# Current User Endpoint
# -------------------------------------------------------------------------
@router.get(
    "/me",
    response_model=UserResponse,
    summary="Get current user",
    description="Get the profile of the currently authenticated user.",
)
def get_current_user_profile(current_user: ActiveUser) -> UserResponse:
    return UserResponse.model_validate(current_user)
