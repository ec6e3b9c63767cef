"""
FastAPI Dependencies Module

Dependencies are reusable components injected into route handlers.

Provided here:
- DbSession: per-request database session
- Pagination: page/size query parameters
- ActiveUser: the authenticated actor (identity provider)
- Registry / Ledger / Feedbacks: services bound to the request's session
- Storage / Notifier: sinks, overridable in tests
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Query, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.orm import Session

from booknet.config import get_settings
from booknet.database import get_db
from booknet.models.user import User
from booknet.services.feedback import FeedbackService
from booknet.services.ledger import LendingLedger
from booknet.services.locks import get_lock_manager
from booknet.services.notifications import EmailNotifier
from booknet.services.registry import BookRegistry
from booknet.services.security import read_member_id
from booknet.services.storage import CoverStorage

settings = get_settings()

DbSession = Annotated[Session, Depends(get_db)]


# =============================================================================
# Pagination Parameters
# =============================================================================
class PaginationParams:
    """
    Common pagination parameters for list endpoints.

    - page: Which page to return (1-indexed)
    - size: How many items per page

    Usage in route:
        @router.get("/books/")
        def list_books(pagination: Pagination):
            ...
    """

    def __init__(
        self,
        page: int = Query(
            default=1,
            ge=1,
            description="Page number (1-indexed)",
            examples=[1, 2, 3],
        ),
        size: int = Query(
            default=10,
            ge=1,
            le=100,  # Limit to prevent abuse
            description="Number of items per page (max 100)",
            examples=[10, 25, 50],
        ),
    ) -> None:
        self.page = page
        self.size = size


Pagination = Annotated[PaginationParams, Depends()]


# =============================================================================
# JWT Authentication (Identity Provider)
# =============================================================================
oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl=f"/api/{settings.api_version}/auth/login",
    auto_error=True,
)


def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> User:
    """
    Extract and validate the current user from JWT token.

    Raises:
        HTTPException: 401 if token is invalid or user not found
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    member_id = read_member_id(token)
    if member_id is None:
        raise credentials_exception

    stmt = select(User).where(User.id == member_id)
    user = db.execute(stmt).scalar_one_or_none()

    if user is None:
        raise credentials_exception

    return user


def get_current_active_user(
    current_user: User = Depends(get_current_user),
) -> User:
    """
    Verify the current user is active.

    Raises:
        HTTPException: 403 if user is inactive
    """
    if not current_user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is inactive",
        )
    return current_user


ActiveUser = Annotated[User, Depends(get_current_active_user)]


# =============================================================================
# Services
# =============================================================================
def get_registry(db: DbSession) -> BookRegistry:
    return BookRegistry(db)


def get_ledger(db: DbSession) -> LendingLedger:
    """Lending ledger bound to the request's session and the shared locks."""
    return LendingLedger(
        db,
        locks=get_lock_manager(),
        lock_timeout=settings.lock_timeout_seconds,
    )


def get_feedback_service(db: DbSession) -> FeedbackService:
    return FeedbackService(db)


def get_storage() -> CoverStorage:
    return CoverStorage(settings.upload_dir, settings.max_cover_size_bytes)


def get_notifier() -> EmailNotifier:
    return EmailNotifier(settings)


Registry = Annotated[BookRegistry, Depends(get_registry)]
Ledger = Annotated[LendingLedger, Depends(get_ledger)]
Feedbacks = Annotated[FeedbackService, Depends(get_feedback_service)]
Storage = Annotated[CoverStorage, Depends(get_storage)]
Notifier = Annotated[EmailNotifier, Depends(get_notifier)]
