"""
Pydantic Schemas Package

Schema Naming Convention:
- XxxBase: Shared fields between create/response
- XxxCreate: Fields required when creating a new record
- XxxResponse: Fields returned in API responses
"""

from booknet.schemas.book import (
    BookBase,
    BookCreate,
    BookResponse,
    BookSummary,
)
from booknet.schemas.common import ErrorResponse, PageResponse
from booknet.schemas.feedback import FeedbackCreate, FeedbackResponse
from booknet.schemas.lending import LendingActionResponse, LendingRecordResponse
from booknet.schemas.user import (
    TokenResponse,
    UserCreate,
    UserPublicResponse,
    UserResponse,
)

__all__ = [
    # Book schemas
    "BookBase",
    "BookCreate",
    "BookResponse",
    "BookSummary",
    # Feedback schemas
    "FeedbackCreate",
    "FeedbackResponse",
    # Lending schemas
    "LendingActionResponse",
    "LendingRecordResponse",
    # Common schemas
    "PageResponse",
    "ErrorResponse",
    # User schemas
    "UserCreate",
    "UserResponse",
    "UserPublicResponse",
    "TokenResponse",
]
