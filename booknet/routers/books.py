"""
Books Router

Endpoints for the book registry:
- Publish a book (the owner is always the authenticated user)
- Displayable books: shareable, not archived, published by someone else
- The actor's own books
- Owner toggles (shareable / archived) and cover upload

Lending endpoints under /books live in routers/lending.py.
"""

import logging

from fastapi import APIRouter, File, Request, UploadFile, status

from booknet.config import get_settings
from booknet.dependencies import ActiveUser, Ledger, Pagination, Registry, Storage
from booknet.models import Book
from booknet.schemas import BookCreate, BookResponse, ErrorResponse, PageResponse
from booknet.services.rate_limiter import limiter

logger = logging.getLogger(__name__)
settings = get_settings()

# =============================================================================
# Router Configuration
# =============================================================================
router = APIRouter(
    prefix="/books",
    tags=["Books"],
    responses={
        401: {"description": "Not authenticated"},
        404: {"model": ErrorResponse, "description": "Book not found"},
    },
)


# =============================================================================
# Publishing
# =============================================================================
@router.post(
    "/",
    response_model=BookResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Publish a book",
    description="Publish a new book owned by the authenticated user.",
    responses={409: {"model": ErrorResponse, "description": "ISBN already published"}},
)
@limiter.limit(settings.rate_limit_write)
def publish_book(
    request: Request,
    book_data: BookCreate,
    registry: Registry,
    current_user: ActiveUser,
) -> BookResponse:
    book = registry.publish(current_user.id, book_data)
    return BookResponse.model_validate(book)


# =============================================================================
# Listings
# =============================================================================
@router.get(
    "/",
    response_model=PageResponse[BookResponse],
    summary="List displayable books",
    description="Books other members offer for borrowing (shareable and not archived).",
)
@limiter.limit(settings.rate_limit_default)
def list_displayable_books(
    request: Request,
    registry: Registry,
    pagination: Pagination,
    current_user: ActiveUser,
) -> PageResponse[BookResponse]:
    """
    List books the current user could borrow.

    The user's own books are never included.
    """
    page = registry.list_displayable(current_user.id, pagination.page, pagination.size)
    return PageResponse[BookResponse].from_page(page, BookResponse)


# Must be declared before /{book_id}
@router.get(
    "/owner",
    response_model=PageResponse[BookResponse],
    summary="List my books",
    description="All books published by the authenticated user, whatever their flags.",
)
@limiter.limit(settings.rate_limit_default)
def list_my_books(
    request: Request,
    registry: Registry,
    pagination: Pagination,
    current_user: ActiveUser,
) -> PageResponse[BookResponse]:
    page = registry.list_owned_by(current_user.id, pagination.page, pagination.size)
    return PageResponse[BookResponse].from_page(page, BookResponse)


@router.get(
    "/{book_id}",
    response_model=BookResponse,
    summary="Get a book by ID",
)
@limiter.limit(settings.rate_limit_default)
def get_book(
    request: Request,
    book_id: int,
    registry: Registry,
    current_user: ActiveUser,
) -> BookResponse:
    return BookResponse.model_validate(registry.get_book(book_id))


# =============================================================================
# Owner Updates
# =============================================================================
@router.patch(
    "/shareable/{book_id}",
    response_model=int,
    summary="Toggle shareable",
    description="Offer the book for borrowing, or stop offering it. Owner only.",
    responses={403: {"model": ErrorResponse, "description": "Not the owner"}},
)
@limiter.limit(settings.rate_limit_write)
def toggle_shareable(
    request: Request,
    book_id: int,
    ledger: Ledger,
    current_user: ActiveUser,
) -> int:
    """
    Flip the book's shareable flag.

    An open loan is not affected: the borrower can still return the book
    and the owner can still approve the return.
    """
    return ledger.toggle_shareable(book_id, current_user.id)


@router.patch(
    "/archived/{book_id}",
    response_model=int,
    summary="Toggle archived",
    description="Archive the book, or bring it back. Owner only.",
    responses={403: {"model": ErrorResponse, "description": "Not the owner"}},
)
@limiter.limit(settings.rate_limit_write)
def toggle_archived(
    request: Request,
    book_id: int,
    ledger: Ledger,
    current_user: ActiveUser,
) -> int:
    return ledger.toggle_archived(book_id, current_user.id)


@router.post(
    "/cover/{book_id}",
    response_model=BookResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Upload a cover",
    description="Replace the book's cover image (multipart upload). Owner only.",
    responses={
        403: {"model": ErrorResponse, "description": "Not the owner"},
        422: {"model": ErrorResponse, "description": "Empty, oversized or non-image file"},
    },
)
@limiter.limit(settings.rate_limit_write)
def upload_cover(
    request: Request,
    book_id: int,
    registry: Registry,
    storage: Storage,
    current_user: ActiveUser,
    file: UploadFile = File(..., description="Cover image"),
) -> BookResponse:
    """
    Store the uploaded image and record its path on the book.

    Ownership is checked before anything is written to disk.
    """
    book: Book = registry.check_cover_update(book_id, current_user.id)
    # One byte past the limit is enough to reject an oversized file.
    content = file.file.read(storage.max_size_bytes + 1)

    cover_path = storage.save_cover(content, file.filename, book.owner_id)
    book = registry.set_cover(book, cover_path)

    return BookResponse.model_validate(book)
