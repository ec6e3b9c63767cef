"""
Lending Router

HTTP surface of the lending ledger:

    POST  /books/borrow/{book_id}                 borrow
    PATCH /books/borrow/return/{book_id}          return
    PATCH /books/borrow/return/approve/{book_id}  approve the return
    GET   /books/borrowed                         my active loans
    GET   /books/returned                         returns awaiting my approval
    GET   /books/borrowed/history                 every loan I took
    GET   /books/lent/history                     every loan of my books

Mutations answer {record_id, book_id, state}. Failures are LendingError
subclasses, rendered by the handler in main.py as {"detail", "code"}.

Emails go out as background tasks after the response; their outcome
never changes the result of a transition.

This router is registered before routers/books.py so that
/books/borrowed is not captured by /books/{book_id}.
"""

import logging

from fastapi import APIRouter, BackgroundTasks, Request

from booknet.config import get_settings
from booknet.dependencies import ActiveUser, Ledger, Notifier, Pagination
from booknet.models import LendingState
from booknet.schemas import (
    ErrorResponse,
    LendingActionResponse,
    LendingRecordResponse,
    PageResponse,
)
from booknet.services.rate_limiter import limiter

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(
    prefix="/books",
    tags=["Lending"],
    responses={
        401: {"description": "Not authenticated"},
        404: {"model": ErrorResponse, "description": "Book or loan not found"},
        503: {"model": ErrorResponse, "description": "Book busy, retry later"},
    },
)


# =============================================================================
# Transitions
# =============================================================================
@router.post(
    "/borrow/{book_id}",
    response_model=LendingActionResponse,
    summary="Borrow a book",
    description="""
    Borrow a shareable, non-archived book published by another member.

    At most one loan of a book is open at a time: of several concurrent
    borrow requests exactly one succeeds, the others get
    `409 already_borrowed`.
    """,
    responses={
        403: {"model": ErrorResponse, "description": "own_book"},
        409: {"model": ErrorResponse, "description": "not_shareable or already_borrowed"},
    },
)
@limiter.limit(settings.rate_limit_write)
def borrow_book(
    request: Request,
    book_id: int,
    ledger: Ledger,
    notifier: Notifier,
    current_user: ActiveUser,
    background_tasks: BackgroundTasks,
) -> LendingActionResponse:
    record_id = ledger.borrow(book_id, current_user.id)

    record = ledger.get_record(record_id)
    background_tasks.add_task(
        notifier.notify_borrowed,
        record.book.owner.email,
        record.book.title,
        current_user.username,
    )

    return LendingActionResponse(record_id=record_id, book_id=book_id, state=LendingState.ACTIVE)


@router.patch(
    "/borrow/return/{book_id}",
    response_model=LendingActionResponse,
    summary="Return a borrowed book",
    responses={
        403: {"model": ErrorResponse, "description": "not_borrower"},
        409: {"model": ErrorResponse, "description": "already_returned"},
    },
)
@limiter.limit(settings.rate_limit_write)
def return_book(
    request: Request,
    book_id: int,
    ledger: Ledger,
    notifier: Notifier,
    current_user: ActiveUser,
    background_tasks: BackgroundTasks,
) -> LendingActionResponse:
    """
    Hand the book back. Only the borrower of the open loan may do this.

    The owner still has to approve the return before the book can be
    borrowed again.
    """
    record_id = ledger.return_book(book_id, current_user.id)

    record = ledger.get_record(record_id)
    background_tasks.add_task(
        notifier.notify_returned,
        record.book.owner.email,
        record.book.title,
        current_user.username,
    )

    return LendingActionResponse(record_id=record_id, book_id=book_id, state=LendingState.RETURNED)


@router.patch(
    "/borrow/return/approve/{book_id}",
    response_model=LendingActionResponse,
    summary="Approve a return",
    responses={
        403: {"model": ErrorResponse, "description": "not_owner"},
        409: {"model": ErrorResponse, "description": "not_yet_returned"},
    },
)
@limiter.limit(settings.rate_limit_write)
def approve_return(
    request: Request,
    book_id: int,
    ledger: Ledger,
    notifier: Notifier,
    current_user: ActiveUser,
    background_tasks: BackgroundTasks,
) -> LendingActionResponse:
    """Confirm the book is back. Only the owner may do this."""
    record_id = ledger.approve_return(book_id, current_user.id)

    record = ledger.get_record(record_id)
    background_tasks.add_task(
        notifier.notify_return_approved,
        record.borrower.email,
        record.book.title,
    )

    return LendingActionResponse(record_id=record_id, book_id=book_id, state=LendingState.APPROVED)


# =============================================================================
# Listings
# =============================================================================
@router.get(
    "/borrowed",
    response_model=PageResponse[LendingRecordResponse],
    summary="My active loans",
)
@limiter.limit(settings.rate_limit_default)
def list_borrowed(
    request: Request,
    ledger: Ledger,
    pagination: Pagination,
    current_user: ActiveUser,
) -> PageResponse[LendingRecordResponse]:
    page = ledger.list_active_loans_for(current_user.id, pagination.page, pagination.size)
    return PageResponse[LendingRecordResponse].from_page(page, LendingRecordResponse)


@router.get(
    "/returned",
    response_model=PageResponse[LendingRecordResponse],
    summary="Returns awaiting my approval",
)
@limiter.limit(settings.rate_limit_default)
def list_returned(
    request: Request,
    ledger: Ledger,
    pagination: Pagination,
    current_user: ActiveUser,
) -> PageResponse[LendingRecordResponse]:
    page = ledger.list_loans_awaiting_approval_for(current_user.id, pagination.page, pagination.size)
    return PageResponse[LendingRecordResponse].from_page(page, LendingRecordResponse)


@router.get(
    "/borrowed/history",
    response_model=PageResponse[LendingRecordResponse],
    summary="My borrowing history",
)
@limiter.limit(settings.rate_limit_default)
def list_borrow_history(
    request: Request,
    ledger: Ledger,
    pagination: Pagination,
    current_user: ActiveUser,
) -> PageResponse[LendingRecordResponse]:
    page = ledger.list_borrow_history_for(current_user.id, pagination.page, pagination.size)
    return PageResponse[LendingRecordResponse].from_page(page, LendingRecordResponse)


@router.get(
    "/lent/history",
    response_model=PageResponse[LendingRecordResponse],
    summary="Lending history of my books",
)
@limiter.limit(settings.rate_limit_default)
def list_lending_history(
    request: Request,
    ledger: Ledger,
    pagination: Pagination,
    current_user: ActiveUser,
) -> PageResponse[LendingRecordResponse]:
    page = ledger.list_lending_history_for(current_user.id, pagination.page, pagination.size)
    return PageResponse[LendingRecordResponse].from_page(page, LendingRecordResponse)
