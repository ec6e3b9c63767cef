"""
Lending Ledger Service

The only component that creates or changes lending records. It decides,
under concurrent requests, whether a book may be borrowed, and walks each
loan through ACTIVE → RETURNED → APPROVED.

Every mutating operation follows the same critical section, per book:

    1. acquire the book's lock (bounded wait → OperationTimeoutError)
    2. load the book (row locked FOR UPDATE on PostgreSQL)
    3. load the book's open lending record, if any
    4. ask the authorization guard
    5. write and commit
    6. release the lock

Any failure between 2 and 5 rolls the session back before the lock is
released. Once step 5 commits, the operation has happened, whether or
not the caller is still around to see the response.

Listings never take the lock and may lag a concurrent transition.

Usage:
    ledger = LendingLedger(db)
    record_id = ledger.borrow(book_id=7, borrower_id=bob.id)
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session, selectinload

from booknet.errors import (
    ConflictError,
    InvalidRequestError,
    LendingErrorCode,
    OperationTimeoutError,
)
from booknet.models import OPEN_STATES, Book, LendingRecord, LendingState
from booknet.services.authorization import Action, decide
from booknet.services.locks import KeyedLock, LockTimeoutError, get_lock_manager
from booknet.services.registry import BookRegistry
from booknet.utils.pagination import Page, paginate

logger = logging.getLogger(__name__)


def _lock_key(book_id: int) -> str:
    return f"book:{book_id}"


def _require_ids(**ids: int | None) -> None:
    missing = [name for name, value in ids.items() if value is None]
    if missing:
        raise InvalidRequestError(message=f"Missing required ids: {', '.join(missing)}")


class LendingLedger:
    """
    Borrow / return / approve transitions and loan listings.

    Args:
        db: Database session of the current request
        registry: Book registry (defaults to one on the same session)
        locks: Per-book lock backend (defaults to the process-wide one)
        lock_timeout: Seconds to wait for a book's lock; None waits forever
    """

    def __init__(
        self,
        db: Session,
        registry: BookRegistry | None = None,
        locks: KeyedLock | None = None,
        lock_timeout: float | None = None,
    ) -> None:
        self.db = db
        self.registry = registry or BookRegistry(db)
        self.locks = locks or get_lock_manager()
        self.lock_timeout = lock_timeout

    # =========================================================================
    # Critical Section
    # =========================================================================
    @contextmanager
    def _exclusive(self, book_id: int) -> Iterator[None]:
        """
        Run the with-block alone for this book.

        Raises:
            OperationTimeoutError: If the book's lock is not acquired in time,
                or the database gives up on a statement inside the block
        """
        try:
            with self.locks.hold(_lock_key(book_id), timeout=self.lock_timeout):
                try:
                    yield
                except OperationalError as e:
                    self.db.rollback()
                    logger.warning(f"Database gave up on book {book_id}: {e.orig}")
                    raise OperationTimeoutError(
                        LendingErrorCode.STORE_TIMEOUT,
                        f"Book {book_id} could not be updated in time, please retry",
                    ) from e
                except Exception:
                    self.db.rollback()
                    raise
        except LockTimeoutError:
            logger.warning(f"Timed out waiting for the lock of book {book_id}")
            raise OperationTimeoutError(
                message=f"Book {book_id} is busy, please retry",
            )

    def _commit(self, book_id: int) -> None:
        try:
            self.db.commit()
        except IntegrityError:
            # The open-loan unique index caught a writer that bypassed our lock
            # (e.g. another process using a different lock backend).
            self.db.rollback()
            logger.warning(f"Open-loan index rejected a second loan of book {book_id}")
            raise ConflictError(
                LendingErrorCode.ALREADY_BORROWED,
                "The requested book is already borrowed",
            )

    def _find_open_record(self, book_id: int) -> LendingRecord | None:
        stmt = select(LendingRecord).where(
            LendingRecord.book_id == book_id,
            LendingRecord.state.in_(OPEN_STATES),
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def _advance(self, record: LendingRecord, target: LendingState) -> None:
        if not record.can_advance_to(target):
            raise ConflictError(
                LendingErrorCode.INVALID_TRANSITION,
                f"A {record.state} loan cannot become {target.value}",
            )
        record.state = target.value
        now = datetime.now(UTC)
        if target is LendingState.RETURNED:
            record.returned_at = now
        elif target is LendingState.APPROVED:
            record.approved_at = now

    def _decide(self, action: Action, book: Book, record: LendingRecord | None, actor_id: int) -> None:
        decision = decide(action, book, record, actor_id)
        if not decision.allowed:
            logger.info(
                f"Denied {action.value} of book {book.id} for user {actor_id}: {decision.code.value}"
            )
        decision.raise_if_denied()

    # =========================================================================
    # Transitions
    # =========================================================================
    def borrow(self, book_id: int, borrower_id: int) -> int:
        """
        Open a new loan of a book.

        Args:
            book_id: Book to borrow
            borrower_id: User borrowing it

        Returns:
            ID of the new ACTIVE lending record

        Raises:
            NotFoundError: book_not_found
            ForbiddenError: own_book
            ConflictError: not_shareable, already_borrowed
            OperationTimeoutError: lock_timeout
        """
        _require_ids(book_id=book_id, borrower_id=borrower_id)

        with self._exclusive(book_id):
            book = self.registry.get_book(book_id, for_update=True)
            open_record = self._find_open_record(book_id)
            self._decide(Action.BORROW, book, open_record, borrower_id)

            record = LendingRecord(
                book_id=book.id,
                borrower_id=borrower_id,
                state=LendingState.ACTIVE.value,
            )
            self.db.add(record)
            self._commit(book_id)
            record_id = record.id

        logger.info(f"Book {book_id} borrowed by user {borrower_id} (record {record_id})")
        return record_id

    def return_book(self, book_id: int, actor_id: int) -> int:
        """
        Hand a borrowed book back to its owner.

        Archiving or un-sharing the book during the loan does not block
        its return.

        Returns:
            ID of the lending record, now RETURNED

        Raises:
            NotFoundError: book_not_found, no_active_loan
            ForbiddenError: not_borrower
            ConflictError: already_returned
            OperationTimeoutError: lock_timeout
        """
        _require_ids(book_id=book_id, actor_id=actor_id)

        with self._exclusive(book_id):
            book = self.registry.get_book(book_id, for_update=True)
            record = self._find_open_record(book_id)
            self._decide(Action.RETURN, book, record, actor_id)

            self._advance(record, LendingState.RETURNED)
            record_id = record.id
            self._commit(book_id)

        logger.info(f"Book {book_id} returned by user {actor_id} (record {record_id})")
        return record_id

    def approve_return(self, book_id: int, actor_id: int) -> int:
        """
        Confirm a returned book is back with its owner.

        The record becomes APPROVED (terminal) and the book can be borrowed
        again.

        Returns:
            ID of the lending record, now APPROVED

        Raises:
            NotFoundError: book_not_found
            ForbiddenError: not_owner
            ConflictError: not_yet_returned
            OperationTimeoutError: lock_timeout
        """
        _require_ids(book_id=book_id, actor_id=actor_id)

        with self._exclusive(book_id):
            book = self.registry.get_book(book_id, for_update=True)
            record = self._find_open_record(book_id)
            self._decide(Action.APPROVE_RETURN, book, record, actor_id)

            self._advance(record, LendingState.APPROVED)
            record_id = record.id
            self._commit(book_id)

        logger.info(f"Return of book {book_id} approved by owner {actor_id} (record {record_id})")
        return record_id

    # =========================================================================
    # Owner Toggles (same per-book lock as the transitions)
    # =========================================================================
    def toggle_shareable(self, book_id: int, actor_id: int) -> int:
        _require_ids(book_id=book_id, actor_id=actor_id)
        with self._exclusive(book_id):
            return self.registry.toggle_shareable(book_id, actor_id)

    def toggle_archived(self, book_id: int, actor_id: int) -> int:
        _require_ids(book_id=book_id, actor_id=actor_id)
        with self._exclusive(book_id):
            return self.registry.toggle_archived(book_id, actor_id)

    # =========================================================================
    # Listings (no lock)
    # =========================================================================
    def _records(self):
        return (
            select(LendingRecord)
            .options(selectinload(LendingRecord.book), selectinload(LendingRecord.borrower))
            .order_by(LendingRecord.created_at.desc(), LendingRecord.id.desc())
        )

    def list_active_loans_for(self, actor_id: int, page: int = 1, size: int = 10) -> Page[LendingRecord]:
        """Books the actor currently holds (ACTIVE loans)."""
        stmt = self._records().where(
            LendingRecord.borrower_id == actor_id,
            LendingRecord.state == LendingState.ACTIVE.value,
        )
        return paginate(self.db, stmt, page, size)

    def list_loans_awaiting_approval_for(
        self, owner_id: int, page: int = 1, size: int = 10
    ) -> Page[LendingRecord]:
        """Loans of the owner's books that were returned but not yet approved."""
        stmt = (
            self._records()
            .join(Book, LendingRecord.book_id == Book.id)
            .where(
                Book.owner_id == owner_id,
                LendingRecord.state == LendingState.RETURNED.value,
            )
        )
        return paginate(self.db, stmt, page, size)

    def list_borrow_history_for(self, actor_id: int, page: int = 1, size: int = 10) -> Page[LendingRecord]:
        """Every loan the actor ever took, in any state."""
        stmt = self._records().where(LendingRecord.borrower_id == actor_id)
        return paginate(self.db, stmt, page, size)

    def list_lending_history_for(self, owner_id: int, page: int = 1, size: int = 10) -> Page[LendingRecord]:
        """Every loan of the owner's books, in any state."""
        stmt = (
            self._records()
            .join(Book, LendingRecord.book_id == Book.id)
            .where(Book.owner_id == owner_id)
        )
        return paginate(self.db, stmt, page, size)

    def get_record(self, record_id: int) -> LendingRecord | None:
        return self.db.get(LendingRecord, record_id)


