"""
Lending Record Model

The lending ledger's permanent entries. One row per loan; rows are never
deleted, so the same table answers "who has this book now" and "who had
it before".

State Machine:
==============
    ACTIVE ──return──▶ RETURNED ──approve──▶ APPROVED (terminal)

A loan is "open" while it is ACTIVE or RETURNED. At most one open loan
may exist per book. The partial unique index below enforces this in the
database, underneath the per-book lock held by the ledger.
"""

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Index, String, func, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from booknet.database import Base

if TYPE_CHECKING:
    from booknet.models.book import Book
    from booknet.models.user import User


class LendingState(str, Enum):
    """
    Lifecycle states of a loan.

    - ACTIVE: the borrower holds the book
    - RETURNED: the borrower handed it back, owner has not confirmed yet
    - APPROVED: the owner confirmed the return; the book is free again
    """
    ACTIVE = "ACTIVE"
    RETURNED = "RETURNED"
    APPROVED = "APPROVED"


OPEN_STATES = (LendingState.ACTIVE.value, LendingState.RETURNED.value)

# The only forward step allowed from each state. APPROVED has none.
NEXT_STATE: dict[LendingState, LendingState] = {
    LendingState.ACTIVE: LendingState.RETURNED,
    LendingState.RETURNED: LendingState.APPROVED,
}

_OPEN_LOAN_CLAUSE = text("state IN ('ACTIVE', 'RETURNED')")


class LendingRecord(Base):
    """
    A single loan of a book to a borrower.

    Table: lending_records

    Indexes:
    - uq_lending_records_open_book: unique book_id among open loans
    - borrower_id: "my loans" listings
    - book_id: per-book lookups and the owner's listings (via join)

    Example:
        record = LendingRecord(
            book_id=book.id,
            borrower_id=bob.id,
            state=LendingState.ACTIVE.value,
        )
    """

    __tablename__ = "lending_records"
    __table_args__ = (
        Index(
            "uq_lending_records_open_book",
            "book_id",
            unique=True,
            postgresql_where=_OPEN_LOAN_CLAUSE,
            sqlite_where=_OPEN_LOAN_CLAUSE,
        ),
    )

    # -------------------------------------------------------------------------
    # Primary Key
    # -------------------------------------------------------------------------
    id: Mapped[int] = mapped_column(primary_key=True)

    # -------------------------------------------------------------------------
    # References
    # -------------------------------------------------------------------------
    book_id: Mapped[int] = mapped_column(
        ForeignKey("books.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
        comment="Book being lent"
    )

    borrower_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
        comment="User who borrowed the book"
    )

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------
    state: Mapped[str] = mapped_column(
        String(16),
        default=LendingState.ACTIVE.value,
        nullable=False,
        comment="ACTIVE, RETURNED or APPROVED"
    )

    # -------------------------------------------------------------------------
    # Timestamps
    # -------------------------------------------------------------------------
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        comment="When the book was borrowed"
    )

    returned_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="When the borrower returned the book"
    )

    approved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="When the owner approved the return"
    )

    # -------------------------------------------------------------------------
    # Relationships
    # -------------------------------------------------------------------------
    book: Mapped["Book"] = relationship(
        "Book",
        back_populates="lending_records",
    )

    borrower: Mapped["User"] = relationship(
        "User",
        back_populates="loans",
    )

    @property
    def is_open(self) -> bool:
        return self.state in OPEN_STATES

    @property
    def rate(self) -> float:
        """Average feedback note of the lent book."""
        return self.book.rate

    def can_advance_to(self, target: LendingState) -> bool:
        """True only for the single forward step out of the current state."""
        return NEXT_STATE.get(LendingState(self.state)) is target

    def __repr__(self) -> str:
        return (
            f"LendingRecord(id={self.id}, book_id={self.book_id}, "
            f"borrower_id={self.borrower_id}, state='{self.state}')"
        )
