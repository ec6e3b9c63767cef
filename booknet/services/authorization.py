"""
Authorization Guard

A pure decision function for every lending transition:

    decide(action, book, record, actor_id) -> Decision

No database, no session, no request: the guard only reads attributes of
the objects it is given.
- book: owner_id, shareable, archived
- record: borrower_id, state (or None when the book has no open loan)

ORM rows work, and so does any plain object with the same attributes,
which keeps the rules testable without a database.

Rules (first match wins):
=========================
- BORROW: owner may not borrow; book must be lendable; no open loan
- RETURN: an open loan must exist, belong to the actor, and be ACTIVE
- APPROVE_RETURN: actor must own the book; the open loan must be RETURNED
- TOGGLE_SHAREABLE / TOGGLE_ARCHIVED / UPDATE_COVER: actor must own the book
- GIVE_FEEDBACK: owner may not; book must be lendable
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from booknet.errors import LendingErrorCode, error_for
from booknet.models.lending import LendingState


class Action(str, Enum):
    """Transitions the guard can decide on."""

    BORROW = "borrow"
    RETURN = "return"
    APPROVE_RETURN = "approve_return"
    TOGGLE_SHAREABLE = "toggle_shareable"
    TOGGLE_ARCHIVED = "toggle_archived"
    UPDATE_COVER = "update_cover"
    GIVE_FEEDBACK = "give_feedback"


@dataclass(frozen=True)
class Decision:
    """
    Outcome of a guard check.

    Attributes:
        allowed: Whether the transition may proceed
        code: Denial reason (None when allowed)
        message: Human-readable denial message
    """

    allowed: bool
    code: LendingErrorCode | None = None
    message: str = ""

    @classmethod
    def allow(cls) -> "Decision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, code: LendingErrorCode, message: str) -> "Decision":
        return cls(allowed=False, code=code, message=message)

    def raise_if_denied(self) -> None:
        """
        Raise the typed lending error for a denial.

        Raises:
            LendingError: subclass matching the denial code
        """
        if not self.allowed:
            raise error_for(self.code, self.message)


def is_lendable(book: Any) -> bool:
    """A book can be borrowed only while shareable and not archived."""
    return bool(book.shareable) and not book.archived


def _is_owner(book: Any, actor_id: int) -> bool:
    return book.owner_id == actor_id


def _decide_borrow(book: Any, record: Any | None, actor_id: int) -> Decision:
    # Ownership first: the owner is refused whatever the flags say.
    if _is_owner(book, actor_id):
        return Decision.deny(LendingErrorCode.OWN_BOOK, "You cannot borrow your own book")
    if not is_lendable(book):
        return Decision.deny(
            LendingErrorCode.NOT_SHAREABLE,
            "The requested book cannot be borrowed since it is archived or not shareable",
        )
    if record is not None:
        return Decision.deny(LendingErrorCode.ALREADY_BORROWED, "The requested book is already borrowed")
    return Decision.allow()


def _decide_return(book: Any, record: Any | None, actor_id: int) -> Decision:
    if record is None:
        return Decision.deny(LendingErrorCode.NO_ACTIVE_LOAN, "This book is not currently borrowed")
    if record.borrower_id != actor_id:
        return Decision.deny(LendingErrorCode.NOT_BORROWER, "You did not borrow this book")
    if record.state != LendingState.ACTIVE:
        return Decision.deny(
            LendingErrorCode.ALREADY_RETURNED,
            "You already returned this book, the owner has not approved the return yet",
        )
    return Decision.allow()


def _decide_approve(book: Any, record: Any | None, actor_id: int) -> Decision:
    if not _is_owner(book, actor_id):
        return Decision.deny(
            LendingErrorCode.NOT_OWNER,
            "You cannot approve the return of a book you do not own",
        )
    if record is None or record.state != LendingState.RETURNED:
        return Decision.deny(
            LendingErrorCode.NOT_YET_RETURNED,
            "The book is not returned yet. You cannot approve its return",
        )
    return Decision.allow()


def _decide_owner_only(book: Any, record: Any | None, actor_id: int) -> Decision:
    if not _is_owner(book, actor_id):
        return Decision.deny(LendingErrorCode.NOT_OWNER, "You cannot update books you do not own")
    return Decision.allow()


def _decide_feedback(book: Any, record: Any | None, actor_id: int) -> Decision:
    if _is_owner(book, actor_id):
        return Decision.deny(LendingErrorCode.OWN_BOOK, "You cannot give feedback on your own book")
    if not is_lendable(book):
        return Decision.deny(
            LendingErrorCode.NOT_SHAREABLE,
            "You cannot give feedback on an archived or not shareable book",
        )
    return Decision.allow()


_RULES = {
    Action.BORROW: _decide_borrow,
    Action.RETURN: _decide_return,
    Action.APPROVE_RETURN: _decide_approve,
    Action.TOGGLE_SHAREABLE: _decide_owner_only,
    Action.TOGGLE_ARCHIVED: _decide_owner_only,
    Action.UPDATE_COVER: _decide_owner_only,
    Action.GIVE_FEEDBACK: _decide_feedback,
}


def decide(action: Action, book: Any, record: Any | None, actor_id: int) -> Decision:
    """
    Decide whether an actor may perform an action on a book.

    Args:
        action: The requested transition
        book: The book (owner_id, shareable, archived)
        record: The book's open lending record, or None
        actor_id: Id of the user performing the action

    Returns:
        Decision.allow() or a Decision carrying the denial code

    Example:
        >>> book = SimpleNamespace(owner_id=1, shareable=True, archived=False)
        >>> decide(Action.BORROW, book, None, actor_id=1).code
        <LendingErrorCode.OWN_BOOK: 'own_book'>
    """
    return _RULES[action](book, record, actor_id)
