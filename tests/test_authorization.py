"""
Tests for the Authorization Guard

The guard only reads attributes, so plain SimpleNamespace objects stand
in for books and lending records. No database involved.
"""

from types import SimpleNamespace

import pytest

from booknet.errors import (
    ConflictError,
    ForbiddenError,
    InvalidRequestError,
    LendingErrorCode,
    NotFoundError,
)
from booknet.models import LendingState
from booknet.services.authorization import Action, Decision, decide, is_lendable

OWNER = 1
BORROWER = 2
OTHER = 3


def make_book(shareable: bool = True, archived: bool = False) -> SimpleNamespace:
    return SimpleNamespace(owner_id=OWNER, shareable=shareable, archived=archived)


def make_record(state: LendingState, borrower_id: int = BORROWER) -> SimpleNamespace:
    return SimpleNamespace(borrower_id=borrower_id, state=state.value)


class TestIsLendable:
    @pytest.mark.parametrize(
        "shareable,archived,expected",
        [
            (True, False, True),
            (True, True, False),
            (False, False, False),
            (False, True, False),
        ],
    )
    def test_lendable_only_when_shareable_and_not_archived(self, shareable, archived, expected):
        assert is_lendable(make_book(shareable, archived)) is expected


class TestBorrowRules:
    def test_borrow_allowed(self):
        assert decide(Action.BORROW, make_book(), None, BORROWER).allowed

    @pytest.mark.parametrize(
        "shareable,archived",
        [(True, False), (False, False), (True, True), (False, True)],
    )
    def test_owner_is_refused_whatever_the_flags(self, shareable, archived):
        """The owner gets own_book even when the book is not lendable."""
        decision = decide(Action.BORROW, make_book(shareable, archived), None, OWNER)

        assert not decision.allowed
        assert decision.code is LendingErrorCode.OWN_BOOK

    def test_owner_is_refused_even_while_lent(self):
        record = make_record(LendingState.ACTIVE)
        decision = decide(Action.BORROW, make_book(), record, OWNER)

        assert decision.code is LendingErrorCode.OWN_BOOK

    def test_not_shareable(self):
        decision = decide(Action.BORROW, make_book(shareable=False), None, BORROWER)
        assert decision.code is LendingErrorCode.NOT_SHAREABLE

    def test_archived(self):
        decision = decide(Action.BORROW, make_book(archived=True), None, BORROWER)
        assert decision.code is LendingErrorCode.NOT_SHAREABLE

    @pytest.mark.parametrize("state", [LendingState.ACTIVE, LendingState.RETURNED])
    def test_open_loan_blocks_borrow(self, state):
        decision = decide(Action.BORROW, make_book(), make_record(state), OTHER)
        assert decision.code is LendingErrorCode.ALREADY_BORROWED


class TestReturnRules:
    def test_return_allowed(self):
        record = make_record(LendingState.ACTIVE)
        assert decide(Action.RETURN, make_book(), record, BORROWER).allowed

    def test_no_open_loan(self):
        decision = decide(Action.RETURN, make_book(), None, BORROWER)
        assert decision.code is LendingErrorCode.NO_ACTIVE_LOAN

    def test_someone_else_returns(self):
        record = make_record(LendingState.ACTIVE)
        decision = decide(Action.RETURN, make_book(), record, OTHER)
        assert decision.code is LendingErrorCode.NOT_BORROWER

    def test_owner_cannot_return_for_the_borrower(self):
        record = make_record(LendingState.ACTIVE)
        decision = decide(Action.RETURN, make_book(), record, OWNER)
        assert decision.code is LendingErrorCode.NOT_BORROWER

    def test_already_returned(self):
        record = make_record(LendingState.RETURNED)
        decision = decide(Action.RETURN, make_book(), record, BORROWER)
        assert decision.code is LendingErrorCode.ALREADY_RETURNED

    def test_return_ignores_flags(self):
        """Un-sharing or archiving a lent book does not trap it with the borrower."""
        record = make_record(LendingState.ACTIVE)
        book = make_book(shareable=False, archived=True)
        assert decide(Action.RETURN, book, record, BORROWER).allowed


class TestApproveRules:
    def test_approve_allowed(self):
        record = make_record(LendingState.RETURNED)
        assert decide(Action.APPROVE_RETURN, make_book(), record, OWNER).allowed

    def test_approve_ignores_flags(self):
        record = make_record(LendingState.RETURNED)
        book = make_book(shareable=False, archived=True)
        assert decide(Action.APPROVE_RETURN, book, record, OWNER).allowed

    @pytest.mark.parametrize("actor", [BORROWER, OTHER])
    def test_only_owner_approves(self, actor):
        record = make_record(LendingState.RETURNED)
        decision = decide(Action.APPROVE_RETURN, make_book(), record, actor)
        assert decision.code is LendingErrorCode.NOT_OWNER

    def test_not_yet_returned(self):
        record = make_record(LendingState.ACTIVE)
        decision = decide(Action.APPROVE_RETURN, make_book(), record, OWNER)
        assert decision.code is LendingErrorCode.NOT_YET_RETURNED

    def test_nothing_to_approve(self):
        decision = decide(Action.APPROVE_RETURN, make_book(), None, OWNER)
        assert decision.code is LendingErrorCode.NOT_YET_RETURNED


class TestOwnerOnlyRules:
    @pytest.mark.parametrize(
        "action",
        [Action.TOGGLE_SHAREABLE, Action.TOGGLE_ARCHIVED, Action.UPDATE_COVER],
    )
    def test_owner_allowed(self, action):
        assert decide(action, make_book(), None, OWNER).allowed

    @pytest.mark.parametrize(
        "action",
        [Action.TOGGLE_SHAREABLE, Action.TOGGLE_ARCHIVED, Action.UPDATE_COVER],
    )
    def test_others_refused(self, action):
        decision = decide(action, make_book(), None, BORROWER)
        assert decision.code is LendingErrorCode.NOT_OWNER


class TestFeedbackRules:
    def test_feedback_allowed(self):
        assert decide(Action.GIVE_FEEDBACK, make_book(), None, BORROWER).allowed

    def test_owner_refused_whatever_the_flags(self):
        decision = decide(Action.GIVE_FEEDBACK, make_book(shareable=False), None, OWNER)
        assert decision.code is LendingErrorCode.OWN_BOOK

    @pytest.mark.parametrize("shareable,archived", [(False, False), (True, True)])
    def test_book_must_be_lendable(self, shareable, archived):
        decision = decide(Action.GIVE_FEEDBACK, make_book(shareable, archived), None, OTHER)
        assert decision.code is LendingErrorCode.NOT_SHAREABLE


class TestDecision:
    def test_allowed_decision_does_not_raise(self):
        Decision.allow().raise_if_denied()

    @pytest.mark.parametrize(
        "code,error_class,status_code",
        [
            (LendingErrorCode.OWN_BOOK, ForbiddenError, 403),
            (LendingErrorCode.ALREADY_BORROWED, ConflictError, 409),
            (LendingErrorCode.NO_ACTIVE_LOAN, NotFoundError, 404),
            (LendingErrorCode.INVALID_FILE, InvalidRequestError, 422),
        ],
    )
    def test_denial_raises_typed_error(self, code, error_class, status_code):
        with pytest.raises(error_class) as exc_info:
            Decision.deny(code, "nope").raise_if_denied()

        assert exc_info.value.code is code
        assert exc_info.value.status_code == status_code
        assert exc_info.value.message == "nope"
        assert not exc_info.value.retryable
