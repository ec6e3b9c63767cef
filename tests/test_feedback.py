"""
Tests for Book Feedback

Covers:
- FeedbackService: who may give feedback, rate aggregation
- POST /api/v1/feedbacks/
- GET  /api/v1/feedbacks/book/{id}
- rate exposed on books and loans
"""

import pytest
from fastapi import status
from fastapi.testclient import TestClient
from sqlalchemy import select
from sqlalchemy.orm import Session

from booknet.errors import ConflictError, ForbiddenError, LendingErrorCode, NotFoundError
from booknet.models import Book, Feedback, User
from booknet.services.feedback import FeedbackService
from booknet.services.ledger import LendingLedger
from tests.conftest import make_book

API = "/api/v1"


@pytest.fixture
def feedbacks(db_session: Session) -> FeedbackService:
    return FeedbackService(db_session)


class TestFeedbackService:
    def test_give_feedback(self, feedbacks, db_session, book, bob):
        feedback = feedbacks.give(book.id, bob.id, 4.0, "Great read")

        assert feedback.id is not None
        assert feedback.user_id == bob.id
        db_session.refresh(book)
        assert book.rate == 4.0
        assert book.feedback_count == 1

    def test_rate_is_rounded_mean(self, feedbacks, db_session, book, bob, carol):
        feedbacks.give(book.id, bob.id, 4.0, "Good")
        feedbacks.give(book.id, carol.id, 3.5, "Fine")
        feedbacks.give(book.id, carol.id, 5.0, "Better the second time")

        db_session.refresh(book)
        assert book.rate == 4.2
        assert book.feedback_count == 3

    def test_owner_cannot_give_feedback(self, feedbacks, db_session, book, alice):
        with pytest.raises(ForbiddenError) as exc_info:
            feedbacks.give(book.id, alice.id, 5.0, "My own book is great")

        assert exc_info.value.code is LendingErrorCode.OWN_BOOK
        assert db_session.execute(select(Feedback)).scalars().all() == []

    @pytest.mark.parametrize("shareable,archived", [(False, False), (True, True)])
    def test_book_must_be_lendable(self, feedbacks, db_session, alice, bob, shareable, archived):
        other = make_book(db_session, alice, isbn="0441172717", shareable=shareable, archived=archived)

        with pytest.raises(ConflictError) as exc_info:
            feedbacks.give(other.id, bob.id, 3.0, "Hidden book")

        assert exc_info.value.code is LendingErrorCode.NOT_SHAREABLE
        db_session.refresh(other)
        assert other.rate == 0.0

    def test_unknown_book(self, feedbacks, bob):
        with pytest.raises(NotFoundError):
            feedbacks.give(9999, bob.id, 3.0, "Ghost")

    def test_list_for_book_newest_first(self, feedbacks, db_session, alice, book, bob, carol):
        other = make_book(db_session, alice, isbn="0441172717")
        first = feedbacks.give(book.id, bob.id, 4.0, "First")
        second = feedbacks.give(book.id, carol.id, 2.0, "Second")
        feedbacks.give(other.id, bob.id, 1.0, "Other book")

        page = feedbacks.list_for_book(book.id, page=1, size=10)

        assert [f.id for f in page.items] == [second.id, first.id]
        assert page.total_elements == 2

    def test_list_for_unknown_book(self, feedbacks):
        with pytest.raises(NotFoundError):
            feedbacks.list_for_book(9999)


class TestFeedbackEndpoints:
    def test_give_feedback(self, client: TestClient, book: Book, bob_headers):
        response = client.post(
            f"{API}/feedbacks/",
            headers=bob_headers,
            json={"book_id": book.id, "note": 4.5, "comment": "  Slow start, great ending  "},
        )

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data["book_id"] == book.id
        assert data["note"] == 4.5
        assert data["comment"] == "Slow start, great ending"
        assert data["own_feedback"] is True

    def test_owner_is_refused(self, client: TestClient, book: Book, alice_headers):
        response = client.post(
            f"{API}/feedbacks/",
            headers=alice_headers,
            json={"book_id": book.id, "note": 5, "comment": "Mine"},
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["code"] == "own_book"

    def test_archived_book_is_refused(
        self, client: TestClient, db_session: Session, book: Book, bob_headers
    ):
        book.archived = True
        db_session.commit()

        response = client.post(
            f"{API}/feedbacks/",
            headers=bob_headers,
            json={"book_id": book.id, "note": 3, "comment": "Too late"},
        )

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["code"] == "not_shareable"

    @pytest.mark.parametrize(
        "payload",
        [
            {"note": 5.5, "comment": "Too high"},
            {"note": -1, "comment": "Too low"},
            {"note": 3, "comment": "   "},
            {"note": 3},
        ],
    )
    def test_invalid_feedback(self, client: TestClient, book: Book, bob_headers, payload):
        response = client.post(
            f"{API}/feedbacks/",
            headers=bob_headers,
            json={"book_id": book.id, **payload},
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_requires_authentication(self, client: TestClient, book: Book):
        response = client.post(
            f"{API}/feedbacks/",
            json={"book_id": book.id, "note": 3, "comment": "Anonymous"},
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_list_marks_own_feedback(
        self, client: TestClient, book: Book, bob_headers, carol_headers
    ):
        client.post(
            f"{API}/feedbacks/",
            headers=bob_headers,
            json={"book_id": book.id, "note": 4, "comment": "Bob likes it"},
        )
        client.post(
            f"{API}/feedbacks/",
            headers=carol_headers,
            json={"book_id": book.id, "note": 2, "comment": "Carol does not"},
        )

        response = client.get(f"{API}/feedbacks/book/{book.id}", headers=bob_headers)

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["total_elements"] == 2
        own = {item["comment"]: item["own_feedback"] for item in data["items"]}
        assert own == {"Bob likes it": True, "Carol does not": False}

    def test_list_pagination(
        self, client: TestClient, feedbacks, book: Book, bob: User, bob_headers
    ):
        for i in range(3):
            feedbacks.give(book.id, bob.id, 3.0, f"Note {i}")

        data = client.get(
            f"{API}/feedbacks/book/{book.id}?page=2&size=2", headers=bob_headers
        ).json()

        assert data["total_elements"] == 3
        assert data["total_pages"] == 2
        assert len(data["items"]) == 1
        assert data["last"] is True

    def test_list_for_unknown_book(self, client: TestClient, bob_headers):
        response = client.get(f"{API}/feedbacks/book/9999", headers=bob_headers)

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["code"] == "book_not_found"


class TestRateExposure:
    def test_book_response_carries_rate(
        self, client: TestClient, feedbacks, book: Book, bob: User, carol: User, bob_headers
    ):
        assert client.get(f"{API}/books/{book.id}", headers=bob_headers).json()["rate"] == 0.0

        feedbacks.give(book.id, bob.id, 5.0, "Loved it")
        feedbacks.give(book.id, carol.id, 4.0, "Liked it")

        data = client.get(f"{API}/books/{book.id}", headers=bob_headers).json()
        assert data["rate"] == 4.5
        assert data["feedback_count"] == 2

    def test_loan_listing_carries_rate(
        self, client: TestClient, db_session: Session, locks, feedbacks, book: Book,
        bob: User, carol: User, bob_headers
    ):
        feedbacks.give(book.id, carol.id, 3.0, "Average")
        LendingLedger(db_session, locks=locks).borrow(book.id, bob.id)

        data = client.get(f"{API}/books/borrowed", headers=bob_headers).json()

        assert data["items"][0]["rate"] == 3.0
        assert data["items"][0]["book"]["rate"] == 3.0
