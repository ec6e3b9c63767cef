"""
Tests for the Lending Endpoints

Covers:
- POST  /api/v1/books/borrow/{id}
- PATCH /api/v1/books/borrow/return/{id}
- PATCH /api/v1/books/borrow/return/approve/{id}
- GET   /api/v1/books/borrowed, /returned, /borrowed/history, /lent/history

Every failure answers {"detail": ..., "code": ...} with the status of
its error kind.
"""

from unittest.mock import MagicMock

from fastapi import status
from fastapi.testclient import TestClient
from redis.exceptions import ConnectionError as RedisConnectionError

from booknet.dependencies import get_ledger
from booknet.main import app
from booknet.models import Book
from booknet.services.ledger import LendingLedger
from booknet.services.locks import MemoryKeyedLock, RedisKeyedLock
from tests.conftest import make_book

API = "/api/v1/books"


def borrow(client: TestClient, book_id: int, headers: dict):
    return client.post(f"{API}/borrow/{book_id}", headers=headers)


def give_back(client: TestClient, book_id: int, headers: dict):
    return client.patch(f"{API}/borrow/return/{book_id}", headers=headers)


def approve(client: TestClient, book_id: int, headers: dict):
    return client.patch(f"{API}/borrow/return/approve/{book_id}", headers=headers)


class TestBorrowEndpoint:
    def test_borrow_success(self, client: TestClient, book: Book, bob_headers):
        response = borrow(client, book.id, bob_headers)

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["book_id"] == book.id
        assert data["state"] == "ACTIVE"
        assert isinstance(data["record_id"], int)

    def test_borrow_own_book(self, client: TestClient, book: Book, alice_headers):
        response = borrow(client, book.id, alice_headers)

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["code"] == "own_book"

    def test_borrow_taken_book(self, client: TestClient, book: Book, bob_headers, carol_headers):
        borrow(client, book.id, bob_headers)

        response = borrow(client, book.id, carol_headers)

        assert response.status_code == status.HTTP_409_CONFLICT
        body = response.json()
        assert body["code"] == "already_borrowed"
        assert body["detail"]

    def test_borrow_not_shareable(self, client: TestClient, db_session, alice, bob_headers):
        private = make_book(db_session, alice, isbn="0441172717", shareable=False)

        response = borrow(client, private.id, bob_headers)

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["code"] == "not_shareable"

    def test_borrow_unknown_book(self, client: TestClient, bob_headers):
        response = borrow(client, 9999, bob_headers)

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["code"] == "book_not_found"

    def test_borrow_requires_authentication(self, client: TestClient, book: Book):
        response = client.post(f"{API}/borrow/{book.id}")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_borrow_with_bad_token(self, client: TestClient, book: Book):
        response = client.post(
            f"{API}/borrow/{book.id}",
            headers={"Authorization": "Bearer not-a-token"},
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


class TestReturnAndApproveEndpoints:
    def test_full_cycle(
        self,
        client: TestClient,
        book: Book,
        alice_headers,
        bob_headers,
        carol_headers,
    ):
        record_id = borrow(client, book.id, bob_headers).json()["record_id"]

        response = give_back(client, book.id, carol_headers)
        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["code"] == "not_borrower"

        response = give_back(client, book.id, bob_headers)
        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"record_id": record_id, "book_id": book.id, "state": "RETURNED"}

        response = approve(client, book.id, bob_headers)
        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["code"] == "not_owner"

        response = approve(client, book.id, alice_headers)
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["state"] == "APPROVED"

        response = borrow(client, book.id, carol_headers)
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["record_id"] != record_id

    def test_return_without_loan(self, client: TestClient, book: Book, bob_headers):
        response = give_back(client, book.id, bob_headers)

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["code"] == "no_active_loan"

    def test_return_twice(self, client: TestClient, book: Book, bob_headers):
        borrow(client, book.id, bob_headers)
        give_back(client, book.id, bob_headers)

        response = give_back(client, book.id, bob_headers)

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["code"] == "already_returned"

    def test_approve_twice(self, client: TestClient, book: Book, alice_headers, bob_headers):
        borrow(client, book.id, bob_headers)
        give_back(client, book.id, bob_headers)
        approve(client, book.id, alice_headers)

        response = approve(client, book.id, alice_headers)

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["code"] == "not_yet_returned"


class TestLockTimeoutResponse:
    def test_busy_book_answers_503_with_retry_after(
        self, client: TestClient, db_session, book: Book, bob_headers
    ):
        locks = MemoryKeyedLock()
        app.dependency_overrides[get_ledger] = lambda: LendingLedger(
            db_session, locks=locks, lock_timeout=0.05
        )

        with locks.hold(f"book:{book.id}"):
            response = borrow(client, book.id, bob_headers)

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        assert response.json()["code"] == "lock_timeout"
        assert "retry-after" in response.headers

    def test_toggle_waits_for_the_book_lock(
        self, client: TestClient, db_session, book: Book, alice_headers
    ):
        locks = MemoryKeyedLock()
        app.dependency_overrides[get_ledger] = lambda: LendingLedger(
            db_session, locks=locks, lock_timeout=0.05
        )

        with locks.hold(f"book:{book.id}"):
            response = client.patch(f"{API}/shareable/{book.id}", headers=alice_headers)

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        assert response.json()["code"] == "lock_timeout"
        db_session.refresh(book)
        assert book.shareable is True

    def test_unreachable_redis_answers_503(
        self, client: TestClient, db_session, book: Book, bob_headers
    ):
        redis_client = MagicMock()
        redis_client.lock.return_value.acquire.side_effect = RedisConnectionError("refused")
        app.dependency_overrides[get_ledger] = lambda: LendingLedger(
            db_session, locks=RedisKeyedLock(redis_client, lease_seconds=30)
        )

        response = borrow(client, book.id, bob_headers)

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        assert response.json()["code"] == "lock_timeout"
        assert response.headers["retry-after"] == "1"


class TestLendingListings:
    def test_borrowed_list(self, client: TestClient, book: Book, bob_headers, carol_headers):
        borrow(client, book.id, bob_headers)

        response = client.get(f"{API}/borrowed", headers=bob_headers)

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["total_elements"] == 1
        assert data["page"] == 1
        item = data["items"][0]
        assert item["state"] == "ACTIVE"
        assert item["book"]["id"] == book.id
        assert item["borrower"]["username"] == "bob"

        response = client.get(f"{API}/borrowed", headers=carol_headers)
        assert response.json()["total_elements"] == 0

    def test_returned_list_for_owner(
        self, client: TestClient, book: Book, alice_headers, bob_headers
    ):
        borrow(client, book.id, bob_headers)
        give_back(client, book.id, bob_headers)

        data = client.get(f"{API}/returned", headers=alice_headers).json()

        assert data["total_elements"] == 1
        assert data["items"][0]["state"] == "RETURNED"
        assert data["items"][0]["returned_at"] is not None

    def test_histories(
        self, client: TestClient, book: Book, alice_headers, bob_headers, carol_headers
    ):
        borrow(client, book.id, bob_headers)
        give_back(client, book.id, bob_headers)
        approve(client, book.id, alice_headers)
        borrow(client, book.id, carol_headers)

        bob_history = client.get(f"{API}/borrowed/history", headers=bob_headers).json()
        assert bob_history["total_elements"] == 1
        assert bob_history["items"][0]["state"] == "APPROVED"

        lent = client.get(f"{API}/lent/history", headers=alice_headers).json()
        assert lent["total_elements"] == 2
        # Newest first
        assert lent["items"][0]["borrower"]["username"] == "carol"

    def test_listing_pagination_params(self, client: TestClient, bob_headers):
        response = client.get(f"{API}/borrowed?page=0", headers=bob_headers)
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

        response = client.get(f"{API}/borrowed?size=101", headers=bob_headers)
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
