"""
Test Suite for the Book Network API

Test Organization:
- conftest.py: Shared fixtures (test database, client, users, books)
- test_authorization.py: The pure authorization guard
- test_locks.py: Per-book locks (in-process and Redis)
- test_ledger.py: Lending ledger operations and listings
- test_ledger_concurrency.py: Concurrent borrows, approvals and toggles
- test_lending_api.py: /api/v1/books/borrow* and loan listings
- test_feedback.py: Feedback service, /api/v1/feedbacks and book rates
- test_books.py: /api/v1/books endpoints
- test_auth.py: /api/v1/auth endpoints, health and root
- test_services.py: Cover storage, email notifier, pagination, throttling

Running Tests:
    # Run all tests
    pytest

    # Run with coverage
    pytest --cov=booknet --cov-report=html

    # Run specific file
    pytest tests/test_ledger.py
"""
