"""
API Routers Package

This package contains FastAPI routers that handle API endpoints.

Router Structure:
- auth.py: /api/v1/auth/* endpoints (registration, login, current user)
- books.py: /api/v1/books/* endpoints (publish, listings, owner toggles, cover)
- lending.py: /api/v1/books/borrow*, /returned, /lent/* endpoints (the ledger)
- feedback.py: /api/v1/feedbacks/* endpoints (feedback on books)

Each router is imported and registered in main.py.
"""

from booknet.routers.auth import router as auth_router
from booknet.routers.books import router as books_router
from booknet.routers.feedback import router as feedback_router
from booknet.routers.lending import router as lending_router

__all__ = [
    "auth_router",
    "books_router",
    "feedback_router",
    "lending_router",
]
