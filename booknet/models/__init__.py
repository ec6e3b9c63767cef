"""
SQLAlchemy Models Package

Model Relationships:
- User -> Book: One-to-Many (a user publishes many books)
- Book -> LendingRecord: One-to-Many (a book is lent many times, once at a time)
- User -> LendingRecord: One-to-Many (a user borrows many books)
- Book -> Feedback <- User: members leave notes on books they do not own

Import all models here so Alembic discovers them for migrations.
"""

from booknet.models.user import User
from booknet.models.book import Book
from booknet.models.feedback import Feedback
from booknet.models.lending import (
    NEXT_STATE,
    OPEN_STATES,
    LendingRecord,
    LendingState,
)

__all__ = [
    "User",
    "Book",
    "Feedback",
    "LendingRecord",
    "LendingState",
    "NEXT_STATE",
    "OPEN_STATES",
]
