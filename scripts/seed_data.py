#!/usr/bin/env python3
"""
Database Seed Script

Populates the database with sample members and books for development.

USAGE:
    # From the project root with the venv activated
    python scripts/seed_data.py

This script:
1. Connects to the database using booknet settings
2. Clears existing data (optional)
3. Creates three members (password: Password123)
4. Publishes a few books for each of them
5. Opens one loan through the lending ledger
6. Leaves a couple of feedbacks
"""

import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from sqlalchemy import delete
from sqlalchemy.orm import Session

from booknet.database import SessionLocal, create_tables
from booknet.models import Book, Feedback, LendingRecord, User
from booknet.schemas.book import BookCreate
from booknet.services.feedback import FeedbackService
from booknet.services.ledger import LendingLedger
from booknet.services.registry import BookRegistry
from booknet.services.security import hash_password

SEED_PASSWORD = "Password123"


def clear_data(db: Session) -> None:
    """Clear all existing data from the database."""
    print("Clearing existing data...")
    db.execute(delete(Feedback))
    db.execute(delete(LendingRecord))
    db.execute(delete(Book))
    db.execute(delete(User))
    db.commit()
    print("Data cleared.")


def create_users(db: Session) -> dict[str, User]:
    """Create sample members."""
    print("Creating users...")
    users_data = [
        {"username": "alice", "email": "alice@example.com", "full_name": "Alice Liddell"},
        {"username": "bob", "email": "bob@example.com", "full_name": "Bob Cratchit"},
        {"username": "carol", "email": "carol@example.com", "full_name": "Carol Danvers"},
    ]

    users = {}
    for data in users_data:
        user = User(hashed_password=hash_password(SEED_PASSWORD), is_active=True, **data)
        db.add(user)
        users[data["username"]] = user

    db.commit()
    for user in users.values():
        db.refresh(user)

    print(f"Created {len(users)} users.")
    return users


def create_books(db: Session, users: dict[str, User]) -> list[Book]:
    """Publish sample books through the registry."""
    print("Creating books...")
    books_data = [
        ("alice", "Nineteen Eighty-Four", "George Orwell", "978-0451524935", True),
        ("alice", "Pride and Prejudice", "Jane Austen", "978-0141439518", True),
        ("alice", "The Old Man and the Sea", "Ernest Hemingway", "978-0684801223", False),
        ("bob", "Murder on the Orient Express", "Agatha Christie", "978-0062693662", True),
        ("bob", "Foundation", "Isaac Asimov", "978-0553293357", True),
        ("carol", "The Hobbit", "J.R.R. Tolkien", "978-0547928227", True),
    ]

    registry = BookRegistry(db)
    books = []
    for owner, title, author_name, isbn, shareable in books_data:
        book = registry.publish(
            users[owner].id,
            BookCreate(title=title, author_name=author_name, isbn=isbn, shareable=shareable),
        )
        books.append(book)

    print(f"Created {len(books)} books.")
    return books


def seed_database(clear_existing: bool = True) -> None:
    """
    Main function to seed the database.

    Args:
        clear_existing: If True, clears existing data before seeding.
    """
    print("=" * 60)
    print("Starting database seed...")
    print("=" * 60)

    create_tables()
    db = SessionLocal()

    try:
        if clear_existing:
            clear_data(db)

        users = create_users(db)
        books = create_books(db, users)

        # Bob borrows Alice's first book
        LendingLedger(db).borrow(books[0].id, users["bob"].id)

        feedbacks = FeedbackService(db)
        feedbacks.give(books[1].id, users["bob"].id, 4.5, "A sharp, funny classic")
        feedbacks.give(books[1].id, users["carol"].id, 4.0, "Took a while to warm up to it")

        print("=" * 60)
        print("Database seeding completed successfully!")
        print("=" * 60)
        print("\nSummary:")
        print(f"  - Users: {len(users)} (password: {SEED_PASSWORD})")
        print(f"  - Books: {len(books)}")
        print("  - Loans: 1 (bob has 'Nineteen Eighty-Four')")
        print("  - Feedbacks: 2 (on 'Pride and Prejudice')")
        print("\nAPI documentation at http://localhost:8088/docs")

    except Exception as e:
        print(f"Error seeding database: {e}")
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    seed_database()
