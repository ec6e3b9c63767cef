"""
Book Registry Service

Owns book records: publishing, lookup, listings, the owner's flag
toggles and the cover path.

The lending ledger depends on exactly two things from here:
- get_book(book_id) -> Book, raising NotFoundError
- is_lendable(book) -> bool

Everything that changes a book goes through the authorization guard, so
only the owner can toggle its flags or replace its cover.
"""

import logging

from sqlalchemy import not_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from booknet.errors import ConflictError, LendingErrorCode, NotFoundError
from booknet.models import Book
from booknet.schemas.book import BookCreate
from booknet.services.authorization import Action, decide, is_lendable
from booknet.utils.pagination import Page, paginate

logger = logging.getLogger(__name__)


class BookRegistry:
    """
    Book persistence bound to one database session.

    Args:
        db: Database session of the current request
    """

    is_lendable = staticmethod(is_lendable)

    def __init__(self, db: Session) -> None:
        self.db = db

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------
    def get_book(self, book_id: int, *, for_update: bool = False) -> Book:
        """
        Get a book by ID.

        Args:
            book_id: ID of the book
            for_update: Lock the row until the transaction ends
                (SELECT ... FOR UPDATE; ignored by SQLite)

        Raises:
            NotFoundError: If no such book exists
        """
        stmt = select(Book).where(Book.id == book_id)
        if for_update:
            stmt = stmt.with_for_update()
        book = self.db.execute(stmt).scalar_one_or_none()

        if book is None:
            raise NotFoundError(
                LendingErrorCode.BOOK_NOT_FOUND,
                f"No book found with id {book_id}",
            )
        return book

    # -------------------------------------------------------------------------
    # Publishing
    # -------------------------------------------------------------------------
    def publish(self, owner_id: int, data: BookCreate) -> Book:
        """
        Publish a new book owned by `owner_id`.

        Raises:
            ConflictError: If another book already uses the ISBN
        """
        book = Book(
            owner_id=owner_id,
            title=data.title,
            author_name=data.author_name,
            isbn=data.isbn,
            synopsis=data.synopsis,
            shareable=data.shareable,
            archived=False,
        )
        self.db.add(book)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError(
                LendingErrorCode.DUPLICATE_ISBN,
                f"A book with ISBN {data.isbn} is already published",
            )
        self.db.refresh(book)

        logger.info(f"Book {book.id} published by user {owner_id}")
        return book

    # -------------------------------------------------------------------------
    # Listings
    # -------------------------------------------------------------------------
    def list_displayable(self, actor_id: int, page: int, size: int) -> Page[Book]:
        """Lendable books published by someone other than the actor, newest first."""
        stmt = (
            select(Book)
            .where(
                Book.shareable.is_(True),
                Book.archived.is_(False),
                Book.owner_id != actor_id,
            )
            .order_by(Book.created_at.desc(), Book.id.desc())
        )
        return paginate(self.db, stmt, page, size)

    def list_owned_by(self, owner_id: int, page: int, size: int) -> Page[Book]:
        """All books the owner published, whatever their flags."""
        stmt = (
            select(Book)
            .where(Book.owner_id == owner_id)
            .order_by(Book.created_at.desc(), Book.id.desc())
        )
        return paginate(self.db, stmt, page, size)

    # -------------------------------------------------------------------------
    # Owner Updates
    # -------------------------------------------------------------------------
    def _flip(self, book: Book, flag) -> None:
        # Negated in SQL so overlapping toggles each take effect.
        stmt = (
            update(Book)
            .where(Book.id == book.id)
            .values({flag: not_(flag)})
            .execution_options(synchronize_session=False)
        )
        self.db.execute(stmt)
        self.db.commit()
        self.db.refresh(book)

    def toggle_shareable(self, book_id: int, actor_id: int) -> int:
        """
        Flip the shareable flag.

        Raises:
            NotFoundError: If the book does not exist
            ForbiddenError: If the actor is not the owner
        """
        book = self.get_book(book_id, for_update=True)
        decide(Action.TOGGLE_SHAREABLE, book, None, actor_id).raise_if_denied()

        self._flip(book, Book.shareable)

        logger.info(f"Book {book_id} shareable={book.shareable}")
        return book_id

    def toggle_archived(self, book_id: int, actor_id: int) -> int:
        """
        Flip the archived flag.

        Raises:
            NotFoundError: If the book does not exist
            ForbiddenError: If the actor is not the owner
        """
        book = self.get_book(book_id, for_update=True)
        decide(Action.TOGGLE_ARCHIVED, book, None, actor_id).raise_if_denied()

        self._flip(book, Book.archived)

        logger.info(f"Book {book_id} archived={book.archived}")
        return book_id

    def check_cover_update(self, book_id: int, actor_id: int) -> Book:
        """Return the book if the actor may replace its cover."""
        book = self.get_book(book_id)
        decide(Action.UPDATE_COVER, book, None, actor_id).raise_if_denied()
        return book

    def set_cover(self, book: Book, cover_path: str) -> Book:
        book.cover_path = cover_path
        self.db.commit()
        self.db.refresh(book)
        return book
