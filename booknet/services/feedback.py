"""
Feedback Service

Members leave a note (0-5) and a comment on books other members offer.

The book's rate and feedback_count are denormalized aggregates over its
feedbacks. They are recomputed in the same transaction that inserts the
feedback, with the book row locked (FOR UPDATE on PostgreSQL), so two
feedbacks on the same book cannot overwrite each other's aggregate.
"""

import logging

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from booknet.models import Book, Feedback
from booknet.services.authorization import Action, decide
from booknet.services.registry import BookRegistry
from booknet.utils.pagination import Page, paginate

logger = logging.getLogger(__name__)


def recalculate_book_rate(db: Session, book: Book) -> None:
    """
    Refresh a book's rate and feedback_count from its feedbacks.

    The rate is the mean note rounded to one decimal, 0.0 without any
    feedback. Does not commit.
    """
    stmt = select(
        func.avg(Feedback.note),
        func.count(Feedback.id),
    ).where(Feedback.book_id == book.id)

    avg_note, count = db.execute(stmt).one()

    book.rate = round(float(avg_note), 1) if avg_note is not None else 0.0
    book.feedback_count = count


class FeedbackService:
    """
    Feedback persistence bound to one database session.

    Args:
        db: Database session of the current request
        registry: Book registry (defaults to one on the same session)
    """

    def __init__(self, db: Session, registry: BookRegistry | None = None) -> None:
        self.db = db
        self.registry = registry or BookRegistry(db)

    def give(self, book_id: int, actor_id: int, note: float, comment: str) -> Feedback:
        """
        Record a feedback on someone else's lendable book.

        Raises:
            NotFoundError: book_not_found
            ForbiddenError: own_book
            ConflictError: not_shareable
        """
        book = self.registry.get_book(book_id, for_update=True)
        decide(Action.GIVE_FEEDBACK, book, None, actor_id).raise_if_denied()

        feedback = Feedback(book_id=book.id, user_id=actor_id, note=note, comment=comment)
        self.db.add(feedback)
        try:
            self.db.flush()
            recalculate_book_rate(self.db, book)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(feedback)

        logger.info(f"Feedback {feedback.id} on book {book_id} by user {actor_id} (rate now {book.rate})")
        return feedback

    def list_for_book(self, book_id: int, page: int = 1, size: int = 10) -> Page[Feedback]:
        """
        Feedbacks on one book, newest first.

        Raises:
            NotFoundError: If the book does not exist
        """
        self.registry.get_book(book_id)
        stmt = (
            select(Feedback)
            .where(Feedback.book_id == book_id)
            .order_by(Feedback.created_at.desc(), Feedback.id.desc())
        )
        return paginate(self.db, stmt, page, size)
