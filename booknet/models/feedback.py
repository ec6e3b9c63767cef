"""
Feedback Model

A member's note and comment on a book published by someone else.

Business Rules:
- Only a lendable book (shareable, not archived) can receive feedback
- The owner cannot give feedback on their own book
- Note must be between 0 and 5
- A member may leave several feedbacks on the same book
"""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, DateTime, Float, ForeignKey, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from booknet.database import Base

if TYPE_CHECKING:
    from booknet.models.book import Book
    from booknet.models.user import User


class Feedback(Base):
    """
    Feedback left on a book.

    Table: feedbacks

    Attributes:
        id: Primary key
        book_id: Book the feedback is about
        user_id: Member who wrote it
        note: 0-5 rating, halves allowed
        comment: Free text
        created_at: When the feedback was given
    """

    __tablename__ = "feedbacks"
    __table_args__ = (
        CheckConstraint("note >= 0 AND note <= 5", name="ck_feedback_note_range"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    book_id: Mapped[int] = mapped_column(
        ForeignKey("books.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
        comment="Book the feedback is about"
    )

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
        comment="Member who gave the feedback"
    )

    note: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        comment="Rating from 0 to 5"
    )

    comment: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Feedback text"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    # Relationships
    book: Mapped["Book"] = relationship("Book", back_populates="feedbacks")
    user: Mapped["User"] = relationship("User", back_populates="feedbacks")

    def __repr__(self) -> str:
        return f"Feedback(id={self.id}, book_id={self.book_id}, user_id={self.user_id}, note={self.note})"
