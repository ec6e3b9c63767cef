"""
Book Model

A book published by one member for others to borrow.

The two flags that matter to lending are toggled only by the owner:
- shareable: the owner offers the book to the network
- archived: the owner has withdrawn the book

A book is lendable when it is shareable and not archived. Flipping a flag
never touches existing loans; it only blocks new borrows.
"""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from booknet.database import Base

if TYPE_CHECKING:
    from booknet.models.feedback import Feedback
    from booknet.models.lending import LendingRecord
    from booknet.models.user import User


class Book(Base):
    """
    Book model.

    Table: books

    Indexes:
    - owner_id: owner's shelf listing
    - isbn: Unique index for lookups
    - title: Index for searching

    Example:
        book = Book(
            title="Dune",
            author_name="Frank Herbert",
            isbn="9780441172719",
            owner_id=alice.id,
            shareable=True,
        )
    """

    __tablename__ = "books"

    # -------------------------------------------------------------------------
    # Primary Key
    # -------------------------------------------------------------------------
    id: Mapped[int] = mapped_column(primary_key=True)

    # -------------------------------------------------------------------------
    # Ownership
    # -------------------------------------------------------------------------
    owner_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
        comment="User who published the book"
    )

    # -------------------------------------------------------------------------
    # Catalog Fields
    # -------------------------------------------------------------------------
    title: Mapped[str] = mapped_column(
        String(500),
        index=True,
        nullable=False,
        comment="Book title"
    )

    author_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Name of the book's author"
    )

    isbn: Mapped[str] = mapped_column(
        String(20),
        unique=True,
        index=True,
        nullable=False,
        comment="International Standard Book Number"
    )

    synopsis: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        comment="Short summary of the book"
    )

    cover_path: Mapped[str | None] = mapped_column(
        String(1024),
        nullable=True,
        comment="Storage path of the uploaded cover image"
    )

    # -------------------------------------------------------------------------
    # Lending Flags
    # -------------------------------------------------------------------------
    shareable: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
        comment="Whether the owner offers the book for borrowing"
    )

    archived: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
        comment="Whether the owner withdrew the book"
    )

    # -------------------------------------------------------------------------
    # Feedback Aggregates (kept in sync by services/feedback.py)
    # -------------------------------------------------------------------------
    rate: Mapped[float] = mapped_column(
        Float,
        default=0.0,
        server_default="0",
        nullable=False,
        comment="Average feedback note, one decimal"
    )

    feedback_count: Mapped[int] = mapped_column(
        Integer,
        default=0,
        server_default="0",
        nullable=False,
        comment="Number of feedbacks"
    )

    # -------------------------------------------------------------------------
    # Timestamps
    # -------------------------------------------------------------------------
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

    # -------------------------------------------------------------------------
    # Relationships
    # -------------------------------------------------------------------------
    owner: Mapped["User"] = relationship(
        "User",
        back_populates="books",
    )

    lending_records: Mapped[list["LendingRecord"]] = relationship(
        "LendingRecord",
        back_populates="book",
    )

    feedbacks: Mapped[list["Feedback"]] = relationship(
        "Feedback",
        back_populates="book",
    )

    def __repr__(self) -> str:
        return f"Book(id={self.id}, title='{self.title}', owner_id={self.owner_id})"
