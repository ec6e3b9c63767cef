"""
Book Pydantic Schemas

Handles:
- ISBN validation (ISBN-10 or ISBN-13, hyphens stripped)
- Owner nesting in responses
- Pagination for list responses (see schemas.common.PageResponse)
"""

import re
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from booknet.schemas.user import UserPublicResponse


def _clean_isbn(v: str) -> str:
    # Remove hyphens and spaces for validation
    cleaned = re.sub(r"[-\s]", "", v)

    # ISBN-10: 9 digits + (digit or X)
    # ISBN-13: 13 digits
    if len(cleaned) == 10:
        if not re.match(r"^\d{9}[\dX]$", cleaned):
            raise ValueError(
                "Invalid ISBN-10 format. Must be 10 characters: "
                "9 digits followed by a digit or 'X'"
            )
    elif len(cleaned) == 13:
        if not cleaned.isdigit():
            raise ValueError("Invalid ISBN-13 format. Must be exactly 13 digits")
    else:
        raise ValueError("ISBN must be either 10 or 13 characters (excluding hyphens)")

    return cleaned


class BookBase(BaseModel):
    """Shared book fields."""

    title: str = Field(
        ...,
        min_length=1,
        max_length=500,
        description="Book title",
        examples=["Dune", "The Left Hand of Darkness"],
    )

    author_name: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="Name of the author",
        examples=["Frank Herbert"],
    )

    isbn: str = Field(
        ...,
        max_length=20,
        description="ISBN-10 or ISBN-13",
        examples=["978-0441172719"],
    )

    synopsis: str | None = Field(
        default=None,
        max_length=5000,
        description="Short summary of the book",
    )

    @field_validator("isbn")
    @classmethod
    def validate_isbn(cls, v: str) -> str:
        """Validate ISBN format and store it without hyphens."""
        return _clean_isbn(v)

    @field_validator("title", "author_name")
    @classmethod
    def must_not_be_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Value cannot be empty or whitespace")
        return v.strip()


class BookCreate(BookBase):
    """
    Schema for publishing a new book.

    The owner is always the authenticated user; it is never read from
    the request body.

    Example request body:
    {
        "title": "Dune",
        "author_name": "Frank Herbert",
        "isbn": "978-0441172719",
        "shareable": true
    }
    """

    shareable: bool = Field(
        default=False,
        description="Offer the book for borrowing right away",
    )


class BookResponse(BookBase):
    """Schema for book responses."""

    id: int = Field(..., description="Unique identifier")
    owner: UserPublicResponse = Field(..., description="Member who published the book")
    cover_path: str | None = Field(default=None, description="Stored cover image path")
    shareable: bool = Field(..., description="Whether the book is offered for borrowing")
    archived: bool = Field(..., description="Whether the owner withdrew the book")
    rate: float = Field(default=0.0, description="Average feedback note (0 when none)")
    feedback_count: int = Field(default=0, description="Number of feedbacks")
    created_at: datetime = Field(..., description="When the book was published")
    updated_at: datetime = Field(..., description="When the book was last updated")

    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "id": 1,
                "title": "Dune",
                "author_name": "Frank Herbert",
                "isbn": "9780441172719",
                "synopsis": "A desert planet and its spice",
                "owner": {"id": 1, "username": "alice", "full_name": "Alice Liddell"},
                "cover_path": None,
                "shareable": True,
                "archived": False,
                "rate": 4.5,
                "feedback_count": 2,
                "created_at": "2024-01-15T10:30:00Z",
                "updated_at": "2024-01-15T10:30:00Z",
            }
        },
    )


class BookSummary(BaseModel):
    """Minimal book data nested in lending records."""

    id: int
    title: str
    author_name: str
    isbn: str
    owner_id: int
    rate: float = 0.0

    model_config = ConfigDict(from_attributes=True)
