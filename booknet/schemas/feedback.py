"""
Feedback Pydantic Schemas

- FeedbackCreate: a note (0-5) and a comment on a book
- FeedbackResponse: one feedback as shown to the current user
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from booknet.models.feedback import Feedback


class FeedbackCreate(BaseModel):
    """
    Schema for giving feedback.

    The author is always the authenticated user.

    Example request body:
    {
        "book_id": 7,
        "note": 4.5,
        "comment": "Slow start, great ending"
    }
    """

    book_id: int = Field(..., description="Book the feedback is about")
    note: float = Field(..., ge=0, le=5, description="Rating from 0 to 5", examples=[4.5])
    comment: str = Field(
        ...,
        min_length=1,
        max_length=5000,
        description="Feedback text",
    )

    @field_validator("comment")
    @classmethod
    def comment_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Comment cannot be empty or whitespace")
        return v.strip()


class FeedbackResponse(BaseModel):
    """A feedback; own_feedback tells the reader whether they wrote it."""

    id: int = Field(..., description="Feedback identifier")
    book_id: int = Field(..., description="Book the feedback is about")
    note: float = Field(..., description="Rating from 0 to 5")
    comment: str = Field(..., description="Feedback text")
    own_feedback: bool = Field(..., description="Whether the current user wrote it")
    created_at: datetime = Field(..., description="When the feedback was given")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": 3,
                "book_id": 7,
                "note": 4.5,
                "comment": "Slow start, great ending",
                "own_feedback": False,
                "created_at": "2024-01-15T10:30:00Z",
            }
        },
    )

    @classmethod
    def for_reader(cls, feedback: Feedback, reader_id: int) -> "FeedbackResponse":
        return cls(
            id=feedback.id,
            book_id=feedback.book_id,
            note=feedback.note,
            comment=feedback.comment,
            own_feedback=feedback.user_id == reader_id,
            created_at=feedback.created_at,
        )
