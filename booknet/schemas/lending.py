"""
Lending Pydantic Schemas

- LendingActionResponse: result of borrow / return / approve
- LendingRecordResponse: one loan in a listing
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from booknet.models.lending import LendingState
from booknet.schemas.book import BookSummary
from booknet.schemas.user import UserPublicResponse


class LendingActionResponse(BaseModel):
    """Identifier of the lending record a transition created or moved."""

    record_id: int = Field(..., description="Lending record identifier")
    book_id: int = Field(..., description="Book the record belongs to")
    state: LendingState = Field(..., description="State of the record after the transition")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"record_id": 12, "book_id": 7, "state": "ACTIVE"}
        },
    )


class LendingRecordResponse(BaseModel):
    """A loan, as shown in borrower and owner listings."""

    id: int = Field(..., description="Lending record identifier")
    state: LendingState = Field(..., description="ACTIVE, RETURNED or APPROVED")
    book: BookSummary = Field(..., description="The lent book")
    rate: float = Field(default=0.0, description="Average feedback note of the book")
    borrower: UserPublicResponse = Field(..., description="Who borrowed it")
    created_at: datetime = Field(..., description="When the book was borrowed")
    returned_at: datetime | None = Field(default=None, description="When it was returned")
    approved_at: datetime | None = Field(default=None, description="When the return was approved")

    model_config = ConfigDict(from_attributes=True)
