"""
Shared Pydantic Schemas

PageResponse is the envelope of every paginated listing:
- items: the records of this page
- page / size: which slice was requested (page is 1-indexed)
- total_elements / total_pages: size of the whole result
- first / last: whether this page is the first or last one
"""

from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from booknet.utils.pagination import Page

T = TypeVar("T", bound=BaseModel)


class PageResponse(BaseModel, Generic[T]):
    """Paginated list response."""

    items: list[T] = Field(..., description="Records of this page")
    page: int = Field(..., ge=1, description="Current page number")
    size: int = Field(..., ge=1, le=100, description="Number of items per page")
    total_elements: int = Field(..., ge=0, description="Total number of records")
    total_pages: int = Field(..., ge=0, description="Total number of pages")
    first: bool = Field(..., description="Whether this is the first page")
    last: bool = Field(..., description="Whether this is the last page")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "items": [],
                "page": 1,
                "size": 10,
                "total_elements": 42,
                "total_pages": 5,
                "first": True,
                "last": False,
            }
        },
    )

    @classmethod
    def from_page(cls, page: Page, item_schema: type[T]) -> "PageResponse[T]":
        """Convert a Page of ORM objects, validating each item with item_schema."""
        return cls(
            items=[item_schema.model_validate(item) for item in page.items],
            page=page.page,
            size=page.size,
            total_elements=page.total_elements,
            total_pages=page.total_pages,
            first=page.first,
            last=page.last,
        )


class ErrorResponse(BaseModel):
    """Body of every lending error response."""

    detail: str = Field(..., description="Human-readable error message")
    code: str = Field(..., description="Stable error code", examples=["already_borrowed"])
