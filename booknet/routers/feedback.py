"""
Feedback Router

Endpoints:
- POST /feedbacks/                 give feedback on a book
- GET  /feedbacks/book/{book_id}   feedbacks on a book (paginated)

Business Rules:
- Only books that are shareable and not archived accept feedback
- The owner cannot give feedback on their own book
- Each new feedback refreshes the book's rate
"""

import logging

from fastapi import APIRouter, Request, status

from booknet.config import get_settings
from booknet.dependencies import ActiveUser, Feedbacks, Pagination
from booknet.schemas import ErrorResponse, FeedbackCreate, FeedbackResponse, PageResponse
from booknet.services.rate_limiter import limiter

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(
    prefix="/feedbacks",
    tags=["Feedback"],
    responses={
        401: {"description": "Not authenticated"},
        404: {"model": ErrorResponse, "description": "Book not found"},
    },
)


@router.post(
    "/",
    response_model=FeedbackResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Give feedback on a book",
    responses={
        403: {"model": ErrorResponse, "description": "own_book"},
        409: {"model": ErrorResponse, "description": "not_shareable"},
    },
)
@limiter.limit(settings.rate_limit_write)
def give_feedback(
    request: Request,
    feedback_data: FeedbackCreate,
    feedbacks: Feedbacks,
    current_user: ActiveUser,
) -> FeedbackResponse:
    feedback = feedbacks.give(
        feedback_data.book_id,
        current_user.id,
        feedback_data.note,
        feedback_data.comment,
    )
    return FeedbackResponse.for_reader(feedback, current_user.id)


@router.get(
    "/book/{book_id}",
    response_model=PageResponse[FeedbackResponse],
    summary="List feedbacks on a book",
    description="Newest first. own_feedback marks the ones the current user wrote.",
)
@limiter.limit(settings.rate_limit_default)
def list_book_feedbacks(
    request: Request,
    book_id: int,
    feedbacks: Feedbacks,
    pagination: Pagination,
    current_user: ActiveUser,
) -> PageResponse[FeedbackResponse]:
    page = feedbacks.list_for_book(book_id, pagination.page, pagination.size)
    return PageResponse[FeedbackResponse](
        items=[FeedbackResponse.for_reader(f, current_user.id) for f in page.items],
        page=page.page,
        size=page.size,
        total_elements=page.total_elements,
        total_pages=page.total_pages,
        first=page.first,
        last=page.last,
    )
