"""
Pagination Helpers

Every listing in the API returns the same page shape:

    items, page, size, total_elements, total_pages, first, last

Pages are 1-indexed for the client, like the rest of the API.
"""

import math
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session

T = TypeVar("T")


@dataclass(frozen=True)
class Page(Generic[T]):
    """One page of results plus the metadata needed to walk the rest."""

    items: list[T]
    page: int
    size: int
    total_elements: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_elements / self.size) if self.total_elements > 0 else 0

    @property
    def first(self) -> bool:
        return self.page == 1

    @property
    def last(self) -> bool:
        return self.page >= self.total_pages


def paginate(db: Session, stmt: Select[Any], page: int, size: int) -> Page[Any]:
    """
    Run a select() for one page.

    The statement must already carry its ORDER BY; the count runs on the
    same filters without it.

    Args:
        db: Database session
        stmt: select() of a single ORM entity, filtered and ordered
        page: Page number (starts at 1)
        size: Number of items per page

    Returns:
        Page with the entities of the requested page
    """
    count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
    total = db.execute(count_stmt).scalar() or 0

    items = db.execute(
        stmt.offset((page - 1) * size).limit(size)
    ).scalars().all()

    return Page(items=list(items), page=page, size=size, total_elements=total)
