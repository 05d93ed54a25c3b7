"""
Page-number pagination shared by notification and watch-history listings.

Pages are 1-based. A page past the end is not an error: it returns no items and
has_next_page=False so clients can stop paging.
"""
import math
from typing import Any, TypedDict

from sqlalchemy.orm import Query

from videotube.core.constants import MAX_PAGE_SIZE
from videotube.core.errors import ValidationError


class PageMeta(TypedDict):
    page: int
    page_size: int
    total_items: int
    total_pages: int
    has_next_page: bool
    has_prev_page: bool


class Page(PageMeta):
    items: list[Any]


def validate_page_args(page: int, page_size: int) -> None:
    if page < 1:
        raise ValidationError("page must be >= 1")
    if page_size < 1 or page_size > MAX_PAGE_SIZE:
        raise ValidationError(f"page_size must be between 1 and {MAX_PAGE_SIZE}")


def page_meta(total_items: int, page: int, page_size: int) -> PageMeta:
    total_pages = math.ceil(total_items / page_size) if total_items else 0
    return {
        "page": page,
        "page_size": page_size,
        "total_items": total_items,
        "total_pages": total_pages,
        "has_next_page": page < total_pages,
        "has_prev_page": page > 1,
    }


def paginate(query: Query, page: int, page_size: int, count_query: Query | None = None) -> Page:
    """
    Run `query` for one page. `query` must already be ordered.
    count_query defaults to query.order_by(None).count(); pass one when the
    listing query carries joins/columns that make counting expensive.
    """
    validate_page_args(page, page_size)
    total = (count_query if count_query is not None else query.order_by(None)).count()
    items = query.offset((page - 1) * page_size).limit(page_size).all() if total else []
    return {"items": items, **page_meta(total, page, page_size)}
