# Overview: Offset pagination shared by catalog and order listings.

from __future__ import annotations

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


def normalize_page_args(page: int | None, limit: int | None) -> tuple[int, int]:
    """Clamp page to >= 1 and limit to 1..MAX_PAGE_SIZE."""
    page = max(page or 1, 1)
    limit = min(max(limit or DEFAULT_PAGE_SIZE, 1), MAX_PAGE_SIZE)
    return page, limit


def pagination_meta(page: int, limit: int, total: int) -> dict:
    skip = (page - 1) * limit
    total_pages = (total + limit - 1) // limit
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "total_pages": total_pages,
        "has_next_page": skip + limit < total,
        "has_prev_page": page > 1,
    }


def paginate(query, page: int | None, limit: int | None) -> tuple[list, dict]:
    """
    Apply offset/limit to an ordered query.

    Returns (rows, metadata). The count runs on the same filtered query so
    total always matches what the pages walk through.
    """
    page, limit = normalize_page_args(page, limit)
    total = query.order_by(None).count()
    rows = query.offset((page - 1) * limit).limit(limit).all()
    return rows, pagination_meta(page, limit, total)
