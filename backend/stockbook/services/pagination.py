from __future__ import annotations

import math
from dataclasses import dataclass

from flask import current_app


@dataclass(frozen=True)
class PageRequest:
    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def _positive_int(raw) -> int | None:
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return None
    return value if value >= 1 else None


def resolve_page(page, limit, *, default_limit: int) -> PageRequest:
    """
    Normalize raw page/limit query values.

    Unparsable or non-positive values fall back to page 1 / default_limit;
    limit is capped at MAX_PAGE_SIZE.
    """
    max_limit = current_app.config.get("MAX_PAGE_SIZE", 500)
    page_value = _positive_int(page) or 1
    limit_value = min(_positive_int(limit) or default_limit, max_limit)
    return PageRequest(page=page_value, limit=limit_value)


def page_meta(page: PageRequest, total: int) -> dict:
    total_pages = math.ceil(total / page.limit) if total else 0
    return {
        "current_page": page.page,
        "limit": page.limit,
        "total": total,
        "total_pages": total_pages,
        "has_next": page.page < total_pages,
        "has_prev": page.page > 1,
    }


def paginate(query, page: PageRequest) -> tuple[list, dict]:
    """Apply offset/limit to an ordered query; returns (rows, metadata)."""
    total = query.order_by(None).count()
    rows = query.offset(page.offset).limit(page.limit).all()
    return rows, page_meta(page, total)
