from __future__ import annotations

import math
from dataclasses import dataclass

from fastapi import Query

from . import schemas, settings


@dataclass(frozen=True)
class LimitOffset:
    """Window for limit/offset listings."""

    limit: int
    offset: int


def limit_offset(
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
) -> LimitOffset:
    """FastAPI dependency for endpoints paginated by limit/offset."""
    return LimitOffset(limit=limit, offset=offset)


def page_to_offset(page: int, limit: int) -> int:
    """Translate a 1-based page number into a row offset."""
    return (max(page, 1) - 1) * limit


def page_info(page: int, limit: int, total: int) -> schemas.PageInfo:
    return schemas.PageInfo(
        page=page,
        limit=limit,
        total=total,
        total_pages=math.ceil(total / limit) if limit else 0,
    )
