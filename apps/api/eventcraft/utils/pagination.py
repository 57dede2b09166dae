"""Limit/offset pagination for list endpoints."""

from dataclasses import dataclass

from fastapi import Query


DEFAULT_LIMIT = 20
MAX_LIMIT = 100


@dataclass
class LimitOffset:
    """Pagination parameters from query string."""
    limit: int
    offset: int


def get_limit_offset(
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT, description=f"Items per page (max {MAX_LIMIT})"),
    offset: int = Query(0, ge=0, description="Items to skip"),
) -> LimitOffset:
    """
    Pagination dependency.

    Usage:
        @router.get("/items")
        def list_items(page: LimitOffset = Depends(get_limit_offset)):
            ...
    """
    return LimitOffset(limit=limit, offset=offset)
