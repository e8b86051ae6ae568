"""Pagination utilities for list endpoints."""

from dataclasses import dataclass

from fastapi import Query
from sqlalchemy.orm import Query as SQLAlchemyQuery

from report_engine.core.config import settings

DEFAULT_PAGE = 1


@dataclass
class PaginationParams:
    """Pagination parameters from query string."""
    page: int
    page_size: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


def get_pagination(
    page: int = Query(DEFAULT_PAGE, ge=1, description="Page number (1-indexed)"),
    page_size: int = Query(
        settings.REPORT_PAGE_SIZE_DEFAULT,
        ge=1,
        le=settings.REPORT_PAGE_SIZE_MAX,
        description=f"Items per page (max {settings.REPORT_PAGE_SIZE_MAX})",
    ),
) -> PaginationParams:
    """
    Pagination dependency.

    Usage:
        @router.get("/items")
        def list_items(pagination: PaginationParams = Depends(get_pagination)):
            ...
    """
    return PaginationParams(page=page, page_size=page_size)


def paginate_query(query: SQLAlchemyQuery, pagination: PaginationParams) -> tuple[list, int]:
    """
    Apply pagination to a SQLAlchemy query.

    Returns:
        (items, total_count)
    """
    total = query.order_by(None).count()
    items = query.offset(pagination.offset).limit(pagination.page_size).all()
    return items, total
