"""Pagination utilities for committee list endpoints.

page (default 1), per_page (default 20, max 100).
"""

from dataclasses import dataclass

from fastapi import Query


@dataclass
class PaginationParams:
    """Pagination query parameters.

    Attributes:
        page: Current page number (1-indexed).
        per_page: Number of items per page.
    """

    page: int
    per_page: int

    @property
    def offset(self) -> int:
        """SQL OFFSET for the current page."""
        return (self.page - 1) * self.per_page

    @property
    def limit(self) -> int:
        """SQL LIMIT for the current page."""
        return self.per_page


def pagination_params(
    page: int = Query(default=1, ge=1, description="Page number (1-indexed)"),
    per_page: int = Query(
        default=20,
        ge=1,
        le=100,
        description="Items per page (max 100)",
    ),
) -> PaginationParams:
    """FastAPI dependency for pagination query parameters.

    Args:
        page: Page number (default 1, must be >= 1).
        per_page: Items per page (default 20, between 1 and 100).

    Returns:
        PaginationParams with validated page and per_page.
    """
    return PaginationParams(page=page, per_page=per_page)
