"""Response envelope models.

Consistent response format for all API endpoints.

WHY RESPONSE ENVELOPES:
- Consistent structure across all endpoints
- Easy to distinguish success from error responses
- Pagination metadata in a predictable location
"""

from typing import Generic, TypeVar

from pydantic import BaseModel, computed_field

T = TypeVar("T")


class PaginationMeta(BaseModel):
    """Pagination metadata for collections.

    Attributes:
        total: Total number of items across all pages.
        page: Current page number (1-indexed).
        per_page: Number of items per page.
    """

    total: int
    page: int
    per_page: int

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_pages(self) -> int:
        """Calculate total number of pages.

        Returns:
            Number of pages needed to display all items.
            Returns 0 if total is 0.
        """
        if self.total == 0:
            return 0
        return (self.total + self.per_page - 1) // self.per_page


class DataResponse(BaseModel, Generic[T]):
    """Standard response envelope for single resources.

    Usage:
        @router.post("/verify")
        async def verify(...) -> DataResponse[SubmissionResult]:
            return DataResponse(data=result)
    """

    data: T


class ListResponse(BaseModel, Generic[T]):
    """Standard response envelope for collections."""

    data: list[T]
    meta: PaginationMeta


class ErrorDetail(BaseModel):
    """Error detail for response body.

    Attributes:
        code: Machine-readable error code (e.g., "NOT_FOUND").
        message: Human-readable error message.
        details: Optional list of field-level errors (for validation).
    """

    code: str
    message: str
    details: list[dict] | None = None


class ErrorResponse(BaseModel):
    """Standard error response envelope.

    All errors use {"error": {...}} envelope.
    """

    error: ErrorDetail
