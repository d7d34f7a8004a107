"""Pydantic request/response schemas for API endpoints."""

from access_gate.schemas.access import (
    AccessLogResponse,
    AccessRequestCreate,
    AccessRequestResponse,
    AccessRequestReview,
    CleanupResult,
    JoinRequest,
    JoinResult,
    SubmissionResult,
    VerifyRequest,
)

__all__ = [
    # Submission and redemption
    "JoinRequest",
    "JoinResult",
    "SubmissionResult",
    "VerifyRequest",
    # Manual requests
    "AccessRequestCreate",
    "AccessRequestResponse",
    "AccessRequestReview",
    # Committee monitoring
    "AccessLogResponse",
    "CleanupResult",
]
