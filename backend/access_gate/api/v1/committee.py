"""Committee console endpoints.

All endpoints require the CommitteeAccess dependency (bearer API key).

Endpoints:
- GET /committee/access-requests — list manual requests
- PATCH /committee/access-requests/{request_id} — approve or reject
- GET /committee/access-logs — list successful joins
- POST /committee/tokens/cleanup — expire stale tokens
"""

import uuid
from typing import Annotated

from fastapi import APIRouter, Query

from access_gate.api.deps import CommitteeAccess, DbSession, Pagination
from access_gate.core.responses import DataResponse, ListResponse, PaginationMeta
from access_gate.models.access_request import RequestStatus
from access_gate.repositories.access_log_repository import AccessLogRepository
from access_gate.repositories.access_token_repository import AccessTokenRepository
from access_gate.schemas.access import (
    AccessLogResponse,
    AccessRequestResponse,
    AccessRequestReview,
    CleanupResult,
)
from access_gate.services.access_requests import AccessRequestService

router = APIRouter()

StatusFilter = Annotated[
    RequestStatus | None, Query(description="Filter by request status")
]


# =============================================================================
# Manual access requests
# =============================================================================


@router.get("/access-requests")
async def list_access_requests(
    _committee: CommitteeAccess,
    db: DbSession,
    pagination: Pagination,
    status: StatusFilter = None,
) -> ListResponse[AccessRequestResponse]:
    """List manual access requests, newest first."""
    requests, total = await AccessRequestService(db).list_requests(
        status=status, offset=pagination.offset, limit=pagination.limit
    )
    return ListResponse(
        data=[AccessRequestResponse.from_model(r) for r in requests],
        meta=PaginationMeta(
            total=total, page=pagination.page, per_page=pagination.per_page
        ),
    )


@router.patch("/access-requests/{request_id}")
async def review_access_request(
    _committee: CommitteeAccess,
    db: DbSession,
    request_id: uuid.UUID,
    body: AccessRequestReview,
) -> DataResponse[AccessRequestResponse]:
    """Approve or reject a pending request.

    Errors: 404 (unknown id), 422 (not pending), 503/500 (approval email
    failed; the request stays pending).
    """
    request = await AccessRequestService(db).review(
        request_id, action=body.action, reviewed_by=body.reviewed_by
    )
    return DataResponse(data=AccessRequestResponse.from_model(request))


# =============================================================================
# Monitoring and maintenance
# =============================================================================


@router.get("/access-logs")
async def list_access_logs(
    _committee: CommitteeAccess,
    db: DbSession,
    pagination: Pagination,
) -> ListResponse[AccessLogResponse]:
    """List successful joins, newest first."""
    entries, total = await AccessLogRepository.list_recent(
        db, offset=pagination.offset, limit=pagination.limit
    )
    return ListResponse(
        data=[AccessLogResponse.from_model(e) for e in entries],
        meta=PaginationMeta(
            total=total, page=pagination.page, per_page=pagination.per_page
        ),
    )


@router.post("/tokens/cleanup")
async def cleanup_tokens(
    _committee: CommitteeAccess,
    db: DbSession,
) -> DataResponse[CleanupResult]:
    """Expire every active token past its expiry time."""
    expired = await AccessTokenRepository.cleanup_expired(db)
    await db.commit()
    return DataResponse(data=CleanupResult(expired_count=expired))
