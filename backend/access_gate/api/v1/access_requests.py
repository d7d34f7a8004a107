"""Manual access request intake.

Endpoints:
- POST /access-requests — submit a request for committee review
"""

from fastapi import APIRouter

from access_gate.api.deps import ClientIp, DbSession
from access_gate.core.responses import DataResponse
from access_gate.schemas.access import AccessRequestCreate, SubmissionResult
from access_gate.services.access_requests import (
    REQUEST_SUBMITTED_MESSAGE,
    AccessRequestService,
)

router = APIRouter()


@router.post("/access-requests")
async def create_access_request(
    body: AccessRequestCreate,
    db: DbSession,
    client_ip: ClientIp,
) -> DataResponse[SubmissionResult]:
    """Submit a manual access request.

    Errors: 400 (honeypot, validation, challenge), 429 (rate limit).
    """
    await AccessRequestService(db).submit_request(
        first_name=body.first_name,
        surname=body.surname,
        email=body.email,
        phone=body.phone,
        user_type=body.user_type.value,
        trips=body.trips,
        challenge_token=body.challenge_token,
        client_ip=client_ip,
        honeypot=body.website,
    )
    await db.commit()
    return DataResponse(data=SubmissionResult(message=REQUEST_SUBMITTED_MESSAGE))
