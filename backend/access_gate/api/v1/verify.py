"""Automatic verification endpoint.

Endpoints:
- POST /verify — institutional email + phone → emailed join link
"""

from fastapi import APIRouter

from access_gate.api.deps import ClientIp, DbSession
from access_gate.core.responses import DataResponse
from access_gate.schemas.access import SubmissionResult, VerifyRequest
from access_gate.services.verification import VerificationService

router = APIRouter()


@router.post("/verify")
async def verify(
    body: VerifyRequest,
    db: DbSession,
    client_ip: ClientIp,
) -> DataResponse[SubmissionResult]:
    """Verify an institutional email and send a single-use join link.

    Errors: 400 (honeypot, validation, challenge, duplicate), 429 (rate
    limit), 503 (email volume limit), 500 (store or email failure).
    """
    message = await VerificationService(db).submit(
        email=body.email,
        phone=body.phone,
        challenge_token=body.challenge_token,
        client_ip=client_ip,
        honeypot=body.website,
    )
    return DataResponse(data=SubmissionResult(message=message))
