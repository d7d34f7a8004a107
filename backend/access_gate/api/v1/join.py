"""Token redemption endpoint.

Endpoints:
- POST /join — redeem a fragment token for the community join URL

The browser reads the token from ``/join#<token>`` and posts it here, so
the token never appears in a request line or access log.
"""

from fastapi import APIRouter, Request, Response

from access_gate.api.deps import ClientIp, DbSession
from access_gate.core.config import settings
from access_gate.core.rate_limiting import limiter
from access_gate.core.responses import DataResponse
from access_gate.schemas.access import JoinRequest, JoinResult
from access_gate.services.verification import (
    REDEMPTION_SUCCESS_MESSAGE,
    VerificationService,
)

router = APIRouter()

_NO_CACHE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate, proxy-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


@router.post("/join")
@limiter.limit(lambda: settings.rate_limit_join)
async def join(
    request: Request,  # noqa: ARG001
    response: Response,
    body: JoinRequest,
    db: DbSession,
    client_ip: ClientIp,
) -> DataResponse[JoinResult]:
    """Redeem a single-use token.

    Any failure (unknown, malformed, used or expired) returns the same
    404 INVALID_LINK. Rate limit: settings.rate_limit_join per IP.
    """
    join_url = await VerificationService(db).redeem(body.token, client_ip=client_ip)
    response.headers.update(_NO_CACHE_HEADERS)
    return DataResponse(
        data=JoinResult(join_url=join_url, message=REDEMPTION_SUCCESS_MESSAGE)
    )
