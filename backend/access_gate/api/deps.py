"""Shared dependencies for API endpoints.

WHY DEPENDENCY INJECTION:
- Consistent committee auth across all console endpoints
- Client IP resolution in one place
- Testable with overridden dependencies
"""

import secrets
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from access_gate.core.config import settings
from access_gate.core.database import get_db
from access_gate.core.errors import UnauthorizedError
from access_gate.core.pagination import PaginationParams, pagination_params
from access_gate.core.rate_limiting import get_client_ip

_BEARER_PREFIX = "bearer "


def require_committee(request: Request) -> None:
    """Require the committee API key as a bearer token.

    With no key configured every call is rejected. Comparison is
    constant-time. The 401 never says why authentication failed.

    Args:
        request: HTTP request (injected by FastAPI).

    Raises:
        UnauthorizedError: Missing, wrong or unconfigured key.
    """
    expected = settings.committee_api_key.get_secret_value()
    header = request.headers.get("authorization", "")
    if not expected or not header.lower().startswith(_BEARER_PREFIX):
        raise UnauthorizedError()

    presented = header[len(_BEARER_PREFIX) :].strip()
    if not secrets.compare_digest(presented.encode(), expected.encode()):
        raise UnauthorizedError()


# Reusable type aliases for dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db)]
ClientIp = Annotated[str, Depends(get_client_ip)]
CommitteeAccess = Annotated[None, Depends(require_committee)]
Pagination = Annotated[PaginationParams, Depends(pagination_params)]
