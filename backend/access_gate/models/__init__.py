"""SQLAlchemy ORM models for the access gate.

All models are exported from this module for convenient imports:
    from access_gate.models import AccessToken, AccessLogEntry, ...

- access_token.py: AccessToken, TokenStatus, VerificationMethod
- access_log.py: AccessLogEntry (append-only redemption log)
- access_request.py: AccessRequest, RequestStatus, UserType
"""

from access_gate.models.access_log import SUCCESSFUL_JOIN, AccessLogEntry
from access_gate.models.access_request import AccessRequest, RequestStatus, UserType
from access_gate.models.access_token import (
    AccessToken,
    TokenStatus,
    VerificationMethod,
)
from access_gate.models.base import Base

__all__ = [
    "SUCCESSFUL_JOIN",
    "AccessLogEntry",
    "AccessRequest",
    "AccessToken",
    "Base",
    "RequestStatus",
    "TokenStatus",
    "UserType",
    "VerificationMethod",
]
