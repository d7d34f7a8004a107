"""Access API request/response schemas.

Request bodies use ConfigDict(extra="forbid") to reject unexpected fields.
Format rules beyond length (institutional domain, phone numbering plan)
are applied by the services so they can return specific messages.
"""

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from access_gate.core.redaction import token_fingerprint
from access_gate.models.access_log import AccessLogEntry
from access_gate.models.access_request import AccessRequest, UserType

# =============================================================================
# Automatic verification
# =============================================================================


class VerifyRequest(BaseModel):
    """Request body for POST /verify.

    ``website`` is the honeypot: hidden from humans, filled by bots.
    """

    model_config = ConfigDict(extra="forbid")

    email: str = Field(..., min_length=1, max_length=255)
    phone: str = Field(..., min_length=1, max_length=32)
    challenge_token: str = Field(..., max_length=4096)
    website: str | None = Field(default=None, max_length=255)


class SubmissionResult(BaseModel):
    """Successful submission outcome."""

    success: bool = True
    message: str


# =============================================================================
# Redemption
# =============================================================================


class JoinRequest(BaseModel):
    """Request body for POST /join.

    Any value is accepted here, so every bad token (overlong, malformed,
    or not a string at all) fails the same way, as INVALID_LINK.
    """

    model_config = ConfigDict(extra="forbid")

    token: str

    @field_validator("token", mode="before")
    @classmethod
    def non_string_is_empty(cls, value: object) -> object:
        """Map non-string tokens to "", which never matches a token."""
        return value if isinstance(value, str) else ""


class JoinResult(BaseModel):
    """Successful redemption outcome."""

    join_url: str
    message: str


# =============================================================================
# Manual access requests
# =============================================================================


class AccessRequestCreate(BaseModel):
    """Request body for POST /access-requests."""

    model_config = ConfigDict(extra="forbid")

    first_name: str = Field(..., min_length=1, max_length=50)
    surname: str = Field(..., min_length=1, max_length=50)
    email: str = Field(..., min_length=1, max_length=255)
    phone: str = Field(..., min_length=1, max_length=32)
    user_type: UserType
    trips: str | None = Field(default=None, max_length=500)
    challenge_token: str = Field(..., max_length=4096)
    website: str | None = Field(default=None, max_length=255)


class AccessRequestReview(BaseModel):
    """Request body for PATCH /committee/access-requests/{id}."""

    model_config = ConfigDict(extra="forbid")

    action: Literal["approve", "reject"]
    reviewed_by: str = Field(..., min_length=1, max_length=100)


class AccessRequestResponse(BaseModel):
    """Manual request as shown in the committee console."""

    id: uuid.UUID
    first_name: str
    surname: str
    email: str
    phone: str
    user_type: str
    trips: str | None
    status: str
    reviewed_by: str | None
    reviewed_at: datetime | None
    created_at: datetime

    @classmethod
    def from_model(cls, request: AccessRequest) -> "AccessRequestResponse":
        """Build from an ORM row."""
        return cls(
            id=request.id,
            first_name=request.first_name,
            surname=request.surname,
            email=request.email,
            phone=request.phone,
            user_type=request.user_type,
            trips=request.trips,
            status=request.status,
            reviewed_by=request.reviewed_by,
            reviewed_at=request.reviewed_at,
            created_at=request.created_at,
        )


# =============================================================================
# Committee monitoring
# =============================================================================


class AccessLogResponse(BaseModel):
    """Access-log entry as shown in the committee console.

    The redeemed token is reduced to a fingerprint.
    """

    id: uuid.UUID
    email: str
    phone: str | None
    verification_method: str
    token_fingerprint: str
    status: str
    created_at: datetime

    @classmethod
    def from_model(cls, entry: AccessLogEntry) -> "AccessLogResponse":
        """Build from an ORM row."""
        return cls(
            id=entry.id,
            email=entry.email,
            phone=entry.phone,
            verification_method=entry.verification_method,
            token_fingerprint=token_fingerprint(entry.token),
            status=entry.status,
            created_at=entry.created_at,
        )


class CleanupResult(BaseModel):
    """Outcome of a token cleanup run."""

    expired_count: int
