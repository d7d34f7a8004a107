"""Access token model - single-use community join tokens.

Status moves one way only: active -> used or active -> expired, both
terminal. Rows are never deleted except to compensate for an access
email that could not be sent.
"""

import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import CheckConstraint, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from access_gate.models.base import Base, as_utc, utc_now


class VerificationMethod(str, Enum):
    """How the holder proved eligibility."""

    AC_UK_EMAIL = "ac_uk_email"
    MANUAL_APPROVAL = "manual_approval"


class TokenStatus(str, Enum):
    """Lifecycle state of an access token."""

    ACTIVE = "active"
    USED = "used"
    EXPIRED = "expired"


class AccessToken(Base):
    """Single-use access token.

    Attributes:
        id: UUID primary key.
        token: 64-char hex token value (unique).
        email: Lower-cased email the token was issued to.
        phone: E.164 phone number, if supplied.
        verification_method: ``ac_uk_email`` or ``manual_approval``.
        status: ``active``, ``used`` or ``expired``.
        created_at: Issue time.
        expires_at: created_at + 24h.
        used_at: Redemption time (NULL until used).
        ip_hash: Daily salted hash of the requesting IP.
    """

    __tablename__ = "access_tokens"
    __table_args__ = (
        CheckConstraint(
            "status IN ('active', 'used', 'expired')",
            name="ck_access_tokens_status",
        ),
        CheckConstraint(
            "verification_method IN ('ac_uk_email', 'manual_approval')",
            name="ck_access_tokens_verification_method",
        ),
        Index("ix_access_tokens_status_expires_at", "status", "expires_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    token: Mapped[str] = mapped_column(
        String(64),
        unique=True,
        nullable=False,
    )
    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    phone: Mapped[str | None] = mapped_column(
        String(32),
        nullable=True,
    )
    verification_method: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
    )
    status: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        default=TokenStatus.ACTIVE.value,
    )
    created_at: Mapped[datetime] = mapped_column(
        nullable=False,
        default=utc_now,
    )
    expires_at: Mapped[datetime] = mapped_column(
        nullable=False,
    )
    used_at: Mapped[datetime | None] = mapped_column(
        nullable=True,
    )
    ip_hash: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
    )

    def is_expired(self, now: datetime | None = None) -> bool:
        """Check whether the token is past its expiry time.

        Args:
            now: Override for the current time.

        Returns:
            True if now is later than expires_at.
        """
        return (now or utc_now()) > as_utc(self.expires_at)
