"""Manual access request model - committee-reviewed intake.

Submitted by people without an institutional email. A committee member
approves (which issues a manual_approval token) or rejects each one.
"""

import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import CheckConstraint, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from access_gate.models.base import Base, utc_now


class RequestStatus(str, Enum):
    """Review state of a manual access request."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class UserType(str, Enum):
    """Self-declared relationship to the club."""

    STUDENT = "student"
    ALUMNI = "alumni"
    STAFF = "staff"
    OTHER = "other"


class AccessRequest(Base):
    """Manual request for community access.

    Attributes:
        id: UUID primary key.
        first_name: Given name.
        surname: Family name.
        email: Lower-cased contact email.
        phone: E.164 phone number.
        user_type: student, alumni, staff or other.
        trips: Free-text trips the requester has been on.
        status: pending, approved or rejected.
        reviewed_by: Committee member who reviewed the request.
        reviewed_at: Review time.
        created_at: Submission time.
    """

    __tablename__ = "access_requests"
    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')",
            name="ck_access_requests_status",
        ),
        CheckConstraint(
            "user_type IN ('student', 'alumni', 'staff', 'other')",
            name="ck_access_requests_user_type",
        ),
        Index("ix_access_requests_phone_created_at", "phone", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    first_name: Mapped[str] = mapped_column(String(50), nullable=False)
    surname: Mapped[str] = mapped_column(String(50), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str] = mapped_column(String(32), nullable=False)
    user_type: Mapped[str] = mapped_column(String(20), nullable=False)
    trips: Mapped[str | None] = mapped_column(Text(), nullable=True)
    status: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        default=RequestStatus.PENDING.value,
    )
    reviewed_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        nullable=False,
        default=utc_now,
    )
