"""Access log model - append-only record of successful joins.

One row per redeemed token. Duplicate detection looks back over these
rows, so they are never updated or deleted.
"""

import uuid
from datetime import datetime

from sqlalchemy import Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from access_gate.models.base import Base, utc_now

SUCCESSFUL_JOIN = "successful_join"


class AccessLogEntry(Base):
    """Successful redemption of an access token.

    Attributes:
        id: UUID primary key.
        email: Lower-cased email of the token holder.
        phone: E.164 phone number, if the token carried one.
        verification_method: Method copied from the token.
        token: The redeemed token value.
        status: Outcome; ``successful_join`` for redemptions.
        ip_hash: Daily salted hash of the redeeming IP.
        created_at: Redemption time.
    """

    __tablename__ = "access_logs"
    __table_args__ = (
        Index("ix_access_logs_email_created_at", "email", "created_at"),
        Index("ix_access_logs_phone_created_at", "phone", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
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
    token: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
    )
    status: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        default=SUCCESSFUL_JOIN,
    )
    ip_hash: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        nullable=False,
        default=utc_now,
    )
