"""Repository for the append-only access log.

Rows are written once per successful redemption and read back by the
duplicate detector and the committee console. There is no update or
delete path.
"""

from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from access_gate.core.tokens import hash_identity
from access_gate.models.access_log import SUCCESSFUL_JOIN, AccessLogEntry
from access_gate.models.base import utc_now


class AccessLogRepository:
    """Stateless repository for AccessLogEntry table operations."""

    @staticmethod
    async def append(
        db: AsyncSession,
        *,
        email: str,
        verification_method: str,
        token: str,
        ip_address: str | None = None,
        phone: str | None = None,
        status: str = SUCCESSFUL_JOIN,
    ) -> AccessLogEntry:
        """Append a redemption record.

        Args:
            db: Async database session.
            email: Holder email (stored lower-cased).
            verification_method: Method copied from the redeemed token.
            token: The redeemed token.
            ip_address: Redeeming IP; stored only as a daily hash.
            phone: E.164 phone number from the token.
            status: Outcome string.

        Returns:
            Created AccessLogEntry.
        """
        entry = AccessLogEntry(
            email=email.strip().lower(),
            phone=phone or None,
            verification_method=verification_method,
            token=token,
            status=status,
            ip_hash=hash_identity(ip_address) if ip_address else None,
            created_at=utc_now(),
        )
        db.add(entry)
        await db.flush()
        return entry

    @staticmethod
    async def find_recent_join_by_email(
        db: AsyncSession,
        *,
        email: str,
        since: datetime,
    ) -> AccessLogEntry | None:
        """Most recent successful join for an email since a cutoff.

        Args:
            db: Async database session.
            email: Email to match, case-insensitively.
            since: Inclusive lower bound on created_at.

        Returns:
            Newest matching entry, or None.
        """
        stmt = (
            select(AccessLogEntry)
            .where(
                func.lower(AccessLogEntry.email) == email.strip().lower(),
                AccessLogEntry.status == SUCCESSFUL_JOIN,
                AccessLogEntry.created_at >= since,
            )
            .order_by(AccessLogEntry.created_at.desc())
            .limit(1)
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def find_recent_join_by_phone(
        db: AsyncSession,
        *,
        phone: str,
        since: datetime,
        exclude_email: str,
    ) -> AccessLogEntry | None:
        """Most recent successful join for a phone under a different email.

        Args:
            db: Async database session.
            phone: E.164 phone number to match.
            since: Inclusive lower bound on created_at.
            exclude_email: Entries for this email (any case) are ignored.

        Returns:
            Newest matching entry, or None.
        """
        stmt = (
            select(AccessLogEntry)
            .where(
                AccessLogEntry.phone == phone,
                AccessLogEntry.status == SUCCESSFUL_JOIN,
                AccessLogEntry.created_at >= since,
                func.lower(AccessLogEntry.email) != exclude_email.strip().lower(),
            )
            .order_by(AccessLogEntry.created_at.desc())
            .limit(1)
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def list_recent(
        db: AsyncSession,
        *,
        offset: int = 0,
        limit: int = 100,
    ) -> tuple[list[AccessLogEntry], int]:
        """List entries newest first.

        Args:
            db: Async database session.
            offset: Rows to skip.
            limit: Maximum rows to return.

        Returns:
            (entries, total count).
        """
        total = await db.scalar(select(func.count()).select_from(AccessLogEntry))
        stmt = (
            select(AccessLogEntry)
            .order_by(AccessLogEntry.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all()), total or 0
