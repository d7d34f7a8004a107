"""Repository for manual AccessRequest operations."""

import uuid
from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from access_gate.models.access_request import AccessRequest, RequestStatus
from access_gate.models.base import utc_now

# Requests in these states count as "phone already used"
_DUPLICATE_STATUSES = (RequestStatus.PENDING.value, RequestStatus.APPROVED.value)


class AccessRequestRepository:
    """Stateless repository for AccessRequest table operations."""

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        first_name: str,
        surname: str,
        email: str,
        phone: str,
        user_type: str,
        trips: str | None = None,
    ) -> AccessRequest:
        """Store a new pending request.

        Args:
            db: Async database session.
            first_name: Given name.
            surname: Family name.
            email: Normalized email.
            phone: E.164 phone number.
            user_type: student, alumni, staff or other.
            trips: Optional free text.

        Returns:
            Created AccessRequest.
        """
        request = AccessRequest(
            first_name=first_name,
            surname=surname,
            email=email.strip().lower(),
            phone=phone,
            user_type=user_type,
            trips=trips or None,
            status=RequestStatus.PENDING.value,
            created_at=utc_now(),
        )
        db.add(request)
        await db.flush()
        return request

    @staticmethod
    async def get_by_id(
        db: AsyncSession, request_id: uuid.UUID
    ) -> AccessRequest | None:
        """Fetch a request by ID.

        Args:
            db: Async database session.
            request_id: Request UUID.

        Returns:
            AccessRequest if found, None otherwise.
        """
        stmt = (
            select(AccessRequest)
            .where(AccessRequest.id == request_id)
            .execution_options(populate_existing=True)
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def list_requests(
        db: AsyncSession,
        *,
        status: RequestStatus | None = None,
        offset: int = 0,
        limit: int = 20,
    ) -> tuple[list[AccessRequest], int]:
        """List requests newest first, optionally filtered by status.

        Args:
            db: Async database session.
            status: Only return requests in this state.
            offset: Rows to skip.
            limit: Maximum rows to return.

        Returns:
            (requests, total count matching the filter).
        """
        filters = [AccessRequest.status == status.value] if status else []
        total = await db.scalar(
            select(func.count()).select_from(AccessRequest).where(*filters)
        )
        stmt = (
            select(AccessRequest)
            .where(*filters)
            .order_by(AccessRequest.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all()), total or 0

    @staticmethod
    async def transition_from_pending(
        db: AsyncSession,
        request_id: uuid.UUID,
        *,
        status: RequestStatus,
        reviewed_by: str,
    ) -> bool:
        """Move a pending request to approved or rejected.

        Conditional on the row still being pending, so two reviewers
        acting at once cannot both succeed.

        Args:
            db: Async database session.
            request_id: Request UUID.
            status: Target state.
            reviewed_by: Reviewer name.

        Returns:
            True if this call performed the transition.
        """
        stmt = (
            update(AccessRequest)
            .where(
                AccessRequest.id == request_id,
                AccessRequest.status == RequestStatus.PENDING.value,
            )
            .values(status=status.value, reviewed_by=reviewed_by, reviewed_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        return result.rowcount == 1  # type: ignore[attr-defined]

    @staticmethod
    async def revert_to_pending(
        db: AsyncSession,
        request_id: uuid.UUID,
        *,
        from_status: RequestStatus,
    ) -> bool:
        """Undo a review whose follow-up work failed.

        Conditional on the row still being in ``from_status``; clears the
        reviewer fields.

        Returns:
            True if the request is pending again.
        """
        stmt = (
            update(AccessRequest)
            .where(
                AccessRequest.id == request_id,
                AccessRequest.status == from_status.value,
            )
            .values(
                status=RequestStatus.PENDING.value,
                reviewed_by=None,
                reviewed_at=None,
            )
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        return result.rowcount == 1  # type: ignore[attr-defined]

    @staticmethod
    async def find_recent_by_phone(
        db: AsyncSession,
        *,
        phone: str,
        since: datetime,
        exclude_email: str,
    ) -> AccessRequest | None:
        """Most recent pending/approved request for a phone under another email.

        Args:
            db: Async database session.
            phone: E.164 phone number to match.
            since: Inclusive lower bound on created_at.
            exclude_email: Requests for this email (any case) are ignored.

        Returns:
            Newest matching request, or None.
        """
        stmt = (
            select(AccessRequest)
            .where(
                AccessRequest.phone == phone,
                AccessRequest.status.in_(_DUPLICATE_STATUSES),
                AccessRequest.created_at >= since,
                func.lower(AccessRequest.email) != exclude_email.strip().lower(),
            )
            .order_by(AccessRequest.created_at.desc())
            .limit(1)
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()
