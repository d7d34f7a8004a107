"""Manual access requests and committee review.

People without an institutional email submit a request; a committee
member approves or rejects it. Approval issues a manual_approval token
and emails the join link exactly like the automatic path.

Review state machine (REQUEST_TRANSITIONS):
    pending → approved | rejected
Both targets are terminal.
"""

import logging
import uuid
from typing import Literal

from sqlalchemy.ext.asyncio import AsyncSession

from access_gate.core.challenge import verify_challenge
from access_gate.core.errors import (
    BotDetectedError,
    ChallengeFailedError,
    EmailVolumeLimitError,
    InternalError,
    InvalidStateError,
    NotFoundError,
    RateLimitedError,
    ValidationError,
)
from access_gate.core.redaction import mask_email
from access_gate.core.validation import normalize_email, normalize_phone
from access_gate.models.access_request import AccessRequest, RequestStatus
from access_gate.models.access_token import VerificationMethod
from access_gate.repositories.access_request_repository import (
    AccessRequestRepository,
)
from access_gate.repositories.access_token_repository import AccessTokenRepository
from access_gate.services.submission_limits import get_manual_request_limiter
from access_gate.services.verification import deliver_or_revoke, is_honeypot_filled

logger = logging.getLogger(__name__)

REQUEST_SUBMITTED_MESSAGE = (
    "Your request has been submitted. A committee member will review it "
    "and email you a join link if approved."
)

REQUEST_TRANSITIONS: dict[RequestStatus, set[RequestStatus]] = {
    RequestStatus.PENDING: {RequestStatus.APPROVED, RequestStatus.REJECTED},
    RequestStatus.APPROVED: set(),
    RequestStatus.REJECTED: set(),
}

ReviewAction = Literal["approve", "reject"]


class AccessRequestService:
    """Intake and review of manual access requests.

    Args:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def submit_request(
        self,
        *,
        first_name: str,
        surname: str,
        email: str,
        phone: str,
        user_type: str,
        challenge_token: str,
        client_ip: str,
        trips: str | None = None,
        honeypot: str | None = None,
    ) -> AccessRequest:
        """Store a pending manual request.

        Field lengths and user_type are enforced by the request schema.

        Raises:
            BotDetectedError: Honeypot populated.
            RateLimitedError: Too many requests from this IP.
            ValidationError: Email or phone rejected.
            ChallengeFailedError: Bot challenge not confirmed.
        """
        if is_honeypot_filled(honeypot):
            logger.info("Honeypot triggered on manual access request")
            raise BotDetectedError()

        limiter = get_manual_request_limiter()
        if not limiter.check(client_ip):
            raise RateLimitedError(
                "Too many requests. Please try again later.",
                retry_after=limiter.retry_after(client_ip),
            )

        normalized_email = normalize_email(email)
        if normalized_email is None:
            raise ValidationError("Invalid email address")

        normalized_phone = normalize_phone(phone)
        if normalized_phone is None:
            raise ValidationError(
                "Invalid phone number format. Include your country code, "
                "e.g. +44 7911 123123."
            )

        if not await verify_challenge(challenge_token, client_ip):
            raise ChallengeFailedError()

        request = await AccessRequestRepository.create(
            self._db,
            first_name=first_name.strip(),
            surname=surname.strip(),
            email=normalized_email,
            phone=normalized_phone,
            user_type=user_type,
            trips=trips.strip() if trips else None,
        )
        logger.info("Manual access request %s from %s", request.id, mask_email(normalized_email))
        return request

    async def list_requests(
        self,
        *,
        status: RequestStatus | None = None,
        offset: int = 0,
        limit: int = 20,
    ) -> tuple[list[AccessRequest], int]:
        """List requests newest first."""
        return await AccessRequestRepository.list_requests(
            self._db, status=status, offset=offset, limit=limit
        )

    async def review(
        self,
        request_id: uuid.UUID,
        *,
        action: ReviewAction,
        reviewed_by: str,
    ) -> AccessRequest:
        """Approve or reject a pending request.

        The pending -> target transition is claimed first with a
        conditional update, so only one concurrent reviewer proceeds.
        Approval then issues a token and emails it. If that fails, the
        token is deleted and the request goes back to pending so the
        committee can retry.

        Args:
            request_id: Request UUID.
            action: "approve" or "reject".
            reviewed_by: Reviewer name recorded on the request.

        Returns:
            The updated request.

        Raises:
            NotFoundError: Unknown request.
            InvalidStateError: Request is not pending.
            EmailVolumeLimitError: Email provider volume limit (approve).
            InternalError: Token could not be stored or emailed (approve).
        """
        request = await AccessRequestRepository.get_by_id(self._db, request_id)
        if request is None:
            raise NotFoundError("AccessRequest", str(request_id))

        current = RequestStatus(request.status)
        target = (
            RequestStatus.APPROVED if action == "approve" else RequestStatus.REJECTED
        )
        if target not in REQUEST_TRANSITIONS[current]:
            raise InvalidStateError(
                f"Cannot {action} a request that is already {current.value}"
            )

        changed = await AccessRequestRepository.transition_from_pending(
            self._db, request_id, status=target, reviewed_by=reviewed_by
        )
        if not changed:
            raise InvalidStateError("Request was reviewed by someone else")
        await self._db.commit()

        if target is RequestStatus.APPROVED:
            try:
                await self._issue_token(request)
            except (InternalError, EmailVolumeLimitError):
                await AccessRequestRepository.revert_to_pending(
                    self._db, request_id, from_status=target
                )
                await self._db.commit()
                logger.warning("Approval of %s rolled back to pending", request_id)
                raise

        logger.info("Access request %s %s by %s", request_id, target.value, reviewed_by)
        refreshed = await AccessRequestRepository.get_by_id(self._db, request_id)
        if refreshed is None:
            raise NotFoundError("AccessRequest", str(request_id))
        return refreshed

    async def _issue_token(self, request: AccessRequest) -> None:
        token = await AccessTokenRepository.create(
            self._db,
            email=request.email,
            verification_method=VerificationMethod.MANUAL_APPROVAL,
            phone=request.phone,
        )
        if token is None:
            raise InternalError("Failed to create access token. Please try again.")
        await self._db.commit()
        await deliver_or_revoke(
            self._db, token, request.email, first_name=request.first_name
        )
