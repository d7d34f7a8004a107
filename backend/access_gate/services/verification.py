"""Verification orchestrator for automatic institutional-email access.

Submission runs strictly in order, each step gating the next:
    honeypot → IP limit → identity limit → phone → institutional email
    → bot challenge → duplicates → token → email

If the email cannot be sent, the freshly created token is deleted so an
undeliverable token can never be redeemed.

Redemption fetches the token, consumes it with a single conditional
update, and appends an access-log entry. Every redemption failure looks
the same to the caller.
"""

import logging
import math

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from access_gate.core.challenge import verify_challenge
from access_gate.core.config import settings
from access_gate.core.email import EmailDeliveryError, send_access_link_email
from access_gate.core.errors import (
    BotDetectedError,
    ChallengeFailedError,
    DuplicateSubmissionError,
    EmailVolumeLimitError,
    InternalError,
    InvalidLinkError,
    RateLimitedError,
    ValidationError,
)
from access_gate.core.redaction import mask_email, mask_phone, token_fingerprint
from access_gate.core.validation import normalize_phone, validate_university_email
from access_gate.models.access_token import VerificationMethod
from access_gate.repositories.access_log_repository import AccessLogRepository
from access_gate.repositories.access_token_repository import AccessTokenRepository
from access_gate.services.duplicate_detection import (
    check_for_duplicates,
    format_duplicate_error,
)
from access_gate.services.submission_limits import (
    SubmissionRateLimiter,
    get_identity_limiter,
    get_ip_limiter,
    identity_key,
)

logger = logging.getLogger(__name__)

SUBMISSION_SUCCESS_MESSAGE = "Verification link sent to your email address"
REDEMPTION_SUCCESS_MESSAGE = "Verification successful. Redirecting to WhatsApp..."


def _wait_minutes(limiter: SubmissionRateLimiter, key: str) -> tuple[int, int]:
    """(retry_after seconds, whole minutes to tell the user)."""
    seconds = limiter.retry_after(key)
    return seconds, max(1, math.ceil(seconds / 60))


def is_honeypot_filled(value: str | None) -> bool:
    """True if the hidden form field carries anything but whitespace."""
    return bool(value and value.strip())


class VerificationService:
    """Submission and redemption of access tokens.

    Args:
        db: Async database session. The service commits at the points
            where a later failure must not roll earlier work back.
    """

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    # -----------------------------------------------------------------------
    # Submission
    # -----------------------------------------------------------------------

    async def submit(
        self,
        *,
        email: str,
        phone: str,
        challenge_token: str,
        client_ip: str,
        honeypot: str | None = None,
    ) -> str:
        """Verify an automatic access request and email a join link.

        Args:
            email: Submitted institutional email.
            phone: Submitted international phone number.
            challenge_token: Bot-challenge widget token.
            client_ip: Submitting client's IP.
            honeypot: Hidden form field; must be empty.

        Returns:
            User-facing success message.

        Raises:
            BotDetectedError: Honeypot populated.
            RateLimitedError: IP or email+phone limit reached.
            ValidationError: Phone or email rejected.
            ChallengeFailedError: Bot challenge not confirmed.
            DuplicateSubmissionError: Email or phone already used.
            EmailVolumeLimitError: Email provider volume limit.
            InternalError: Token could not be stored or emailed.
        """
        if is_honeypot_filled(honeypot):
            logger.info("Honeypot triggered on verification submission")
            raise BotDetectedError()

        ip_limiter = get_ip_limiter()
        if not ip_limiter.check(client_ip):
            seconds, minutes = _wait_minutes(ip_limiter, client_ip)
            raise RateLimitedError(
                "Too many attempts from your network. "
                f"Please try again in {minutes} minutes.",
                retry_after=seconds,
            )

        pair_key = identity_key(email, phone)
        pair_limiter = get_identity_limiter()
        if not pair_limiter.check(pair_key):
            seconds, minutes = _wait_minutes(pair_limiter, pair_key)
            raise RateLimitedError(
                "Too many attempts for this email and phone number. "
                f"Please try again in {minutes} minutes.",
                retry_after=seconds,
            )

        normalized_phone = normalize_phone(phone)
        if normalized_phone is None:
            raise ValidationError(
                "Invalid phone number format. Include your country code, "
                "e.g. +44 7911 123123."
            )

        if not validate_university_email(email):
            suffix = settings.institutional_email_suffix
            raise ValidationError(
                f"Automatic access is restricted to users with '.{suffix}' "
                "email addresses. You can request manual access via the "
                "manual request form."
            )
        normalized_email = email.strip().lower()

        if not await verify_challenge(challenge_token, client_ip):
            raise ChallengeFailedError()

        duplicates = await check_for_duplicates(
            self._db, normalized_email, normalized_phone
        )
        if duplicates.is_duplicate:
            logger.info(
                "Duplicate submission for %s / %s (%s, %s)",
                mask_email(normalized_email),
                mask_phone(normalized_phone),
                duplicates.email_details,
                duplicates.phone_details,
            )
            raise DuplicateSubmissionError(format_duplicate_error())

        await self._sweep_expired_tokens()

        token = await AccessTokenRepository.create(
            self._db,
            email=normalized_email,
            verification_method=VerificationMethod.AC_UK_EMAIL,
            ip_address=client_ip,
            phone=normalized_phone,
        )
        if token is None:
            raise InternalError(
                "Failed to create verification token. Please try again."
            )
        await self._db.commit()

        await deliver_or_revoke(self._db, token, normalized_email)

        logger.info("Access link sent to %s", mask_email(normalized_email))
        return SUBMISSION_SUCCESS_MESSAGE

    async def _sweep_expired_tokens(self) -> None:
        """Expire stale tokens before issuing a new one (best effort)."""
        try:
            expired = await AccessTokenRepository.cleanup_expired(self._db)
            await self._db.commit()
        except SQLAlchemyError:
            logger.warning("Expired-token sweep failed; continuing", exc_info=True)
            await self._db.rollback()
            return
        if expired:
            logger.info("Expired %d stale access tokens", expired)

    # -----------------------------------------------------------------------
    # Redemption
    # -----------------------------------------------------------------------

    async def redeem(self, token: str, *, client_ip: str | None = None) -> str:
        """Consume a token and return the community join URL.

        Total over all string inputs: anything that is not a live token
        raises InvalidLinkError.

        Args:
            token: Token from the link fragment.
            client_ip: Redeeming client's IP (stored hashed).

        Returns:
            The community group join URL.

        Raises:
            InvalidLinkError: Unknown, malformed, used or expired token.
            InternalError: Join URL not configured (token not consumed).
        """
        record = await AccessTokenRepository.get(self._db, token)
        if record is None:
            # Commit any lazy expiry recorded by get()
            await self._db.commit()
            raise InvalidLinkError()

        join_url = settings.community_join_url
        if not join_url:
            logger.error("COMMUNITY_JOIN_URL not configured; cannot redeem")
            raise InternalError(
                "WhatsApp group configuration error. Please contact the committee."
            )

        if not await AccessTokenRepository.mark_used(self._db, token):
            raise InvalidLinkError()

        await AccessLogRepository.append(
            self._db,
            email=record.email,
            phone=record.phone,
            verification_method=record.verification_method,
            token=token,
            ip_address=client_ip,
        )
        await self._db.commit()

        logger.info(
            "Token %s redeemed by %s",
            token_fingerprint(token),
            mask_email(record.email),
        )
        return join_url


async def deliver_or_revoke(
    db: AsyncSession, token: str, email: str, first_name: str | None = None
) -> None:
    """Send the access email; on failure delete the token and raise.

    The token must already be committed. The deletion is committed before
    the error propagates.

    Args:
        db: Async database session.
        token: Committed access token.
        email: Recipient.
        first_name: Optional greeting name.

    Raises:
        EmailVolumeLimitError: Provider volume limit reached.
        InternalError: Any other delivery failure.
    """
    try:
        await send_access_link_email(to_email=email, token=token, first_name=first_name)
    except EmailDeliveryError as exc:
        await AccessTokenRepository.delete(db, token)
        await db.commit()
        logger.warning(
            "Revoked token %s after email failure: %s",
            token_fingerprint(token),
            exc,
        )
        if exc.volume_limited:
            raise EmailVolumeLimitError() from exc
        raise InternalError(
            "Failed to send verification email. Please try again."
        ) from exc
