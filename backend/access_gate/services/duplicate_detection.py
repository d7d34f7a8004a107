"""Duplicate detection for access submissions.

Decision logic over a rolling 90-day lookback:
    1. A successful join logged for the same email → email_used
    2. A successful join logged for the same phone under a different
       email → phone_used
    3. A pending or approved manual request for the same phone under a
       different email → phone_used

A returning user resubmitting their own email+phone pair is never flagged
on the phone; only cross-identity reuse counts.

Storage errors fail open: the check reports no duplicates and logs a
warning, so a database hiccup does not lock out legitimate users.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from access_gate.core.config import settings
from access_gate.core.redaction import mask_email
from access_gate.models.base import utc_now
from access_gate.repositories.access_log_repository import AccessLogRepository
from access_gate.repositories.access_request_repository import (
    AccessRequestRepository,
)

logger = logging.getLogger(__name__)

# =============================================================================
# Constants
# =============================================================================

LOOKBACK_WINDOW = timedelta(days=90)


# =============================================================================
# Data Classes
# =============================================================================


@dataclass(frozen=True)
class DuplicateCheckResult:
    """Outcome of a duplicate lookup.

    Attributes:
        email_used: Email already redeemed a token inside the window.
        phone_used: Phone already used by a different email inside the window.
        email_details: Which record matched the email (server-side only).
        phone_details: Which record matched the phone (server-side only).
    """

    email_used: bool = False
    phone_used: bool = False
    email_details: str | None = None
    phone_details: str | None = None

    @property
    def is_duplicate(self) -> bool:
        """True if either identity has prior usage."""
        return self.email_used or self.phone_used


# =============================================================================
# Public API
# =============================================================================


async def check_for_duplicates(
    db: AsyncSession,
    email: str,
    phone: str | None = None,
) -> DuplicateCheckResult:
    """Look up prior usage of an email and, optionally, a phone.

    Args:
        db: Async database session.
        email: Submitted email.
        phone: E.164 phone number, if collected.

    Returns:
        DuplicateCheckResult; all-false on storage errors.
    """
    since = utc_now() - LOOKBACK_WINDOW
    email_key = email.strip().lower()

    try:
        email_entry = await AccessLogRepository.find_recent_join_by_email(
            db, email=email_key, since=since
        )
        email_details = (
            f"access_log:{email_entry.id}" if email_entry is not None else None
        )

        phone_details = None
        if phone:
            log_entry = await AccessLogRepository.find_recent_join_by_phone(
                db, phone=phone, since=since, exclude_email=email_key
            )
            if log_entry is not None:
                phone_details = f"access_log:{log_entry.id}"
            else:
                request = await AccessRequestRepository.find_recent_by_phone(
                    db, phone=phone, since=since, exclude_email=email_key
                )
                if request is not None:
                    phone_details = f"access_request:{request.id}"
    except SQLAlchemyError:
        logger.warning(
            "Duplicate check failed for %s; allowing submission",
            mask_email(email_key),
            exc_info=True,
        )
        return DuplicateCheckResult()

    return DuplicateCheckResult(
        email_used=email_details is not None,
        phone_used=phone_details is not None,
        email_details=email_details,
        phone_details=phone_details,
    )


def format_duplicate_error() -> str:
    """User-facing duplicate message.

    Identical for email and phone matches so a prober cannot learn which
    field was already known.
    """
    return (
        "One of the inputs you provided has already been used to request "
        "access and can only be used once. If you believe this is an error "
        "or would like some help with this please reach out to us at "
        f"{settings.support_email}"
    )
