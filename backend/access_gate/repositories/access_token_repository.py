"""Repository for AccessToken lifecycle operations.

The only code that writes to access_tokens. Status transitions are
expressed as conditional UPDATEs guarded by the current status, so two
concurrent redeemers cannot both win: the database decides, and the
affected-row count tells each caller whether it did.
"""

import logging
from datetime import datetime, timedelta

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from access_gate.core.redaction import mask_email, token_fingerprint
from access_gate.core.tokens import (
    IdentityHashConfigError,
    generate_token,
    hash_identity,
    is_well_formed_token,
)
from access_gate.models.access_token import AccessToken, TokenStatus, VerificationMethod
from access_gate.models.base import utc_now

logger = logging.getLogger(__name__)

# Fixed lifetime of every access token
TOKEN_TTL = timedelta(hours=24)

# Bulk UPDATEs skip in-session synchronization; callers re-read via SELECT
_NO_SYNC = {"synchronize_session": False}


class AccessTokenRepository:
    """Stateless repository for AccessToken table operations.

    All methods are static — no instance state.
    """

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        email: str,
        verification_method: VerificationMethod | str,
        ip_address: str | None = None,
        phone: str | None = None,
    ) -> str | None:
        """Issue a new active token.

        Persistence failures are logged and reported as None so the
        caller can return a clean error instead of a stack trace.

        Args:
            db: Async database session.
            email: Holder email (stored lower-cased).
            verification_method: How the holder proved eligibility.
            ip_address: Requesting IP; stored only as a daily hash.
            phone: E.164 phone number, if collected.

        Returns:
            The plain token, or None if it could not be stored.
        """
        method = VerificationMethod(verification_method)
        try:
            ip_hash = hash_identity(ip_address) if ip_address else None
        except IdentityHashConfigError:
            logger.exception("Cannot hash requester IP; token not issued")
            return None

        token = generate_token()
        now = utc_now()
        record = AccessToken(
            token=token,
            email=email.strip().lower(),
            phone=phone or None,
            verification_method=method.value,
            status=TokenStatus.ACTIVE.value,
            created_at=now,
            expires_at=now + TOKEN_TTL,
            ip_hash=ip_hash,
        )

        try:
            db.add(record)
            await db.flush()
        except SQLAlchemyError:
            logger.exception(
                "Failed to store access token for %s", mask_email(record.email)
            )
            await db.rollback()
            return None

        return token

    @staticmethod
    async def get(db: AsyncSession, token: str) -> AccessToken | None:
        """Fetch an active, unexpired token.

        A row that is still ``active`` but past expires_at is moved to
        ``expired`` here (lazy expiry) and reported as missing.

        Args:
            db: Async database session.
            token: Plain token from the client; any string is accepted.

        Returns:
            The AccessToken if redeemable, None otherwise.
        """
        if not is_well_formed_token(token):
            return None

        stmt = (
            select(AccessToken)
            .where(
                AccessToken.token == token,
                AccessToken.status == TokenStatus.ACTIVE.value,
            )
            .execution_options(populate_existing=True)
        )
        result = await db.execute(stmt)
        record = result.scalar_one_or_none()
        if record is None:
            return None

        if record.is_expired():
            await AccessTokenRepository.mark_expired(db, token)
            return None

        return record

    @staticmethod
    async def mark_used(
        db: AsyncSession, token: str, *, now: datetime | None = None
    ) -> bool:
        """Redeem a token: active -> used, at most once.

        Single conditional UPDATE; an expired or already-used token
        matches zero rows.

        Args:
            db: Async database session.
            token: Plain token.
            now: Override for the current time.

        Returns:
            True if this call performed the transition.
        """
        moment = now or utc_now()
        stmt = (
            update(AccessToken)
            .where(
                AccessToken.token == token,
                AccessToken.status == TokenStatus.ACTIVE.value,
                AccessToken.expires_at > moment,
            )
            .values(status=TokenStatus.USED.value, used_at=moment)
            .execution_options(**_NO_SYNC)
        )
        result = await db.execute(stmt)
        used = result.rowcount == 1  # type: ignore[attr-defined]
        if not used:
            logger.info("Token %s not redeemable", token_fingerprint(token))
        return used

    @staticmethod
    async def mark_expired(db: AsyncSession, token: str) -> bool:
        """Expire a token: active -> expired.

        Args:
            db: Async database session.
            token: Plain token.

        Returns:
            True if the token was active and is now expired.
        """
        stmt = (
            update(AccessToken)
            .where(
                AccessToken.token == token,
                AccessToken.status == TokenStatus.ACTIVE.value,
            )
            .values(status=TokenStatus.EXPIRED.value)
            .execution_options(**_NO_SYNC)
        )
        result = await db.execute(stmt)
        return result.rowcount == 1  # type: ignore[attr-defined]

    @staticmethod
    async def delete(db: AsyncSession, token: str) -> None:
        """Hard-delete a token.

        Only used to compensate for an access email that failed to send,
        so an undeliverable token can never be redeemed.

        Args:
            db: Async database session.
            token: Plain token.
        """
        stmt = delete(AccessToken).where(AccessToken.token == token)
        await db.execute(stmt.execution_options(**_NO_SYNC))

    @staticmethod
    async def cleanup_expired(
        db: AsyncSession, *, now: datetime | None = None
    ) -> int:
        """Expire every active token whose expiry time has passed.

        Idempotent: a second run with nothing newly expired returns 0.

        Args:
            db: Async database session.
            now: Override for the current time.

        Returns:
            Number of tokens moved to ``expired``.
        """
        stmt = (
            update(AccessToken)
            .where(
                AccessToken.status == TokenStatus.ACTIVE.value,
                AccessToken.expires_at < (now or utc_now()),
            )
            .values(status=TokenStatus.EXPIRED.value)
            .execution_options(**_NO_SYNC)
        )
        result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count
