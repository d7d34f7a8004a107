"""Access token generation and identity hashing.

Tokens are opaque: 32 random bytes, hex encoded (64 chars). All meaning
lives server-side in the access_tokens table.

Identity hashes combine the client IP, a server-side salt and the current
UTC date. The same IP hashes identically for one calendar day, which is
enough for same-day abuse correlation, and never links across days.
"""

import hashlib
import re
import secrets
from datetime import UTC, datetime

from access_gate.core.config import settings

# 256 bits of entropy
TOKEN_BYTES = 32
TOKEN_HEX_LENGTH = TOKEN_BYTES * 2

_TOKEN_PATTERN = re.compile(rf"^[0-9a-f]{{{TOKEN_HEX_LENGTH}}}$")


class IdentityHashConfigError(RuntimeError):
    """Raised when identity hashing is attempted without a salt.

    There is no fallback salt: a known constant would make hashes
    reversible by brute force over the IPv4 space.
    """


def generate_token() -> str:
    """Generate a single-use access token.

    Returns:
        64-character lowercase hex string.
    """
    return secrets.token_hex(TOKEN_BYTES)


def is_well_formed_token(value: object) -> bool:
    """Check whether a value has the shape of an access token.

    Args:
        value: Anything a client submitted.

    Returns:
        True only for 64-character lowercase hex strings.
    """
    return isinstance(value, str) and _TOKEN_PATTERN.fullmatch(value) is not None


def hash_identity(
    ip_address: str,
    *,
    salt: str | None = None,
    now: datetime | None = None,
) -> str:
    """Hash an IP address for privacy-preserving duplicate detection.

    Args:
        ip_address: Raw client IP.
        salt: Override for settings.ip_hash_salt (tests, scripts).
        now: Override for the current time; only the UTC date is used.

    Returns:
        SHA-256 hex digest of ip + salt + YYYY-MM-DD.

    Raises:
        IdentityHashConfigError: If no salt is configured.
    """
    effective_salt = (
        salt if salt is not None else settings.ip_hash_salt.get_secret_value()
    )
    if not effective_salt:
        msg = "IP_HASH_SALT is not configured"
        raise IdentityHashConfigError(msg)

    day = (now or datetime.now(UTC)).astimezone(UTC).strftime("%Y-%m-%d")
    return hashlib.sha256(f"{ip_address}{effective_salt}{day}".encode()).hexdigest()
