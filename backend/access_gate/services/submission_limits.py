"""In-memory fixed-window limiters for access submissions.

Three independent limiters, same algorithm, different keys and ceilings:
    - By IP (automatic path): 5 attempts per 15 minutes
    - By email+phone pair (automatic path): 3 attempts per 30 minutes
    - By IP (manual request path): 3 attempts per 15 minutes

Counters are per-process and reset on restart; this is an accepted limitation.

Maps are bounded: expired windows are swept before a new key is added,
and if the map is still full the entry closest to its reset is evicted.
"""

import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from access_gate.core.config import settings
from access_gate.core.validation import normalize_phone

_NON_DIGIT = re.compile(r"\D")


@dataclass
class RateLimitRecord:
    """Counter state for one key.

    Attributes:
        count: Attempts seen in the current window.
        reset_at: When the current window ends.
    """

    count: int
    reset_at: datetime


def _utc_now() -> datetime:
    return datetime.now(UTC)


class SubmissionRateLimiter:
    """Fixed-window attempt counter keyed by submitter identity.

    Note: Safe for async/await usage (single-threaded event loop) but not
    for multi-threaded access.
    """

    def __init__(
        self,
        max_attempts: int,
        window: timedelta,
        *,
        max_keys: int = 10_000,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        """Initialize the limiter.

        Args:
            max_attempts: Attempts allowed per window.
            window: Window length.
            max_keys: Upper bound on tracked keys.
            clock: Source of the current time (tests inject a fake).
        """
        self._records: dict[str, RateLimitRecord] = {}
        self.max_attempts = max_attempts
        self.window = window
        self._max_keys = max_keys
        self._clock = clock

    def check(self, key: str) -> bool:
        """Record an attempt and decide whether it is allowed.

        A missing or elapsed record starts a new window with count 1.
        Otherwise the attempt is denied once the ceiling is reached;
        denied attempts do not increment the counter.

        Args:
            key: Submitter identity (IP or composite key).

        Returns:
            True if the attempt is within the limit.
        """
        now = self._clock()
        record = self._records.get(key)

        if record is None or now > record.reset_at:
            if record is None:
                self._make_room(now)
            self._records[key] = RateLimitRecord(count=1, reset_at=now + self.window)
            return True

        if record.count >= self.max_attempts:
            return False

        record.count += 1
        return True

    def retry_after(self, key: str) -> int:
        """Seconds until the key's window resets (0 if untracked or elapsed)."""
        record = self._records.get(key)
        if record is None:
            return 0
        remaining = (record.reset_at - self._clock()).total_seconds()
        return max(0, int(remaining + 0.999))

    def cleanup_expired(self) -> int:
        """Remove records whose window has elapsed.

        Returns:
            Number of records removed.
        """
        return self._sweep(self._clock())

    def clear(self) -> None:
        """Clear all records (for testing)."""
        self._records.clear()

    def __len__(self) -> int:
        return len(self._records)

    def _sweep(self, now: datetime) -> int:
        expired = [k for k, r in self._records.items() if now > r.reset_at]
        for key in expired:
            del self._records[key]
        return len(expired)

    def _make_room(self, now: datetime) -> None:
        if len(self._records) < self._max_keys:
            return
        self._sweep(now)
        while len(self._records) >= self._max_keys:
            oldest = min(self._records, key=lambda k: self._records[k].reset_at)
            del self._records[oldest]


def identity_key(email: str, phone: str) -> str:
    """Composite limiter key for an email+phone pair.

    The phone is canonicalized first so that different spellings of one
    number ("+44 7911 123456", "+44-7911-123456") share a key. Numbers
    that do not parse fall back to their digits.
    """
    canonical_phone = normalize_phone(phone) or _NON_DIGIT.sub("", phone)
    return f"{email.strip().lower()}:{canonical_phone}"


# Singleton instances for the application
_ip_limiter: SubmissionRateLimiter | None = None
_identity_limiter: SubmissionRateLimiter | None = None
_manual_request_limiter: SubmissionRateLimiter | None = None


def get_ip_limiter() -> SubmissionRateLimiter:
    """Get the per-IP limiter for automatic submissions."""
    global _ip_limiter
    if _ip_limiter is None:
        _ip_limiter = SubmissionRateLimiter(
            settings.ip_rate_limit_attempts,
            timedelta(minutes=settings.ip_rate_limit_window_minutes),
            max_keys=settings.rate_limit_max_keys,
        )
    return _ip_limiter


def get_identity_limiter() -> SubmissionRateLimiter:
    """Get the per-email+phone limiter for automatic submissions."""
    global _identity_limiter
    if _identity_limiter is None:
        _identity_limiter = SubmissionRateLimiter(
            settings.identity_rate_limit_attempts,
            timedelta(minutes=settings.identity_rate_limit_window_minutes),
            max_keys=settings.rate_limit_max_keys,
        )
    return _identity_limiter


def get_manual_request_limiter() -> SubmissionRateLimiter:
    """Get the per-IP limiter for manual access requests."""
    global _manual_request_limiter
    if _manual_request_limiter is None:
        _manual_request_limiter = SubmissionRateLimiter(
            settings.manual_request_rate_limit_attempts,
            timedelta(minutes=settings.ip_rate_limit_window_minutes),
            max_keys=settings.rate_limit_max_keys,
        )
    return _manual_request_limiter


def reset_limiters() -> None:
    """Reset all limiter singletons (for testing)."""
    global _ip_limiter, _identity_limiter, _manual_request_limiter
    _ip_limiter = None
    _identity_limiter = None
    _manual_request_limiter = None
