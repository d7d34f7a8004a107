"""HTTP-level rate limiting using slowapi, plus client IP resolution.

The slowapi limiter is a coarse brake on endpoints that accept tokens
(redemption), keyed on client IP. Per-submission ceilings for the
verification flows live in services/submission_limits.py.

Usage in routers:
    from access_gate.core.rate_limiting import limiter

    @router.post("/join")
    @limiter.limit(lambda: settings.rate_limit_join)
    async def join(request: Request, ...):
        ...
"""

from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from access_gate.core.config import settings


def get_client_ip(request: Request) -> str:
    """Resolve the submitting client's IP address.

    X-Forwarded-For is honoured only when settings.trust_forwarded_for is
    enabled (i.e. behind a proxy that overwrites the header); otherwise a
    client could pick its own rate-limit key.

    Args:
        request: The incoming request.

    Returns:
        Client IP, or "unknown" if none can be determined.
    """
    if settings.trust_forwarded_for:
        forwarded = request.headers.get("x-forwarded-for", "")
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop
        real_ip = request.headers.get("x-real-ip", "").strip()
        if real_ip:
            return real_ip

    return get_remote_address(request) or "unknown"


# Global limiter instance
# Configured with in-memory storage (suitable for single-instance deployment)
# For multi-instance, configure Redis storage via RATELIMIT_STORAGE_URL
limiter = Limiter(
    key_func=get_client_ip,
    enabled=settings.rate_limit_enabled,
)


def rate_limit_exceeded_handler(
    _request: Request,
    exc: RateLimitExceeded,
) -> Response:
    """Handle slowapi rate limit exceeded errors.

    Returns 429 Too Many Requests with standard error envelope.

    Args:
        request: The incoming request.
        exc: The rate limit exception.

    Returns:
        JSONResponse with 429 status and retry-after header.
    """
    # Parse retry-after from exception detail (e.g., "10 per 1 minute")
    # Fallback to 60 seconds if parsing fails
    try:
        retry_after = str(exc.detail.split()[-1])
        int(retry_after.rstrip("s"))
    except (ValueError, AttributeError, IndexError):
        retry_after = "60"

    return JSONResponse(
        status_code=429,
        content={
            "error": {
                "code": "RATE_LIMITED",
                "message": f"Rate limit exceeded: {exc.detail}",
            }
        },
        headers={"Retry-After": retry_after},
    )
