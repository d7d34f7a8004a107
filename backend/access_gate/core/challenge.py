"""Bot-challenge verification via Cloudflare Turnstile.

Fails closed: a missing secret, a timeout, a transport error, a non-2xx
status or any response without ``"success": true`` all count as failure.
"""

import logging

import httpx

from access_gate.core.config import settings

logger = logging.getLogger(__name__)


async def verify_challenge(token: str, remote_ip: str | None = None) -> bool:
    """Ask Turnstile whether a challenge token is valid.

    Args:
        token: Token produced by the client-side widget.
        remote_ip: Client IP, forwarded to Turnstile as an extra signal.

    Returns:
        True only if Turnstile explicitly confirms success.
    """
    secret = settings.turnstile_secret_key.get_secret_value()
    if not secret:
        logger.error("TURNSTILE_SECRET_KEY not configured; rejecting challenge")
        return False

    if not token:
        return False

    form = {"secret": secret, "response": token}
    if remote_ip:
        form["remoteip"] = remote_ip

    try:
        async with httpx.AsyncClient(
            timeout=settings.turnstile_timeout_seconds
        ) as client:
            resp = await client.post(settings.turnstile_verify_url, data=form)
    except httpx.HTTPError:
        logger.warning("Turnstile verification request failed", exc_info=True)
        return False

    if resp.status_code != 200:
        logger.warning(
            "Turnstile verification returned HTTP %s", resp.status_code
        )
        return False

    try:
        result = resp.json()
    except ValueError:
        logger.warning("Turnstile verification returned a non-JSON body")
        return False

    if not isinstance(result, dict) or result.get("success") is not True:
        error_codes = (
            result.get("error-codes") if isinstance(result, dict) else None
        )
        logger.warning("Turnstile verification failed: %s", error_codes or "unknown")
        return False

    return True
