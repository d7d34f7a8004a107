"""Email sending via Resend API.

Delivers community access links. The token travels in the URL fragment
(``/join#<token>``): browsers never send fragments to servers, so the
token stays out of access logs, Referer headers and link-rewriting
proxies that scan mail.
"""

import html
import logging

import httpx

from access_gate.core.config import settings
from access_gate.core.redaction import mask_email

logger = logging.getLogger(__name__)

_RESEND_API_URL = "https://api.resend.com/emails"
_RESEND_TIMEOUT = 10.0
_SUBJECT = "Community WhatsApp Group Access"


class EmailDeliveryError(Exception):
    """Raised when an access-link email could not be handed to Resend.

    Attributes:
        volume_limited: True when Resend rejected the send because of a
            rate or daily quota limit; the caller should ask the user to
            retry later rather than report a hard failure.
    """

    def __init__(self, message: str, *, volume_limited: bool = False) -> None:
        self.volume_limited = volume_limited
        super().__init__(message)


def build_join_link(token: str) -> str:
    """Build the fragment deep link for a token.

    Args:
        token: Plain access token.

    Returns:
        ``<base_url>/join#<token>``.
    """
    return f"{settings.base_url.rstrip('/')}/join#{token}"


def _render_bodies(join_link: str, first_name: str | None) -> tuple[str, str]:
    """Render (text, html) bodies for the access email."""
    greeting = f"Hi {first_name}," if first_name else "Hi,"
    text = (
        f"{greeting}\n\n"
        "Welcome to the community! Use this link to join our WhatsApp group:\n\n"
        f"{join_link}\n\n"
        "This link is valid for 24 hours and can only be used once. "
        "Please don't share it with anyone."
    )
    safe_link = html.escape(join_link, quote=True)
    safe_greeting = html.escape(greeting)
    body = (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
        f"<p>{safe_greeting}</p>"
        "<p>Welcome to the community! Click the button below to join our "
        "WhatsApp group:</p>"
        f'<p style="text-align: center;"><a href="{safe_link}" '
        'style="background-color: #1C5713; color: white; padding: 15px 30px; '
        'text-decoration: none; border-radius: 8px;">Join WhatsApp Group</a></p>'
        "<p><strong>Can't click the button?</strong> Copy and paste this link "
        f"into your browser:</p><p><code>{safe_link}</code></p>"
        "<p>This link is valid for 24 hours and can only be used once. "
        "Please don't share it with anyone.</p>"
        "</div>"
    )
    return text, body


async def send_access_link_email(
    *, to_email: str, token: str, first_name: str | None = None
) -> None:
    """Send a community access link via Resend.

    Args:
        to_email: Recipient email address.
        token: Plain access token to embed in the fragment link.
        first_name: Optional name for the greeting (manual approvals).

    Raises:
        EmailDeliveryError: If the email was not accepted by Resend.
    """
    api_key = settings.resend_api_key.get_secret_value()
    if not api_key:
        logger.error("RESEND_API_KEY not configured; cannot send access link")
        msg = "Email provider not configured"
        raise EmailDeliveryError(msg)

    text_body, html_body = _render_bodies(build_join_link(token), first_name)

    try:
        async with httpx.AsyncClient() as client:
            resp = await client.post(
                _RESEND_API_URL,
                headers={"Authorization": f"Bearer {api_key}"},
                json={
                    "from": settings.email_from,
                    "to": to_email,
                    "subject": _SUBJECT,
                    "text": text_body,
                    "html": html_body,
                },
                timeout=_RESEND_TIMEOUT,
            )
    except httpx.HTTPError as exc:
        logger.warning(
            "Access link email transport failure for %s",
            mask_email(to_email),
            exc_info=True,
        )
        msg = "Email provider unreachable"
        raise EmailDeliveryError(msg) from exc

    if resp.status_code == 429:
        logger.warning(
            "Resend volume limit hit sending to %s", mask_email(to_email)
        )
        msg = "Email provider volume limit reached"
        raise EmailDeliveryError(msg, volume_limited=True)

    if resp.is_error:
        logger.warning(
            "Resend rejected access link email for %s with HTTP %s",
            mask_email(to_email),
            resp.status_code,
        )
        msg = f"Email provider returned HTTP {resp.status_code}"
        raise EmailDeliveryError(msg)
