"""Tests for access-link email delivery via Resend."""

from unittest.mock import AsyncMock, patch

import httpx
import pytest
from pydantic import SecretStr

from access_gate.core.config import settings
from access_gate.core.email import (
    EmailDeliveryError,
    build_join_link,
    send_access_link_email,
)

_POST = "access_gate.core.email.httpx.AsyncClient.post"
_TOKEN = "d" * 64


def _response(status_code: int) -> httpx.Response:
    return httpx.Response(
        status_code,
        json={"id": "email_123"},
        request=httpx.Request("POST", "https://api.resend.com/emails"),
    )


class TestBuildJoinLink:
    """Tests for build_join_link()."""

    def test_token_travels_in_fragment(self):
        """Links use /join#<token>, never a path or query parameter."""
        assert build_join_link(_TOKEN) == f"https://club.example.org/join#{_TOKEN}"

    def test_trailing_slash_in_base_url(self, monkeypatch):
        """A trailing slash on the base URL is not doubled."""
        monkeypatch.setattr(settings, "base_url", "https://club.example.org/")
        assert build_join_link(_TOKEN).startswith("https://club.example.org/join#")


class TestSendAccessLinkEmail:
    """Tests for send_access_link_email()."""

    async def test_success_posts_link_to_resend(self):
        """The email body carries the fragment link."""
        mock_post = AsyncMock(return_value=_response(200))
        with patch(_POST, new=mock_post):
            await send_access_link_email(to_email="alice@x.ac.uk", token=_TOKEN)

        payload = mock_post.call_args.kwargs["json"]
        assert payload["to"] == "alice@x.ac.uk"
        assert payload["subject"] == "Community WhatsApp Group Access"
        assert build_join_link(_TOKEN) in payload["text"]
        assert "24 hours" in payload["text"]
        headers = mock_post.call_args.kwargs["headers"]
        assert headers["Authorization"] == "Bearer re_test"

    async def test_first_name_is_escaped_in_html(self):
        """Names are HTML-escaped in the HTML body."""
        mock_post = AsyncMock(return_value=_response(200))
        with patch(_POST, new=mock_post):
            await send_access_link_email(
                to_email="bob@gmail.com", token=_TOKEN, first_name="<b>Bob</b>"
            )

        html_body = mock_post.call_args.kwargs["json"]["html"]
        assert "<b>Bob</b>" not in html_body
        assert "&lt;b&gt;Bob&lt;/b&gt;" in html_body

    async def test_429_is_volume_limited(self):
        """Provider rate/quota limits are reported as volume_limited."""
        with (
            patch(_POST, new=AsyncMock(return_value=_response(429))),
            pytest.raises(EmailDeliveryError) as exc_info,
        ):
            await send_access_link_email(to_email="alice@x.ac.uk", token=_TOKEN)

        assert exc_info.value.volume_limited is True

    @pytest.mark.parametrize("status_code", [400, 401, 500, 502])
    async def test_other_errors_are_not_volume_limited(self, status_code):
        """Every other error status is a hard failure."""
        with (
            patch(_POST, new=AsyncMock(return_value=_response(status_code))),
            pytest.raises(EmailDeliveryError) as exc_info,
        ):
            await send_access_link_email(to_email="alice@x.ac.uk", token=_TOKEN)

        assert exc_info.value.volume_limited is False

    async def test_transport_error_raises(self):
        """Network failures become EmailDeliveryError."""
        with (
            patch(_POST, new=AsyncMock(side_effect=httpx.ConnectError("down"))),
            pytest.raises(EmailDeliveryError),
        ):
            await send_access_link_email(to_email="alice@x.ac.uk", token=_TOKEN)

    async def test_missing_api_key_raises_without_request(self, monkeypatch):
        """No key configured: fail before any network call."""
        monkeypatch.setattr(settings, "resend_api_key", SecretStr(""))
        mock_post = AsyncMock()
        with patch(_POST, new=mock_post), pytest.raises(EmailDeliveryError):
            await send_access_link_email(to_email="alice@x.ac.uk", token=_TOKEN)
        mock_post.assert_not_called()
