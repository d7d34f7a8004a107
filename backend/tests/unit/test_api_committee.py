"""Tests for the committee console endpoints.

Covers:
- Bearer key authentication (missing, wrong, unconfigured)
- Listing and reviewing manual requests
- Access-log listing without raw tokens
- Token cleanup
"""

import uuid
from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest
from pydantic import SecretStr

from access_gate.core.config import settings
from access_gate.models import RequestStatus, TokenStatus
from access_gate.models.base import utc_now

_SEND = "access_gate.services.verification.send_access_link_email"
_BASE = "/api/v1/committee"


class TestCommitteeAuth:
    """Every console endpoint needs the committee key."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/access-requests"),
            ("GET", "/access-logs"),
            ("POST", "/tokens/cleanup"),
        ],
    )
    async def test_missing_key_is_401(self, client, method, path):
        """No Authorization header means 401."""
        response = await client.request(method, f"{_BASE}{path}")

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "UNAUTHORIZED"

    async def test_wrong_key_is_401(self, client):
        """A wrong bearer key is rejected."""
        response = await client.get(
            f"{_BASE}/access-logs", headers={"Authorization": "Bearer nope"}
        )

        assert response.status_code == 401

    async def test_unconfigured_key_rejects_everyone(
        self, client, committee_headers, monkeypatch
    ):
        """With no key configured the console is closed."""
        monkeypatch.setattr(settings, "committee_api_key", SecretStr(""))

        response = await client.get(f"{_BASE}/access-logs", headers=committee_headers)

        assert response.status_code == 401

    async def test_non_bearer_scheme_is_401(self, client):
        """Basic auth is not accepted."""
        response = await client.get(
            f"{_BASE}/access-logs", headers={"Authorization": "Basic dGVzdA=="}
        )

        assert response.status_code == 401


class TestAccessRequestConsole:
    """List and review manual requests."""

    async def test_list_filters_by_status(
        self, client, committee_headers, make_access_request, db_session
    ):
        """?status=pending returns only pending requests."""
        await make_access_request(email="p@gmail.com", phone="+447911123111")
        await make_access_request(
            email="r@gmail.com", phone="+447911123222", status=RequestStatus.REJECTED
        )
        await db_session.commit()

        response = await client.get(
            f"{_BASE}/access-requests",
            params={"status": "pending"},
            headers=committee_headers,
        )

        body = response.json()
        assert response.status_code == 200
        assert [r["email"] for r in body["data"]] == ["p@gmail.com"]
        assert body["meta"]["total"] == 1

    async def test_approve(
        self, client, committee_headers, make_access_request, db_session
    ):
        """Approval emails a link and marks the request approved."""
        request = await make_access_request()
        await db_session.commit()

        with patch(_SEND, new=AsyncMock()) as mock_send:
            response = await client.patch(
                f"{_BASE}/access-requests/{request.id}",
                json={"action": "approve", "reviewed_by": "Sam"},
                headers=committee_headers,
            )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["status"] == "approved"
        assert data["reviewed_by"] == "Sam"
        mock_send.assert_awaited_once()

    async def test_second_review_is_422(
        self, client, committee_headers, make_access_request, db_session
    ):
        """A decided request cannot be reviewed again."""
        request = await make_access_request(status=RequestStatus.REJECTED)
        await db_session.commit()

        response = await client.patch(
            f"{_BASE}/access-requests/{request.id}",
            json={"action": "approve", "reviewed_by": "Sam"},
            headers=committee_headers,
        )

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "INVALID_STATE_TRANSITION"

    async def test_unknown_request_is_404(self, client, committee_headers):
        """Unknown ids return NOT_FOUND."""
        response = await client.patch(
            f"{_BASE}/access-requests/{uuid.uuid4()}",
            json={"action": "reject", "reviewed_by": "Sam"},
            headers=committee_headers,
        )

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

    async def test_invalid_action_is_400(
        self, client, committee_headers, make_access_request, db_session
    ):
        """Only approve and reject are actions."""
        request = await make_access_request()
        await db_session.commit()

        response = await client.patch(
            f"{_BASE}/access-requests/{request.id}",
            json={"action": "delete", "reviewed_by": "Sam"},
            headers=committee_headers,
        )

        assert response.status_code == 400


class TestMonitoring:
    """Access logs and cleanup."""

    async def test_access_logs_hide_raw_tokens(
        self, client, committee_headers, make_log_entry, db_session
    ):
        """Log entries expose a fingerprint, never the token."""
        await make_log_entry(email="alice@manchester.ac.uk")
        await db_session.commit()

        response = await client.get(f"{_BASE}/access-logs", headers=committee_headers)

        entry = response.json()["data"][0]
        assert entry["email"] == "alice@manchester.ac.uk"
        assert "token" not in entry
        assert entry["token_fingerprint"] != "f" * 64

    async def test_cleanup_expires_stale_tokens(
        self, client, committee_headers, make_token, db_session
    ):
        """Only active tokens past expiry are counted."""
        await make_token(created_at=utc_now() - timedelta(days=2))
        await make_token(email="fresh@x.ac.uk", phone=None)
        await make_token(
            email="used@x.ac.uk",
            phone=None,
            status=TokenStatus.USED,
            created_at=utc_now() - timedelta(days=2),
        )
        await db_session.commit()

        response = await client.post(
            f"{_BASE}/tokens/cleanup", headers=committee_headers
        )

        assert response.status_code == 200
        assert response.json()["data"] == {"expired_count": 1}
