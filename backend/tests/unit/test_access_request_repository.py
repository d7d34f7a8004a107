"""Tests for AccessRequestRepository."""

import uuid
from datetime import timedelta

from access_gate.models import RequestStatus
from access_gate.models.base import utc_now
from access_gate.repositories.access_request_repository import (
    AccessRequestRepository,
)


class TestCreateAndGet:
    """Tests for create() and get_by_id()."""

    async def test_create_stores_pending_request(self, db_session):
        """New requests start pending with a lower-cased email."""
        request = await AccessRequestRepository.create(
            db_session,
            first_name="Bob",
            surname="Walker",
            email="Bob@Gmail.com",
            phone="+447911123456",
            user_type="alumni",
            trips="Snowdon 2024",
        )

        fetched = await AccessRequestRepository.get_by_id(db_session, request.id)
        assert fetched is not None
        assert fetched.status == RequestStatus.PENDING.value
        assert fetched.email == "bob@gmail.com"
        assert fetched.trips == "Snowdon 2024"

    async def test_get_unknown_returns_none(self, db_session):
        """Unknown ids are not found."""
        assert await AccessRequestRepository.get_by_id(db_session, uuid.uuid4()) is None


class TestListRequests:
    """Tests for list_requests()."""

    async def test_filter_by_status(self, db_session, make_access_request):
        """Only requests in the chosen state are returned and counted."""
        await make_access_request(email="p1@x.com", status=RequestStatus.PENDING)
        await make_access_request(email="p2@x.com", status=RequestStatus.PENDING)
        await make_access_request(email="r@x.com", status=RequestStatus.REJECTED)

        pending, total = await AccessRequestRepository.list_requests(
            db_session, status=RequestStatus.PENDING
        )
        everything, grand_total = await AccessRequestRepository.list_requests(
            db_session
        )

        assert total == 2
        assert {r.email for r in pending} == {"p1@x.com", "p2@x.com"}
        assert grand_total == 3
        assert len(everything) == 3


class TestTransitionFromPending:
    """Tests for transition_from_pending()."""

    async def test_pending_request_transitions_once(
        self, db_session, make_access_request
    ):
        """The first review wins; a second finds nothing pending."""
        request = await make_access_request()

        first = await AccessRequestRepository.transition_from_pending(
            db_session, request.id, status=RequestStatus.APPROVED, reviewed_by="Sam"
        )
        second = await AccessRequestRepository.transition_from_pending(
            db_session, request.id, status=RequestStatus.REJECTED, reviewed_by="Kim"
        )

        assert (first, second) == (True, False)
        fetched = await AccessRequestRepository.get_by_id(db_session, request.id)
        assert fetched.status == RequestStatus.APPROVED.value
        assert fetched.reviewed_by == "Sam"
        assert fetched.reviewed_at is not None


class TestFindRecentByPhone:
    """Tests for find_recent_by_phone()."""

    async def test_pending_and_approved_count(self, db_session, make_access_request):
        """Pending and approved requests under another email match."""
        await make_access_request(phone="+447911123111", status=RequestStatus.PENDING)
        await make_access_request(phone="+447911123222", status=RequestStatus.APPROVED)

        since = utc_now() - timedelta(days=90)
        for phone in ("+447911123111", "+447911123222"):
            found = await AccessRequestRepository.find_recent_by_phone(
                db_session, phone=phone, since=since, exclude_email="alice@x.ac.uk"
            )
            assert found is not None

    async def test_rejected_request_ignored(self, db_session, make_access_request):
        """Rejected requests never count as duplicates."""
        await make_access_request(status=RequestStatus.REJECTED)

        found = await AccessRequestRepository.find_recent_by_phone(
            db_session,
            phone="+447911123456",
            since=utc_now() - timedelta(days=90),
            exclude_email="alice@x.ac.uk",
        )
        assert found is None

    async def test_same_email_excluded(self, db_session, make_access_request):
        """A requester's own pending request is not a duplicate."""
        await make_access_request(email="bob@gmail.com")

        found = await AccessRequestRepository.find_recent_by_phone(
            db_session,
            phone="+447911123456",
            since=utc_now() - timedelta(days=90),
            exclude_email="BOB@gmail.com",
        )
        assert found is None
