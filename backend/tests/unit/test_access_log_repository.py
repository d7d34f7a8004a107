"""Tests for AccessLogRepository."""

from datetime import timedelta

from access_gate.core.tokens import hash_identity
from access_gate.models import SUCCESSFUL_JOIN
from access_gate.models.base import utc_now
from access_gate.repositories.access_log_repository import AccessLogRepository

_WINDOW_START = timedelta(days=90)


class TestAppend:
    """Tests for AccessLogRepository.append()."""

    async def test_append_records_successful_join(self, db_session):
        """Entries default to successful_join with a hashed IP."""
        entry = await AccessLogRepository.append(
            db_session,
            email="Alice@Manchester.ac.uk",
            phone="+447911123123",
            verification_method="ac_uk_email",
            token="c" * 64,
            ip_address="198.51.100.4",
        )

        assert entry.id is not None
        assert entry.status == SUCCESSFUL_JOIN
        assert entry.email == "alice@manchester.ac.uk"
        assert entry.ip_hash == hash_identity("198.51.100.4")

    async def test_append_without_ip(self, db_session):
        """The IP hash is optional."""
        entry = await AccessLogRepository.append(
            db_session,
            email="alice@manchester.ac.uk",
            verification_method="manual_approval",
            token="c" * 64,
        )
        assert entry.ip_hash is None
        assert entry.phone is None


class TestLookback:
    """Tests for the duplicate lookback queries."""

    async def test_email_match_is_case_insensitive(self, db_session, make_log_entry):
        """Stored and queried emails are compared lower-cased."""
        await make_log_entry(email="alice@manchester.ac.uk")

        found = await AccessLogRepository.find_recent_join_by_email(
            db_session,
            email="ALICE@Manchester.ac.uk",
            since=utc_now() - _WINDOW_START,
        )
        assert found is not None

    async def test_email_outside_window_not_found(self, db_session, make_log_entry):
        """Entries older than the cutoff are ignored."""
        await make_log_entry(age=timedelta(days=91))

        found = await AccessLogRepository.find_recent_join_by_email(
            db_session,
            email="alice@manchester.ac.uk",
            since=utc_now() - _WINDOW_START,
        )
        assert found is None

    async def test_non_join_status_ignored(self, db_session, make_log_entry):
        """Only successful joins count."""
        await make_log_entry(status="failed_join")

        found = await AccessLogRepository.find_recent_join_by_email(
            db_session,
            email="alice@manchester.ac.uk",
            since=utc_now() - _WINDOW_START,
        )
        assert found is None

    async def test_phone_match_excludes_same_email(self, db_session, make_log_entry):
        """The holder's own entry never counts against their phone."""
        await make_log_entry(email="alice@manchester.ac.uk", phone="+447911123123")
        since = utc_now() - _WINDOW_START

        own = await AccessLogRepository.find_recent_join_by_phone(
            db_session,
            phone="+447911123123",
            since=since,
            exclude_email="Alice@Manchester.ac.uk",
        )
        other = await AccessLogRepository.find_recent_join_by_phone(
            db_session,
            phone="+447911123123",
            since=since,
            exclude_email="mallory@leeds.ac.uk",
        )

        assert own is None
        assert other is not None


class TestListRecent:
    """Tests for AccessLogRepository.list_recent()."""

    async def test_newest_first_with_total(self, db_session, make_log_entry):
        """Pagination returns a page plus the overall count."""
        oldest = await make_log_entry(email="a@x.ac.uk", age=timedelta(days=3))
        middle = await make_log_entry(email="b@x.ac.uk", age=timedelta(days=2))
        newest = await make_log_entry(email="c@x.ac.uk", age=timedelta(days=1))

        page, total = await AccessLogRepository.list_recent(
            db_session, offset=0, limit=2
        )

        assert total == 3
        assert [e.id for e in page] == [newest.id, middle.id]

        rest, _ = await AccessLogRepository.list_recent(db_session, offset=2, limit=2)
        assert [e.id for e in rest] == [oldest.id]
