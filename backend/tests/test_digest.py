"""Tests for digest synthesis, scheduling and the digest state machine."""

from datetime import datetime, timedelta

import pytest
from sqlalchemy import func, select

from pensive.exceptions import InvalidDigestTransition
from pensive.models.analysis import Analysis
from pensive.models.digest import Digest, DigestStatus, DigestTimeframe
from pensive.models.job import Job, JobKind
from pensive.models.user_settings import UserSettings
from pensive.services.digest.scheduler import schedule_digests
from pensive.services.digest.synthesizer import (
    DigestSynthesizer,
    check_transition,
    render_digest_html,
    transition,
    window_start,
)
from pensive.utils.time import utcnow

from conftest import USER_ID, FakeDigestWriter, make_content

NOW = datetime(2026, 3, 31, 12, 0, 0)


class TestWindowStart:
    """Tests for timeframe windows."""

    def test_weekly(self):
        assert window_start(DigestTimeframe.WEEKLY, NOW) == datetime(2026, 3, 24, 12, 0, 0)

    def test_monthly_uses_calendar_months(self):
        assert window_start(DigestTimeframe.MONTHLY, NOW) == datetime(2026, 2, 28, 12, 0, 0)

    def test_quarterly(self):
        assert window_start(DigestTimeframe.QUARTERLY, NOW) == datetime(2025, 12, 31, 12, 0, 0)


class TestTransitions:
    """Tests for the Draft -> Scheduled -> Sent state machine."""

    def _digest(self, status):
        return Digest(
            id=1,
            user_id=USER_ID,
            timeframe=DigestTimeframe.WEEKLY,
            title="t",
            body="b",
            referenced_content_ids=[],
            status=status,
        )

    def test_scheduled_to_sent_stamps_sent_at(self):
        digest = transition(self._digest(DigestStatus.SCHEDULED), DigestStatus.SENT)
        assert digest.status == DigestStatus.SENT
        assert digest.sent_at is not None

    def test_draft_to_scheduled(self):
        digest = transition(self._digest(DigestStatus.DRAFT), DigestStatus.SCHEDULED)
        assert digest.status == DigestStatus.SCHEDULED

    @pytest.mark.parametrize(
        "current,target",
        [
            (DigestStatus.SENT, DigestStatus.SCHEDULED),
            (DigestStatus.SENT, DigestStatus.DRAFT),
            (DigestStatus.DRAFT, DigestStatus.SENT),
            (DigestStatus.SCHEDULED, DigestStatus.DRAFT),
        ],
    )
    def test_invalid_transitions(self, current, target):
        with pytest.raises(InvalidDigestTransition):
            transition(self._digest(current), target)

    def test_check_transition_leaves_digest_untouched(self):
        digest = self._digest(DigestStatus.DRAFT)
        with pytest.raises(InvalidDigestTransition):
            check_transition(digest, DigestStatus.SENT)
        assert digest.status == DigestStatus.DRAFT
        assert check_transition(self._digest(DigestStatus.SCHEDULED), "sent") == DigestStatus.SENT


class TestDigestSynthesizer:
    """Tests for DigestSynthesizer.generate."""

    async def test_empty_window_creates_nothing(self, db):
        make_content(db, "Old", created_at=NOW - timedelta(days=30))
        writer = FakeDigestWriter()

        digest = await DigestSynthesizer(db, writer).generate(USER_ID, DigestTimeframe.WEEKLY, now=NOW)

        assert digest is None
        assert writer.calls == []
        count = db.execute(select(func.count(Digest.id))).scalar()
        db.commit()
        assert count == 0

    async def test_references_exactly_the_selected_content(self, db):
        newest = make_content(db, "Newest", created_at=NOW - timedelta(days=1))
        older = make_content(db, "Older", created_at=NOW - timedelta(days=6))
        make_content(db, "Last month", created_at=NOW - timedelta(days=20))
        make_content(db, "Someone else's", user_id="user-2", created_at=NOW - timedelta(days=1))
        writer = FakeDigestWriter()

        digest = await DigestSynthesizer(db, writer).generate(USER_ID, DigestTimeframe.WEEKLY, now=NOW)

        assert digest.referenced_content_ids == [newest.id, older.id]
        assert digest.status == DigestStatus.SCHEDULED
        assert digest.title == "Your weekly digest"
        _, items = writer.calls[0]
        assert [item.content_id for item in items] == digest.referenced_content_ids

    async def test_monthly_window_is_wider(self, db):
        make_content(db, "Newest", created_at=NOW - timedelta(days=1))
        make_content(db, "Last month", created_at=NOW - timedelta(days=20))

        digest = await DigestSynthesizer(db, FakeDigestWriter()).generate(
            USER_ID, DigestTimeframe.MONTHLY, now=NOW
        )

        assert len(digest.referenced_content_ids) == 2

    async def test_uses_analysis_summary_when_available(self, db):
        content = make_content(db, "Analyzed", body="raw body", created_at=NOW - timedelta(days=1))
        db.add(Analysis(
            content_id=content.id,
            user_id=USER_ID,
            summary_short="short",
            summary_long="The long summary",
            entities=[],
            tags=[],
            priority="read",
            confidence=0.9,
        ))
        db.commit()
        writer = FakeDigestWriter()

        await DigestSynthesizer(db, writer).generate(USER_ID, DigestTimeframe.WEEKLY, now=NOW)

        _, items = writer.calls[0]
        assert items[0].summary == "The long summary"

    async def test_max_items_caps_selection(self, db):
        for day in range(1, 5):
            make_content(db, f"Item {day}", created_at=NOW - timedelta(days=day))

        digest = await DigestSynthesizer(db, FakeDigestWriter(), max_items=2).generate(
            USER_ID, DigestTimeframe.WEEKLY, now=NOW
        )

        assert len(digest.referenced_content_ids) == 2


class TestRenderDigestHtml:
    def test_escapes_and_splits_paragraphs(self):
        digest = Digest(
            user_id=USER_ID,
            timeframe=DigestTimeframe.WEEKLY,
            title="AI & <you>",
            body="First\n\nSecond line\nwrapped",
            referenced_content_ids=[1, 2],
            status=DigestStatus.SCHEDULED,
        )
        html = render_digest_html(digest)
        assert "<h1>AI &amp; &lt;you&gt;</h1>" in html
        assert "<p>Second line<br>wrapped</p>" in html
        assert "2 items from your weekly reading" in html


class TestScheduleDigests:
    """Tests for schedule_digests."""

    def test_schedules_active_users_with_email(self, db, store):
        db.add_all([
            UserSettings(user_id="weekly-user", digest_email="a@example.com", digest_frequency=DigestTimeframe.WEEKLY),
            UserSettings(user_id="monthly-user", digest_email="b@example.com", digest_frequency=DigestTimeframe.MONTHLY),
            UserSettings(user_id="no-email", digest_email=None),
            UserSettings(user_id="inactive", digest_email="c@example.com", is_active=False),
        ])
        db.commit()

        job_ids = schedule_digests(db, store)

        assert len(job_ids) == 2
        payloads = db.execute(select(Job.payload).where(Job.kind == JobKind.GENERATE_DIGEST)).scalars().all()
        db.commit()
        assert {(p["userId"], p["type"]) for p in payloads} == {
            ("weekly-user", "weekly"),
            ("monthly-user", "monthly"),
        }

    def test_filters_by_timeframe(self, db, store):
        db.add_all([
            UserSettings(user_id="weekly-user", digest_email="a@example.com", digest_frequency=DigestTimeframe.WEEKLY),
            UserSettings(user_id="monthly-user", digest_email="b@example.com", digest_frequency=DigestTimeframe.MONTHLY),
        ])
        db.commit()

        assert len(schedule_digests(db, store, DigestTimeframe.MONTHLY)) == 1


def test_window_start_defaults_to_now():
    assert window_start(DigestTimeframe.WEEKLY) <= utcnow() - timedelta(days=7)
