# tests/test_inactivity.py
import uuid
from datetime import datetime, timedelta, timezone

import pytest

from finzoo.core.timeutils import as_utc
from finzoo.database import new_session
from finzoo.repositories.activity_repo import ActivityRepository
from finzoo.services.inactivity import InactivityMonitor, SessionExpired

START = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


class Clock:
    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def expired_calls():
    return []


@pytest.fixture
def monitor(clock, expired_calls):
    return InactivityMonitor(
        ActivityRepository(),
        new_session,
        on_expire=lambda sid, token: expired_calls.append((sid, token)),
        clock=clock,
    )


def _row(session_id: str):
    with new_session() as db:
        return ActivityRepository().get(db, session_id)


def test_idle_over_an_hour_is_expired_on_next_check(monitor, clock, expired_calls):
    monitor.record_activity("s1", uuid.uuid4(), "token-1")
    clock.advance(minutes=61)

    assert monitor.check() == ["s1"]
    assert expired_calls == [("s1", "token-1")]
    with pytest.raises(SessionExpired):
        monitor.ensure_active("s1")

    row = _row("s1")
    assert row.last_activity is None
    assert row.expired_at is not None


def test_idle_half_an_hour_stays_signed_in(monitor, clock, expired_calls):
    monitor.record_activity("s1", uuid.uuid4())
    clock.advance(minutes=30)

    assert monitor.check() == []
    assert expired_calls == []
    monitor.ensure_active("s1")


def test_activity_resets_the_idle_timer(monitor, clock):
    monitor.record_activity("s1")
    clock.advance(minutes=50)
    monitor.record_activity("s1")
    clock.advance(minutes=50)

    assert monitor.check() == []


def test_persistence_is_throttled(monitor, clock):
    user_id = uuid.uuid4()
    monitor.record_activity("s1", user_id)
    first = START

    clock.advance(seconds=10)
    monitor.record_activity("s1", user_id)
    assert as_utc(_row("s1").last_activity) == first
    assert monitor.last_activity("s1") == START + timedelta(seconds=10)

    clock.advance(seconds=25)
    monitor.record_activity("s1", user_id)
    assert as_utc(_row("s1").last_activity) == START + timedelta(seconds=35)


def test_restore_expires_stale_sessions_before_use(clock, expired_calls):
    with new_session() as db:
        repo = ActivityRepository()
        repo.save_activity(db, "old", uuid.uuid4(), START - timedelta(hours=2))
        repo.save_activity(db, "fresh", uuid.uuid4(), START - timedelta(minutes=5))

    monitor = InactivityMonitor(
        ActivityRepository(),
        new_session,
        on_expire=lambda sid, token: expired_calls.append((sid, token)),
        clock=clock,
    )

    assert monitor.restore() == ["old"]
    assert expired_calls == [("old", None)]
    with pytest.raises(SessionExpired):
        monitor.ensure_active("old")
    monitor.ensure_active("fresh")
    assert monitor.last_activity("fresh") == START - timedelta(minutes=5)


def test_stale_row_seen_first_by_another_process_is_refused(monitor):
    with new_session() as db:
        ActivityRepository().save_activity(db, "s2", None, START - timedelta(minutes=90))

    with pytest.raises(SessionExpired):
        monitor.ensure_active("s2")


def test_explicit_end_does_not_call_backend(monitor, expired_calls):
    monitor.record_activity("s1", access_token="t")
    monitor.end("s1")

    assert expired_calls == []
    assert monitor.is_expired("s1")


def test_old_ended_sessions_are_forgotten_but_still_refused(monitor, clock):
    monitor.record_activity("s1")
    monitor.end("s1")

    clock.advance(hours=25)
    monitor.check()

    assert not monitor.is_expired("s1")
    with pytest.raises(SessionExpired):
        monitor.ensure_active("s1")
    assert monitor.is_expired("s1")
