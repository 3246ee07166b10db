from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from src.timeclock.timeclock.core.enums import SessionStatus, Transition
from src.timeclock.timeclock.core.exceptions import InvalidTransition, NonMonotonicTime
from src.timeclock.timeclock.sessions.model import Break, OriginMetadata, WorkSession

T0 = datetime(2026, 2, 2, 8, 0, 0)


def _open(now: datetime = T0) -> WorkSession:
    return WorkSession.open(employee_id="emp1", company_id="c1", now=now)


def test_open_starts_working_with_no_breaks():
    s = WorkSession.open(
        employee_id="emp1",
        company_id="c1",
        now=T0,
        origin=OriginMetadata(ip_address="10.0.0.7", user_agent="kiosk"),
    )

    assert s.session_id is None
    assert s.status == SessionStatus.WORKING
    assert s.work_date == T0.date()
    assert s.start_time == T0
    assert s.breaks == ()
    assert s.end_time is None
    assert s.total_hours == 0
    assert s.origin.ip_address == "10.0.0.7"


def test_pause_appends_open_break():
    s = _open().pause(T0 + timedelta(hours=2))

    assert s.status == SessionStatus.PAUSED
    assert s.breaks == (Break(start=T0 + timedelta(hours=2)),)
    assert s.open_break is not None


def test_resume_closes_the_open_break():
    s = _open().pause(T0 + timedelta(hours=2)).resume(T0 + timedelta(hours=2, minutes=15))

    assert s.status == SessionStatus.WORKING
    assert s.breaks == (Break(start=T0 + timedelta(hours=2), end=T0 + timedelta(hours=2, minutes=15)),)
    assert s.open_break is None


def test_transitions_do_not_mutate_the_original():
    opened = _open()
    opened.pause(T0 + timedelta(hours=1))

    assert opened.status == SessionStatus.WORKING
    assert opened.breaks == ()


def test_second_pause_is_rejected_and_state_is_unchanged():
    paused = _open().pause(T0 + timedelta(hours=1))

    with pytest.raises(InvalidTransition) as exc:
        paused.pause(T0 + timedelta(hours=1, minutes=1))

    assert exc.value.transition == Transition.PAUSE
    assert exc.value.current == SessionStatus.PAUSED
    assert "pause" in str(exc.value) and "PAUSED" in str(exc.value)
    assert paused.status == SessionStatus.PAUSED
    assert len(paused.breaks) == 1


def test_resume_while_working_is_rejected():
    with pytest.raises(InvalidTransition):
        _open().resume(T0 + timedelta(minutes=5))


def test_finished_session_rejects_everything():
    finished = _open().clock_out(T0 + timedelta(hours=1))

    for attempt in (finished.pause, finished.resume, finished.clock_out):
        with pytest.raises(InvalidTransition) as exc:
            attempt(T0 + timedelta(hours=2))
        assert exc.value.current == SessionStatus.FINISHED


def test_clock_out_while_paused_closes_dangling_break():
    # 08:00 open, 12:00 pause, 12:10 clock-out without resume.
    s = _open().pause(T0 + timedelta(hours=4)).clock_out(T0 + timedelta(hours=4, minutes=10))

    assert s.status == SessionStatus.FINISHED
    assert s.end_time == T0 + timedelta(hours=4, minutes=10)
    assert s.breaks[-1].end == s.end_time
    assert s.total_hours == 4.0


def test_full_day_scenario():
    s = _open()
    s = s.pause(T0 + timedelta(hours=2))
    assert s.status == SessionStatus.PAUSED
    s = s.resume(T0 + timedelta(hours=2, minutes=15))
    assert s.status == SessionStatus.WORKING
    s = s.clock_out(T0 + timedelta(hours=8))

    assert s.status == SessionStatus.FINISHED
    assert s.total_hours == 7.75


def test_end_time_is_set_only_when_finished():
    s = _open()
    assert s.end_time is None
    s = s.pause(T0 + timedelta(hours=1))
    assert s.end_time is None
    s = s.resume(T0 + timedelta(hours=2))
    assert s.end_time is None
    s = s.clock_out(T0 + timedelta(hours=3))
    assert s.end_time is not None


def test_pause_before_start_is_non_monotonic():
    with pytest.raises(NonMonotonicTime):
        _open().pause(T0 - timedelta(seconds=1))


def test_resume_before_break_start_is_non_monotonic():
    paused = _open().pause(T0 + timedelta(hours=1))

    with pytest.raises(NonMonotonicTime):
        paused.resume(T0 + timedelta(minutes=59))
    assert paused.open_break is not None


def test_pause_before_previous_break_end_is_non_monotonic():
    s = _open().pause(T0 + timedelta(hours=1)).resume(T0 + timedelta(hours=1, minutes=30))

    with pytest.raises(NonMonotonicTime):
        s.pause(T0 + timedelta(hours=1, minutes=10))


def test_clock_out_before_last_event_is_non_monotonic():
    paused = _open().pause(T0 + timedelta(hours=3))

    with pytest.raises(NonMonotonicTime):
        paused.clock_out(T0 + timedelta(hours=2))
    assert paused.status == SessionStatus.PAUSED
