from __future__ import annotations

import json
from datetime import date, datetime

import mysql.connector
import pytest
from mysql.connector import errorcode

from src.timeclock.timeclock.core.enums import SessionStatus
from src.timeclock.timeclock.database.errors import OpenSessionConflict, StoreError
from src.timeclock.timeclock.database.mysql_base import translate_store_errors
from src.timeclock.timeclock.sessions.model import Break, OriginMetadata, WorkSession
from src.timeclock.timeclock.sessions.mysql_session_repository import (
    MySQLSessionRepository,
    _breaks_from_json,
    _breaks_to_json,
    _row_to_session,
)

T0 = datetime(2026, 2, 2, 8, 0, 0)


class FakeCursor:
    """Replays (rowcount, row) per execute and records the SQL it was given."""

    def __init__(self, script, fail_with=None):
        self.script = list(script)
        self.fail_with = fail_with
        self.executed = []
        self.rowcount = -1
        self._row = None

    def execute(self, sql, params=()):
        self.executed.append((" ".join(sql.split()), tuple(params)))
        if self.fail_with is not None:
            raise self.fail_with
        self.rowcount, self._row = self.script.pop(0) if self.script else (1, None)

    def fetchone(self):
        return self._row

    def fetchall(self):
        return [self._row] if self._row else []

    def close(self):
        pass


class FakeConnection:
    def __init__(self, cursor):
        self._cursor = cursor
        self.committed = False
        self.rolled_back = False
        self.closed = False

    def cursor(self, dictionary=False):
        return self._cursor

    def commit(self):
        self.committed = True

    def rollback(self):
        self.rolled_back = True

    def close(self):
        self.closed = True


class FakeConnectionFactory:
    def __init__(self, *script, fail_with=None):
        self.cursor = FakeCursor(script, fail_with=fail_with)
        self.connections = []

    def connect(self):
        conn = FakeConnection(self.cursor)
        self.connections.append(conn)
        return conn

    def statements(self):
        return [sql.split()[0] for sql, _ in self.cursor.executed]


def _stored(session_id="ws-1", status=SessionStatus.WORKING, breaks=()) -> WorkSession:
    return WorkSession(
        session_id=session_id,
        employee_id="emp1",
        company_id="c1",
        work_date=T0.date(),
        start_time=T0,
        status=status,
        breaks=tuple(breaks),
    )


def test_duplicate_key_becomes_open_session_conflict():
    dup = mysql.connector.IntegrityError(
        msg="Duplicate entry 'emp1-2026-02-02-1' for key 'uq_open_session'",
        errno=errorcode.ER_DUP_ENTRY,
    )

    with pytest.raises(OpenSessionConflict) as exc:
        with translate_store_errors():
            raise dup
    assert exc.value.__cause__ is dup


def test_other_integrity_errors_are_plain_store_errors():
    with pytest.raises(StoreError) as exc:
        with translate_store_errors():
            raise mysql.connector.IntegrityError(msg="fk", errno=errorcode.ER_NO_REFERENCED_ROW_2)
    assert not isinstance(exc.value, OpenSessionConflict)


def test_connection_errors_are_store_errors():
    with pytest.raises(StoreError):
        with translate_store_errors():
            raise mysql.connector.OperationalError(msg="Lost connection", errno=2013)


def test_non_driver_errors_pass_through():
    with pytest.raises(KeyError):
        with translate_store_errors():
            raise KeyError("status")


def test_breaks_json_keeps_open_break():
    breaks = (
        Break(start=datetime(2026, 2, 2, 10, 0), end=datetime(2026, 2, 2, 10, 15)),
        Break(start=datetime(2026, 2, 2, 12, 0)),
    )
    raw = _breaks_to_json(breaks)

    assert json.loads(raw)[1] == {"start": "2026-02-02T12:00:00", "end": None}
    assert _breaks_from_json(raw) == breaks


def test_breaks_from_driver_values():
    raw = '[{"start": "2026-02-02T10:00:00", "end": null}]'

    assert _breaks_from_json(raw.encode("utf-8")) == (Break(start=datetime(2026, 2, 2, 10, 0)),)
    assert _breaks_from_json(json.loads(raw)) == (Break(start=datetime(2026, 2, 2, 10, 0)),)
    assert _breaks_from_json(None) == ()


def test_row_to_session_maps_columns():
    s = _row_to_session({
        "session_id": "ws-9",
        "employee_id": "emp1",
        "company_id": "c1",
        "site_id": None,
        "work_date": date(2026, 2, 2),
        "start_time": T0,
        "end_time": None,
        "breaks": b"[]",
        "status": "PAUSED",
        "total_hours": None,
        "ip_address": "10.0.0.7",
        "user_agent": None,
    })

    assert s.status == SessionStatus.PAUSED
    assert s.total_hours == 0.0
    assert s.breaks == ()
    assert s.origin == OriginMetadata(ip_address="10.0.0.7", user_agent=None)


def test_upsert_new_session_inserts_with_generated_id():
    factory = FakeConnectionFactory()
    session = WorkSession.open(employee_id="emp1", company_id="c1", now=T0)

    saved = MySQLSessionRepository(factory).upsert_session(session)

    assert factory.statements() == ["INSERT"]
    assert len(saved.session_id) == 36
    assert factory.cursor.executed[0][1][0] == saved.session_id
    assert factory.connections[0].committed


def test_upsert_existing_session_updates_only():
    factory = FakeConnectionFactory((1, None))

    saved = MySQLSessionRepository(factory).upsert_session(_stored())

    assert factory.statements() == ["UPDATE"]
    assert saved.session_id == "ws-1"


def test_upsert_unchanged_row_is_not_inserted_again():
    # MySQL reports zero changed rows when the same values are written back.
    factory = FakeConnectionFactory((0, None), (1, {"session_id": "ws-1"}))

    saved = MySQLSessionRepository(factory).upsert_session(_stored())

    assert factory.statements() == ["UPDATE", "SELECT"]
    assert saved.session_id == "ws-1"


def test_upsert_missing_row_is_inserted_with_its_id():
    factory = FakeConnectionFactory((0, None), (0, None), (1, None))

    MySQLSessionRepository(factory).upsert_session(_stored("ws-7"))

    assert factory.statements() == ["UPDATE", "SELECT", "INSERT"]
    assert factory.cursor.executed[2][1][0] == "ws-7"


def test_upsert_duplicate_open_session_rolls_back_and_conflicts():
    dup = mysql.connector.IntegrityError(msg="Duplicate entry", errno=errorcode.ER_DUP_ENTRY)
    factory = FakeConnectionFactory(fail_with=dup)

    with pytest.raises(OpenSessionConflict):
        MySQLSessionRepository(factory).upsert_session(WorkSession.open(employee_id="emp1", company_id="c1", now=T0))

    conn = factory.connections[0]
    assert conn.rolled_back and conn.closed and not conn.committed


def test_replace_session_is_conditional_on_status_and_break_count():
    previous = _stored(breaks=[Break(start=datetime(2026, 2, 2, 9), end=datetime(2026, 2, 2, 9, 10))])
    updated = previous.pause(datetime(2026, 2, 2, 11))
    factory = FakeConnectionFactory((1, None))

    assert MySQLSessionRepository(factory).replace_session(previous, updated) is True

    sql, params = factory.cursor.executed[0]
    assert "WHERE session_id=%s AND status=%s AND JSON_LENGTH(breaks)=%s" in sql
    assert params[2] == "PAUSED"
    assert params[-3:] == ("ws-1", "WORKING", 1)


def test_replace_session_reports_lost_race():
    previous = _stored()
    factory = FakeConnectionFactory((0, None))

    assert MySQLSessionRepository(factory).replace_session(previous, previous.pause(datetime(2026, 2, 2, 11))) is False
    assert factory.statements() == ["UPDATE"]
