from __future__ import annotations

import json
import uuid
from dataclasses import replace
from datetime import date, datetime
from typing import Any, Dict, Sequence, Tuple

from ..core.enums import SessionStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, translate_store_errors
from .model import Break, OriginMetadata, WorkSession
from .repository import SessionRepository

_COLUMNS = """
    session_id, employee_id, company_id, site_id, work_date, start_time, end_time,
    breaks, status, total_hours, ip_address, user_agent
"""


def _breaks_to_json(breaks: Tuple[Break, ...]) -> str:
    return json.dumps(
        [{"start": b.start.isoformat(), "end": b.end.isoformat() if b.end else None} for b in breaks]
    )


def _breaks_from_json(value: Any) -> Tuple[Break, ...]:
    if value is None:
        return ()
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8")
    items = json.loads(value) if isinstance(value, str) else value
    return tuple(
        Break(
            start=datetime.fromisoformat(item["start"]),
            end=datetime.fromisoformat(item["end"]) if item.get("end") else None,
        )
        for item in items or []
    )


def _row_to_session(r: Dict[str, Any]) -> WorkSession:
    origin = None
    if r.get("ip_address") or r.get("user_agent"):
        origin = OriginMetadata(ip_address=r.get("ip_address"), user_agent=r.get("user_agent"))

    return WorkSession(
        session_id=str(r["session_id"]),
        employee_id=str(r["employee_id"]),
        company_id=str(r["company_id"]),
        site_id=r.get("site_id"),
        work_date=r["work_date"],
        start_time=r["start_time"],
        end_time=r.get("end_time"),
        breaks=_breaks_from_json(r.get("breaks")),
        status=SessionStatus(r["status"]),
        total_hours=float(r.get("total_hours") or 0),
        origin=origin,
    )


class MySQLSessionRepository(SessionRepository):
    """MySQL-backed session store.

    The ``uq_open_session`` unique key over (employee_id, work_date,
    open_marker) is what guarantees a single open session per day;
    ``open_marker`` is NULL once a session is FINISHED, so closed rows never
    collide.
    """

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_open_sessions(self, employee_id: str, work_date: date) -> Sequence[WorkSession]:
        with translate_store_errors(), db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM work_sessions
                WHERE employee_id=%s AND work_date=%s AND status <> %s
                ORDER BY start_time ASC, session_id ASC
                """,
                (employee_id, work_date, SessionStatus.FINISHED.value),
            )
            return [_row_to_session(r) for r in fetchall(cur)]

    def get_recent_for_employee(self, employee_id: str, limit: int) -> Sequence[WorkSession]:
        with translate_store_errors(), db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM work_sessions
                WHERE employee_id=%s
                ORDER BY work_date DESC, start_time DESC
                LIMIT %s
                """,
                (employee_id, int(limit)),
            )
            return [_row_to_session(r) for r in fetchall(cur)]

    def upsert_session(self, session: WorkSession) -> WorkSession:
        with translate_store_errors(), db_cursor(self._conn_factory) as (_, cur):
            if session.session_id is not None:
                if self._update(cur, session):
                    return session
                if self._exists(cur, session.session_id):
                    # Same values re-saved: MySQL reports zero changed rows.
                    return session
                return self._insert(cur, session, session.session_id)
            return self._insert(cur, session, str(uuid.uuid4()))

    def replace_session(self, previous: WorkSession, updated: WorkSession) -> bool:
        # Every transition changes status, so a matched row always counts as changed.
        with translate_store_errors(), db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE work_sessions
                SET end_time=%s, breaks=%s, status=%s, total_hours=%s
                WHERE session_id=%s AND status=%s AND JSON_LENGTH(breaks)=%s
                """,
                (
                    updated.end_time,
                    _breaks_to_json(updated.breaks),
                    updated.status.value,
                    updated.total_hours,
                    previous.session_id,
                    previous.status.value,
                    len(previous.breaks),
                ),
            )
            return cur.rowcount > 0

    def _insert(self, cur, session: WorkSession, session_id: str) -> WorkSession:
        origin = session.origin or OriginMetadata()
        cur.execute(
            """
            INSERT INTO work_sessions(
                session_id, employee_id, company_id, site_id, work_date, start_time, end_time,
                breaks, status, total_hours, ip_address, user_agent
            )
            VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
            """,
            (
                session_id,
                session.employee_id,
                session.company_id,
                session.site_id,
                session.work_date,
                session.start_time,
                session.end_time,
                _breaks_to_json(session.breaks),
                session.status.value,
                session.total_hours,
                origin.ip_address,
                origin.user_agent,
            ),
        )
        return replace(session, session_id=session_id)

    def _update(self, cur, session: WorkSession) -> bool:
        cur.execute(
            """
            UPDATE work_sessions
            SET end_time=%s, breaks=%s, status=%s, total_hours=%s
            WHERE session_id=%s
            """,
            (
                session.end_time,
                _breaks_to_json(session.breaks),
                session.status.value,
                session.total_hours,
                session.session_id,
            ),
        )
        return cur.rowcount > 0

    def _exists(self, cur, session_id: str) -> bool:
        cur.execute("SELECT session_id FROM work_sessions WHERE session_id=%s", (session_id,))
        return fetchone(cur) is not None
