from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

from ..core.exceptions import DuplicateOpenSession
from ..database.errors import StoreError
from .model import WorkSession
from .repository import SessionRepository


def _creation_order(session: WorkSession):
    return (session.start_time, session.session_id or "")


class SessionRegistry:
    """Per-(employee, day) lookup of the open session on top of the store.

    Store errors are not handled here; they propagate to the service layer.
    """

    def __init__(self, sessions: SessionRepository):
        self._sessions = sessions

    def find_open_session(self, employee_id: str, work_date: date) -> Optional[WorkSession]:
        """Return the open session, or None.

        Raises ``DuplicateOpenSession`` when the store holds more than one
        open row; the exception carries the earliest-created one as the
        canonical session so callers can carry on with it.
        """
        found = [s for s in self._sessions.get_open_sessions(employee_id, work_date) if s.is_open]
        if not found:
            return None
        if len(found) == 1:
            return found[0]

        ordered = sorted(found, key=_creation_order)
        canonical = ordered[0]
        raise DuplicateOpenSession(canonical, [s.session_id or "" for s in ordered[1:]])

    def persist(self, session: WorkSession) -> WorkSession:
        saved = self._sessions.upsert_session(session)
        if saved.session_id is None:
            raise StoreError("store did not assign a session id")
        return saved

    def advance(self, previous: WorkSession, updated: WorkSession) -> Optional[WorkSession]:
        """Store a transition of ``previous``; None if the stored row has moved on."""
        if previous.session_id is None or updated.session_id != previous.session_id:
            raise ValueError("a transition must keep the stored session id")
        if not self._sessions.replace_session(previous, updated):
            return None
        return updated

    def recent_sessions(self, employee_id: str, limit: int) -> Sequence[WorkSession]:
        return list(self._sessions.get_recent_for_employee(employee_id, limit))
