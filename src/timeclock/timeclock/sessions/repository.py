from __future__ import annotations

from datetime import date
from typing import Protocol, Sequence

from .model import WorkSession


class SessionRepository(Protocol):
    """Store boundary for work sessions.

    Implementations raise ``database.errors.StoreError`` on failure and
    ``OpenSessionConflict`` when a write would create a second open session
    for the same (employee_id, work_date).
    """

    def get_open_sessions(self, employee_id: str, work_date: date) -> Sequence[WorkSession]:
        raise NotImplementedError

    def upsert_session(self, session: WorkSession) -> WorkSession:
        """Insert when ``session_id`` is None (the store assigns one), update otherwise."""

        raise NotImplementedError

    def replace_session(self, previous: WorkSession, updated: WorkSession) -> bool:
        """Write ``updated`` only while the stored row still matches ``previous``.

        The stored status and break count must equal ``previous``'s; False
        means another writer moved the session on first and nothing was written.
        """
        raise NotImplementedError

    def get_recent_for_employee(self, employee_id: str, limit: int) -> Sequence[WorkSession]:
        raise NotImplementedError
