from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from ..core.enums import SessionStatus, Transition
    from ..sessions.model import WorkSession


class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class OutOfRange(DomainError):
    """Clock-in attempted outside the site's geofence."""

    def __init__(self, message: str, *, distance_meters: float | None = None, radius_meters: float | None = None):
        super().__init__(message)
        self.distance_meters = distance_meters
        self.radius_meters = radius_meters


class AlreadyClockedIn(DomainError):
    """An open session already exists; carries it so callers can resume displaying it."""

    def __init__(self, session: "WorkSession"):
        super().__init__(f"Employee {session.employee_id} already has an open session for {session.work_date.isoformat()}")
        self.session = session


class NoActiveSession(DomainError):
    """Pause/resume/clock-out requested with nothing open."""

    def __init__(self, employee_id: str):
        super().__init__(f"No open session today for employee {employee_id}")
        self.employee_id = employee_id


class InvalidTransition(DomainError):
    def __init__(self, transition: "Transition", current: "SessionStatus"):
        super().__init__(f"Cannot {transition.value} a session that is {current.value}")
        self.transition = transition
        self.current = current


class NonMonotonicTime(DomainError):
    """A transition timestamp precedes an earlier recorded timestamp."""


class DuplicateOpenSession(DomainError):
    """The store returned more than one open session for the same employee and day."""

    def __init__(self, canonical: "WorkSession", duplicate_ids: Sequence[str]):
        super().__init__(
            f"{len(duplicate_ids) + 1} open sessions for employee {canonical.employee_id} "
            f"on {canonical.work_date.isoformat()}; using {canonical.session_id}"
        )
        self.canonical = canonical
        self.duplicate_ids = tuple(duplicate_ids)


class StoreUnavailable(DomainError):
    """Persistence boundary failed (timeout, connectivity, unexpected store error)."""
