from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Optional, Tuple

from ..core.enums import SessionStatus, Transition
from ..core.exceptions import InvalidTransition, NonMonotonicTime
from .clock import total_hours_at_close


@dataclass(frozen=True)
class Break:
    start: datetime
    end: Optional[datetime] = None

    @property
    def is_open(self) -> bool:
        return self.end is None


@dataclass(frozen=True)
class OriginMetadata:
    """Where a clock-in came from. Provenance only."""

    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


@dataclass(frozen=True)
class WorkSession:
    """Domain entity: one employee's workday.

    Instances are immutable; every transition returns a new value, so a
    rejected transition can never leave a half-updated break list behind.
    """

    session_id: Optional[str]
    employee_id: str
    company_id: str
    work_date: date
    start_time: datetime
    status: SessionStatus
    breaks: Tuple[Break, ...] = ()
    end_time: Optional[datetime] = None
    total_hours: float = 0.0
    origin: Optional[OriginMetadata] = None
    site_id: Optional[str] = None

    @classmethod
    def open(
        cls,
        *,
        employee_id: str,
        company_id: str,
        now: datetime,
        origin: Optional[OriginMetadata] = None,
        site_id: Optional[str] = None,
    ) -> "WorkSession":
        return cls(
            session_id=None,
            employee_id=employee_id,
            company_id=company_id,
            work_date=now.date(),
            start_time=now,
            status=SessionStatus.WORKING,
            origin=origin,
            site_id=site_id,
        )

    @property
    def is_open(self) -> bool:
        return self.status.is_open

    @property
    def open_break(self) -> Optional[Break]:
        if self.breaks and self.breaks[-1].is_open:
            return self.breaks[-1]
        return None

    def pause(self, now: datetime) -> "WorkSession":
        self._require(Transition.PAUSE, SessionStatus.WORKING)
        self._require_not_before_last_event(Transition.PAUSE, now)
        return replace(self, breaks=self.breaks + (Break(start=now),), status=SessionStatus.PAUSED)

    def resume(self, now: datetime) -> "WorkSession":
        self._require(Transition.RESUME, SessionStatus.PAUSED)
        self._require_not_before_last_event(Transition.RESUME, now)
        return replace(self, breaks=self._close_open_break(now), status=SessionStatus.WORKING)

    def clock_out(self, now: datetime) -> "WorkSession":
        self._require(Transition.CLOCK_OUT, SessionStatus.WORKING, SessionStatus.PAUSED)
        self._require_not_before_last_event(Transition.CLOCK_OUT, now)
        closed = replace(
            self,
            breaks=self._close_open_break(now),
            end_time=now,
            status=SessionStatus.FINISHED,
        )
        return replace(closed, total_hours=total_hours_at_close(closed))

    def last_event_time(self) -> datetime:
        latest = self.start_time
        for b in self.breaks:
            latest = max(latest, b.start, b.end or b.start)
        return latest

    def _close_open_break(self, now: datetime) -> Tuple[Break, ...]:
        if self.open_break is None:
            return self.breaks
        return self.breaks[:-1] + (replace(self.breaks[-1], end=now),)

    def _require(self, transition: Transition, *allowed: SessionStatus) -> None:
        if self.status not in allowed:
            raise InvalidTransition(transition, self.status)

    def _require_not_before_last_event(self, transition: Transition, now: datetime) -> None:
        latest = self.last_event_time()
        if now < latest:
            raise NonMonotonicTime(
                f"Cannot {transition.value} at {now.isoformat()}: session already has an event at {latest.isoformat()}"
            )
