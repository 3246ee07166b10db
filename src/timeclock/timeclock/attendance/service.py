from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import date, datetime
from typing import Callable, Optional, Sequence

from ..common.validators import require_non_empty
from ..core.constants import DEFAULT_HISTORY_LIMIT
from ..core.enums import SessionStatus, Transition
from ..core.exceptions import (
    AlreadyClockedIn,
    DomainError,
    DuplicateOpenSession,
    InvalidTransition,
    NoActiveSession,
    NonMonotonicTime,
    OutOfRange,
    StoreUnavailable,
    ValidationError,
)
from ..database.errors import OpenSessionConflict, StoreError
from ..geofence.model import Coordinates, WorkSite
from ..geofence.repository import SiteRepository
from ..geofence.validator import haversine_distance_meters, is_within_fence
from ..sessions.clock import elapsed_seconds
from ..sessions.model import OriginMetadata, WorkSession
from ..sessions.registry import SessionRegistry

logger = logging.getLogger(__name__)


@contextmanager
def _store_call(operation: str, employee_id: Optional[str] = None, *, allow_conflict: bool = False):
    try:
        yield
    except OpenSessionConflict as e:
        if allow_conflict:
            raise
        logger.error("unexpected_open_session_conflict", exc_info=True, extra={"operation": operation, "employee_id": employee_id})
        raise StoreUnavailable(f"Session store rejected {operation}") from e
    except StoreError as e:
        logger.error("store_failure", exc_info=True, extra={"operation": operation, "employee_id": employee_id})
        raise StoreUnavailable(f"Session store unavailable during {operation}") from e


class AttendanceService:
    """Clock-in / pause / resume / clock-out for web portal and kiosk callers.

    ``now`` is always supplied by the caller. The working day a call applies
    to is ``now.date()``.
    """

    def __init__(self, registry: SessionRegistry, sites: SiteRepository | None = None):
        self._registry = registry
        self._sites = sites

    def get_site(self, site_id: Optional[str]) -> Optional[WorkSite]:
        if not site_id or self._sites is None:
            return None
        with _store_call("site_lookup"):
            site = self._sites.get_by_id(site_id)
        if site is None:
            raise ValidationError(f"Unknown work site {site_id}")
        return site

    def clock_in(
        self,
        employee_id: str,
        company_id: str,
        coords: Optional[Coordinates],
        site: Optional[WorkSite],
        *,
        now: datetime,
        origin: Optional[OriginMetadata] = None,
    ) -> WorkSession:
        employee_id = require_non_empty(employee_id, "employee_id")
        company_id = require_non_empty(company_id, "company_id")

        if site is not None:
            self._check_geofence(employee_id, company_id, coords, site)

        existing = self._find_open(employee_id, now.date())
        if existing is not None:
            logger.info(
                "clock_in_rejected_already_open",
                extra={"employee_id": employee_id, "session_id": existing.session_id, "status": existing.status.value},
            )
            raise AlreadyClockedIn(existing)

        session = WorkSession.open(
            employee_id=employee_id,
            company_id=company_id,
            now=now,
            origin=origin,
            site_id=site.site_id if site else None,
        )
        try:
            with _store_call(Transition.OPEN.value, employee_id, allow_conflict=True):
                saved = self._registry.persist(session)
        except OpenSessionConflict:
            # Lost a race with a concurrent clock-in; the constrained write is authoritative.
            winner = self._find_open(employee_id, now.date())
            if winner is None:
                raise StoreUnavailable("Open session conflict reported but no open session is visible") from None
            logger.info(
                "clock_in_lost_race",
                extra={"employee_id": employee_id, "session_id": winner.session_id},
            )
            raise AlreadyClockedIn(winner) from None

        logger.info(
            "clock_in",
            extra={"employee_id": employee_id, "company_id": company_id, "session_id": saved.session_id, "site_id": saved.site_id},
        )
        return saved

    def pause(self, employee_id: str, *, now: datetime) -> WorkSession:
        return self._apply(employee_id, now, Transition.PAUSE, lambda s: s.pause(now))

    def resume(self, employee_id: str, *, now: datetime) -> WorkSession:
        return self._apply(employee_id, now, Transition.RESUME, lambda s: s.resume(now))

    def clock_out(self, employee_id: str, *, now: datetime) -> WorkSession:
        return self._apply(employee_id, now, Transition.CLOCK_OUT, lambda s: s.clock_out(now))

    def current_session(self, employee_id: str, *, now: datetime) -> Optional[WorkSession]:
        return self._find_open(require_non_empty(employee_id, "employee_id"), now.date())

    def elapsed(self, employee_id: str, *, now: datetime) -> int:
        """Worked seconds so far today for display polling (0 when nothing is open)."""
        session = self.current_session(employee_id, now=now)
        if session is None:
            return 0
        return elapsed_seconds(session, now)

    def history(self, employee_id: str, *, limit: int = DEFAULT_HISTORY_LIMIT) -> Sequence[WorkSession]:
        employee_id = require_non_empty(employee_id, "employee_id")
        with _store_call("history", employee_id):
            return self._registry.recent_sessions(employee_id, limit)

    def _apply(
        self,
        employee_id: str,
        now: datetime,
        transition: Transition,
        step: Callable[[WorkSession], WorkSession],
    ) -> WorkSession:
        employee_id = require_non_empty(employee_id, "employee_id")
        current = self._find_open(employee_id, now.date())
        if current is None:
            raise NoActiveSession(employee_id)

        try:
            updated = step(current)
        except (InvalidTransition, NonMonotonicTime):
            logger.info(
                "transition_rejected",
                extra={
                    "employee_id": employee_id,
                    "session_id": current.session_id,
                    "transition": transition.value,
                    "status": current.status.value,
                },
            )
            raise

        with _store_call(transition.value, employee_id):
            saved = self._registry.advance(current, updated)
        if saved is None:
            raise self._lost_race(employee_id, now, transition, current)

        logger.info(
            transition.value,
            extra={
                "employee_id": employee_id,
                "session_id": saved.session_id,
                "transition": transition.value,
                "status": saved.status.value,
            },
        )
        return saved

    def _lost_race(
        self,
        employee_id: str,
        now: datetime,
        transition: Transition,
        stale: WorkSession,
    ) -> DomainError:
        """Another request changed the session between our read and our write."""
        fresh = self._find_open(employee_id, now.date())
        logger.info(
            "transition_conflict",
            extra={
                "employee_id": employee_id,
                "session_id": stale.session_id,
                "transition": transition.value,
                "status": fresh.status.value if fresh else SessionStatus.FINISHED.value,
            },
        )
        if fresh is None:
            return NoActiveSession(employee_id)
        return InvalidTransition(transition, fresh.status)

    def _find_open(self, employee_id: str, work_date: date) -> Optional[WorkSession]:
        try:
            with _store_call("find_open_session", employee_id):
                return self._registry.find_open_session(employee_id, work_date)
        except DuplicateOpenSession as e:
            logger.warning(
                "duplicate_open_sessions",
                extra={
                    "employee_id": employee_id,
                    "session_id": e.canonical.session_id,
                    "duplicate_ids": list(e.duplicate_ids),
                },
            )
            return e.canonical

    def _check_geofence(
        self,
        employee_id: str,
        company_id: str,
        coords: Optional[Coordinates],
        site: WorkSite,
    ) -> None:
        if site.company_id != company_id:
            raise ValidationError(f"Work site {site.site_id} does not belong to company {company_id}")
        if not site.is_active:
            raise ValidationError(f"Work site {site.site_id} is not active")
        if not site.has_geofence:
            return

        if coords is None:
            raise OutOfRange("Location is required to clock in at this site", radius_meters=site.radius_meters)

        if not is_within_fence(coords, site.center, site.radius_meters):
            distance = haversine_distance_meters(coords, site.center)
            logger.info(
                "clock_in_out_of_range",
                extra={
                    "employee_id": employee_id,
                    "site_id": site.site_id,
                    "distance_meters": round(distance, 1),
                    "radius_meters": site.radius_meters,
                },
            )
            raise OutOfRange(
                f"You are {distance:.0f} m from {site.name}; clock-in is allowed within {site.radius_meters:.0f} m",
                distance_meters=distance,
                radius_meters=site.radius_meters,
            )
