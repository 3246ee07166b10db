from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from flask import Flask, current_app, jsonify, request

from ..common.datetime_utils import format_duration, now_local
from ..common.validators import optional_coordinates, require_limit, require_non_empty
from ..core.constants import DEFAULT_HISTORY_LIMIT, MAX_HISTORY_LIMIT
from ..core.exceptions import (
    AlreadyClockedIn,
    DomainError,
    InvalidTransition,
    NoActiveSession,
    NonMonotonicTime,
    OutOfRange,
    StoreUnavailable,
    ValidationError,
)
from ..container import Container
from ..sessions.clock import elapsed_seconds
from ..sessions.model import OriginMetadata, WorkSession

logger = logging.getLogger(__name__)

_STATUS_CODES = (
    (OutOfRange, 403),
    (AlreadyClockedIn, 409),
    (NoActiveSession, 404),
    (InvalidTransition, 409),
    (NonMonotonicTime, 422),
    (ValidationError, 400),
    (StoreUnavailable, 503),
)


def session_to_dict(s: WorkSession) -> dict:
    return {
        "id": s.session_id,
        "employee_id": s.employee_id,
        "company_id": s.company_id,
        "site_id": s.site_id,
        "date": s.work_date.isoformat(),
        "start_time": s.start_time.isoformat(),
        "end_time": s.end_time.isoformat() if s.end_time else None,
        "status": s.status.value,
        "total_hours": round(s.total_hours, 2),
        "breaks": [
            {"start": b.start.isoformat(), "end": b.end.isoformat() if b.end else None}
            for b in s.breaks
        ],
        "ip_address": s.origin.ip_address if s.origin else None,
        "user_agent": s.origin.user_agent if s.origin else None,
    }


def _error_response(e: DomainError):
    status = next((code for kind, code in _STATUS_CODES if isinstance(e, kind)), 400)
    body: dict[str, Any] = {"success": False, "error": type(e).__name__, "message": str(e)}
    if isinstance(e, AlreadyClockedIn):
        body["session"] = session_to_dict(e.session)
    return jsonify(body), status


def register(app: Flask, container: Container) -> None:
    service = container.attendance_service

    def payload() -> dict:
        return request.get_json(silent=True) or {}

    def origin() -> OriginMetadata:
        return OriginMetadata(ip_address=request.remote_addr, user_agent=request.headers.get("User-Agent"))

    def run(action: Callable[[], Any], message: str):
        try:
            session = action()
        except DomainError as e:
            return _error_response(e)
        return jsonify({"success": True, "message": message, "session": session_to_dict(session)}), 200

    def clock_in_from(data: dict):
        site = service.get_site(data.get("site_id"))
        return service.clock_in(
            data.get("employee_id"),
            data.get("company_id"),
            optional_coordinates(data.get("lat"), data.get("lng")),
            site,
            now=now_local(),
            origin=origin(),
        )

    @app.route("/api/attendance/clock-in", methods=["POST"], endpoint="api_clock_in")
    def api_clock_in():
        data = payload()
        return run(lambda: clock_in_from(data), "Clocked in")

    @app.route("/api/attendance/pause", methods=["POST"], endpoint="api_pause")
    def api_pause():
        employee_id = payload().get("employee_id")
        return run(lambda: service.pause(employee_id, now=now_local()), "Paused")

    @app.route("/api/attendance/resume", methods=["POST"], endpoint="api_resume")
    def api_resume():
        employee_id = payload().get("employee_id")
        return run(lambda: service.resume(employee_id, now=now_local()), "Resumed")

    @app.route("/api/attendance/clock-out", methods=["POST"], endpoint="api_clock_out")
    def api_clock_out():
        employee_id = payload().get("employee_id")
        return run(lambda: service.clock_out(employee_id, now=now_local()), "Clocked out")

    @app.route("/api/attendance/current", methods=["GET"], endpoint="api_current")
    def api_current():
        """Polling endpoint for the running timer; never writes."""
        now = now_local()
        try:
            session = service.current_session(request.args.get("employee_id"), now=now)
        except DomainError as e:
            return _error_response(e)

        if session is None:
            return jsonify({"success": True, "session": None, "elapsed_seconds": 0, "elapsed": format_duration(0)}), 200

        seconds = elapsed_seconds(session, now)
        return jsonify({
            "success": True,
            "session": session_to_dict(session),
            "elapsed_seconds": seconds,
            "elapsed": format_duration(seconds),
        }), 200

    @app.route("/api/attendance/history", methods=["GET"], endpoint="api_history")
    def api_history():
        try:
            limit = require_limit(request.args.get("limit"), default=DEFAULT_HISTORY_LIMIT, maximum=MAX_HISTORY_LIMIT)
            sessions = service.history(request.args.get("employee_id"), limit=limit)
        except DomainError as e:
            return _error_response(e)
        return jsonify({"success": True, "sessions": [session_to_dict(s) for s in sessions]}), 200

    @app.route("/api/kiosk/scan", methods=["POST"], endpoint="api_kiosk_scan")
    def api_kiosk_scan():
        """QR/PIN kiosk: clock out when a session is open, clock in otherwise."""
        data = payload()
        scanned_code = (data.get("code") or "").strip()
        if not scanned_code:
            return jsonify({"success": False, "error": "ValidationError", "message": "Scanned code is empty"}), 400

        token = current_app.config.get("QR_TOKEN")
        if scanned_code != token:
            return jsonify({"success": False, "error": "ValidationError", "message": "Invalid or expired QR code"}), 400

        try:
            employee_id = require_non_empty(data.get("employee_id"), "employee_id")
            # Kiosks are mounted at a site; a scan without one never skips the site check.
            require_non_empty(data.get("site_id"), "site_id")
            open_session: Optional[WorkSession] = service.current_session(employee_id, now=now_local())
        except DomainError as e:
            return _error_response(e)

        if open_session is not None:
            logger.info("kiosk_clock_out", extra={"employee_id": employee_id, "session_id": open_session.session_id})
            return run(lambda: service.clock_out(employee_id, now=now_local()), "Clocked out")
        return run(lambda: clock_in_from(data), "Clocked in")
