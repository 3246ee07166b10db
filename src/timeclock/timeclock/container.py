from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .attendance.service import AttendanceService
from .database.connection import DBConfig, DatabaseConnection
from .geofence.mysql_site_repository import MySQLSiteRepository
from .geofence.repository import SiteRepository
from .sessions.mysql_session_repository import MySQLSessionRepository
from .sessions.registry import SessionRegistry
from .sessions.repository import SessionRepository


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]

    sessions_repo: SessionRepository
    sites_repo: SiteRepository

    session_registry: SessionRegistry
    attendance_service: AttendanceService


def build_container(*, db_config: dict) -> Container:
    conn = DatabaseConnection.for_config(DBConfig.from_settings(db_config))

    sessions_repo = MySQLSessionRepository(conn)
    sites_repo = MySQLSiteRepository(conn)

    return wire(sessions_repo, sites_repo, conn=conn)


def wire(sessions_repo: SessionRepository, sites_repo: SiteRepository, *, conn: Optional[DatabaseConnection] = None) -> Container:
    session_registry = SessionRegistry(sessions_repo)
    attendance_service = AttendanceService(session_registry, sites_repo)

    return Container(
        conn=conn,
        sessions_repo=sessions_repo,
        sites_repo=sites_repo,
        session_registry=session_registry,
        attendance_service=attendance_service,
    )
