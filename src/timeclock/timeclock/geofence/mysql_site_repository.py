from __future__ import annotations

from typing import Optional

from ..core.constants import DEFAULT_GEOFENCE_RADIUS_METERS
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone, translate_store_errors
from .model import Coordinates, WorkSite
from .repository import SiteRepository


class MySQLSiteRepository(SiteRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, site_id: str) -> Optional[WorkSite]:
        with translate_store_errors(), db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT site_id, company_id, name, address, location_lat, location_lng, location_radius, is_active
                FROM work_sites
                WHERE site_id=%s
                """,
                (site_id,),
            )
            r = fetchone(cur)
            if not r:
                return None
            return WorkSite(
                site_id=str(r["site_id"]),
                company_id=str(r["company_id"]),
                name=r["name"],
                address=r.get("address"),
                center=Coordinates(lat=float(r.get("location_lat") or 0), lng=float(r.get("location_lng") or 0)),
                radius_meters=float(r.get("location_radius") or DEFAULT_GEOFENCE_RADIUS_METERS),
                is_active=bool(r.get("is_active", 1)),
            )
