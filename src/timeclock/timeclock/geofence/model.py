from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.constants import DEFAULT_GEOFENCE_RADIUS_METERS


@dataclass(frozen=True)
class Coordinates:
    lat: float
    lng: float

    @property
    def is_unset(self) -> bool:
        return self.lat == 0 and self.lng == 0


@dataclass(frozen=True)
class WorkSite:
    """Domain entity: a work site with an optional circular geofence."""

    site_id: str
    company_id: str
    name: str
    center: Coordinates
    radius_meters: float = DEFAULT_GEOFENCE_RADIUS_METERS
    is_active: bool = True
    address: Optional[str] = None

    @property
    def has_geofence(self) -> bool:
        # A (0, 0) center means the site was saved without a location.
        return not self.center.is_unset
