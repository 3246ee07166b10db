from __future__ import annotations

import math

from ..core.constants import EARTH_RADIUS_METERS
from .model import Coordinates


def haversine_distance_meters(a: Coordinates, b: Coordinates) -> float:
    """Great-circle distance between two points on a spherical Earth."""
    phi1 = math.radians(a.lat)
    phi2 = math.radians(b.lat)
    d_phi = math.radians(b.lat - a.lat)
    d_lambda = math.radians(b.lng - a.lng)

    h = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
    return EARTH_RADIUS_METERS * c


def is_within_fence(point: Coordinates, site_center: Coordinates, radius_meters: float) -> bool:
    return haversine_distance_meters(point, site_center) <= radius_meters
