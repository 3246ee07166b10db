from __future__ import annotations

from typing import Any, Optional

from ..core.exceptions import ValidationError
from ..geofence.model import Coordinates


def require_non_empty(value: Optional[str], field_name: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field_name} is required")
    return str(value).strip()


def optional_coordinates(lat: Any, lng: Any) -> Optional[Coordinates]:
    """Build coordinates from raw request values; both absent means no fix."""
    if lat is None and lng is None:
        return None
    if lat is None or lng is None:
        raise ValidationError("lat and lng must be provided together")
    try:
        lat_f = float(lat)
        lng_f = float(lng)
    except (TypeError, ValueError):
        raise ValidationError("lat/lng must be numbers") from None
    if not -90.0 <= lat_f <= 90.0:
        raise ValidationError("lat must be between -90 and 90")
    if not -180.0 <= lng_f <= 180.0:
        raise ValidationError("lng must be between -180 and 180")
    return Coordinates(lat=lat_f, lng=lng_f)


def require_limit(value: Any, *, default: int, maximum: int) -> int:
    if value in (None, ""):
        return default
    try:
        limit = int(value)
    except (TypeError, ValueError):
        raise ValidationError("limit must be an integer") from None
    if limit < 1:
        raise ValidationError("limit must be positive")
    return min(limit, maximum)
