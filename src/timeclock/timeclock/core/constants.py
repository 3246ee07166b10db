"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

EARTH_RADIUS_METERS = 6_371_000
DEFAULT_GEOFENCE_RADIUS_METERS = 500
SECONDS_PER_HOUR = 3600
DEFAULT_HISTORY_LIMIT = 5
MAX_HISTORY_LIMIT = 100
