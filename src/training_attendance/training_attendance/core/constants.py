"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

EARTH_RADIUS_METERS = 6_371_000.0

DEFAULT_TOKEN_TTL_SECONDS = 300
MAX_TOKEN_TTL_SECONDS = 24 * 60 * 60
DEFAULT_GEOFENCE_RADIUS_METERS = 50.0
DEFAULT_LATE_THRESHOLD_MINUTES = 15
DEFAULT_PUBLIC_BASE_URL = "http://localhost:3000"

# Geolocation accuracy buckets (meters)
HIGH_ACCURACY_METERS = 5.0
MEDIUM_ACCURACY_METERS = 20.0
