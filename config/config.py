"""Settings shared by every environment; environment modules override."""

import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "training_attendance"),
    "pool_size": int(os.getenv("DB_POOL_SIZE", "5")),
}

# HMAC key for attendance tokens; falls back to SECRET_KEY when empty.
ATTENDANCE_SIGNING_KEY = os.getenv("ATTENDANCE_SIGNING_KEY", "")

TOKEN_TTL_SECONDS = int(os.getenv("TOKEN_TTL_SECONDS", "300"))
MAX_TOKEN_TTL_SECONDS = int(os.getenv("MAX_TOKEN_TTL_SECONDS", "86400"))
DEFAULT_GEOFENCE_RADIUS_METERS = float(os.getenv("DEFAULT_GEOFENCE_RADIUS_METERS", "50"))
LATE_THRESHOLD_MINUTES = int(os.getenv("LATE_THRESHOLD_MINUTES", "15"))

SINGLE_USE_TOKENS = bool(int(os.getenv("SINGLE_USE_TOKENS", "0")))
SINGLE_ACTIVE_TOKEN = bool(int(os.getenv("SINGLE_ACTIVE_TOKEN", "0")))

# Base of the access link encoded in the QR code.
PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "http://localhost:3000")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

DEBUG = bool(int(os.getenv("DEBUG", "0")))

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))
AUTO_SEED_DB = bool(int(os.getenv("AUTO_SEED_DB", "0")))
