from .config import *  # noqa: F401,F403

SECRET_KEY = "test-secret"
ATTENDANCE_SIGNING_KEY = "test-signing-key"

DEBUG = False
TESTING = True
LOG_LEVEL = "WARNING"

AUTO_INIT_DB = False
AUTO_SEED_DB = False
