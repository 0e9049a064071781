import os

from .config import *  # noqa: F401,F403

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DEBUG = False

# Only the most recently issued token of a session verifies.
SINGLE_ACTIVE_TOKEN = bool(int(os.getenv("SINGLE_ACTIVE_TOKEN", "1")))
