import os

_ENVIRONMENTS = {
    "prod": "config.production",
    "production": "config.production",
    "test": "config.testing",
    "testing": "config.testing",
}


def get_settings_module() -> str:
    """Dotted path of the settings module for this process.

    APP_SETTINGS_MODULE wins when set; otherwise APP_ENV picks one of the
    bundled environments and anything unrecognised means development.
    """
    explicit = os.getenv("APP_SETTINGS_MODULE", "").strip()
    if explicit:
        return explicit

    env = os.getenv("APP_ENV", "development").strip().lower()
    return _ENVIRONMENTS.get(env, "config.development")
