"""Startup-time helpers for safe config logging."""

from tailorhub.common.config import Settings
from tailorhub.common.logging import logger


SECRET_MARKERS = ("secret", "password", "token", "database_url")


def redacted_settings(settings: Settings) -> dict:
    """Return the settings as a dict with secret-like fields masked."""

    config = {}
    for name, value in settings.model_dump().items():
        if value is not None and any(marker in name for marker in SECRET_MARKERS):
            value = "<redacted>"
        config[name] = value
    return config


def log_startup_config(settings: Settings) -> None:
    """Log effective configuration once for quick troubleshooting."""

    logger.info("startup_config=%s", redacted_settings(settings))
