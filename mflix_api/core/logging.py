# Logging setup
# mflix_api/core/logging.py

import logging
import sys

from mflix_api.core.config import Settings

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

_ENVIRONMENT_LEVELS = {
    "production": "INFO",
    "test": "WARNING",
    "development": "DEBUG",
}


def resolve_log_level(settings: Settings) -> str:
    """An explicit LOG_LEVEL wins; otherwise the level follows ENVIRONMENT."""
    if settings.LOG_LEVEL:
        return settings.LOG_LEVEL.upper()
    return _ENVIRONMENT_LEVELS.get(settings.ENVIRONMENT, "INFO")


def configure_logging(settings: Settings) -> None:
    level = resolve_log_level(settings)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    # request lines come from our own middleware
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("pymongo").setLevel(logging.WARNING)
