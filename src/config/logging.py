import logging
import logging.config
from typing import Any

from .settings import get_settings


def setup_logging() -> dict[str, Any]:
    """Configure logging for the application."""
    level = get_settings().LOG_LEVEL.upper()
    config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "level": level,
            },
        },
        "loggers": {
            # SQL echo stays off unless explicitly raised
            "sqlalchemy.engine": {"level": "WARNING"},
        },
        "root": {"level": level, "handlers": ["console"]},
    }

    logging.config.dictConfig(config)
    return config
