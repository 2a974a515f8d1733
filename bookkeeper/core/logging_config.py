"""Logging configuration for the API process."""

import logging
import logging.config

from bookkeeper.config import settings


def setup_logging(level: str | None = None) -> None:
    """
    Configure root logging once at application start.

    Args:
        level: Log level name; defaults to settings.LOG_LEVEL
    """
    level = (level or settings.LOG_LEVEL).upper()

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": "%(asctime)s %(levelname)s [%(name)s] %(message)s",
                },
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                    "stream": "ext://sys.stdout",
                },
            },
            "root": {"level": level, "handlers": ["console"]},
            "loggers": {
                # SQL echo is controlled by the engine, keep the logger quiet otherwise
                "sqlalchemy.engine": {"level": "INFO" if settings.DEBUG else "WARNING"},
            },
        }
    )
