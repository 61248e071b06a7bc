"""
Logging setup shared by every module.

All application loggers live under the ``routine_sync`` namespace; the
handler is attached once to that namespace logger and children propagate
to it.
"""

import logging
import sys

APP_LOGGER_NAME = "routine_sync"
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def _configure_app_logger() -> logging.Logger:
    # Imported lazily: config imports models, which must load before the logger
    from routine_sync.core.config import get_settings

    app_logger = logging.getLogger(APP_LOGGER_NAME)
    if not app_logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        app_logger.addHandler(handler)
        app_logger.setLevel(get_settings().LOG_LEVEL.upper())
    return app_logger


def setup_logger(name: str) -> logging.Logger:
    """Return a logger for ``name`` under the application namespace."""
    _configure_app_logger()
    return logging.getLogger(name)


logger = _configure_app_logger()
