"""
Logging setup.

All modules obtain their logger through ``setup_logger(__name__)`` so that
format and level are configured in one place. The stream handler lives on the
package logger; module loggers propagate to it.
"""

import logging
import sys

from gtd_recurrence.core.config import get_settings

PACKAGE_LOGGER_NAME = "gtd_recurrence"
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


def setup_logger(name: str) -> logging.Logger:
    """Return a named logger at the configured level."""
    settings = get_settings()
    package_logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    if not package_logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        package_logger.addHandler(handler)

    named = logging.getLogger(name)
    named.setLevel(logging.DEBUG if settings.DEBUG else settings.LOG_LEVEL)
    return named

