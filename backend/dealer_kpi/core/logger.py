"""
Logging setup.

All modules get their logger through setup_logger(__name__). The stream
handler sits on the package logger only; module loggers propagate to it.
"""

import logging
import sys

from dealer_kpi.core.config import get_settings

_PACKAGE_LOGGER = "dealer_kpi"
_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _configure_package_logger() -> logging.Logger:
    package_logger = logging.getLogger(_PACKAGE_LOGGER)
    if not package_logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(_FORMAT))
        package_logger.addHandler(handler)
        package_logger.setLevel(get_settings().LOG_LEVEL)
    return package_logger


def setup_logger(name: str) -> logging.Logger:
    """Return a module logger under the configured package logger."""
    _configure_package_logger()
    return logging.getLogger(name)


logger = setup_logger(_PACKAGE_LOGGER)
