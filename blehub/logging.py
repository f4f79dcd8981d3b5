"""
Logging setup for blehub.

All loggers live under the 'blehub' namespace.
"""

from __future__ import annotations

import logging
import sys

LOG_FORMAT = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
ROOT_LOGGER = 'blehub'


def configure_logging(level: str = 'INFO') -> None:
    """Install a single stderr handler on the blehub logger."""
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level.upper())

    if not any(getattr(h, '_blehub', False) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._blehub = True
        logger.addHandler(handler)
