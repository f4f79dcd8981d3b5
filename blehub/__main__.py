"""
Command line entry point.

Usage:
    python -m blehub [--config PATH] [--log-level LEVEL]

Exits with status 1 on a radio failure so a process supervisor (systemd,
docker restart policy) can restart the bridge.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Optional

from blehub import __version__
from blehub.bluetooth.watchdog import FatalFault
from blehub.config import DEFAULT_CONFIG_PATH, ConfigError, load_config
from blehub.hub import Hub
from blehub.logging import configure_logging

logger = logging.getLogger('blehub.main')


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog='blehub',
        description='Bridge Bluetooth LE advertisements to MQTT',
    )
    parser.add_argument('--config', default=DEFAULT_CONFIG_PATH, help='Path to config.json')
    parser.add_argument('--log-level', default='INFO', help='Logging level (DEBUG, INFO, ...)')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(args.log_level)

    try:
        config = load_config(args.config)
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        return 1

    hub = Hub(config)
    try:
        asyncio.run(hub.run())
    except FatalFault as e:
        logger.error(f"Fatal radio fault, exiting: {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    return 0


if __name__ == '__main__':
    sys.exit(main())
