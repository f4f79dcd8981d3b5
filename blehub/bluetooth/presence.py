"""
Presence sweeping.

Devices that have not been seen within the presence timeout are removed
from the registry and announced as gone.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Callable

from blehub.config import HubConfig

from . import topics
from .constants import (
    PRESENCE_ABSENT,
    PRESENCE_CHECK_INTERVAL,
    STATE_NOT_HOME,
    STATUS_OFFLINE,
)
from .models import DeviceRecord, utc_now
from .processor import Publisher, to_json
from .registry import DeviceRegistry
from .scanner import ScanController

logger = logging.getLogger('blehub.bluetooth.presence')


class PresenceSweeper:
    """Expires stale devices and publishes leave transitions."""

    def __init__(
        self,
        config: HubConfig,
        publisher: Publisher,
        registry: DeviceRegistry,
        scan: ScanController,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._prefix = config.mqtt_prefix
        self._timeout = timedelta(seconds=config.presence_timeout)
        self._publisher = publisher
        self._registry = registry
        self._scan = scan
        self._clock = clock

    def check(self) -> list[DeviceRecord]:
        """
        Run one sweep.

        Nothing is expired unless the scan has been running for at least
        the presence timeout, otherwise every device would look stale right
        after startup.

        Returns:
            The expired records.
        """
        cutoff = self._clock() - self._timeout
        start_time = self._scan.scan_start_time
        if not self._scan.is_scanning or start_time is None or start_time > cutoff:
            return []

        expired = self._registry.expire(cutoff)
        for device in expired:
            try:
                self._publish_departure(device)
            except Exception:
                logger.exception(f"Failed to publish departure of {device.id}")
        return expired

    def _publish_departure(self, device: DeviceRecord) -> None:
        logger.debug(f"Device {device.id} left (last seen {device.last_seen.isoformat()})")
        send = self._publisher.send
        if device.is_beacon:
            send(topics.tracker_status(self._prefix, device.id), STATUS_OFFLINE, retain=True)
            send(topics.tracker_state(self._prefix, device.id), STATE_NOT_HOME, retain=True)
            send(topics.sensor_status(self._prefix, device.id), STATUS_OFFLINE, retain=True)
            send(topics.sensor_attributes(self._prefix, device.id), to_json({'state': STATE_NOT_HOME}))
        else:
            send(topics.presence(self._prefix, device.id), PRESENCE_ABSENT, retain=True)

    async def run(self, interval: float = PRESENCE_CHECK_INTERVAL) -> None:
        """Sweep periodically until cancelled."""
        while True:
            await asyncio.sleep(interval)
            self.check()
