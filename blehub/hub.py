"""
Bridge runtime.

Wires the scan facility, advertisement processor, presence sweeper,
watchdog and MQTT manager together on one asyncio event loop.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Callable, Optional

from blehub.bluetooth.constants import SCAN_RETRY_INTERVAL, SCAN_START_DELAY
from blehub.bluetooth.models import Sighting, utc_now
from blehub.bluetooth.presence import PresenceSweeper
from blehub.bluetooth.processor import AdvertisementProcessor
from blehub.bluetooth.registry import DeviceRegistry
from blehub.bluetooth.scanner import (
    BleakScanFacility,
    RadioUnavailableError,
    ScanController,
    ScanFacility,
)
from blehub.bluetooth.watchdog import ScanWatchdog
from blehub.config import HubConfig
from blehub.mqtt import MQTTManager

logger = logging.getLogger('blehub.hub')


class Hub:
    """
    The running bridge.

    run() only returns by raising: a FatalFault from the watchdog, or
    CancelledError on shutdown.
    """

    def __init__(
        self,
        config: HubConfig,
        mqtt_manager: Optional[MQTTManager] = None,
        facility: Optional[ScanFacility] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.config = config
        self.mqtt = mqtt_manager if mqtt_manager is not None else MQTTManager(config)
        self.registry = DeviceRegistry()
        self.processor = AdvertisementProcessor(config, self.mqtt, self.registry, clock)
        self.facility = facility if facility is not None else BleakScanFacility(self.on_sighting)
        self.scan = ScanController(self.facility, clock)
        self.sweeper = PresenceSweeper(config, self.mqtt, self.registry, self.scan, clock)
        self.watchdog = ScanWatchdog(config.ble_timeout, self.scan)

        self.mqtt.on_connected = self.processor.send_presence

    def on_sighting(self, sighting: Sighting) -> None:
        """Entry point for every advertisement from the scan facility."""
        self.watchdog.record_sighting()
        self.processor.process(sighting)

    async def start_radio(self) -> None:
        """Start scanning, retrying until the adapter accepts."""
        # Give the adapter a moment after process start
        await asyncio.sleep(SCAN_START_DELAY)
        while True:
            try:
                await self.scan.restart_scan()
            except RadioUnavailableError as e:
                logger.warning(f"Scanner not ready: {e}")
                await asyncio.sleep(SCAN_RETRY_INTERVAL)
                continue
            self.watchdog.radio_ready()
            return

    async def run(self) -> None:
        """Run until a fatal fault or cancellation."""
        self.mqtt.connect()

        tasks = [
            asyncio.create_task(self.start_radio(), name='start-radio'),
            asyncio.create_task(self.sweeper.run(), name='presence-sweeper'),
        ]
        if self.watchdog.enabled:
            tasks.append(asyncio.create_task(self.watchdog.watch_power_on(), name='power-on-guard'))
            tasks.append(asyncio.create_task(self.watchdog.run(), name='scan-watchdog'))

        try:
            pending = set(tasks)
            while pending:
                done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_EXCEPTION)
                for task in done:
                    # Re-raises FatalFault from the watchdog tasks
                    task.result()
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            await self.scan.stop_scan()
            self.mqtt.disconnect()
