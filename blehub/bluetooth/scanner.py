"""
BLE scanning via bleak.

BleakScanFacility turns bleak detection callbacks into Sighting objects.
ScanController tracks whether a scan is running and since when, which the
presence sweeper and watchdog rely on.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional, Protocol

from bleak import BleakScanner
from bleak.backends.device import BLEDevice
from bleak.backends.scanner import AdvertisementData
from bleak.exc import BleakError

from .attributes import normalize_uuid
from .distance import is_ibeacon
from .models import ServiceDataEntry, Sighting, utc_now

logger = logging.getLogger('blehub.bluetooth.scanner')


class RadioUnavailableError(Exception):
    """The Bluetooth adapter refused to start scanning."""


class ScanFacility(Protocol):
    """Something that can start and stop an advertisement scan."""

    async def start_scan(self) -> None:
        ...

    async def stop_scan(self) -> None:
        ...


def to_sighting(device: BLEDevice, adv_data: AdvertisementData) -> Sighting:
    """
    Convert a bleak advertisement into a Sighting.

    Manufacturer data is re-prefixed with its little-endian company id so it
    matches the on-air layout. When several manufacturer entries are present
    an iBeacon entry wins, otherwise the first one is used.
    """
    manufacturer_data = None
    for company_id, data in (adv_data.manufacturer_data or {}).items():
        candidate = company_id.to_bytes(2, 'little') + bytes(data)
        if manufacturer_data is None or is_ibeacon(candidate):
            manufacturer_data = candidate
        if is_ibeacon(candidate):
            break

    service_data = [
        ServiceDataEntry(uuid=normalize_uuid(uuid), data=bytes(data))
        for uuid, data in (adv_data.service_data or {}).items()
    ]

    return Sighting(
        address=device.address.lower(),
        rssi=adv_data.rssi,
        name=adv_data.local_name or None,
        service_uuids=[normalize_uuid(uuid) for uuid in adv_data.service_uuids or []],
        manufacturer_data=manufacturer_data,
        service_data=service_data,
        is_ibeacon=is_ibeacon(manufacturer_data),
    )


class BleakScanFacility:
    """
    Continuous BLE scan with bleak.

    Each detection bleak reports is delivered to on_sighting on the event
    loop thread, without filtering. Whether repeated advertisements reach
    bleak at all depends on the platform Bluetooth stack.
    """

    def __init__(self, on_sighting: Callable[[Sighting], None]):
        self._on_sighting = on_sighting
        self._scanner: Optional[BleakScanner] = None

    def _detection_callback(self, device: BLEDevice, adv_data: AdvertisementData) -> None:
        self._on_sighting(to_sighting(device, adv_data))

    async def start_scan(self) -> None:
        """Start scanning. Raises RadioUnavailableError if the adapter is not usable."""
        try:
            if self._scanner is None:
                self._scanner = BleakScanner(detection_callback=self._detection_callback)
            await self._scanner.start()
        except (BleakError, OSError) as e:
            self._scanner = None
            raise RadioUnavailableError(str(e)) from e

    async def stop_scan(self) -> None:
        """Stop scanning if a scanner is running."""
        if self._scanner is None:
            return
        try:
            await self._scanner.stop()
        except (BleakError, OSError) as e:
            logger.warning(f"Error stopping scanner: {e}")


class ScanController:
    """
    Scan state and start/stop requests.

    Stopping is asynchronous: the callback given to stop_scan runs once the
    facility has confirmed the stop, or straight away if nothing is running.
    """

    def __init__(self, facility: ScanFacility, clock: Callable[[], datetime] = utc_now):
        self._facility = facility
        self._clock = clock
        self._stop_callback: Optional[Callable[[], None]] = None
        self.is_scanning = False
        self.scan_start_time: Optional[datetime] = None

    def on_scan_started(self) -> None:
        self.is_scanning = True
        self.scan_start_time = self._clock()
        logger.info("Scanning started.")

    def on_scan_stopped(self) -> None:
        self.is_scanning = False
        logger.info("Scanning stopped.")
        callback, self._stop_callback = self._stop_callback, None
        if callback is not None:
            callback()

    async def restart_scan(self) -> None:
        """Start scanning unless a scan is already running."""
        if self.is_scanning:
            logger.info("restart_scan: already scanning!")
            return
        logger.info("Starting scan...")
        await self._facility.start_scan()
        self.on_scan_started()

    async def stop_scan(self, callback: Optional[Callable[[], None]] = None) -> None:
        """Stop scanning and call callback once stopped."""
        if not self.is_scanning:
            if callback is not None:
                callback()
            return
        self._stop_callback = callback
        await self._facility.stop_scan()
        self.on_scan_stopped()
