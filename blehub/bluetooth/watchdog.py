"""
Radio liveness watchdog.

A Bluetooth stack that never powers on, or that silently stops delivering
advertisements, cannot be fixed from inside the process. The watchdog
raises a FatalFault and the host exits so a supervisor can restart it.
"""

from __future__ import annotations

import asyncio
import logging

from .scanner import ScanController

logger = logging.getLogger('blehub.bluetooth.watchdog')


class FatalFault(Exception):
    """An unrecoverable radio failure; the process should exit."""


class RadioNotReadyError(FatalFault):
    """The radio did not become ready within the timeout."""


class ScanStalledError(FatalFault):
    """Scanning is active but no advertisements are arriving."""


class ScanWatchdog:
    """
    Watches radio start-up and advertisement flow.

    Args:
        timeout: Seconds per watchdog period. 0 disables both checks.
        scan: Scan state to consult.
    """

    def __init__(self, timeout: float, scan: ScanController):
        self.timeout = timeout
        self._scan = scan
        self._radio_ready = False
        self._packets_received = 0
        # The first period gets the benefit of the doubt
        self._last_packets_received = 1

    @property
    def enabled(self) -> bool:
        return self.timeout > 0

    @property
    def radio_is_ready(self) -> bool:
        return self._radio_ready

    def record_sighting(self) -> None:
        """Count one received advertisement."""
        self._packets_received += 1

    def radio_ready(self) -> None:
        """Mark the radio as powered on."""
        if not self._radio_ready:
            logger.info("Radio ready")
        self._radio_ready = True

    def check_power_on(self) -> None:
        """Raise RadioNotReadyError if the radio never became ready."""
        if not self._radio_ready:
            logger.error(f"BLE broken? Radio not ready after {self.timeout} seconds - restarting!")
            raise RadioNotReadyError(f"Radio not ready after {self.timeout} seconds")

    def check_liveness(self) -> None:
        """
        End one watchdog period.

        Raises ScanStalledError when scanning and neither this period nor
        the previous one received an advertisement.
        """
        if self._scan.is_scanning:
            if self._packets_received == 0 and self._last_packets_received == 0:
                logger.error(
                    f"BLE broken? No advertising packets in {self.timeout * 2} seconds - restarting!"
                )
                raise ScanStalledError(f"No advertisements in {self.timeout * 2} seconds")
        else:
            # Not scanning on purpose, nothing to expect
            self._packets_received = 1

        self._last_packets_received = self._packets_received
        self._packets_received = 0

    async def watch_power_on(self) -> None:
        """Wait one timeout for the radio to become ready."""
        if not self.enabled:
            return
        await asyncio.sleep(self.timeout)
        self.check_power_on()

    async def run(self) -> None:
        """Check liveness every timeout until cancelled or a fault is raised."""
        if not self.enabled:
            return
        while True:
            await asyncio.sleep(self.timeout)
            self.check_liveness()
