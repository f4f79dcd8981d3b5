"""Unit tests for the radio liveness watchdog."""

import asyncio
import pytest
from types import SimpleNamespace

from blehub.bluetooth.watchdog import (
    FatalFault,
    RadioNotReadyError,
    ScanStalledError,
    ScanWatchdog,
)


@pytest.fixture
def scan():
    return SimpleNamespace(is_scanning=True)


@pytest.fixture
def watchdog(scan):
    return ScanWatchdog(10, scan)


class TestLiveness:
    """Tests for the advertisement flow check."""

    def test_first_empty_period_tolerated(self, watchdog):
        """Test a single empty period right after start does not trip."""
        watchdog.check_liveness()

    def test_two_empty_periods_trip(self, watchdog):
        """Test two consecutive periods without advertisements raise."""
        watchdog.check_liveness()
        with pytest.raises(ScanStalledError):
            watchdog.check_liveness()

    def test_packets_keep_it_alive(self, watchdog):
        for _ in range(5):
            watchdog.record_sighting()
            watchdog.check_liveness()

    def test_one_empty_period_between_packets(self, watchdog):
        """Test an empty period after a busy one does not trip."""
        watchdog.check_liveness()
        watchdog.record_sighting()
        watchdog.check_liveness()
        watchdog.check_liveness()
        with pytest.raises(ScanStalledError):
            watchdog.check_liveness()

    def test_not_scanning_never_trips(self, watchdog, scan):
        """Test periods without a running scan are not counted as empty."""
        scan.is_scanning = False
        for _ in range(5):
            watchdog.check_liveness()

    def test_scan_resumed_gets_grace_period(self, watchdog, scan):
        scan.is_scanning = False
        watchdog.check_liveness()
        scan.is_scanning = True
        watchdog.check_liveness()
        with pytest.raises(ScanStalledError):
            watchdog.check_liveness()

    def test_stall_is_fatal(self):
        assert issubclass(ScanStalledError, FatalFault)
        assert issubclass(RadioNotReadyError, FatalFault)


class TestPowerOn:
    """Tests for the radio start-up check."""

    def test_not_ready_raises(self, watchdog):
        with pytest.raises(RadioNotReadyError):
            watchdog.check_power_on()

    def test_ready_passes(self, watchdog):
        watchdog.radio_ready()
        assert watchdog.radio_is_ready
        watchdog.check_power_on()

    def test_watch_power_on_times_out(self, scan):
        watchdog = ScanWatchdog(0.01, scan)
        with pytest.raises(RadioNotReadyError):
            asyncio.run(watchdog.watch_power_on())

    def test_watch_power_on_ready_in_time(self, scan):
        watchdog = ScanWatchdog(0.01, scan)
        watchdog.radio_ready()
        asyncio.run(watchdog.watch_power_on())


class TestDisabled:
    """Tests for ble_timeout 0."""

    def test_disabled(self, scan):
        watchdog = ScanWatchdog(0, scan)
        assert watchdog.enabled is False

    def test_disabled_tasks_return(self, scan):
        watchdog = ScanWatchdog(0, scan)
        asyncio.run(watchdog.watch_power_on())
        asyncio.run(watchdog.run())

    def test_run_raises_when_stalled(self, scan):
        watchdog = ScanWatchdog(0.01, scan)
        with pytest.raises(ScanStalledError):
            asyncio.run(asyncio.wait_for(watchdog.run(), timeout=5))
