"""
Registry of devices currently in range.

Owns the device records, the per-identifier payload snapshots used to
suppress repeated publishes, and the cumulative decoded state per device
and identifier. All access is serialized by one lock so sightings (event
loop) and presence resends (MQTT network thread) can share it.
"""

from __future__ import annotations

import threading
from collections import OrderedDict
from datetime import datetime, timedelta
from typing import Optional

from .constants import MAX_CUMULATIVE_STATES, PAYLOAD_REPEAT_INTERVAL
from .models import DeviceRecord, PayloadSnapshot, ProximityTag


class DeviceRegistry:
    """
    In-memory map of address -> DeviceRecord.

    A record is created on the first sighting of an address, refreshed on
    every later sighting and removed when it expires.
    """

    def __init__(
        self,
        repeat_interval: float = PAYLOAD_REPEAT_INTERVAL,
        max_states: int = MAX_CUMULATIVE_STATES,
    ):
        self._devices: dict[str, DeviceRecord] = {}
        self._states: OrderedDict[tuple[str, str], dict] = OrderedDict()
        self._max_states = max_states
        self._lock = threading.Lock()
        self._repeat_interval = timedelta(seconds=repeat_interval)

    def observe(
        self,
        address: str,
        device_id: str,
        now: datetime,
        rssi: Optional[int] = None,
        name: Optional[str] = None,
        tag: Optional[ProximityTag] = None,
    ) -> tuple[DeviceRecord, bool]:
        """
        Record a sighting of a device.

        Args:
            address: Device address (or beacon key for proximity tags).
            device_id: Display identity used in topics.
            now: Time of the sighting.
            rssi: Received signal strength.
            name: Advertised local name, if any.
            tag: Proximity tag for iBeacon sightings.

        Returns:
            Tuple of (record, entered) where entered is True if the record
            was created by this sighting.
        """
        with self._lock:
            device = self._devices.get(address)
            entered = device is None
            if entered:
                device = DeviceRecord(
                    address=address,
                    id=device_id,
                    last_seen=now,
                    is_beacon=tag is not None,
                )
                self._devices[address] = device

            # Sightings may be delivered out of order
            if now > device.last_seen:
                device.last_seen = now
            device.rssi = rssi
            if name:
                device.name = name
            if tag is not None:
                device.tag = tag

            return device, entered

    def set_proximity(self, address: str, distance: float, state: str) -> None:
        """Store the latest distance and home/not_home state of a beacon."""
        with self._lock:
            device = self._devices.get(address)
            if device is not None:
                device.distance = distance
                device.state = state

    def accept_payload(self, address: str, uuid: str, payload: bytes, now: datetime) -> bool:
        """
        Check whether a service data payload should be published.

        Identical payloads are only published again once the previous
        publish is at least the repeat interval old. An accepted payload
        becomes the new snapshot.

        Returns:
            True if the payload is new or due for a repeat.
        """
        with self._lock:
            device = self._devices.get(address)
            if device is None:
                return False

            previous = device.data.get(uuid)
            if (
                previous is not None
                and previous.payload == payload
                and previous.time > now - self._repeat_interval
            ):
                return False

            device.data[uuid] = PayloadSnapshot(payload=bytes(payload), time=now)
            return True

    def merge_state(self, address: str, uuid: str, readings: dict) -> dict:
        """
        Fold decoded readings into the cumulative state of a device identifier.

        Keys from earlier readings are kept until a later reading overwrites
        them. Only the most recently updated max_states entries are kept, so
        rotating random addresses cannot grow the map without bound.

        Returns:
            A copy of the merged state.
        """
        key = (address, uuid)
        with self._lock:
            state = {**self._states.get(key, {}), **readings}
            self._states[key] = state
            self._states.move_to_end(key)
            while len(self._states) > self._max_states:
                self._states.popitem(last=False)
            return dict(state)

    def expire(self, cutoff: datetime) -> list[DeviceRecord]:
        """
        Remove devices last seen strictly before the cutoff.

        Returns:
            The removed records.
        """
        with self._lock:
            stale = [
                address for address, device in self._devices.items()
                if device.last_seen < cutoff
            ]
            return [self._devices.pop(address) for address in stale]

    def get_device(self, address: str) -> Optional[DeviceRecord]:
        """Get a device by address."""
        with self._lock:
            return self._devices.get(address)

    def get_all_devices(self) -> list[DeviceRecord]:
        """Get all tracked devices."""
        with self._lock:
            return list(self._devices.values())

    def __contains__(self, address: str) -> bool:
        with self._lock:
            return address in self._devices

    def clear(self) -> None:
        """Clear all tracked devices and cumulative state."""
        with self._lock:
            self._devices.clear()
            self._states.clear()

    @property
    def device_count(self) -> int:
        """Number of tracked devices."""
        with self._lock:
            return len(self._devices)
