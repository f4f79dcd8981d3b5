"""
Data models for sightings and tracked devices.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Current time as an aware UTC datetime, unaffected by local DST changes."""
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ServiceDataEntry:
    """A service data element attached to an advertisement."""
    uuid: str
    data: bytes


@dataclass
class Sighting:
    """One advertisement received from the scan facility."""
    address: str
    rssi: int
    name: Optional[str] = None
    service_uuids: list[str] = field(default_factory=list)
    # Includes the little-endian company id as the first two bytes
    manufacturer_data: Optional[bytes] = None
    service_data: list[ServiceDataEntry] = field(default_factory=list)
    is_ibeacon: bool = False


@dataclass(frozen=True)
class ProximityTag:
    """iBeacon identity and calibration parsed from one sighting."""
    uuid: str
    major: int
    minor: int
    measured_power: int

    @property
    def key(self) -> str:
        return f"{self.uuid}-{self.major}-{self.minor}".lower()


@dataclass
class PayloadSnapshot:
    """Last published service data payload for one identifier."""
    payload: bytes
    time: datetime


@dataclass
class DeviceRecord:
    """A device currently in range."""
    address: str
    id: str
    last_seen: datetime
    rssi: Optional[int] = None
    name: str = '?'
    is_beacon: bool = False
    state: Optional[str] = None
    tag: Optional[ProximityTag] = None
    distance: Optional[float] = None
    data: dict[str, PayloadSnapshot] = field(default_factory=dict)
