"""
Bluetooth advertisement decoding and presence tracking for blehub.

Provides attribute decoders for vendor service data, iBeacon distance
estimation, the device registry, the advertisement processor, presence
sweeping and the scan watchdog.
"""

from .attributes import HANDLERS, decode_attribute, lookup, normalize_uuid
from .constants import (
    ATTRIBUTE_NAMES,
    PAYLOAD_REPEAT_INTERVAL,
    STATE_HOME,
    STATE_NOT_HOME,
)
from .distance import estimate_distance, is_ibeacon, parse_ibeacon
from .models import DeviceRecord, PayloadSnapshot, ProximityTag, ServiceDataEntry, Sighting
from .presence import PresenceSweeper
from .processor import AdvertisementProcessor, Publisher
from .registry import DeviceRegistry
from .scanner import BleakScanFacility, RadioUnavailableError, ScanController, to_sighting
from .watchdog import FatalFault, RadioNotReadyError, ScanStalledError, ScanWatchdog

__all__ = [
    # Decoding
    'HANDLERS',
    'decode_attribute',
    'lookup',
    'normalize_uuid',
    'ATTRIBUTE_NAMES',

    # Proximity
    'estimate_distance',
    'is_ibeacon',
    'parse_ibeacon',

    # Models
    'DeviceRecord',
    'PayloadSnapshot',
    'ProximityTag',
    'ServiceDataEntry',
    'Sighting',

    # Tracking
    'DeviceRegistry',
    'AdvertisementProcessor',
    'Publisher',
    'PresenceSweeper',
    'PAYLOAD_REPEAT_INTERVAL',
    'STATE_HOME',
    'STATE_NOT_HOME',

    # Scanning
    'BleakScanFacility',
    'RadioUnavailableError',
    'ScanController',
    'to_sighting',

    # Watchdog
    'FatalFault',
    'RadioNotReadyError',
    'ScanStalledError',
    'ScanWatchdog',
]
