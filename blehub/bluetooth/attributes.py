"""
Known attributes and conversions for them.

Service data is keyed by a normalized wire identifier (lower-case hex UUID,
short form for UUIDs on the Bluetooth base). `decode_attribute` returns a
dict of readings, or the payload itself when nothing could decode it.
"""

from __future__ import annotations

import logging
from typing import Callable, Mapping, Optional, Union

from . import frames
from .constants import ATTRIBUTE_NAMES, BLUETOOTH_BASE_UUID_SUFFIX

logger = logging.getLogger('blehub.bluetooth.attributes')

Decoder = Callable[[bytes], Optional[dict]]

HANDLERS: dict[str, Decoder] = {
    '1809': frames.parse_temperature,
    '180f': frames.parse_battery,
    '181a': frames.parse_atc_thermometer,
    '181b': frames.parse_scale_v2,
    '181d': frames.parse_scale_v1,
    'fe95': frames.parse_xiaomi,
    'fee0': frames.parse_step_counter,
    'feaa': frames.parse_eddystone,
    '2a6d': frames.parse_pressure,
    '2a6e': frames.parse_temperature_characteristic,
    '2a6f': frames.parse_humidity,
    # alert/digital/analog are not meant for advertising but are useful
    '2a06': frames.parse_alert_level,
    '2a56': frames.parse_digital,
    '2a58': frames.parse_analog,
    'ffff': frames.parse_unclassified,
}


def decode_attribute(
    identifier: str,
    payload: bytes,
    advertised_services: Optional[Mapping[str, Mapping]] = None,
) -> Union[dict, bytes]:
    """
    Decode a service data payload.

    Args:
        identifier: Normalized wire identifier.
        payload: Raw service data bytes.
        advertised_services: Operator defined services, identifier ->
            {'name': field_name}; the first byte is reported under that name.

    Returns:
        A dict of readings, or `payload` unchanged if it is not decodable.
    """
    handler = HANDLERS.get(identifier)
    if handler is not None:
        readings = handler(payload)
        return readings if readings else payload

    if identifier in ATTRIBUTE_NAMES:
        return {ATTRIBUTE_NAMES[identifier]: payload}

    if advertised_services and identifier in advertised_services and payload:
        service = advertised_services[identifier]
        return {service['name']: payload[0]}

    logger.debug(f"No decoder for {identifier} ({len(payload)} bytes)")
    return payload


def lookup(name: str) -> str:
    """Resolve a readable attribute name to its identifier, or return it as is."""
    for identifier, attribute_name in ATTRIBUTE_NAMES.items():
        if attribute_name == name:
            return identifier
    return name


def normalize_uuid(uuid: str) -> str:
    """
    Normalize a UUID string into a wire identifier.

    '0000181a-0000-1000-8000-00805f9b34fb' -> '181a'
    '6E400001-B5A3-F393-E0A9-E50E24DCCA9E' -> '6e400001b5a3f393e0a9e50e24dcca9e'
    """
    uuid = uuid.lower()
    if len(uuid) == 36 and uuid.startswith('0000') and uuid.endswith(BLUETOOTH_BASE_UUID_SUFFIX):
        return uuid[4:8]
    return uuid.replace('-', '')
