"""
MQTT topic layout.

All topics hang off the configured prefix (default '/ble').
"""

from __future__ import annotations


def bridge_state(prefix: str) -> str:
    return f"{prefix}/state"


def presence(prefix: str, device_id: str) -> str:
    return f"{prefix}/presence/{device_id}"


def advertise(prefix: str, device_id: str, *parts: str) -> str:
    return '/'.join([f"{prefix}/advertise/{device_id}", *parts])


def decoded_key(prefix: str, device_id: str, key: str) -> str:
    return f"{prefix}/{device_id}/{key}"


def merged_json(prefix: str, device_id: str, uuid: str) -> str:
    return f"{prefix}/json/{device_id}/{uuid}"


def tracker_status(prefix: str, device_id: str) -> str:
    return f"{prefix}/device_tracker/ble-{device_id}-tracker/status"


def tracker_state(prefix: str, device_id: str) -> str:
    return f"{prefix}/device_tracker/ble-{device_id}-tracker/state"


def sensor_status(prefix: str, device_id: str) -> str:
    return f"{prefix}/sensor/ble-{device_id}/status"


def sensor_attributes(prefix: str, device_id: str) -> str:
    return f"{prefix}/sensor/ble-{device_id}/attributes"
