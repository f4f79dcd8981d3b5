"""
Advertisement processing.

Turns each sighting from the scan facility into registry updates and MQTT
publishes: presence transitions, advertisement echoes, decoded readings and
merged per-identifier JSON state.
"""

from __future__ import annotations

import json
import logging
from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, Optional, Protocol

import json5

from blehub.config import HubConfig

from . import topics
from .attributes import decode_attribute
from .constants import (
    ESPRUINO_COMPANY_ID,
    PRESENCE_ABSENT,
    PRESENCE_PRESENT,
    STATE_HOME,
    STATE_NOT_HOME,
    STATUS_ONLINE,
)
from .distance import estimate_distance, parse_ibeacon
from .models import ServiceDataEntry, Sighting, utc_now
from .registry import DeviceRegistry

logger = logging.getLogger('blehub.bluetooth.processor')


class Publisher(Protocol):
    """Fire-and-forget message sink, normally the MQTT manager."""

    def send(self, topic: str, payload: str, retain: bool = False) -> bool:
        ...


def _json_default(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return list(value)
    return str(value)


def to_json(value: Any) -> str:
    """Serialize a reading for MQTT, raw bytes become a list of ints."""
    return json.dumps(value, default=_json_default)


class AdvertisementProcessor:
    """
    Processes sightings into device state and MQTT messages.

    One instance owns a DeviceRegistry; the presence sweeper shares it.
    """

    def __init__(
        self,
        config: HubConfig,
        publisher: Publisher,
        registry: Optional[DeviceRegistry] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._config = config
        self._publisher = publisher
        self._registry = registry if registry is not None else DeviceRegistry()
        self._clock = clock
        self._prefix = config.mqtt_prefix

    @property
    def registry(self) -> DeviceRegistry:
        return self._registry

    def process(self, sighting: Sighting) -> None:
        """
        Process one sighting.

        Errors are logged and contained so one misbehaving device cannot
        disturb the others.
        """
        try:
            if sighting.is_ibeacon:
                self._process_beacon(sighting)
            else:
                self._process_device(sighting)
        except Exception:
            logger.exception(f"Failed to process advertisement from {sighting.address}")

    def send_presence(self) -> None:
        """Re-send presence of tracked and known devices, e.g. after an MQTT (re)connect."""
        logger.info("Re-sending presence status of known devices")
        for device in self._registry.get_all_devices():
            if not device.is_beacon:
                self._send(topics.presence(self._prefix, device.id), PRESENCE_PRESENT, retain=True)
        for address, device_id in self._config.known_devices.items():
            state = PRESENCE_PRESENT if address in self._registry else PRESENCE_ABSENT
            self._send(topics.presence(self._prefix, device_id), state, retain=True)

    # =========================================================================
    # iBeacons
    # =========================================================================

    def _process_beacon(self, sighting: Sighting) -> None:
        tag = parse_ibeacon(sighting.manufacturer_data)
        if tag is None:
            return

        beacon = self._config.known_beacons.get(tag.key)
        if beacon is None:
            # No calibration for unknown beacons, they are not tracked
            logger.debug(f"Ignoring unknown iBeacon {tag.key}")
            return

        if beacon.measured_power is not None:
            tag = replace(tag, measured_power=beacon.measured_power)

        distance = estimate_distance(sighting.rssi, tag.measured_power)
        state = STATE_HOME
        if beacon.max_distance > 0 and distance > beacon.max_distance:
            logger.info(f"Detection distance exceeded: {beacon.name} at {distance}m")
            state = STATE_NOT_HOME

        device_id = beacon.name
        _, entered = self._registry.observe(
            tag.key, device_id, self._clock(), rssi=sighting.rssi, tag=tag,
        )
        self._registry.set_proximity(tag.key, distance, state)

        if entered:
            logger.info(f"iBeacon {device_id} entered")
            self._send(topics.tracker_status(self._prefix, device_id), STATUS_ONLINE, retain=True)

        self._send(topics.tracker_state(self._prefix, device_id), state, retain=True)
        self._send(
            topics.sensor_attributes(self._prefix, device_id),
            to_json({'distance': distance, 'rssi': sighting.rssi, 'state': state}),
        )
        self._send(topics.sensor_status(self._prefix, device_id), STATUS_ONLINE, retain=True)

    # =========================================================================
    # Other devices
    # =========================================================================

    def _process_device(self, sighting: Sighting) -> None:
        address = sighting.address
        device_id = self._config.known_devices.get(address)
        if device_id is None:
            if self._config.only_known_devices:
                return
            device_id = address

        now = self._clock()
        _, entered = self._registry.observe(
            address, device_id, now, rssi=sighting.rssi, name=sighting.name,
        )
        if entered:
            logger.debug(f"Device {device_id} entered")
            self._send(topics.presence(self._prefix, device_id), PRESENCE_PRESENT, retain=True)

        self._publish_advertisement(device_id, sighting)

        for entry in sighting.service_data:
            try:
                self._process_service_data(device_id, sighting, entry, now)
            except Exception:
                logger.exception(f"Failed to decode {entry.uuid} from {address}")

    def _publish_advertisement(self, device_id: str, sighting: Sighting) -> None:
        """Echo the advertisement itself (rssi, name, services, manufacturer data)."""
        mqtt_data: dict[str, Any] = {'rssi': sighting.rssi}
        if sighting.name:
            mqtt_data['name'] = sighting.name
        if sighting.service_uuids:
            mqtt_data['serviceUuids'] = list(sighting.service_uuids)

        if sighting.manufacturer_data and self._config.mqtt_advertise_manufacturer_data:
            mdata = sighting.manufacturer_data.hex()
            mqtt_data['manufacturerData'] = mdata
            self._send(topics.advertise(self._prefix, device_id), to_json(mqtt_data))

            # Company id is little-endian in the first two bytes
            manufacturer = mdata[2:4] + mdata[0:2]
            self._send(
                topics.advertise(self._prefix, device_id, 'manufacturer', manufacturer),
                to_json(mdata[4:]),
            )
            if manufacturer == f"{ESPRUINO_COMPANY_ID:04x}":
                self._publish_espruino(device_id, sighting.manufacturer_data[2:])
        elif self._config.mqtt_advertise:
            self._send(topics.advertise(self._prefix, device_id), to_json(mqtt_data))

        if self._config.mqtt_advertise:
            self._send(topics.advertise(self._prefix, device_id, 'rssi'), to_json(sighting.rssi))

    def _publish_espruino(self, device_id: str, data: bytes) -> None:
        """Espruino devices advertise JSON5 text such as {a:1}."""
        text = data.decode('latin-1')
        try:
            parsed = json5.loads(text)
        except ValueError:
            return

        self._send(topics.advertise(self._prefix, device_id, 'espruino'), text)
        if isinstance(parsed, dict):
            for key, value in parsed.items():
                self._send(topics.advertise(self._prefix, device_id, str(key)), to_json(value))

    def _process_service_data(
        self,
        device_id: str,
        sighting: Sighting,
        entry: ServiceDataEntry,
        now: datetime,
    ) -> None:
        # Unchanged data is only re-sent once a minute
        if not self._registry.accept_payload(sighting.address, entry.uuid, entry.data, now):
            return

        if self._config.mqtt_advertise_service_data:
            self._send(
                topics.advertise(self._prefix, device_id, entry.uuid),
                to_json(list(entry.data)),
            )

        decoded = decode_attribute(entry.uuid, entry.data, self._config.advertised_services)
        if not isinstance(decoded, dict):
            return

        readings = {**decoded, 'rssi': sighting.rssi}
        for key, value in readings.items():
            if self._config.mqtt_advertise:
                self._send(topics.advertise(self._prefix, device_id, key), to_json(value))
            if self._config.mqtt_format_decoded_key_topic:
                self._send(topics.decoded_key(self._prefix, device_id, key), to_json(value))

        if self._config.mqtt_format_json:
            state = self._registry.merge_state(sighting.address, entry.uuid, readings)
            self._send(topics.merged_json(self._prefix, device_id, entry.uuid), to_json(state))

    def _send(self, topic: str, payload: str, retain: bool = False) -> None:
        self._publisher.send(topic, payload, retain=retain)
