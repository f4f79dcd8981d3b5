"""
Configuration for the BLE to MQTT bridge.

Settings are read once at startup from a JSON file. Missing keys fall back
to the defaults below; unknown keys are ignored.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Optional
from urllib.parse import urlparse

logger = logging.getLogger('blehub.config')

DEFAULT_CONFIG_PATH = 'config.json'

# Default settings
DEFAULT_MQTT_HOST = 'mqtt://localhost'
DEFAULT_MQTT_PREFIX = '/ble'
DEFAULT_MQTT_PORT = 1883
DEFAULT_MQTT_TLS_PORT = 8883

# Seconds since last seen before a device is reported gone
DEFAULT_PRESENCE_TIMEOUT = 60

# Radio liveness timeout in seconds, 0 disables the watchdog
DEFAULT_BLE_TIMEOUT = 10


class ConfigError(Exception):
    """Raised when the configuration file cannot be used."""


@dataclass
class KnownBeacon:
    """Operator settings for one iBeacon, keyed by '<uuid>-<major>-<minor>'."""
    name: str
    measured_power: Optional[int] = None
    max_distance: float = 0


@dataclass
class HubConfig:
    """Bridge configuration."""
    mqtt_host: str = DEFAULT_MQTT_HOST
    mqtt_options: dict = field(default_factory=dict)
    mqtt_prefix: str = DEFAULT_MQTT_PREFIX

    # Output toggles
    mqtt_advertise: bool = True
    mqtt_advertise_manufacturer_data: bool = False
    mqtt_advertise_service_data: bool = False
    mqtt_format_json: bool = True
    mqtt_format_decoded_key_topic: bool = True

    only_known_devices: bool = False
    known_devices: dict[str, str] = field(default_factory=dict)
    known_beacons: dict[str, KnownBeacon] = field(default_factory=dict)
    advertised_services: dict[str, dict] = field(default_factory=dict)

    # Seconds
    presence_timeout: float = DEFAULT_PRESENCE_TIMEOUT
    ble_timeout: float = DEFAULT_BLE_TIMEOUT

    @classmethod
    def from_dict(cls, data: dict) -> 'HubConfig':
        """Build a configuration from the parsed JSON document."""
        if not isinstance(data, dict):
            raise ConfigError("Configuration must be a JSON object")

        config = cls()
        try:
            for key in (
                'mqtt_advertise',
                'mqtt_advertise_manufacturer_data',
                'mqtt_advertise_service_data',
                'mqtt_format_json',
                'mqtt_format_decoded_key_topic',
                'only_known_devices',
            ):
                if key not in data:
                    continue
                if not isinstance(data[key], bool):
                    raise ConfigError(f"{key} must be true or false")
                setattr(config, key, data[key])

            if 'mqtt_host' in data:
                config.mqtt_host = str(data['mqtt_host'])
            if 'mqtt_prefix' in data:
                config.mqtt_prefix = str(data['mqtt_prefix'])
            if 'mqtt_options' in data:
                config.mqtt_options = dict(data['mqtt_options'])
            if 'presence_timeout' in data:
                config.presence_timeout = float(data['presence_timeout'])
            if 'ble_timeout' in data:
                config.ble_timeout = float(data['ble_timeout'])

            config.known_devices = {
                address.lower(): str(device_id)
                for address, device_id in data.get('known_devices', {}).items()
            }
            config.advertised_services = {
                uuid.lower(): dict(service)
                for uuid, service in data.get('advertised_services', {}).items()
            }

            beacons = data.get('bluetooth_low_energy', {}).get('known_devices', {})
            config.known_beacons = {
                key.lower(): KnownBeacon(
                    name=str(beacon['name']),
                    measured_power=(
                        int(beacon['measured_power'])
                        if beacon.get('measured_power') is not None else None
                    ),
                    max_distance=float(beacon.get('max_distance') or 0),
                )
                for key, beacon in beacons.items()
            }
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise ConfigError(f"Invalid configuration: {e}") from e

        if config.presence_timeout <= 0:
            raise ConfigError("presence_timeout must be positive")
        if config.ble_timeout < 0:
            raise ConfigError("ble_timeout must not be negative")
        for uuid, service in config.advertised_services.items():
            if 'name' not in service:
                raise ConfigError(f"Advertised service {uuid} has no name")

        return config

    def broker_address(self) -> tuple[str, int, bool]:
        """
        Split mqtt_host into (host, port, use_tls).

        Accepts 'mqtt://host:port', 'mqtts://host' or a bare host name.
        """
        url = self.mqtt_host if '://' in self.mqtt_host else f"mqtt://{self.mqtt_host}"
        parsed = urlparse(url)
        use_tls = parsed.scheme in ('mqtts', 'ssl', 'tls')
        port = parsed.port or (DEFAULT_MQTT_TLS_PORT if use_tls else DEFAULT_MQTT_PORT)
        return parsed.hostname or 'localhost', port, use_tls


def load_config(path: str = DEFAULT_CONFIG_PATH) -> HubConfig:
    """
    Load configuration from a JSON file.

    A missing file yields the default configuration.
    """
    if not os.path.exists(path):
        logger.warning(f"Config file {path} not found, using defaults")
        return HubConfig()

    try:
        with open(path, encoding='utf-8') as f:
            data: Any = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    config = HubConfig.from_dict(data)
    logger.info(f"Loaded configuration from {path}")
    return config
