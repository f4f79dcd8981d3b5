"""
MQTT client manager for blehub.

Wraps a paho-mqtt client for publishing bridge output. Publishing is
fire-and-forget: while disconnected, messages are dropped rather than
queued. Reconnection is handled by the paho network loop with back-off.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Callable, Optional

import paho.mqtt.client as mqtt

from blehub.bluetooth import topics
from blehub.config import HubConfig

logger = logging.getLogger('blehub.mqtt')

# Default settings
DEFAULT_CLIENT_ID = 'blehub'
DEFAULT_QOS = 0
DEFAULT_KEEPALIVE = 60

# Reconnection settings
RECONNECT_MIN_DELAY = 1
RECONNECT_MAX_DELAY = 60

BRIDGE_ONLINE = 'online'
BRIDGE_OFFLINE = 'offline'


class MQTTManager:
    """
    MQTT client manager.

    Handles connection, reconnection and non-blocking publishing to the
    broker configured in HubConfig.
    """

    def __init__(self, config: HubConfig):
        self._config = config
        self._client: Optional[mqtt.Client] = None
        self._connected = False
        self._connecting = False
        self._stats = {
            'messages_published': 0,
            'messages_dropped': 0,
            'messages_failed': 0,
            'last_publish_time': None,
        }
        # Called from the network thread after every successful connect
        self.on_connected: Optional[Callable[[], None]] = None

    @property
    def is_connected(self) -> bool:
        """Check if currently connected to broker."""
        return self._connected and self._client is not None

    @property
    def stats(self) -> dict:
        """Get publishing statistics."""
        return self._stats.copy()

    def connect(self) -> bool:
        """
        Connect to the MQTT broker.

        Returns True if connection was initiated successfully.
        """
        if self._connected or self._connecting:
            return True

        self._connecting = True
        host, port, use_tls = self._config.broker_address()
        options = self._config.mqtt_options

        try:
            client_id = options.get('client_id') or f"{DEFAULT_CLIENT_ID}_{int(time.time())}"
            self._client = mqtt.Client(
                mqtt.CallbackAPIVersion.VERSION2,
                client_id=client_id,
                protocol=mqtt.MQTTv311,
            )

            self._client.on_connect = self._on_connect
            self._client.on_disconnect = self._on_disconnect
            self._client.on_publish = self._on_publish

            username = options.get('username')
            if username:
                self._client.username_pw_set(username, options.get('password'))

            if use_tls:
                self._client.tls_set()

            self._client.will_set(
                topics.bridge_state(self._config.mqtt_prefix),
                BRIDGE_OFFLINE,
                retain=True,
            )
            self._client.reconnect_delay_set(
                min_delay=RECONNECT_MIN_DELAY,
                max_delay=RECONNECT_MAX_DELAY,
            )

            logger.info(f"Connecting to MQTT broker at {host}:{port}")
            self._client.connect_async(
                host,
                port,
                keepalive=int(options.get('keepalive', DEFAULT_KEEPALIVE)),
            )
            self._client.loop_start()
            return True

        except (OSError, ValueError) as e:
            self._connecting = False
            logger.error(f"Failed to connect to MQTT broker: {e}")
            return False

    def disconnect(self) -> bool:
        """
        Disconnect from the MQTT broker.

        Returns True if disconnection was successful.
        """
        if self._client:
            try:
                if self._connected:
                    self._client.publish(
                        topics.bridge_state(self._config.mqtt_prefix),
                        BRIDGE_OFFLINE,
                        retain=True,
                    )
                self._client.disconnect()
                self._client.loop_stop()
            except (OSError, ValueError) as e:
                logger.warning(f"Error during disconnect: {e}")
            finally:
                self._client = None

        self._connected = False
        self._connecting = False
        logger.info("Disconnected from MQTT broker")
        return True

    def send(self, topic: str, payload: str, retain: bool = False) -> bool:
        """
        Publish a message without waiting for delivery.

        Returns True if the message was handed to the client. While not
        connected the message is dropped.
        """
        client = self._client
        if not self._connected or client is None:
            self._stats['messages_dropped'] += 1
            return False

        try:
            result = client.publish(topic, payload, qos=DEFAULT_QOS, retain=retain)
        except ValueError as e:
            self._stats['messages_failed'] += 1
            logger.warning(f"Invalid MQTT message for {topic}: {e}")
            return False

        if result.rc != mqtt.MQTT_ERR_SUCCESS:
            self._stats['messages_failed'] += 1
            logger.debug(f"MQTT publish to {topic} failed: {mqtt.error_string(result.rc)}")
            return False
        return True

    def _on_connect(self, client, userdata, flags, reason_code, properties=None):
        """Callback when connected to broker."""
        self._connecting = False
        if reason_code.is_failure:
            self._connected = False
            logger.error(f"MQTT connection failed: {reason_code}")
            return

        self._connected = True
        logger.info("Connected to MQTT broker")
        client.publish(
            topics.bridge_state(self._config.mqtt_prefix),
            BRIDGE_ONLINE,
            retain=True,
        )

        if self.on_connected is not None:
            try:
                self.on_connected()
            except Exception:
                logger.exception("Error in MQTT on_connected handler")

    def _on_disconnect(self, client, userdata, flags, reason_code, properties=None):
        """Callback when disconnected from broker."""
        self._connected = False

        if reason_code.is_failure:
            logger.warning(f"MQTT disconnected unexpectedly: {reason_code}")
        else:
            logger.info("MQTT disconnected gracefully")

    def _on_publish(self, client, userdata, mid, reason_code=None, properties=None):
        """Callback when message is published."""
        self._stats['messages_published'] += 1
        self._stats['last_publish_time'] = datetime.now(timezone.utc).isoformat()
