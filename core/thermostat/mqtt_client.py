"""
MQTT Bus Adapter

Thin wrapper around paho-mqtt: subscribes to the sensor and setting topics,
hands inbound payloads to a callback and publishes actuator commands.
"""

import logging
import threading
from typing import Callable
from urllib.parse import urlparse

import paho.mqtt.client as mqtt

from .exceptions import BusConnectionError, PublishError

logger = logging.getLogger(__name__)

DEFAULT_PORT = 1883


class MQTTBus:
    """Simple MQTT client for the thermostat controller."""

    def __init__(
        self,
        broker_url: str,
        client_id: str,
        topics: list[str],
        on_message: Callable[[str, bytes], object],
        connect_timeout: float = 10.0,
        client: mqtt.Client | None = None,
    ):
        """Initialize the bus adapter.

        Args:
            broker_url: Broker URL (e.g., "tcp://127.0.0.1:1883")
            client_id: MQTT client identifier
            topics: Topics to subscribe to on every (re)connect
            on_message: Called with (topic, payload) for each inbound message
            connect_timeout: Seconds to wait for the broker to accept the connection
            client: Pre-built paho client (used by tests)
        """
        parsed = urlparse(broker_url)
        if not parsed.hostname:
            raise BusConnectionError(f"Invalid broker URL: {broker_url}")
        self.host = parsed.hostname
        self.port = parsed.port or DEFAULT_PORT
        self.broker_url = broker_url
        self.client_id = client_id
        self.topics = list(topics)
        self.handler = on_message
        self.connect_timeout = connect_timeout

        self.client = client or mqtt.Client(mqtt.CallbackAPIVersion.VERSION2, client_id=client_id)
        self.client.on_connect = self._on_connect
        self.client.on_disconnect = self._on_disconnect
        self.client.on_message = self._on_message

        self._connected = threading.Event()

    @property
    def connected(self) -> bool:
        return self._connected.is_set()

    def connect(self) -> None:
        """Connect and start the network loop.

        Raises:
            BusConnectionError: If the broker is unreachable or refuses the connection
        """
        try:
            self.client.connect(self.host, self.port, 60)
        except (OSError, ValueError) as e:
            raise BusConnectionError(f"Cannot connect to {self.broker_url}: {e}")

        self.client.loop_start()
        if not self._connected.wait(self.connect_timeout):
            self.client.loop_stop()
            raise BusConnectionError(
                f"No connection acknowledgement from {self.broker_url} within {self.connect_timeout:g}s"
            )
        logger.info(f"Connected to {self.broker_url} as {self.client_id} and waiting for messages")

    def disconnect(self) -> None:
        self.client.disconnect()
        self.client.loop_stop()
        self._connected.clear()

    def publish(self, address: str, payload: str) -> None:
        """Publish a message (QoS 0, not retained).

        Raises:
            PublishError: If paho does not accept the message
        """
        info = self.client.publish(address, payload, qos=0, retain=False)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise PublishError(f"Publish to {address} failed: {mqtt.error_string(info.rc)}")
        logger.debug(f"Published {payload} to {address}")

    def _on_connect(self, client, userdata, flags, reason_code, properties=None):
        if reason_code.is_failure:
            logger.error(f"Broker refused connection: {reason_code}")
            return

        for topic in self.topics:
            client.subscribe(topic)
        logger.debug(f"Subscribed to {len(self.topics)} topics: {self.topics}")
        self._connected.set()

    def _on_disconnect(self, client, userdata, flags, reason_code, properties=None):
        self._connected.clear()
        if reason_code != 0:
            logger.warning(f"Unexpected MQTT disconnection ({reason_code}), will auto-reconnect")

    def _on_message(self, client, userdata, message):
        self.handler(message.topic, message.payload)
