"""MQTT side of teamscall.

The bridge owns the paho client. It registers the "offline" last will before
connecting, announces "online" on every successful connect, and publishes the
call state as a retained ON/OFF binary sensor value. Broker problems are
logged and left to paho's own reconnect loop; nothing here raises into the
watch pipeline.
"""

from collections.abc import Callable
from typing import Any

import paho.mqtt.client as mqtt
from loguru import logger
from paho.mqtt.client import CallbackAPIVersion

from teamscall.core.config.mqtt_config import MQTTConfig
from teamscall.core.types import Availability, BinarySensorValue, CallState

QOS_AT_LEAST_ONCE = 1
RECONNECT_MIN_DELAY = 1
RECONNECT_MAX_DELAY = 60
DEFAULT_CLOSE_TIMEOUT = 2.0

ClientFactory = Callable[[MQTTConfig], Any]


def create_mqtt_client(config: MQTTConfig) -> mqtt.Client:
    """Build a paho client for the configured identity (not yet connected)."""
    client = mqtt.Client(
        callback_api_version=CallbackAPIVersion.VERSION2,
        client_id=config.client_id or "",
        protocol=mqtt.MQTTv311,
    )
    if config.username:
        password = config.password.get_secret_value() if config.password else None
        client.username_pw_set(config.username, password)
    return client


class PublisherBridge:
    """Publish availability and call state to the broker."""

    def __init__(
        self,
        config: MQTTConfig,
        availability_topic: str,
        state_topic: str,
        client_factory: ClientFactory = create_mqtt_client,
    ):
        self.config = config
        self.availability_topic = availability_topic
        self.state_topic = state_topic
        self._client_factory = client_factory
        self._client: Any | None = None

    @property
    def client(self) -> Any | None:
        return self._client

    @property
    def is_started(self) -> bool:
        return self._client is not None

    def start(self) -> None:
        """Register the last will, connect in the background and start paho's loop."""
        if self._client is not None:
            return

        client = self._client_factory(self.config)
        client.will_set(
            self.availability_topic,
            Availability.UNAVAILABLE.value,
            qos=QOS_AT_LEAST_ONCE,
            retain=True,
        )
        client.on_connect = self._on_connect
        client.on_connect_fail = self._on_connect_fail
        client.on_disconnect = self._on_disconnect
        client.reconnect_delay_set(
            min_delay=RECONNECT_MIN_DELAY, max_delay=RECONNECT_MAX_DELAY
        )
        self._client = client

        host, port = self.config.endpoint
        logger.info(f"Connecting to MQTT broker {host}:{port} as {self.config.client_id}")
        client.loop_start()
        try:
            client.connect_async(host, port, keepalive=self.config.keepalive)
        except (OSError, ValueError) as e:
            logger.error(f"MQTT connect failed ({type(e).__name__}: {e})")

    def _on_connect(
        self,
        client: Any,
        userdata: Any,
        flags: Any,
        reason_code: Any,
        properties: Any = None,
    ) -> None:
        if reason_code.is_failure:
            logger.error(f"MQTT connection refused: {reason_code}")
            return
        logger.info("MQTT connected!")
        self._send(
            client,
            self.availability_topic,
            Availability.AVAILABLE.value,
            qos=QOS_AT_LEAST_ONCE,
            retain=True,
        )

    def _on_connect_fail(self, client: Any, userdata: Any) -> None:
        logger.error("MQTT error: unable to reach broker, retrying")

    def _on_disconnect(
        self,
        client: Any,
        userdata: Any,
        flags: Any,
        reason_code: Any,
        properties: Any = None,
    ) -> None:
        if reason_code.is_failure:
            logger.warning(f"MQTT disconnected unexpectedly: {reason_code}")
        else:
            logger.info("MQTT disconnected")

    def publish(
        self, topic: str, payload: str, qos: int = QOS_AT_LEAST_ONCE, retain: bool = True
    ) -> Any | None:
        """Publish ``payload`` to ``topic``; failures are logged, not raised."""
        if self._client is None:
            logger.warning(f"Dropping publish to {topic}: bridge not started")
            return None
        return self._send(self._client, topic, payload, qos=qos, retain=retain)

    @staticmethod
    def _send(client: Any, topic: str, payload: str, qos: int, retain: bool) -> Any:
        info = client.publish(topic, payload, qos=qos, retain=retain)
        if info.rc == mqtt.MQTT_ERR_NO_CONN:
            logger.debug(f"Queued {topic}={payload} until the broker connection is up")
        elif info.rc != mqtt.MQTT_ERR_SUCCESS:
            logger.error(f"MQTT error publishing to {topic}: {mqtt.error_string(info.rc)}")
        return info

    def publish_call_state(self, state: CallState) -> Any | None:
        value = BinarySensorValue.from_call_state(state)
        return self.publish(
            self.state_topic, value.value, qos=QOS_AT_LEAST_ONCE, retain=True
        )

    def close(self, timeout: float = DEFAULT_CLOSE_TIMEOUT) -> None:
        """Announce "offline", disconnect and stop the network loop."""
        client = self._client
        if client is None:
            return
        self._client = None

        if client.is_connected():
            info = client.publish(
                self.availability_topic,
                Availability.UNAVAILABLE.value,
                qos=QOS_AT_LEAST_ONCE,
                retain=True,
            )
            try:
                info.wait_for_publish(timeout=timeout)
            except (RuntimeError, ValueError) as e:
                logger.warning(f"Could not publish offline status: {e}")
            if not info.is_published():
                logger.warning("Offline status not acknowledged before disconnect")

        client.disconnect()
        client.loop_stop()
        logger.info("MQTT connection closed")

    def __enter__(self) -> "PublisherBridge":
        self.start()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
