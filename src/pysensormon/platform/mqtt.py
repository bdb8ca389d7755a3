"""MQTT push bridge.

Sensor boards publish JSON readings to ``<prefix>/<kind>`` (or
``<prefix>/<device>/<kind>``); the runtime forwards each one to a
:class:`~pysensormon.platform.push.PushPlatform` on the asyncio loop.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, cast

import paho.mqtt.client as mqtt

from pysensormon.exceptions import BridgeError
from pysensormon.platform.push import PushPlatform


@dataclass(frozen=True)
class MqttBridgeSettings:
    """Broker connection details."""

    host: str
    port: int = 1883
    topic_prefix: str = "sensors"
    client_id: str = "pysensormon"
    username: str | None = None
    password: str | None = None
    tls: bool = False
    keepalive: int = 60

    @property
    def subscription(self) -> str:
        return f"{self.topic_prefix.rstrip('/')}/#"


@dataclass(frozen=True)
class SensorMqttMessage:
    """One decoded sensor publish."""

    kind: str
    topic: str
    payload: Any


def parse_sensor_message(topic: str, payload: bytes, topic_prefix: str) -> SensorMqttMessage:
    """Decode a publish into the event kind and its JSON payload."""
    prefix = topic_prefix.rstrip("/") + "/"
    if not topic.startswith(prefix):
        raise BridgeError(f"topic {topic!r} is outside {prefix!r}")
    kind = topic[len(prefix) :].rsplit("/", 1)[-1]
    if not kind:
        raise BridgeError(f"topic {topic!r} names no sensor kind")
    try:
        parsed = json.loads(payload.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise BridgeError(f"payload on {topic!r} is not JSON") from exc
    return SensorMqttMessage(kind=kind, topic=topic, payload=parsed)


class SensorMqttRuntime:
    """Threaded paho-mqtt runtime that feeds sensor publishes onto an asyncio loop."""

    def __init__(
        self,
        *,
        loop: asyncio.AbstractEventLoop,
        platform: PushPlatform,
        settings: MqttBridgeSettings,
        logger: logging.Logger | None = None,
    ) -> None:
        self._loop = loop
        self._platform = platform
        self._settings = settings
        self._logger = logger or logging.getLogger(__name__)
        self._client: mqtt.Client | None = None
        self._running = False

    @property
    def is_running(self) -> bool:
        """Whether the MQTT runtime is actively running."""
        return self._running

    def handle_message(self, topic: str, payload: bytes) -> bool:
        """Parse one publish and schedule its dispatch; returns whether it was scheduled.

        Runs on the paho network thread.
        """
        try:
            message = parse_sensor_message(topic, payload, self._settings.topic_prefix)
        except BridgeError:
            self._logger.debug("MQTT payload parse failure", exc_info=True)
            return False

        body = message.payload
        if isinstance(body, Mapping) and "name" in body:
            self._loop.call_soon_threadsafe(self._platform.dispatch_message, body)
        else:
            self._platform.dispatch_threadsafe(self._loop, message.kind, body)
        return True

    def start(self) -> None:
        """Connect and subscribe to the sensor topic tree."""
        self.stop()
        settings = self._settings
        self._logger.debug(
            "MQTT runtime start requested host=%s port=%s topic=%s client_id=%s",
            settings.host,
            settings.port,
            settings.subscription,
            settings.client_id,
        )

        client = mqtt.Client(
            callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
            client_id=settings.client_id,
            protocol=mqtt.MQTTv5,
        )
        client.enable_logger(self._logger)
        if settings.username is not None:
            client.username_pw_set(settings.username, settings.password)
        if settings.tls:
            client.tls_set()

        def on_connect(
            c: mqtt.Client,
            _userdata: Any,
            _flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if reason_code.value != 0:
                self._logger.warning("MQTT connect failed: %s", reason_code)
                return
            self._logger.debug("MQTT connected reason=%s, subscribing %s", reason_code, settings.subscription)
            c.subscribe(settings.subscription, qos=0)

        def on_message(_c: mqtt.Client, _userdata: Any, msg: mqtt.MQTTMessage) -> None:
            self.handle_message(msg.topic, msg.payload)

        def on_disconnect(
            _client: mqtt.Client,
            _userdata: Any,
            _disconnect_flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if self._running:
                self._logger.debug("MQTT disconnected: %s", reason_code)

        client.on_connect = on_connect
        client.on_message = on_message
        client.on_disconnect = on_disconnect

        try:
            client.connect(settings.host, settings.port, keepalive=settings.keepalive)
        except OSError as exc:
            raise BridgeError(f"cannot reach MQTT broker {settings.host}:{settings.port}: {exc}") from exc
        client.loop_start()

        self._client = client
        self._running = True
        self._logger.debug("MQTT network loop started")

    def stop(self) -> None:
        """Stop and disconnect current MQTT client if running."""
        client = self._client
        self._client = None
        was_running = self._running
        self._running = False

        if client is None:
            return
        try:
            if was_running:
                self._logger.debug("MQTT disconnect requested")
                client.disconnect()
        finally:
            client.loop_stop()
            self._logger.debug("MQTT network loop stopped")
