"""MQTT transport for decoded packets.

A separate decoder process publishes every decoded packet as JSON on
``<topic>/incoming`` or ``<topic>/outgoing``. This runtime subscribes to
``<topic>/#`` and hands parsed :class:`PacketEvent` objects to the asyncio
loop.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, cast

import paho.mqtt.client as mqtt

from pyzmon.config import MonitorConfig
from pyzmon.exceptions import PacketDecodeError
from pyzmon.models.packets import PacketEvent, PacketKind


@dataclass(frozen=True)
class MqttSettings:
    """Broker connection details."""

    host: str
    port: int
    topic: str
    client_id: str = ""
    keepalive: int = 60

    @classmethod
    def from_config(cls, config: MonitorConfig) -> MqttSettings:
        return cls(
            host=config.mqtt_host,
            port=config.mqtt_port,
            topic=config.mqtt_topic.strip("/"),
            client_id=config.mqtt_client_id,
            keepalive=config.mqtt_keepalive,
        )

    @property
    def subscription(self) -> str:
        return f"{self.topic}/#"


def decode_packet_message(topic: str, payload: bytes) -> PacketEvent:
    """Parse one MQTT message into a packet event.

    The packet kind is the last topic level. The payload is either the
    packet object itself or an envelope ``{"kind": ..., "packet": {...}}``.
    """
    try:
        parsed = json.loads(payload.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise PacketDecodeError(f"Payload is not JSON: {exc}", topic=topic) from exc
    if not isinstance(parsed, dict):
        raise PacketDecodeError("Payload decoded to non-object JSON", topic=topic)

    kind: Any = topic.rsplit("/", 1)[-1]
    packet: Any = parsed
    if kind not in {k.value for k in PacketKind} and "packet" in parsed:
        kind = parsed.get("kind")
        packet = parsed.get("packet")
    if not isinstance(kind, str) or not kind:
        raise PacketDecodeError("Packet kind missing", topic=topic)
    if not isinstance(packet, dict):
        raise PacketDecodeError("Packet body is not an object", topic=topic)
    return PacketEvent(kind=kind, packet=packet, topic=topic)


class MqttPacketRuntime:
    """Threaded paho-mqtt runtime that emits packet events onto an asyncio loop."""

    def __init__(
        self,
        settings: MqttSettings,
        *,
        loop: asyncio.AbstractEventLoop | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._settings = settings
        self._loop = loop
        self._logger = logger or logging.getLogger(__name__)
        self._client: mqtt.Client | None = None
        self._running = False
        self._on_event: Callable[[PacketEvent], None] | None = None

    @property
    def is_running(self) -> bool:
        """Whether the MQTT runtime is actively running."""
        return self._running

    def start(self, on_event: Callable[[PacketEvent], None]) -> None:
        """Connect and subscribe; *on_event* is called on the asyncio loop."""
        self.stop()
        loop = self._loop or asyncio.get_running_loop()
        self._loop = loop
        self._on_event = on_event
        settings = self._settings
        self._logger.debug(
            "MQTT runtime start requested host=%s port=%s topic=%s",
            settings.host,
            settings.port,
            settings.subscription,
        )

        client = mqtt.Client(
            callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
            client_id=settings.client_id,
        )
        client.enable_logger(self._logger)

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
            self._logger.debug("MQTT connected, subscribing topic=%s", settings.subscription)
            c.subscribe(settings.subscription, qos=0)

        def on_message(_c: mqtt.Client, _userdata: Any, msg: mqtt.MQTTMessage) -> None:
            try:
                event = decode_packet_message(msg.topic, msg.payload)
            except PacketDecodeError:
                self._logger.debug("MQTT packet decode failure topic=%s", msg.topic, exc_info=True)
                return
            callback = self._on_event
            if callback is not None:
                loop.call_soon_threadsafe(callback, event)

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

        client.connect(settings.host, settings.port, keepalive=settings.keepalive)
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
        self._on_event = None

        if client is None:
            return
        try:
            if was_running:
                self._logger.debug("MQTT disconnect requested")
                client.disconnect()
        finally:
            client.loop_stop()
            self._logger.debug("MQTT network loop stopped")
