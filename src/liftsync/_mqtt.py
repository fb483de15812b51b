"""paho-mqtt implementation of the pub/sub transport.

paho runs its network loop on a background thread.  Every callback that
touches liftsync state is marshalled onto the asyncio loop with
``call_soon_threadsafe``, so the rest of the library only ever runs on
the loop thread.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any, cast

import paho.mqtt.client as mqtt

from liftsync._transport import LostHandler, MessageHandler
from liftsync.config import BrokerAddress, LiftConfig
from liftsync.exceptions import LiftTransportError

ClientFactory = Callable[[BrokerAddress, str], mqtt.Client]


def build_paho_client(address: BrokerAddress, client_id: str) -> mqtt.Client:
    """Create a paho client for *address*.

    paho's own reconnect loop is disabled; reconnection is owned by
    :class:`liftsync.connection.ConnectionManager`.
    """
    client = mqtt.Client(
        callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
        client_id=client_id,
        protocol=mqtt.MQTTv311,
        transport=address.transport,
        reconnect_on_failure=False,
    )
    if address.transport == "websockets":
        client.ws_set_options(path=address.path)
    if address.tls:
        client.tls_set()
    return client


class MqttPubSubTransport:
    """Threaded paho-mqtt transport that delivers messages onto an asyncio loop."""

    def __init__(
        self,
        config: LiftConfig,
        *,
        client_factory: ClientFactory = build_paho_client,
        logger: logging.Logger | None = None,
    ) -> None:
        self._config = config
        self._client_factory = client_factory
        self._logger = logger or logging.getLogger(__name__)
        self._client: mqtt.Client | None = None

    @property
    def is_open(self) -> bool:
        return self._client is not None

    async def open(self, *, on_message: MessageHandler, on_lost: LostHandler) -> None:
        """Connect to the broker and wait for the CONNACK."""
        await self.close()

        loop = asyncio.get_running_loop()
        address = self._config.broker_address()
        handshake: asyncio.Future[None] = loop.create_future()

        self._logger.debug(
            "MQTT open requested host=%s port=%s transport=%s tls=%s client_id=%s",
            address.host,
            address.port,
            address.transport,
            address.tls,
            self._config.client_id,
        )

        client = self._client_factory(address, self._config.client_id)
        client.enable_logger(self._logger)

        def _settle(exc: Exception | None) -> None:
            if handshake.done():
                return
            if exc is None:
                handshake.set_result(None)
            else:
                handshake.set_exception(exc)

        def _lost(reason: str) -> None:
            if not handshake.done():
                handshake.set_exception(LiftTransportError(f"MQTT connection lost during handshake: {reason}"))
                return
            if self._client is client:
                on_lost(reason)

        def on_connect(
            _c: mqtt.Client,
            _userdata: Any,
            _flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if reason_code.is_failure:
                self._logger.warning("MQTT session refused: %s", reason_code)
                loop.call_soon_threadsafe(_settle, LiftTransportError(f"Broker refused session: {reason_code}"))
                return
            self._logger.debug("MQTT connected reason=%s", reason_code)
            loop.call_soon_threadsafe(_settle, None)

        def _on_message(_c: mqtt.Client, _userdata: Any, msg: mqtt.MQTTMessage) -> None:
            self._logger.debug("Received PUBLISH topic=%s bytes=%d", msg.topic, len(msg.payload))
            loop.call_soon_threadsafe(on_message, msg.topic, msg.payload)

        def on_disconnect(
            c: mqtt.Client,
            _userdata: Any,
            _disconnect_flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if self._client is not c:
                # Requested by close(); nothing to report.
                return
            self._logger.debug("MQTT disconnected: %s", reason_code)
            loop.call_soon_threadsafe(_lost, str(reason_code))

        client.on_connect = on_connect
        client.on_message = _on_message
        client.on_disconnect = on_disconnect

        self._client = client
        try:
            try:
                await loop.run_in_executor(
                    None,
                    lambda: client.connect(address.host, address.port, keepalive=self._config.mqtt_keepalive),
                )
            except (OSError, ValueError) as exc:
                raise LiftTransportError(
                    f"Cannot reach broker {address.host}:{address.port}: {exc}",
                    endpoint=f"{address.host}:{address.port}",
                ) from exc

            client.loop_start()
            self._logger.debug("MQTT network loop started")
            await handshake
        except BaseException:
            await self.close()
            raise

    async def subscribe(self, topic: str) -> None:
        client = self._require_client()
        result, _mid = client.subscribe(topic, qos=0)
        if result != mqtt.MQTT_ERR_SUCCESS:
            raise LiftTransportError(
                f"Subscribe to {topic} failed: {mqtt.error_string(result)}",
                endpoint=topic,
            )
        self._logger.debug("MQTT subscribed topic=%s", topic)

    async def publish(self, topic: str, payload: bytes) -> None:
        client = self._require_client()
        info = client.publish(topic, payload, qos=0)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise LiftTransportError(
                f"Publish to {topic} failed: {mqtt.error_string(info.rc)}",
                endpoint=topic,
            )
        self._logger.debug("MQTT published topic=%s bytes=%d", topic, len(payload))

    async def close(self) -> None:
        """Disconnect and stop the network loop.  Safe to call repeatedly."""
        client = self._client
        self._client = None
        if client is None:
            return
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._shutdown, client)

    def _shutdown(self, client: mqtt.Client) -> None:
        try:
            self._logger.debug("MQTT disconnect requested")
            client.disconnect()
        finally:
            client.loop_stop()
            self._logger.debug("MQTT network loop stopped")

    def _require_client(self) -> mqtt.Client:
        if self._client is None:
            raise LiftTransportError("MQTT transport is not open")
        return self._client
