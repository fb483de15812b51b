from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from types import SimpleNamespace
from typing import Any

import paho.mqtt.client as mqtt
import pytest

from liftsync._mqtt import MqttPubSubTransport
from liftsync.config import BrokerAddress, LiftConfig
from liftsync.exceptions import LiftTransportError


class _ReasonCode:
    def __init__(self, value: int, name: str) -> None:
        self.value = value
        self._name = name

    @property
    def is_failure(self) -> bool:
        return self.value >= 0x80

    def __str__(self) -> str:
        return self._name


@dataclass
class FakePahoClient:
    refuse: bool = False
    unreachable: bool = False
    publish_rc: Any = mqtt.MQTT_ERR_SUCCESS
    connected_to: tuple[str, int, int] | None = None
    subscriptions: list[str] = field(default_factory=list)
    published: list[tuple[str, bytes]] = field(default_factory=list)
    disconnected: bool = False
    loop_stopped: bool = False
    on_connect: Any = None
    on_message: Any = None
    on_disconnect: Any = None

    def enable_logger(self, _logger: Any) -> None:
        return None

    def connect(self, host: str, port: int, keepalive: int = 60) -> None:
        if self.unreachable:
            raise ConnectionRefusedError("connection refused")
        self.connected_to = (host, port, keepalive)

    def loop_start(self) -> None:
        if self.refuse:
            self.on_connect(self, None, None, _ReasonCode(0x87, "Not authorized"), None)
        else:
            self.on_connect(self, None, None, _ReasonCode(0, "Success"), None)

    def loop_stop(self) -> None:
        self.loop_stopped = True

    def disconnect(self) -> None:
        self.disconnected = True

    def subscribe(self, topic: str, qos: int = 0) -> tuple[Any, int]:
        self.subscriptions.append(topic)
        return mqtt.MQTT_ERR_SUCCESS, 1

    def publish(self, topic: str, payload: bytes, qos: int = 0) -> SimpleNamespace:
        if self.publish_rc == mqtt.MQTT_ERR_SUCCESS:
            self.published.append((topic, payload))
        return SimpleNamespace(rc=self.publish_rc)

    # Helpers simulating the network thread.
    def deliver(self, topic: str, payload: bytes) -> None:
        self.on_message(self, None, SimpleNamespace(topic=topic, payload=payload))

    def drop(self) -> None:
        self.on_disconnect(self, None, None, _ReasonCode(0x8D, "Keep alive timeout"), None)


def _make_transport(fake: FakePahoClient) -> tuple[MqttPubSubTransport, list[BrokerAddress]]:
    addresses: list[BrokerAddress] = []

    def _factory(address: BrokerAddress, _client_id: str) -> Any:
        addresses.append(address)
        return fake

    config = LiftConfig(base_url="http://lifts.local", mqtt_keepalive=30)
    return MqttPubSubTransport(config, client_factory=_factory), addresses


@pytest.mark.asyncio
async def test_open_subscribe_publish_and_receive() -> None:
    fake = FakePahoClient()
    transport, addresses = _make_transport(fake)
    messages: list[tuple[str, bytes]] = []
    lost: list[str] = []

    await transport.open(on_message=lambda t, p: messages.append((t, p)), on_lost=lost.append)
    await transport.subscribe("topic/elevators")
    await transport.publish("app/elevator/call", b"{}")
    fake.deliver("topic/elevators", b"[]")
    await asyncio.sleep(0)

    assert addresses[0].host == "lifts.local"
    assert fake.connected_to == ("lifts.local", 1883, 30)
    assert fake.subscriptions == ["topic/elevators"]
    assert fake.published == [("app/elevator/call", b"{}")]
    assert messages == [("topic/elevators", b"[]")]
    assert lost == []
    await transport.close()


@pytest.mark.asyncio
async def test_refused_session_raises_and_releases_client() -> None:
    fake = FakePahoClient(refuse=True)
    transport, _addresses = _make_transport(fake)

    with pytest.raises(LiftTransportError, match="Not authorized"):
        await transport.open(on_message=lambda _t, _p: None, on_lost=lambda _r: None)

    assert not transport.is_open
    assert fake.disconnected
    assert fake.loop_stopped


@pytest.mark.asyncio
async def test_unreachable_broker_raises_transport_error() -> None:
    fake = FakePahoClient(unreachable=True)
    transport, _addresses = _make_transport(fake)

    with pytest.raises(LiftTransportError, match="Cannot reach broker"):
        await transport.open(on_message=lambda _t, _p: None, on_lost=lambda _r: None)

    assert not transport.is_open


@pytest.mark.asyncio
async def test_unexpected_disconnect_reports_lost() -> None:
    fake = FakePahoClient()
    transport, _addresses = _make_transport(fake)
    lost: list[str] = []
    await transport.open(on_message=lambda _t, _p: None, on_lost=lost.append)

    fake.drop()
    await asyncio.sleep(0)

    assert lost == ["Keep alive timeout"]
    await transport.close()


@pytest.mark.asyncio
async def test_requested_close_is_not_reported_as_lost() -> None:
    fake = FakePahoClient()
    transport, _addresses = _make_transport(fake)
    lost: list[str] = []
    await transport.open(on_message=lambda _t, _p: None, on_lost=lost.append)

    await transport.close()
    fake.drop()
    await asyncio.sleep(0)
    await transport.close()

    assert lost == []
    assert fake.disconnected and fake.loop_stopped


@pytest.mark.asyncio
async def test_publish_failure_and_closed_transport() -> None:
    fake = FakePahoClient(publish_rc=mqtt.MQTT_ERR_NO_CONN)
    transport, _addresses = _make_transport(fake)

    with pytest.raises(LiftTransportError):
        await transport.publish("app/elevator/call", b"{}")

    await transport.open(on_message=lambda _t, _p: None, on_lost=lambda _r: None)
    with pytest.raises(LiftTransportError, match="app/elevator/call"):
        await transport.publish("app/elevator/call", b"{}")
    await transport.close()
