from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field

import pytest

from liftsync.connection import ConnectionManager, ConnectionState
from liftsync.exceptions import LiftTransportError

TOPIC = "topic/elevators"


@dataclass
class FakePubSub:
    fail_opens: int = 0
    open_gate: asyncio.Event | None = None
    close_gate: asyncio.Event | None = None
    opens: int = 0
    closes: int = 0
    subscriptions: list[str] = field(default_factory=list)
    published: list[tuple[str, bytes]] = field(default_factory=list)
    on_message: Callable[[str, bytes], None] | None = None
    on_lost: Callable[[str], None] | None = None

    async def open(self, *, on_message: Callable[[str, bytes], None], on_lost: Callable[[str], None]) -> None:
        self.opens += 1
        if self.open_gate is not None:
            await self.open_gate.wait()
        if self.fail_opens > 0:
            self.fail_opens -= 1
            raise LiftTransportError("connection refused")
        self.on_message = on_message
        self.on_lost = on_lost

    async def subscribe(self, topic: str) -> None:
        self.subscriptions.append(topic)

    async def publish(self, topic: str, payload: bytes) -> None:
        self.published.append((topic, payload))

    async def close(self) -> None:
        self.closes += 1
        if self.close_gate is not None:
            await self.close_gate.wait()


def _make_manager(
    transport: FakePubSub,
    *,
    reconnect_delay: float = 0.01,
) -> tuple[ConnectionManager, list[ConnectionState], list[bytes]]:
    states: list[ConnectionState] = []
    messages: list[bytes] = []
    manager = ConnectionManager(
        transport,
        topic=TOPIC,
        on_message=messages.append,
        reconnect_delay=reconnect_delay,
        on_state_change=lambda _previous, current: states.append(current),
    )
    return manager, states, messages


async def _wait_for(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
    async def _poll() -> None:
        while not predicate():
            await asyncio.sleep(0.005)

    await asyncio.wait_for(_poll(), timeout)


@pytest.mark.asyncio
async def test_connect_twice_subscribes_once() -> None:
    transport = FakePubSub()
    manager, states, _messages = _make_manager(transport)

    await manager.connect()
    await manager.connect()

    assert manager.state is ConnectionState.CONNECTED
    assert manager.is_usable
    assert transport.opens == 1
    assert transport.subscriptions == [TOPIC]
    assert states == [ConnectionState.CONNECTING, ConnectionState.CONNECTED]
    await manager.disconnect()


@pytest.mark.asyncio
async def test_connect_while_connecting_is_noop() -> None:
    transport = FakePubSub(open_gate=asyncio.Event())
    manager, _states, _messages = _make_manager(transport)

    first = asyncio.create_task(manager.connect())
    await asyncio.sleep(0.01)
    assert manager.state is ConnectionState.CONNECTING
    assert not manager.is_usable

    await manager.connect()
    assert transport.opens == 1

    assert transport.open_gate is not None
    transport.open_gate.set()
    await first

    assert manager.state is ConnectionState.CONNECTED
    assert transport.subscriptions == [TOPIC]
    await manager.disconnect()


@pytest.mark.asyncio
async def test_failed_handshake_retries_until_connected() -> None:
    transport = FakePubSub(fail_opens=2)
    manager, states, _messages = _make_manager(transport)

    await manager.connect()
    assert manager.state is ConnectionState.ERRORED
    assert manager.reconnect_pending

    await _wait_for(lambda: manager.state is ConnectionState.CONNECTED)

    assert transport.opens == 3
    assert transport.subscriptions == [TOPIC]
    assert states == [
        ConnectionState.CONNECTING,
        ConnectionState.ERRORED,
        ConnectionState.CONNECTING,
        ConnectionState.ERRORED,
        ConnectionState.CONNECTING,
        ConnectionState.CONNECTED,
    ]
    await manager.disconnect()


@pytest.mark.asyncio
async def test_connection_loss_triggers_reconnect_and_resubscribe() -> None:
    transport = FakePubSub()
    manager, _states, _messages = _make_manager(transport)
    await manager.connect()

    assert transport.on_lost is not None
    transport.on_lost("socket closed")
    assert manager.state is ConnectionState.ERRORED
    assert not manager.is_usable

    await _wait_for(lambda: manager.state is ConnectionState.CONNECTED)

    assert transport.opens == 2
    assert transport.subscriptions == [TOPIC, TOPIC]
    await manager.disconnect()


@pytest.mark.asyncio
async def test_connect_during_recovery_supersedes_cleanup() -> None:
    transport = FakePubSub()
    manager, _states, _messages = _make_manager(transport)
    await manager.connect()

    transport.close_gate = asyncio.Event()
    assert transport.on_lost is not None
    transport.on_lost("socket closed")
    await asyncio.sleep(0)
    assert transport.closes == 1

    transport.close_gate = None
    await manager.connect()

    assert manager.state is ConnectionState.CONNECTED
    assert [t for t in asyncio.all_tasks() if t is not asyncio.current_task()] == []
    await manager.disconnect()


@pytest.mark.asyncio
async def test_disconnect_cancels_pending_reconnect() -> None:
    transport = FakePubSub(fail_opens=1)
    manager, _states, _messages = _make_manager(transport, reconnect_delay=0.05)
    await manager.connect()
    assert manager.reconnect_pending

    await manager.disconnect()
    await manager.disconnect()

    assert manager.state is ConnectionState.DISCONNECTED
    assert not manager.reconnect_pending
    await asyncio.sleep(0.1)
    assert transport.opens == 1


@pytest.mark.asyncio
async def test_disconnect_during_handshake() -> None:
    transport = FakePubSub(open_gate=asyncio.Event())
    manager, _states, _messages = _make_manager(transport)

    pending = asyncio.create_task(manager.connect())
    await asyncio.sleep(0.01)
    await manager.disconnect()
    await pending

    assert manager.state is ConnectionState.DISCONNECTED
    assert transport.subscriptions == []


@pytest.mark.asyncio
async def test_messages_from_previous_session_are_ignored() -> None:
    transport = FakePubSub()
    manager, _states, messages = _make_manager(transport)
    await manager.connect()
    stale_on_message = transport.on_message
    assert stale_on_message is not None and transport.on_lost is not None

    transport.on_lost("broker restart")
    await _wait_for(lambda: manager.state is ConnectionState.CONNECTED)
    assert transport.on_message is not None

    stale_on_message(TOPIC, b"old")
    transport.on_message("some/other/topic", b"other")
    transport.on_message(TOPIC, b"new")

    assert messages == [b"new"]
    await manager.disconnect()


@pytest.mark.asyncio
async def test_publish_requires_connection() -> None:
    transport = FakePubSub()
    manager, _states, _messages = _make_manager(transport)

    with pytest.raises(LiftTransportError):
        await manager.publish("app/elevator/call", b"{}")

    await manager.connect()
    await manager.publish("app/elevator/call", b"{}")
    assert transport.published == [("app/elevator/call", b"{}")]
    await manager.disconnect()
