"""Pub/sub connection lifecycle.

Owns:
- opening the transport and subscribing to the fleet topic
- the connection state machine
- unbounded reconnection with a fixed delay
"""

from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import Callable
from enum import StrEnum

from liftsync._transport import PubSubTransport
from liftsync.exceptions import LiftTransportError

_logger = logging.getLogger(__name__)


class ConnectionState(StrEnum):
    DISCONNECTED = "DISCONNECTED"
    CONNECTING = "CONNECTING"
    CONNECTED = "CONNECTED"
    ERRORED = "ERRORED"


StateListener = Callable[[ConnectionState, ConnectionState], None]


class ConnectionManager:
    """Keeps one subscription to the fleet topic alive.

    Transport failures never propagate out of this class: they demote the
    state to ``ERRORED`` and schedule another attempt after
    ``reconnect_delay`` seconds, forever, until :meth:`disconnect`.

    Callbacks from a transport session that has since been replaced are
    ignored; ``_generation`` identifies the current session.
    """

    def __init__(
        self,
        transport: PubSubTransport,
        *,
        topic: str,
        on_message: Callable[[bytes], None],
        reconnect_delay: float = 5.0,
        on_state_change: StateListener | None = None,
    ) -> None:
        self._transport = transport
        self._topic = topic
        self._on_message_cb = on_message
        self._reconnect_delay = reconnect_delay
        self._on_state_change = on_state_change
        self._state = ConnectionState.DISCONNECTED
        self._generation = 0
        self._task: asyncio.Task[None] | None = None
        self._reconnect_handle: asyncio.TimerHandle | None = None

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_usable(self) -> bool:
        """Whether commands can be sent right now."""
        return self._state == ConnectionState.CONNECTED

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_handle is not None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """Start a connection attempt and wait for its first outcome.

        A no-op while already connecting or connected.  When a reconnect is
        pending, it is brought forward.
        """
        if self._state in (ConnectionState.CONNECTING, ConnectionState.CONNECTED):
            return
        self._cancel_reconnect()
        task = self._start_attempt()
        await asyncio.wait({task})

    async def disconnect(self) -> None:
        """Release the transport and any pending reconnect.  Idempotent."""
        self._generation += 1
        self._cancel_reconnect()

        task = self._task
        self._task = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
            await asyncio.wait({task})

        await self._release()
        self._set_state(ConnectionState.DISCONNECTED)

    async def publish(self, topic: str, payload: bytes) -> None:
        if not self.is_usable:
            raise LiftTransportError("Pub/sub connection is not established", endpoint=topic)
        await self._transport.publish(topic, payload)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _start_attempt(self) -> asyncio.Task[None]:
        self._reconnect_handle = None
        previous = self._task
        if previous is not None and not previous.done() and previous is not asyncio.current_task():
            previous.cancel()
        self._generation += 1
        self._set_state(ConnectionState.CONNECTING)
        task = asyncio.get_running_loop().create_task(self._attempt(self._generation))
        self._task = task
        return task

    def _on_reconnect_timer(self) -> None:
        self._reconnect_handle = None
        if self._state != ConnectionState.ERRORED:
            return
        _logger.info("Reconnecting to pub/sub transport")
        self._start_attempt()

    async def _attempt(self, generation: int) -> None:
        try:
            await self._transport.open(
                on_message=functools.partial(self._handle_message, generation),
                on_lost=functools.partial(self._handle_lost, generation),
            )
            if generation != self._generation:
                return
            await self._transport.subscribe(self._topic)
        except Exception as exc:
            if generation != self._generation:
                return
            _logger.warning(
                "Pub/sub connection attempt failed: %s",
                exc,
                exc_info=not isinstance(exc, LiftTransportError),
            )
            await self._release()
            if generation != self._generation:
                return
            self._set_state(ConnectionState.ERRORED)
            self._schedule_reconnect()
            return

        if generation != self._generation:
            return
        _logger.debug("Subscribed to fleet topic=%s", self._topic)
        self._set_state(ConnectionState.CONNECTED)

    async def _recover(self, generation: int) -> None:
        await self._release()
        if generation == self._generation and self._state == ConnectionState.ERRORED:
            self._schedule_reconnect()

    def _handle_message(self, generation: int, topic: str, payload: bytes) -> None:
        if generation != self._generation or topic != self._topic:
            return
        self._on_message_cb(payload)

    def _handle_lost(self, generation: int, reason: str) -> None:
        if generation != self._generation or self._state != ConnectionState.CONNECTED:
            return
        _logger.warning("Pub/sub connection lost: %s", reason)
        self._generation += 1
        self._set_state(ConnectionState.ERRORED)
        self._task = asyncio.get_running_loop().create_task(self._recover(self._generation))

    def _schedule_reconnect(self) -> None:
        self._cancel_reconnect()
        _logger.info("Next reconnect attempt in %.1fs", self._reconnect_delay)
        loop = asyncio.get_running_loop()
        self._reconnect_handle = loop.call_later(self._reconnect_delay, self._on_reconnect_timer)

    def _cancel_reconnect(self) -> None:
        handle = self._reconnect_handle
        self._reconnect_handle = None
        if handle is not None:
            handle.cancel()

    async def _release(self) -> None:
        try:
            await self._transport.close()
        except Exception:
            _logger.debug("Pub/sub transport close failed", exc_info=True)

    def _set_state(self, state: ConnectionState) -> None:
        previous = self._state
        if previous == state:
            return
        self._state = state
        _logger.info("Connection state %s -> %s", previous, state)
        if self._on_state_change is not None:
            try:
                self._on_state_change(previous, state)
            except Exception:
                _logger.debug("Connection state listener failed", exc_info=True)
