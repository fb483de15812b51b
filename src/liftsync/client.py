"""High-level async client for a remote elevator fleet controller."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

import aiohttp

from liftsync._mqtt import MqttPubSubTransport
from liftsync._transport import ControlTransport, HttpControlTransport, PubSubTransport
from liftsync.config import LiftConfig
from liftsync.connection import ConnectionManager, ConnectionState
from liftsync.dispatcher import CommandDispatcher
from liftsync.exceptions import LiftError
from liftsync.ingestion.snapshot import SnapshotIngestor
from liftsync.models.commands import CommandReceipt, Direction, UnitCommandOutcome
from liftsync.models.unit import Unit
from liftsync.state.events import EventBus, EventListener, FleetEvent, FleetEventType
from liftsync.state.requests import PendingRequests
from liftsync.state.store import FleetStore

_logger = logging.getLogger(__name__)


class LiftClient:
    """Async client that mirrors the fleet state and sends commands.

    Usage::

        async with LiftClient(config) as client:
            client.on_event(play_sound)
            await client.connect()
            await client.call_elevator(5, "UP")

    The store and pending-request set are read-only for callers; all writes
    flow through ingested snapshots and the command methods.
    """

    def __init__(
        self,
        config: LiftConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        pubsub: PubSubTransport | None = None,
        control: ControlTransport | None = None,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._control: ControlTransport | None = control
        self._events = EventBus()
        self._store = FleetStore()
        self._requests = PendingRequests()
        self._ingestor = SnapshotIngestor(
            self._store,
            self._requests,
            self._events.emit,
            floor_range=config.floor_range,
        )
        self._connection = ConnectionManager(
            pubsub if pubsub is not None else MqttPubSubTransport(config, logger=_logger),
            topic=config.fleet_topic,
            on_message=self._on_snapshot,
            reconnect_delay=config.reconnect_delay,
            on_state_change=self._on_connection_change,
        )
        self._dispatcher: CommandDispatcher | None = None

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> LiftClient:
        if self._control is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._control = HttpControlTransport(self._config, self._http_session)
        self._dispatcher = CommandDispatcher(
            config=self._config,
            connection=self._connection,
            control=self._control,
            store=self._store,
            requests=self._requests,
            emit=self._events.emit,
        )
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self._connection.disconnect()
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        self._dispatcher = None

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def config(self) -> LiftConfig:
        return self._config

    @property
    def store(self) -> FleetStore:
        return self._store

    @property
    def pending_requests(self) -> PendingRequests:
        return self._requests

    @property
    def connection_state(self) -> ConnectionState:
        return self._connection.state

    @property
    def connected(self) -> bool:
        return self._connection.is_usable

    def get_snapshot(self) -> tuple[Unit, ...]:
        return self._store.get_snapshot()

    def on_event(self, listener: EventListener) -> Callable[[], None]:
        """Subscribe to side-effect events.  Returns an unsubscribe callable."""
        return self._events.subscribe(listener)

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """Connect to the pub/sub channel.

        Returns once the first attempt has an outcome.  Failures are not
        raised; check :attr:`connection_state` and listen for
        ``connection-changed`` events.  Reconnection is automatic.
        """
        self._require_dispatcher()
        await self._connection.connect()

    async def disconnect(self) -> None:
        await self._connection.disconnect()

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def call_elevator(self, target_floor: int, direction: Direction | str) -> CommandReceipt:
        return await self._require_dispatcher().call_elevator(target_floor, direction)

    async def send_to_floor(self, unit_id: int, target_floor: int) -> CommandReceipt:
        return await self._require_dispatcher().send_to_floor(unit_id, target_floor)

    async def trigger_emergency(self, unit_id: int) -> CommandReceipt:
        return await self._require_dispatcher().trigger_emergency(unit_id)

    async def clear_emergency(self, unit_id: int) -> CommandReceipt:
        return await self._require_dispatcher().clear_emergency(unit_id)

    async def set_maintenance(self, unit_id: int, enabled: bool) -> CommandReceipt:
        return await self._require_dispatcher().set_maintenance(unit_id, enabled)

    async def trigger_fleet_emergency(self) -> list[UnitCommandOutcome]:
        return await self._require_dispatcher().trigger_fleet_emergency()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_dispatcher(self) -> CommandDispatcher:
        if self._dispatcher is None:
            raise LiftError("Client not initialized. Use 'async with LiftClient(...) as client:'")
        return self._dispatcher

    def _on_snapshot(self, payload: bytes) -> None:
        self._ingestor.ingest(payload)

    def _on_connection_change(self, previous: ConnectionState, current: ConnectionState) -> None:
        if current == ConnectionState.CONNECTED:
            # New session: indicator state and diff baseline start fresh.
            self._requests.reset()
            self._ingestor.reset()
        self._events.emit(
            FleetEvent(
                type=FleetEventType.CONNECTION_CHANGED,
                data={"state": str(current), "previous": str(previous)},
            )
        )


async def wait_for_state(client: LiftClient, state: ConnectionState, timeout: float) -> bool:
    """Wait until *client* reaches *state*.  Returns ``False`` on timeout."""
    if client.connection_state == state:
        return True
    reached = asyncio.Event()

    def _listener(event: FleetEvent) -> None:
        if event.type == FleetEventType.CONNECTION_CHANGED and event.data.get("state") == state:
            reached.set()

    unsubscribe = client.on_event(_listener)
    try:
        await asyncio.wait_for(reached.wait(), timeout)
        return True
    except TimeoutError:
        return False
    finally:
        unsubscribe()
