"""Command dispatch.

Translates user intent into outbound protocol messages.  Floor calls and
direct dispatch are published on the pub/sub channel; emergency and
maintenance toggles go through the request/response control API.

Every operation first checks that the connection is usable and raises
:class:`NotConnectedError` without any I/O or state change otherwise.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from liftsync._api import control as _control_api
from liftsync._transport import ControlTransport
from liftsync.config import LiftConfig
from liftsync.connection import ConnectionManager
from liftsync.exceptions import CommandFailedError, LiftTransportError, NotConnectedError
from liftsync.models.commands import (
    CallRequest,
    CommandKind,
    CommandReceipt,
    Direction,
    GotoRequest,
    UnitCommandOutcome,
)
from liftsync.state.events import FleetEvent, FleetEventType
from liftsync.state.requests import PendingRequests
from liftsync.state.store import FleetStore

_logger = logging.getLogger(__name__)


class CommandDispatcher:
    def __init__(
        self,
        *,
        config: LiftConfig,
        connection: ConnectionManager,
        control: ControlTransport,
        store: FleetStore,
        requests: PendingRequests,
        emit: Callable[[FleetEvent], None],
    ) -> None:
        self._config = config
        self._connection = connection
        self._control = control
        self._store = store
        self._requests = requests
        self._emit = emit

    # ------------------------------------------------------------------
    # Guards
    # ------------------------------------------------------------------

    def _require_connected(self, command: CommandKind) -> None:
        if not self._connection.is_usable:
            _logger.info("Rejected %s: not connected (state=%s)", command, self._connection.state)
            raise NotConnectedError(f"Cannot send {command}: controller not connected")

    def _validate_floor(self, floor: int) -> None:
        if floor not in self._config.floor_range:
            raise ValueError(f"floor must be between 0 and {self._config.total_floors}, got {floor}")

    def _validate_unit(self, unit_id: int) -> None:
        if self._store.get_unit(unit_id) is None:
            raise ValueError(f"unknown elevator id {unit_id}")

    # ------------------------------------------------------------------
    # Pub/sub commands
    # ------------------------------------------------------------------

    async def call_elevator(self, target_floor: int, direction: Direction | str) -> CommandReceipt:
        """Place a hall call on *target_floor*.

        The floor is marked pending before the publish so the call indicator
        lights immediately.  It stays pending if the publish fails.
        """
        self._require_connected(CommandKind.CALL)
        self._validate_floor(target_floor)
        direction = Direction(direction)
        if direction == Direction.UP and target_floor == self._config.total_floors:
            raise ValueError("cannot call UP from the top floor")
        if direction == Direction.DOWN and target_floor == 0:
            raise ValueError("cannot call DOWN from the ground floor")

        self._requests.add_request(target_floor)
        request = CallRequest(target_floor=target_floor, direction=direction)
        receipt = await self._publish(CommandKind.CALL, self._config.call_topic, request.to_wire())
        _logger.info("Elevator called to floor %s going %s", target_floor, direction)
        return receipt

    async def send_to_floor(self, unit_id: int, target_floor: int) -> CommandReceipt:
        """Dispatch one unit directly.  Does not light the call indicator."""
        self._require_connected(CommandKind.GOTO)
        self._validate_unit(unit_id)
        self._validate_floor(target_floor)

        request = GotoRequest(elevator_id=unit_id, target_floor=target_floor)
        receipt = await self._publish(
            CommandKind.GOTO,
            self._config.goto_topic,
            request.to_wire(),
            unit_id=unit_id,
        )
        _logger.info("Elevator %s sent to floor %s", unit_id, target_floor)
        return receipt

    async def _publish(
        self,
        command: CommandKind,
        topic: str,
        body: dict[str, Any],
        *,
        unit_id: int | None = None,
    ) -> CommandReceipt:
        payload = json.dumps(body, separators=(",", ":")).encode("utf-8")
        try:
            await self._connection.publish(topic, payload)
        except LiftTransportError as exc:
            _logger.error("Failed to send %s to %s: %s", command, topic, exc)
            self._emit_failed(command, exc, unit_id=unit_id, destination=topic)
            raise CommandFailedError(
                f"{command} failed: {exc}",
                command=command,
                unit_id=unit_id,
                endpoint=topic,
            ) from exc
        return self._sent(command, topic, unit_id=unit_id, data=body)

    # ------------------------------------------------------------------
    # Mode control
    # ------------------------------------------------------------------

    async def trigger_emergency(self, unit_id: int) -> CommandReceipt:
        self._require_connected(CommandKind.TRIGGER_EMERGENCY)
        self._validate_unit(unit_id)
        receipt = await self._trigger_emergency(unit_id)
        self._emit(FleetEvent(type=FleetEventType.ALARM, unit_id=unit_id))
        return receipt

    async def clear_emergency(self, unit_id: int) -> CommandReceipt:
        self._require_connected(CommandKind.CLEAR_EMERGENCY)
        self._validate_unit(unit_id)
        receipt = await self._control_call(
            CommandKind.CLEAR_EMERGENCY,
            unit_id,
            lambda: _control_api.clear_emergency(self._control, unit_id),
        )
        _logger.info("Emergency cleared for elevator %s", unit_id)
        return receipt

    async def set_maintenance(self, unit_id: int, enabled: bool) -> CommandReceipt:
        self._require_connected(CommandKind.SET_MAINTENANCE)
        self._validate_unit(unit_id)
        receipt = await self._control_call(
            CommandKind.SET_MAINTENANCE,
            unit_id,
            lambda: _control_api.set_maintenance(self._control, unit_id, enabled=enabled),
            data={"enabled": enabled},
        )
        _logger.info("Elevator %s maintenance: %s", unit_id, "ON" if enabled else "OFF")
        return receipt

    async def trigger_fleet_emergency(self) -> list[UnitCommandOutcome]:
        """Trigger emergency on every known unit.

        Calls run concurrently and independently.  The result holds one
        outcome per unit; a failure on one unit does not affect the others.
        """
        self._require_connected(CommandKind.TRIGGER_EMERGENCY)
        unit_ids = self._store.unit_ids()
        results = await asyncio.gather(
            *(self._trigger_emergency(unit_id) for unit_id in unit_ids),
            return_exceptions=True,
        )

        outcomes: list[UnitCommandOutcome] = []
        for unit_id, result in zip(unit_ids, results):
            if isinstance(result, CommandFailedError):
                outcomes.append(UnitCommandOutcome(unit_id=unit_id, success=False, error=str(result)))
            elif isinstance(result, BaseException):
                raise result
            else:
                outcomes.append(UnitCommandOutcome(unit_id=unit_id, success=True))

        if any(outcome.success for outcome in outcomes):
            self._emit(FleetEvent(type=FleetEventType.ALARM, data={"fleet": True}))
        _logger.warning(
            "Fleet emergency activated: %d/%d units accepted",
            sum(1 for outcome in outcomes if outcome.success),
            len(outcomes),
        )
        return outcomes

    async def _trigger_emergency(self, unit_id: int) -> CommandReceipt:
        receipt = await self._control_call(
            CommandKind.TRIGGER_EMERGENCY,
            unit_id,
            lambda: _control_api.trigger_emergency(self._control, unit_id),
        )
        _logger.warning("Emergency triggered for elevator %s", unit_id)
        return receipt

    async def _control_call(
        self,
        command: CommandKind,
        unit_id: int,
        fn: Callable[[], Awaitable[str]],
        *,
        data: dict[str, Any] | None = None,
    ) -> CommandReceipt:
        try:
            endpoint = await fn()
        except LiftTransportError as exc:
            _logger.error("%s failed for elevator %s: %s", command, unit_id, exc)
            self._emit_failed(command, exc, unit_id=unit_id, destination=exc.endpoint)
            raise CommandFailedError(
                f"{command} failed for elevator {unit_id}: {exc}",
                command=command,
                unit_id=unit_id,
                endpoint=exc.endpoint,
            ) from exc
        return self._sent(command, endpoint, unit_id=unit_id, data=data or {})

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def _sent(
        self,
        command: CommandKind,
        destination: str,
        *,
        unit_id: int | None,
        data: dict[str, Any],
    ) -> CommandReceipt:
        receipt = CommandReceipt(command=command, destination=destination, unit_id=unit_id)
        self._emit(
            FleetEvent(
                type=FleetEventType.COMMAND_SENT,
                unit_id=unit_id,
                data={"command": str(command), "destination": destination, **data},
            )
        )
        return receipt

    def _emit_failed(
        self,
        command: CommandKind,
        exc: Exception,
        *,
        unit_id: int | None,
        destination: str,
    ) -> None:
        self._emit(
            FleetEvent(
                type=FleetEventType.COMMAND_FAILED,
                unit_id=unit_id,
                data={"command": str(command), "destination": destination, "error": str(exc)},
            )
        )
