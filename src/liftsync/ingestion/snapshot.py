"""Fleet snapshot parsing, diffing and application.

Snapshots are index-aligned: position *i* refers to the same car in every
message.  Diffing relies on that alignment rather than matching by id.
When two snapshots differ in length, only the overlapping range is
diffed; whether the controller keeps ordering stable across unit
additions or removals is unconfirmed.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Sequence

from pydantic import TypeAdapter, ValidationError

from liftsync.exceptions import MalformedSnapshotError
from liftsync.models.unit import DoorState, MovementState, Unit
from liftsync.state.events import FleetEvent, FleetEventType
from liftsync.state.requests import PendingRequests
from liftsync.state.store import FleetStore

_logger = logging.getLogger(__name__)

_SNAPSHOT_ADAPTER: TypeAdapter[list[Unit]] = TypeAdapter(list[Unit])


def parse_snapshot(raw: bytes | str, *, floor_range: range | None = None) -> list[Unit]:
    """Parse and validate a fleet snapshot payload.

    Raises :class:`MalformedSnapshotError` when the payload is not a JSON
    array of well-formed units, when a unit reports a floor outside
    *floor_range*, or when an elevator id appears twice.
    """
    try:
        text = raw.decode("utf-8") if isinstance(raw, bytes) else raw
        decoded = json.loads(text)
    except (UnicodeDecodeError, json.JSONDecodeError, RecursionError) as exc:
        raise MalformedSnapshotError(f"Snapshot is not valid JSON: {exc}") from exc

    if not isinstance(decoded, list):
        raise MalformedSnapshotError(f"Snapshot must be a JSON array, got {type(decoded).__name__}")

    try:
        units = _SNAPSHOT_ADAPTER.validate_python(decoded)
    except ValidationError as exc:
        raise MalformedSnapshotError(f"Snapshot failed validation: {exc.error_count()} error(s)") from exc

    seen: set[int] = set()
    for unit in units:
        if unit.elevator_id in seen:
            raise MalformedSnapshotError(f"Duplicate elevatorId {unit.elevator_id} in snapshot")
        seen.add(unit.elevator_id)
        if floor_range is not None and unit.current_floor not in floor_range:
            raise MalformedSnapshotError(
                f"Elevator {unit.elevator_id} reports floor {unit.current_floor} "
                f"outside {floor_range.start}..{floor_range.stop - 1}"
            )
    return units


def diff_units(previous: Sequence[Unit], current: Sequence[Unit]) -> list[FleetEvent]:
    """Derive arrival and door events between two index-aligned snapshots."""
    events: list[FleetEvent] = []
    for old, new in zip(previous, current):
        if old.movement_state != MovementState.IDLE and new.movement_state == MovementState.IDLE:
            events.append(
                FleetEvent(
                    type=FleetEventType.ARRIVED,
                    unit_id=new.elevator_id,
                    data={"floor": new.current_floor},
                )
            )

        if old.door_state != new.door_state:
            if new.door_state == DoorState.OPEN:
                event_type = FleetEventType.DOOR_OPENED
            else:
                event_type = FleetEventType.DOOR_CLOSED
            events.append(
                FleetEvent(
                    type=event_type,
                    unit_id=new.elevator_id,
                    data={"floor": new.current_floor},
                )
            )
    return events


class SnapshotIngestor:
    """Applies inbound snapshots to the store and pending-request set.

    This is the only writer of :class:`FleetStore`.
    """

    def __init__(
        self,
        store: FleetStore,
        requests: PendingRequests,
        emit: Callable[[FleetEvent], None],
        *,
        floor_range: range | None = None,
    ) -> None:
        self._store = store
        self._requests = requests
        self._emit = emit
        self._floor_range = floor_range
        self._has_baseline = False

    def reset(self) -> None:
        """Forget the diff baseline; the next snapshot emits no diff events."""
        self._has_baseline = False

    def ingest(self, raw: bytes | str) -> bool:
        """Apply one raw snapshot message.

        Returns ``True`` when the snapshot was applied and ``False`` when it
        was dropped as malformed.
        """
        try:
            units = parse_snapshot(raw, floor_range=self._floor_range)
        except MalformedSnapshotError as exc:
            _logger.warning("Dropping malformed fleet snapshot: %s", exc)
            return False

        events: list[FleetEvent] = []
        if self._has_baseline:
            events = diff_units(self._store.get_snapshot(), units)

        for unit in units:
            if unit.movement_state == MovementState.IDLE:
                self._requests.clear(unit.current_floor)

        self._store.replace(units)
        self._has_baseline = True
        _logger.debug("Applied fleet snapshot units=%d events=%d", len(units), len(events))

        for event in events:
            self._emit(event)
        return True
