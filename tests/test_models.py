from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from liftsync.models import (
    CallRequest,
    ControlAction,
    Direction,
    DoorState,
    ElevatorMode,
    GotoRequest,
    MovementState,
    Unit,
    format_timestamp,
)


def test_unit_parses_camel_case_payload() -> None:
    unit = Unit.model_validate(
        {
            "elevatorId": 2,
            "currentFloor": 7,
            "movementState": "MOVING_DOWN",
            "doorState": "CLOSED",
            "mode": "MAINTENANCE",
            "capacity": 10,
            "somethingNew": True,
        }
    )

    assert unit.elevator_id == 2
    assert unit.current_floor == 7
    assert unit.movement_state is MovementState.MOVING_DOWN
    assert unit.door_state is DoorState.CLOSED
    assert unit.mode is ElevatorMode.MAINTENANCE
    assert unit.capacity == 10
    assert not unit.is_idle


def test_unit_rejects_unknown_movement_state() -> None:
    with pytest.raises(ValidationError):
        Unit.model_validate(
            {
                "elevatorId": 1,
                "currentFloor": 0,
                "movementState": "TELEPORTING",
                "doorState": "OPEN",
                "mode": "NORMAL",
                "capacity": 8,
            }
        )


def test_unit_rejects_negative_floor() -> None:
    with pytest.raises(ValidationError):
        Unit(elevator_id=1, current_floor=-1, movement_state="IDLE", door_state="OPEN", mode="NORMAL", capacity=8)


def test_unit_is_frozen() -> None:
    unit = Unit(elevator_id=1, current_floor=0, movement_state="IDLE", door_state="OPEN", mode="NORMAL", capacity=8)
    with pytest.raises(ValidationError):
        unit.current_floor = 3  # type: ignore[misc]


def test_call_request_wire_shape() -> None:
    request = CallRequest(
        target_floor=5,
        direction=Direction.UP,
        timestamp=datetime(2026, 1, 2, 3, 4, 5, 678000, tzinfo=UTC),
    )

    assert request.to_wire() == {
        "targetFloor": 5,
        "direction": "UP",
        "timestamp": "2026-01-02T03:04:05.678Z",
    }


def test_goto_request_wire_shape() -> None:
    request = GotoRequest(
        elevator_id=2,
        target_floor=9,
        timestamp=datetime(2026, 1, 2, 3, 4, 5, tzinfo=UTC),
    )

    assert request.to_wire() == {
        "elevatorId": 2,
        "targetFloor": 9,
        "timestamp": "2026-01-02T03:04:05.000Z",
    }


def test_format_timestamp_converts_to_utc() -> None:
    cet = timezone(timedelta(hours=1))
    assert format_timestamp(datetime(2026, 1, 1, 13, 0, tzinfo=cet)) == "2026-01-01T12:00:00.000Z"
    # Naive values are treated as UTC.
    assert format_timestamp(datetime(2026, 1, 1, 12, 0)) == "2026-01-01T12:00:00.000Z"


def test_control_actions_map_to_endpoints() -> None:
    assert [action.endpoint for action in ControlAction] == [
        "/api/elevator/emergency",
        "/api/elevator/clearEmergency",
        "/api/elevator/maintenance",
    ]
