"""Elevator unit model.

A :class:`Unit` is one physical car as reported by the remote controller.
Every field is server-authoritative.
"""

from __future__ import annotations

import enum

from pydantic import Field, StrictInt

from liftsync.models._base import LiftBaseModel

# ------------------------------------------------------------------
# Enums
# ------------------------------------------------------------------


class MovementState(enum.StrEnum):
    IDLE = "IDLE"
    MOVING_UP = "MOVING_UP"
    MOVING_DOWN = "MOVING_DOWN"


class DoorState(enum.StrEnum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"


class ElevatorMode(enum.StrEnum):
    """Operating mode.

    Changed out-of-band via the mode-control endpoints; the client only
    learns about a change from a later snapshot.
    """

    NORMAL = "NORMAL"
    MAINTENANCE = "MAINTENANCE"
    EMERGENCY = "EMERGENCY"


# ------------------------------------------------------------------
# Unit
# ------------------------------------------------------------------


class Unit(LiftBaseModel):
    """One elevator car."""

    elevator_id: StrictInt
    current_floor: StrictInt = Field(ge=0)
    movement_state: MovementState
    door_state: DoorState
    mode: ElevatorMode
    capacity: StrictInt = Field(ge=0)

    @property
    def is_idle(self) -> bool:
        return self.movement_state == MovementState.IDLE

    @property
    def in_emergency(self) -> bool:
        return self.mode == ElevatorMode.EMERGENCY
