"""Data models for liftsync wire payloads."""

from liftsync.models._base import LiftBaseModel, format_timestamp
from liftsync.models.commands import (
    CallRequest,
    CommandKind,
    CommandReceipt,
    ControlAction,
    Direction,
    GotoRequest,
    UnitCommandOutcome,
)
from liftsync.models.unit import DoorState, ElevatorMode, MovementState, Unit

__all__ = [
    "CallRequest",
    "CommandKind",
    "CommandReceipt",
    "ControlAction",
    "Direction",
    "DoorState",
    "ElevatorMode",
    "GotoRequest",
    "LiftBaseModel",
    "MovementState",
    "Unit",
    "UnitCommandOutcome",
    "format_timestamp",
]
