"""Outbound command payloads and local command results."""

from __future__ import annotations

import enum
from datetime import datetime

from pydantic import Field, field_serializer

from liftsync._constants import CONTROL_ENDPOINT_PREFIX
from liftsync.models._base import LiftBaseModel, format_timestamp, utcnow

# ------------------------------------------------------------------
# Enums
# ------------------------------------------------------------------


class Direction(enum.StrEnum):
    UP = "UP"
    DOWN = "DOWN"


class CommandKind(enum.StrEnum):
    """Every command the dispatcher can send.

    Used in ``command-sent`` / ``command-failed`` events and receipts.
    """

    CALL = "call"
    GOTO = "goto"
    TRIGGER_EMERGENCY = "trigger-emergency"
    CLEAR_EMERGENCY = "clear-emergency"
    SET_MAINTENANCE = "set-maintenance"


class ControlAction(enum.StrEnum):
    """Mode-control actions; the value is the endpoint path segment."""

    EMERGENCY = "emergency"
    CLEAR_EMERGENCY = "clearEmergency"
    MAINTENANCE = "maintenance"

    @property
    def endpoint(self) -> str:
        return f"{CONTROL_ENDPOINT_PREFIX}{self.value}"


# ------------------------------------------------------------------
# Pub/sub payloads
# ------------------------------------------------------------------


class CallRequest(LiftBaseModel):
    """Hall call: someone on ``target_floor`` wants to travel ``direction``."""

    target_floor: int = Field(ge=0)
    direction: Direction
    timestamp: datetime = Field(default_factory=utcnow)

    @field_serializer("timestamp")
    def _serialize_timestamp(self, value: datetime) -> str:
        return format_timestamp(value)


class GotoRequest(LiftBaseModel):
    """Direct dispatch of one car to a floor."""

    elevator_id: int
    target_floor: int = Field(ge=0)
    timestamp: datetime = Field(default_factory=utcnow)

    @field_serializer("timestamp")
    def _serialize_timestamp(self, value: datetime) -> str:
        return format_timestamp(value)


# ------------------------------------------------------------------
# Local results
# ------------------------------------------------------------------


class CommandReceipt(LiftBaseModel):
    """Acknowledgement that a command left the client.

    This is *not* a confirmation that the controller acted on it; that is
    only visible in a later fleet snapshot.
    """

    command: CommandKind
    destination: str
    unit_id: int | None = None
    sent_at: datetime = Field(default_factory=utcnow)


class UnitCommandOutcome(LiftBaseModel):
    """Per-unit result of a fleet-wide action."""

    unit_id: int
    success: bool
    error: str | None = None
