"""liftsync - Async Python client for a remote elevator fleet controller."""

from importlib.metadata import PackageNotFoundError, version

from liftsync.client import LiftClient, wait_for_state
from liftsync.config import BrokerAddress, LiftConfig, parse_broker_url
from liftsync.connection import ConnectionManager, ConnectionState
from liftsync.exceptions import (
    CommandFailedError,
    LiftConfigError,
    LiftError,
    LiftTransportError,
    MalformedSnapshotError,
    NotConnectedError,
)
from liftsync.ingestion import SnapshotIngestor, diff_units, parse_snapshot
from liftsync.models import (
    CallRequest,
    CommandKind,
    CommandReceipt,
    ControlAction,
    Direction,
    DoorState,
    ElevatorMode,
    GotoRequest,
    MovementState,
    Unit,
    UnitCommandOutcome,
)
from liftsync.state.events import EventBus, FleetEvent, FleetEventType
from liftsync.state.requests import PendingRequests
from liftsync.state.store import FleetStore

try:
    __version__ = version("liftsync")
except PackageNotFoundError:
    __version__ = "0+local"

__all__ = [
    "__version__",
    "BrokerAddress",
    "CallRequest",
    "CommandFailedError",
    "CommandKind",
    "CommandReceipt",
    "ControlAction",
    "ConnectionManager",
    "ConnectionState",
    "Direction",
    "DoorState",
    "ElevatorMode",
    "EventBus",
    "FleetEvent",
    "FleetEventType",
    "FleetStore",
    "GotoRequest",
    "LiftClient",
    "LiftConfig",
    "LiftConfigError",
    "LiftError",
    "LiftTransportError",
    "MalformedSnapshotError",
    "MovementState",
    "NotConnectedError",
    "PendingRequests",
    "SnapshotIngestor",
    "Unit",
    "UnitCommandOutcome",
    "diff_units",
    "parse_broker_url",
    "parse_snapshot",
    "wait_for_state",
]
