"""Side-effect events emitted by the core.

Renderers and sound emitters subscribe to these.  They are notifications
only; listeners must never write back into the store.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

_logger = logging.getLogger(__name__)


class FleetEventType(StrEnum):
    ARRIVED = "arrived"
    DOOR_OPENED = "door-opened"
    DOOR_CLOSED = "door-closed"
    COMMAND_SENT = "command-sent"
    COMMAND_FAILED = "command-failed"
    CONNECTION_CHANGED = "connection-changed"
    ALARM = "alarm"


class FleetEvent(BaseModel):
    """A derived notification."""

    model_config = ConfigDict(frozen=True)

    type: FleetEventType
    unit_id: int | None = Field(default=None, description="Elevator the event refers to, if any")
    observed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    data: dict[str, Any] = Field(default_factory=dict)

    @field_validator("observed_at")
    @classmethod
    def _ensure_tz_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value


EventListener = Callable[[FleetEvent], None]


class EventBus:
    """Synchronous fan-out of :class:`FleetEvent` to listeners.

    A failing listener is logged and skipped; it never interrupts the
    emitter or the remaining listeners.
    """

    def __init__(self) -> None:
        self._listeners: list[EventListener] = []

    def subscribe(self, listener: EventListener) -> Callable[[], None]:
        """Register *listener*; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def emit(self, event: FleetEvent) -> None:
        _logger.debug("Emitting event type=%s unit_id=%s", event.type, event.unit_id)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                _logger.debug("Event listener failed for %s", event.type, exc_info=True)
