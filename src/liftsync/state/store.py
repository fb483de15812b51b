"""Fleet-state store.

The stored snapshot is an immutable tuple that is swapped in a single
assignment, so a reader always sees either the whole previous snapshot or
the whole new one.  Only the ingestor calls :meth:`FleetStore.replace`.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable

from liftsync.models.unit import Unit

_logger = logging.getLogger(__name__)

SnapshotListener = Callable[[tuple[Unit, ...]], None]


class FleetStore:
    """In-memory store for the latest fleet snapshot."""

    def __init__(self) -> None:
        self._units: tuple[Unit, ...] = ()
        self._version = 0
        self._listeners: list[SnapshotListener] = []

    @property
    def version(self) -> int:
        """Number of snapshots applied so far."""
        return self._version

    def get_snapshot(self) -> tuple[Unit, ...]:
        return self._units

    def get_unit(self, unit_id: int) -> Unit | None:
        for unit in self._units:
            if unit.elevator_id == unit_id:
                return unit
        return None

    def unit_ids(self) -> list[int]:
        return [unit.elevator_id for unit in self._units]

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        """Register *listener* for every replaced snapshot."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def replace(self, units: Iterable[Unit]) -> tuple[Unit, ...]:
        """Swap in a new snapshot wholesale and notify listeners."""
        snapshot = tuple(units)
        self._units = snapshot
        self._version += 1
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                _logger.debug("Snapshot listener failed", exc_info=True)
        return snapshot
