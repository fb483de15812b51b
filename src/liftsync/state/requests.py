"""Pending-request tracker.

Floors with an outstanding hall call, used to light call indicators.  The
set lives in memory only and starts empty every session; calls made before
a reconnect are forgotten here even if the controller still serves them.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

_logger = logging.getLogger(__name__)

RequestsListener = Callable[[frozenset[int]], None]


class PendingRequests:
    def __init__(self) -> None:
        self._floors: set[int] = set()
        self._listeners: list[RequestsListener] = []

    @property
    def floors(self) -> frozenset[int]:
        return frozenset(self._floors)

    def __contains__(self, floor: object) -> bool:
        return floor in self._floors

    def __len__(self) -> int:
        return len(self._floors)

    def subscribe(self, listener: RequestsListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def add_request(self, floor: int) -> bool:
        """Mark *floor* as requested.  Returns ``False`` if it already was."""
        if floor in self._floors:
            return False
        self._floors.add(floor)
        _logger.debug("Pending request added floor=%s", floor)
        self._notify()
        return True

    def clear(self, floor: int) -> bool:
        """Forget *floor*.  Returns ``False`` if it was not pending."""
        if floor not in self._floors:
            return False
        self._floors.discard(floor)
        _logger.debug("Pending request cleared floor=%s", floor)
        self._notify()
        return True

    def reset(self) -> None:
        if not self._floors:
            return
        self._floors.clear()
        self._notify()

    def _notify(self) -> None:
        floors = self.floors
        for listener in list(self._listeners):
            try:
                listener(floors)
            except Exception:
                _logger.debug("Pending-request listener failed", exc_info=True)
