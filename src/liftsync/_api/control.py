"""Mode-control endpoints.

Each action is a parameterized POST with no response body semantics
beyond success or failure.  The authoritative mode change only shows up
in a later fleet snapshot.
"""

from __future__ import annotations

from liftsync._transport import ControlTransport
from liftsync.models.commands import ControlAction


async def _post(transport: ControlTransport, action: ControlAction, params: dict[str, str]) -> str:
    endpoint = action.endpoint
    await transport.post_action(endpoint, params)
    return endpoint


def _unit_params(unit_id: int) -> dict[str, str]:
    return {"elevatorId": str(unit_id)}


async def trigger_emergency(transport: ControlTransport, unit_id: int) -> str:
    """Put one unit into emergency mode.  Returns the endpoint called."""
    return await _post(transport, ControlAction.EMERGENCY, _unit_params(unit_id))


async def clear_emergency(transport: ControlTransport, unit_id: int) -> str:
    """Return one unit from emergency to normal operation."""
    return await _post(transport, ControlAction.CLEAR_EMERGENCY, _unit_params(unit_id))


async def set_maintenance(transport: ControlTransport, unit_id: int, *, enabled: bool) -> str:
    """Enable or disable maintenance mode for one unit."""
    params = _unit_params(unit_id)
    params["enable"] = "true" if enabled else "false"
    return await _post(transport, ControlAction.MAINTENANCE, params)
