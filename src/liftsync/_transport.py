"""Transport interfaces and the HTTP control transport."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Protocol

import aiohttp

from liftsync._constants import USER_AGENT
from liftsync.config import LiftConfig
from liftsync.exceptions import LiftTransportError

_logger = logging.getLogger(__name__)

MessageHandler = Callable[[str, bytes], None]
LostHandler = Callable[[str], None]


class PubSubTransport(Protocol):
    """Structural interface for the publish/subscribe channel.

    ``open`` covers both the socket connect and the session handshake and
    raises :class:`LiftTransportError` if either fails.  After a successful
    ``open``, *on_message* and *on_lost* are invoked on the event loop
    thread; *on_lost* fires at most once per session.
    """

    async def open(self, *, on_message: MessageHandler, on_lost: LostHandler) -> None:
        ...

    async def subscribe(self, topic: str) -> None:
        ...

    async def publish(self, topic: str, payload: bytes) -> None:
        ...

    async def close(self) -> None:
        ...


class ControlTransport(Protocol):
    """Structural interface for request/response mode-control calls.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production implementation (`HttpControlTransport`) concrete.
    """

    async def post_action(self, endpoint: str, params: Mapping[str, str]) -> int:
        ...


class HttpControlTransport:
    """POSTs parameterized actions to the controller's HTTP API."""

    def __init__(self, config: LiftConfig, http_session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = http_session

    async def post_action(self, endpoint: str, params: Mapping[str, str]) -> int:
        """Send ``POST <base_url><endpoint>?<params>`` and return the status.

        Any non-2xx status or network failure raises
        :class:`LiftTransportError`.  Response bodies carry no meaning.
        """
        url = f"{self._config.base_url}{endpoint}"
        headers = {"user-agent": USER_AGENT}

        _logger.debug("POST %s params=%s", url, dict(params))

        try:
            async with self._http.post(url, params=dict(params), headers=headers) as resp:
                if not 200 <= resp.status < 300:
                    text = await resp.text()
                    raise LiftTransportError(
                        f"HTTP {resp.status} from {endpoint}: {text[:200]}",
                        status_code=resp.status,
                        endpoint=endpoint,
                    )
                return resp.status
        except LiftTransportError:
            raise
        except aiohttp.ClientError as exc:
            raise LiftTransportError(
                f"Request to {endpoint} failed: {exc}",
                endpoint=endpoint,
            ) from exc
