"""Custom exception hierarchy for liftsync."""

from __future__ import annotations


class LiftError(Exception):
    """Base exception for all liftsync errors."""


class LiftConfigError(LiftError):
    """Invalid or missing configuration."""


class NotConnectedError(LiftError):
    """A command was attempted while the pub/sub connection is unusable.

    Always recoverable: the caller should tell the user and try again once
    the connection state reports ``CONNECTED``.  Never retried automatically.
    """


class MalformedSnapshotError(LiftError):
    """An inbound fleet snapshot could not be parsed or validated.

    The ingestor catches this, logs it and drops the message.  It is part of
    the public hierarchy so callers using :func:`parse_snapshot` directly can
    handle it.
    """


class LiftTransportError(LiftError):
    """Socket, broker or HTTP-level failure."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class CommandFailedError(LiftError):
    """A publish or mode-control call failed after it was accepted for sending.

    No automatic retry and no rollback of optimistic local state.
    """

    def __init__(
        self,
        message: str,
        *,
        command: str = "",
        unit_id: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.command = command
        self.unit_id = unit_id
        self.endpoint = endpoint
        super().__init__(message)
