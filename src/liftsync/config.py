"""Client configuration for liftsync."""

from __future__ import annotations

import dataclasses
import os
import secrets
from typing import Any
from urllib.parse import urlsplit

from liftsync._constants import (
    CALL_TOPIC,
    DEFAULT_BASE_URL,
    FLEET_TOPIC,
    GOTO_TOPIC,
    MQTT_KEEPALIVE_SECONDS,
    MQTT_PORT,
    MQTTS_PORT,
    RECONNECT_DELAY_SECONDS,
    TOTAL_FLOORS,
    WS_PORT,
    WSS_PORT,
)
from liftsync.exceptions import LiftConfigError

_SCHEME_DEFAULTS: dict[str, tuple[int, bool, str]] = {
    # scheme: (default port, tls, paho transport)
    "mqtt": (MQTT_PORT, False, "tcp"),
    "tcp": (MQTT_PORT, False, "tcp"),
    "mqtts": (MQTTS_PORT, True, "tcp"),
    "ssl": (MQTTS_PORT, True, "tcp"),
    "ws": (WS_PORT, False, "websockets"),
    "wss": (WSS_PORT, True, "websockets"),
}


def _default_client_id() -> str:
    return f"liftsync-{secrets.token_hex(4)}"


@dataclasses.dataclass(frozen=True)
class BrokerAddress:
    """Resolved connection details for the MQTT broker."""

    host: str
    port: int
    tls: bool = False
    transport: str = "tcp"
    path: str = "/mqtt"


def parse_broker_url(raw_url: str) -> BrokerAddress:
    """Parse ``mqtt://``, ``mqtts://``, ``ws://`` or ``wss://`` broker URLs.

    Raises :class:`LiftConfigError` for empty values or unknown schemes.
    """
    value = raw_url.strip()
    if not value:
        raise LiftConfigError("Broker URL is empty")
    if "://" not in value:
        value = f"mqtt://{value}"

    parts = urlsplit(value)
    scheme = parts.scheme.lower()
    defaults = _SCHEME_DEFAULTS.get(scheme)
    if defaults is None:
        raise LiftConfigError(f"Unsupported broker scheme: {parts.scheme!r}")
    if not parts.hostname:
        raise LiftConfigError(f"Broker URL has no host: {raw_url!r}")

    default_port, tls, transport = defaults
    try:
        port = parts.port or default_port
    except ValueError as exc:
        raise LiftConfigError(f"Invalid broker port in {raw_url!r}") from exc

    return BrokerAddress(
        host=parts.hostname,
        port=port,
        tls=tls,
        transport=transport,
        path=parts.path or "/mqtt",
    )


@dataclasses.dataclass(frozen=True)
class LiftConfig:
    """Client configuration.

    Parameters
    ----------
    base_url : str
        Base address of the remote elevator controller.  The mode-control
        HTTP endpoints are resolved against it.
    broker_url : str or None
        MQTT broker URL.  When unset, the host of ``base_url`` is used with
        ``mqtts://`` for https and ``mqtt://`` otherwise.
    fleet_topic : str
        Topic carrying fleet snapshots.
    call_topic : str
        Destination for floor calls.
    goto_topic : str
        Destination for direct dispatch commands.
    client_id : str
        MQTT client identifier.  Random per process by default.
    mqtt_keepalive : int
        MQTT keepalive in seconds.
    reconnect_delay : float
        Fixed delay in seconds between reconnect attempts.
    total_floors : int
        Highest floor number of the building (floors are ``0..total_floors``).
    """

    base_url: str = DEFAULT_BASE_URL
    broker_url: str | None = None
    fleet_topic: str = FLEET_TOPIC
    call_topic: str = CALL_TOPIC
    goto_topic: str = GOTO_TOPIC
    client_id: str = dataclasses.field(default_factory=_default_client_id)
    mqtt_keepalive: int = MQTT_KEEPALIVE_SECONDS
    reconnect_delay: float = RECONNECT_DELAY_SECONDS
    total_floors: int = TOTAL_FLOORS

    def __post_init__(self) -> None:
        if self.reconnect_delay < 0:
            raise LiftConfigError("reconnect_delay must be >= 0")
        if self.total_floors < 0:
            raise LiftConfigError("total_floors must be >= 0")
        object.__setattr__(self, "base_url", self.base_url.rstrip("/"))

    def broker_address(self) -> BrokerAddress:
        """Resolve the broker to connect to."""
        if self.broker_url:
            return parse_broker_url(self.broker_url)

        parts = urlsplit(self.base_url)
        if not parts.hostname:
            raise LiftConfigError(f"Cannot derive broker from base_url {self.base_url!r}")
        scheme = "mqtts" if parts.scheme.lower() == "https" else "mqtt"
        return parse_broker_url(f"{scheme}://{parts.hostname}")

    @property
    def floor_range(self) -> range:
        return range(0, self.total_floors + 1)

    @classmethod
    def from_env(cls, **overrides: Any) -> LiftConfig:
        """Create configuration from ``LIFT_*`` environment variables.

        Explicit keyword arguments override environment values.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "LIFT_BASE_URL": "base_url",
            "LIFT_BROKER_URL": "broker_url",
            "LIFT_FLEET_TOPIC": "fleet_topic",
            "LIFT_CALL_TOPIC": "call_topic",
            "LIFT_GOTO_TOPIC": "goto_topic",
            "LIFT_CLIENT_ID": "client_id",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        # Numeric settings, handled separately
        _ENV_NUMERIC_MAP: dict[str, tuple[str, type]] = {
            "LIFT_MQTT_KEEPALIVE": ("mqtt_keepalive", int),
            "LIFT_RECONNECT_DELAY": ("reconnect_delay", float),
            "LIFT_TOTAL_FLOORS": ("total_floors", int),
        }
        for env_key, (field_name, cast) in _ENV_NUMERIC_MAP.items():
            val = env.get(env_key)
            if val is None or field_name in overrides:
                continue
            try:
                config_kwargs[field_name] = cast(val)
            except ValueError as exc:
                raise LiftConfigError(f"{env_key} must be a number, got {val!r}") from exc

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
