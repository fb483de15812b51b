"""Base model and timestamp helpers for liftsync wire payloads.

Every wire model inherits from :class:`LiftBaseModel` which provides:

* ``alias_generator=to_camel`` so camelCase wire keys map
  automatically to snake_case fields.
* Frozen instances: local copies of server state are replaced, never
  mutated.
* Unknown keys are ignored so additive server changes do not break
  ingestion.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(UTC)


def format_timestamp(value: datetime) -> str:
    """Render *value* as an ISO-8601 UTC string with millisecond precision.

    Naive datetimes are treated as UTC.  The ``Z`` suffix matches what the
    controller's JavaScript clients send.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    text = value.astimezone(UTC).isoformat(timespec="milliseconds")
    return text.replace("+00:00", "Z")


class LiftBaseModel(BaseModel):
    """Base for liftsync wire models."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    def to_wire(self) -> dict[str, Any]:
        """Dump using wire (camelCase) keys and JSON-compatible values."""
        return self.model_dump(by_alias=True, mode="json")
