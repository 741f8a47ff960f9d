"""Turn decoded controller payloads into display-ready readings."""
from __future__ import annotations

import time
from typing import Any, Callable, Mapping, NamedTuple, Optional

from .field_kinds import kind_for, on_off
from .schema import POWER_FIELD, SchemaRegistry

STATE_READING = "state"
WS_TIMESTAMP_READING = "last_websocket_update"
HTTP_TIMESTAMP_READING = "lastUpdate"

# Raw keys the firmware reports without a field definition.
UNIT_SUFFIXES: dict[str, str] = {
    "current": "mA",
    "ledCurrent": "mA",
    "fps": "fps",
    "frameRate": "fps",
    "uptime": "s",
}


class Reading(NamedTuple):
    name: str
    value: Any


class ReadingProjector:
    """Project ``{name, value}`` messages and plain objects onto readings.

    Values of known fields are converted by their kind; unknown keys pass
    through, apart from the :data:`UNIT_SUFFIXES` allow-list. A ``power``
    reading is mirrored into ``state``.
    """

    def __init__(self, registry: SchemaRegistry, clock: Callable[[], float] = time.time) -> None:
        self._registry = registry
        self._clock = clock

    def project(
        self,
        message: Mapping[str, Any],
        *,
        timestamp_reading: Optional[str] = WS_TIMESTAMP_READING,
    ) -> list[Reading]:
        readings: list[Reading] = []

        if message.get("name") is not None and message.get("value") is not None:
            readings.extend(self.project_value(str(message["name"]), message["value"]))
        else:
            body = message.get("currentState")
            if not isinstance(body, Mapping):
                body = message
            for key, value in body.items():
                if key == STATE_READING:
                    continue
                readings.extend(self.project_value(str(key), value))

        if timestamp_reading is not None:
            readings.append(Reading(timestamp_reading, int(self._clock())))
        return readings

    def project_all_values(self, payload: Any) -> list[Reading]:
        """Project an ``/allvalues`` response: ``{"values": [{name, value}, ...]}``."""

        readings: list[Reading] = []
        values = payload.get("values") if isinstance(payload, Mapping) else None
        if isinstance(values, list):
            for item in values:
                if not isinstance(item, Mapping):
                    continue
                if item.get("name") is None or item.get("value") is None:
                    continue
                readings.extend(self.project_value(str(item["name"]), item["value"]))
        readings.append(Reading(HTTP_TIMESTAMP_READING, int(self._clock())))
        return readings

    def project_value(self, name: str, value: Any) -> list[Reading]:
        display = self.display_value(name, value)
        readings = [Reading(name, display)]
        if name == POWER_FIELD:
            readings.append(Reading(STATE_READING, on_off(display)))
        return readings

    def display_value(self, name: str, value: Any) -> Any:
        fdef = self._registry.field(name)
        if fdef is not None:
            kind = kind_for(fdef.type)
            if kind is not None:
                return kind.to_display(fdef, value)
            return value

        unit = UNIT_SUFFIXES.get(name)
        if unit is not None and isinstance(value, (int, float)) and not isinstance(value, bool):
            return f"{value} {unit}"
        return value


__all__ = [
    "HTTP_TIMESTAMP_READING",
    "Reading",
    "ReadingProjector",
    "STATE_READING",
    "UNIT_SUFFIXES",
    "WS_TIMESTAMP_READING",
]
