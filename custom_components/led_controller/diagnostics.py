from __future__ import annotations

"""Support for Home Assistant diagnostics downloads."""

import logging
import re
from typing import Any

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant

from .const import CONF_HOST, DOMAIN
from .lib.errors import NetworkError

_LOGGER = logging.getLogger(__name__)

_IP_ADDRESS_PATTERN = re.compile(r"\b\d{1,3}(?:\.\d{1,3}){3}\b")
_HOST_KEYS = {CONF_HOST.lower(), "configuration_url"}


def _redact_value(value: Any) -> Any:
    """Scrub IP addresses from a value."""

    if isinstance(value, str):
        value = _IP_ADDRESS_PATTERN.sub("[REDACTED_IP]", value)
    return value


def _redact_data_structure(data: Any) -> Any:
    """Redact host fields and embedded IP addresses."""

    if isinstance(data, dict):
        redacted: dict[Any, Any] = {}
        for key, value in data.items():
            if str(key).lower() in _HOST_KEYS:
                redacted[key] = "[REDACTED_IP]"
                continue
            redacted[key] = _redact_data_structure(value)
        return redacted

    if isinstance(data, (list, tuple)):
        return type(data)(_redact_data_structure(item) for item in data)

    return _redact_value(data)


async def async_get_config_entry_diagnostics(
    hass: HomeAssistant, entry: ConfigEntry
) -> dict[str, Any]:
    """Return diagnostics for a config entry."""

    entry_dict = {
        "data": _redact_data_structure(dict(entry.data)),
        "options": _redact_data_structure(dict(entry.options)),
    }

    hub = hass.data.get(DOMAIN, {}).get(entry.entry_id)
    hub_state: dict[str, Any] = {}
    if hub is not None:
        try:
            status: Any = await hub.async_get("status")
        except NetworkError as err:
            _LOGGER.debug("[%s] Status dump unavailable for diagnostics: %s", entry.entry_id, err)
            status = None

        hub_state = _redact_data_structure(
            {
                "name": hub.name,
                "host": hub.host,
                "port": hub.port,
                "interval": hub.interval,
                "timeout": hub.timeout,
                "websocket_enabled": hub.websocket_enabled,
                "sections": hub.sections,
                "state": hub.state,
                "websocket_state": hub.websocket_state,
                "schema": hub.registry.as_dict(),
                "commands": list(hub.command_list),
                "widgets": {
                    name: str(widget) if widget is not None else None
                    for name, widget in hub.widgets.items()
                },
                "readings": dict(hub.readings),
                "status": status,
            }
        )

    return {
        "entry": entry_dict,
        "hub": hub_state,
    }
