from __future__ import annotations

import logging

import voluptuous as vol

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant, ServiceCall, ServiceResponse, SupportsResponse
from homeassistant.exceptions import HomeAssistantError, ServiceValidationError
from homeassistant.helpers import config_validation as cv
from homeassistant.helpers import device_registry as dr, entity_registry as er

from .const import (
    CONF_HOST,
    CONF_INTERVAL,
    CONF_NAME,
    CONF_PORT,
    CONF_SECTIONS,
    CONF_TIMEOUT,
    CONF_WEBSOCKET,
    DEFAULT_INTERVAL,
    DEFAULT_PORT,
    DEFAULT_TIMEOUT,
    DEFAULT_WEBSOCKET,
    DOMAIN,
    PLATFORMS,
    SERVICE_GET,
    SERVICE_REFRESH,
    SERVICE_SEND_COMMAND,
    parse_sections,
)
from .hub import LEDControllerHub
from .lib.api import RAW_GETS
from .lib.errors import NetworkError, ValidationError

_LOGGER = logging.getLogger(__name__)

_TARGET_SCHEMA = {
    vol.Optional("entry_id"): cv.string,
    vol.Optional("device"): cv.string,
    vol.Optional("entity_id"): cv.entity_id,
}

REFRESH_SCHEMA = vol.Schema(_TARGET_SCHEMA)
SEND_COMMAND_SCHEMA = vol.Schema(
    {
        **_TARGET_SCHEMA,
        vol.Required("command"): cv.string,
        vol.Optional("value"): vol.Any(cv.string, vol.Coerce(int)),
    }
)
GET_SCHEMA = vol.Schema(
    {
        **_TARGET_SCHEMA,
        vol.Required("kind"): vol.In(sorted(RAW_GETS)),
    }
)


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    data = entry.data
    opts = entry.options

    hub = LEDControllerHub(
        hass,
        entry.entry_id,
        data[CONF_NAME],
        data[CONF_HOST],
        data.get(CONF_PORT, DEFAULT_PORT),
        interval=opts.get(CONF_INTERVAL, DEFAULT_INTERVAL),
        timeout=opts.get(CONF_TIMEOUT, DEFAULT_TIMEOUT),
        websocket_enabled=opts.get(CONF_WEBSOCKET, DEFAULT_WEBSOCKET),
        sections=parse_sections(opts.get(CONF_SECTIONS)),
    )

    if DOMAIN not in hass.data:
        hass.data[DOMAIN] = {}
        hass.services.async_register(
            DOMAIN, SERVICE_REFRESH, _async_handle_refresh, schema=REFRESH_SCHEMA
        )
        hass.services.async_register(
            DOMAIN, SERVICE_SEND_COMMAND, _async_handle_send_command, schema=SEND_COMMAND_SCHEMA
        )
        hass.services.async_register(
            DOMAIN,
            SERVICE_GET,
            _async_handle_get,
            schema=GET_SCHEMA,
            supports_response=SupportsResponse.ONLY,
        )

    hass.data[DOMAIN][entry.entry_id] = hub

    entry.async_on_unload(entry.add_update_listener(async_update_options))

    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)
    await hub.async_start()
    _LOGGER.info("[%s] LED controller %s set up at %s", entry.entry_id, hub.name, hub.host)
    return True


async def async_update_options(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Called when user changes options in the UI."""
    hub: LEDControllerHub = hass.data[DOMAIN][entry.entry_id]

    await hub.async_apply_new_settings(
        host=entry.data.get(CONF_HOST, hub.host),
        port=entry.data.get(CONF_PORT, hub.port),
        interval=entry.options.get(CONF_INTERVAL, DEFAULT_INTERVAL),
        timeout=entry.options.get(CONF_TIMEOUT, DEFAULT_TIMEOUT),
        websocket_enabled=entry.options.get(CONF_WEBSOCKET, DEFAULT_WEBSOCKET),
        sections=parse_sections(entry.options.get(CONF_SECTIONS)),
    )


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    unload_ok = await hass.config_entries.async_unload_platforms(entry, PLATFORMS)
    if unload_ok:
        hub = hass.data[DOMAIN].pop(entry.entry_id, None)
        if not hass.data[DOMAIN]:
            hass.services.async_remove(DOMAIN, SERVICE_REFRESH)
            hass.services.async_remove(DOMAIN, SERVICE_SEND_COMMAND)
            hass.services.async_remove(DOMAIN, SERVICE_GET)
            hass.data.pop(DOMAIN)
        if hub is not None:
            await hub.async_stop()
    return unload_ok


async def _async_handle_refresh(call: ServiceCall) -> None:
    hub = _resolve_hub_from_call(call.hass, call)
    if hub is None:
        raise ServiceValidationError("Could not resolve LED controller from service call")
    await hub.async_refresh_structure()


async def _async_handle_send_command(call: ServiceCall) -> None:
    hub = _resolve_hub_from_call(call.hass, call)
    if hub is None:
        raise ServiceValidationError("Could not resolve LED controller from service call")

    command = call.data["command"]
    value = call.data.get("value")
    try:
        await hub.async_send_command(command, value)
    except ValidationError as err:
        raise ServiceValidationError(err.message) from err
    except NetworkError as err:
        raise HomeAssistantError(str(err)) from err


async def _async_handle_get(call: ServiceCall) -> ServiceResponse:
    """Return the raw text of one informational endpoint."""
    hub = _resolve_hub_from_call(call.hass, call)
    if hub is None:
        raise ServiceValidationError("Could not resolve LED controller from service call")

    kind = call.data["kind"]
    try:
        text = await hub.async_get(kind)
    except NetworkError as err:
        raise HomeAssistantError(str(err)) from err
    return {"kind": kind, "response": text}


def _hub_for_device(hass: HomeAssistant, device_id: str) -> LEDControllerHub | None:
    domain_data = hass.data.get(DOMAIN, {})
    device = dr.async_get(hass).async_get(device_id)
    if device is None:
        return None
    for entry_id in device.config_entries:
        if entry_id in domain_data:
            return domain_data[entry_id]
    return None


def _resolve_hub_from_call(hass: HomeAssistant, call: ServiceCall) -> LEDControllerHub | None:
    """Try entry id → device → entity → fallback to single controller."""
    domain_data = hass.data.get(DOMAIN, {})

    entry_id = call.data.get("entry_id")
    if entry_id and entry_id in domain_data:
        return domain_data[entry_id]

    device_id = call.data.get("device")
    if device_id:
        hub = _hub_for_device(hass, device_id)
        if hub is not None:
            return hub

    entity_id = call.data.get("entity_id")
    if entity_id:
        ent = er.async_get(hass).async_get(entity_id)
        if ent is not None and ent.config_entry_id in domain_data:
            return domain_data[ent.config_entry_id]

    # last resort: if there is only 1 controller, just use it
    if len(domain_data) == 1:
        return next(iter(domain_data.values()))

    return None
