from __future__ import annotations

import ipaddress
import logging
from typing import Any, Dict

import voluptuous as vol

from homeassistant import config_entries
from homeassistant.core import callback

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
)

_LOGGER = logging.getLogger(__name__)

PORT_VALIDATOR = vol.All(vol.Coerce(int), vol.Range(min=1, max=65535))


def split_host_port(value: str, default_port: int = DEFAULT_PORT) -> tuple[str, int]:
    """``"192.168.1.100:8080"`` -> ``("192.168.1.100", 8080)``.

    Raises ``ValueError`` unless the host part is an IPv4 address.
    """

    host, _, port = value.strip().partition(":")
    ip = ipaddress.ip_address(host)
    if ip.version != 4:
        raise ValueError("IPv4 address required")
    return host, int(port) if port else default_port


def options_schema(options: Dict[str, Any]) -> vol.Schema:
    return vol.Schema({
        vol.Required(
            CONF_INTERVAL, default=options.get(CONF_INTERVAL, DEFAULT_INTERVAL)
        ): vol.All(vol.Coerce(int), vol.Range(min=1, max=3600)),
        vol.Required(
            CONF_TIMEOUT, default=options.get(CONF_TIMEOUT, DEFAULT_TIMEOUT)
        ): vol.All(vol.Coerce(int), vol.Range(min=1, max=60)),
        vol.Optional(
            CONF_WEBSOCKET, default=options.get(CONF_WEBSOCKET, DEFAULT_WEBSOCKET)
        ): bool,
        vol.Optional(
            CONF_SECTIONS, default=options.get(CONF_SECTIONS, "")
        ): str,
    })


class ConfigFlow(config_entries.ConfigFlow, domain=DOMAIN):
    VERSION = 1

    async def async_step_user(self, user_input: Dict[str, Any] | None = None):
        """User types name + IP[:PORT]."""
        errors: Dict[str, str] = {}

        if user_input is not None:
            try:
                host, port = split_host_port(user_input[CONF_HOST], user_input.get(CONF_PORT, DEFAULT_PORT))
            except ValueError:
                errors[CONF_HOST] = "invalid_host"
            else:
                await self.async_set_unique_id(f"{host}:{port}")
                self._abort_if_unique_id_configured()

                _LOGGER.debug("Creating LED controller entry %s at %s:%s", user_input[CONF_NAME], host, port)
                return self.async_create_entry(
                    title=user_input[CONF_NAME],
                    data={
                        CONF_NAME: user_input[CONF_NAME],
                        CONF_HOST: host,
                        CONF_PORT: port,
                    },
                    options={
                        CONF_INTERVAL: DEFAULT_INTERVAL,
                        CONF_TIMEOUT: DEFAULT_TIMEOUT,
                        CONF_WEBSOCKET: DEFAULT_WEBSOCKET,
                        CONF_SECTIONS: "",
                    },
                )

        schema = vol.Schema({
            vol.Required(CONF_NAME): str,
            vol.Required(CONF_HOST): str,
            vol.Required(CONF_PORT, default=DEFAULT_PORT): PORT_VALIDATOR,
        })
        return self.async_show_form(
            step_id="user",
            data_schema=schema,
            errors=errors,
            description_placeholders={
                "help": (
                    "Enter the IP address of your LED controller. "
                    "The default port is 80."
                )
            },
        )

    @staticmethod
    @callback
    def async_get_options_flow(config_entry):
        """Return the options flow for this entry."""
        return LEDControllerOptionsFlowHandler(config_entry)


# ----------------------------------------------------------------------
# options flow: polling interval, timeout, websocket, sections
# ----------------------------------------------------------------------
class LEDControllerOptionsFlowHandler(config_entries.OptionsFlow):
    def __init__(self, entry: config_entries.ConfigEntry) -> None:
        self.entry = entry

    async def async_step_init(self, user_input: Dict[str, Any] | None = None):
        if user_input is not None:
            return self.async_create_entry(title="LED controller options", data=user_input)

        return self.async_show_form(
            step_id="init",
            data_schema=options_schema(dict(self.entry.options)),
            description_placeholders={
                "explain": (
                    "Interval is the status polling period in seconds. "
                    "Enable the WebSocket for real-time updates. "
                    "Sections is an optional comma-separated list limiting which "
                    "sections of the device produce commands."
                )
            },
        )
