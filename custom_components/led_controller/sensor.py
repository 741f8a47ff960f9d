from __future__ import annotations

from homeassistant.components.sensor import SensorDeviceClass, SensorEntity
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity import EntityCategory
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from .const import (
    CONF_NAME,
    DOMAIN,
    STATE_ACTIVE,
    STATE_ERROR,
    STATE_INITIALIZING,
    WS_CONNECTED,
    WS_CONNECTING,
    WS_DISCONNECTED,
    WS_FAILED,
)
from .entity import LEDControllerEntity
from .hub import LEDControllerHub


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    hub: LEDControllerHub = hass.data[DOMAIN][entry.entry_id]
    async_add_entities(
        [
            LEDControllerStatusSensor(hub, entry),
            LEDControllerWebSocketSensor(hub, entry),
        ]
    )


class LEDControllerStatusSensor(LEDControllerEntity, SensorEntity):
    """Session state, with every reading and the generated commands as attributes."""

    _attr_device_class = SensorDeviceClass.ENUM
    _attr_options = [STATE_INITIALIZING, STATE_ACTIVE, STATE_ERROR]
    _attr_icon = "mdi:led-strip-variant"

    def __init__(self, hub: LEDControllerHub, entry: ConfigEntry) -> None:
        super().__init__(hub, entry)
        self._attr_unique_id = f"{entry.unique_id or entry.entry_id}_status"
        self._attr_name = f"{entry.data[CONF_NAME]} Status"

    @property
    def native_value(self) -> str:
        return self._hub.state

    @property
    def extra_state_attributes(self) -> dict:
        return {
            "readings": dict(self._hub.readings),
            "commands": " ".join(self._hub.command_list),
            "widgets": {
                command: str(widget) if widget is not None else None
                for command, widget in self._hub.widgets.items()
            },
            "sections": [section.name for section in self._hub.registry.sections],
            "schema_generation": self._hub.registry.generation,
        }


class LEDControllerWebSocketSensor(LEDControllerEntity, SensorEntity):
    _attr_device_class = SensorDeviceClass.ENUM
    _attr_entity_category = EntityCategory.DIAGNOSTIC
    _attr_options = [WS_CONNECTING, WS_CONNECTED, WS_DISCONNECTED, WS_FAILED]
    _attr_icon = "mdi:lan-connect"

    def __init__(self, hub: LEDControllerHub, entry: ConfigEntry) -> None:
        super().__init__(hub, entry)
        self._attr_unique_id = f"{entry.unique_id or entry.entry_id}_websocket_connection"
        self._attr_name = f"{entry.data[CONF_NAME]} WebSocket connection"

    @property
    def native_value(self) -> str:
        return self._hub.websocket_state

    @property
    def extra_state_attributes(self) -> dict:
        return {"last_websocket_update": self._hub.get_reading("last_websocket_update")}
