from __future__ import annotations

from homeassistant.components.button import ButtonEntity
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity import EntityCategory
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from .const import CONF_NAME, DOMAIN
from .entity import LEDControllerEntity
from .hub import LEDControllerHub


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    hub: LEDControllerHub = hass.data[DOMAIN][entry.entry_id]
    async_add_entities([LEDControllerRefreshButton(hub, entry)])


class LEDControllerRefreshButton(LEDControllerEntity, ButtonEntity):
    """Reload the field structure from the device."""

    _attr_entity_category = EntityCategory.CONFIG
    _attr_icon = "mdi:refresh"

    def __init__(self, hub: LEDControllerHub, entry: ConfigEntry) -> None:
        super().__init__(hub, entry)
        self._attr_unique_id = f"{entry.unique_id or entry.entry_id}_refresh"
        self._attr_name = f"{entry.data[CONF_NAME]} Refresh structure"

    async def async_press(self) -> None:
        await self._hub.async_refresh_structure()
