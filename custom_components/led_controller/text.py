from __future__ import annotations

from homeassistant.components.text import TextEntity
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from .entity import LEDControllerFieldEntity, async_setup_field_entities
from .lib.schema import FieldType


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    async_setup_field_entities(
        hass, entry, async_add_entities, FieldType.COLOR, LEDControllerColorText
    )


class LEDControllerColorText(LEDControllerFieldEntity, TextEntity):
    """Color field edited as ``RRGGBB`` hex."""

    field_type = FieldType.COLOR
    _attr_icon = "mdi:palette"
    _attr_native_min = 6
    _attr_native_max = 6
    _attr_pattern = r"^[0-9A-Fa-f]{6}$"

    @property
    def native_value(self) -> str | None:
        value = self.reading
        return None if value is None else str(value)

    async def async_set_value(self, value: str) -> None:
        await self._async_send(value.strip())
