from __future__ import annotations

from typing import Any

from homeassistant.components.switch import SwitchEntity
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from .entity import LEDControllerFieldEntity, async_setup_field_entities
from .lib.field_kinds import BOOL_FALSE, BOOL_TRUE
from .lib.schema import POWER_FIELD, FieldType


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    async_setup_field_entities(
        hass, entry, async_add_entities, FieldType.BOOLEAN, LEDControllerSwitch
    )


class LEDControllerSwitch(LEDControllerFieldEntity, SwitchEntity):
    """Boolean field; the ``power`` field doubles as the device's main switch."""

    field_type = FieldType.BOOLEAN

    @property
    def icon(self) -> str | None:
        return "mdi:power" if self._field_name == POWER_FIELD else None

    @property
    def is_on(self) -> bool | None:
        value = self.reading
        if value is None:
            return None
        return value == BOOL_TRUE

    async def async_turn_on(self, **kwargs: Any) -> None:
        await self._async_send(BOOL_TRUE)

    async def async_turn_off(self, **kwargs: Any) -> None:
        await self._async_send(BOOL_FALSE)
