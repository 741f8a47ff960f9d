from __future__ import annotations

from homeassistant.components.number import NumberEntity, NumberMode
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from .entity import LEDControllerFieldEntity, async_setup_field_entities
from .lib.field_kinds import DEFAULT_NUMBER_MAX, DEFAULT_NUMBER_MIN, NumberKind
from .lib.schema import FieldType


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    async_setup_field_entities(
        hass, entry, async_add_entities, FieldType.NUMBER, LEDControllerNumber
    )


class LEDControllerNumber(LEDControllerFieldEntity, NumberEntity):
    field_type = FieldType.NUMBER
    _attr_mode = NumberMode.SLIDER
    _attr_native_step = 1

    @property
    def native_min_value(self) -> float:
        fdef = self.field
        return NumberKind.bounds(fdef)[0] if fdef is not None else DEFAULT_NUMBER_MIN

    @property
    def native_max_value(self) -> float:
        fdef = self.field
        return NumberKind.bounds(fdef)[1] if fdef is not None else DEFAULT_NUMBER_MAX

    @property
    def native_value(self) -> float | None:
        try:
            return float(self.reading)
        except (TypeError, ValueError):
            return None

    async def async_set_native_value(self, value: float) -> None:
        await self._async_send(int(value))
