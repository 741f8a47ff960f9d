from __future__ import annotations

from homeassistant.components.select import SelectEntity
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from .entity import LEDControllerFieldEntity, async_setup_field_entities
from .lib.field_kinds import SelectKind
from .lib.schema import FieldType


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    async_setup_field_entities(
        hass, entry, async_add_entities, FieldType.SELECT, LEDControllerSelect
    )


class LEDControllerSelect(LEDControllerFieldEntity, SelectEntity):
    field_type = FieldType.SELECT

    @property
    def options(self) -> list[str]:
        fdef = self.field
        return list(SelectKind.labels(fdef)) if fdef is not None else []

    @property
    def current_option(self) -> str | None:
        value = self.reading
        if value is None:
            return None
        # readings hold display labels; an unmapped index stays numeric
        value = str(value)
        return value if value in self.options else None

    async def async_select_option(self, option: str) -> None:
        await self._async_send(option)
