"""Shared entity plumbing for LED controller platforms."""
from __future__ import annotations

from typing import Any, Callable, Optional

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant, callback
from homeassistant.exceptions import HomeAssistantError, ServiceValidationError
from homeassistant.helpers.dispatcher import async_dispatcher_connect
from homeassistant.helpers.entity import DeviceInfo, Entity
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from .const import CONF_NAME, DOMAIN, signal_readings, signal_schema, signal_state
from .hub import LEDControllerHub
from .lib.errors import NetworkError, ValidationError
from .lib.schema import FieldDefinition, FieldType


class LEDControllerEntity(Entity):
    _attr_should_poll = False

    def __init__(self, hub: LEDControllerHub, entry: ConfigEntry) -> None:
        self._hub = hub
        self._entry = entry

    @property
    def device_info(self) -> DeviceInfo:
        return DeviceInfo(
            identifiers={(DOMAIN, self._entry.unique_id or self._entry.entry_id)},
            name=self._entry.data[CONF_NAME],
            manufacturer="LED_Stripe_Dynamic_web_conf",
            model="LED Controller",
            configuration_url=f"http://{self._hub.host}:{self._hub.port}",
        )

    async def async_added_to_hass(self) -> None:
        for sig in (
            signal_readings(self._hub.entry_id),
            signal_state(self._hub.entry_id),
            signal_schema(self._hub.entry_id),
        ):
            self.async_on_remove(
                async_dispatcher_connect(self.hass, sig, self._handle_update)
            )

    @callback
    def _handle_update(self) -> None:
        self.async_write_ha_state()


class LEDControllerFieldEntity(LEDControllerEntity):
    """Entity bound to one discovered field, looked up by name on every access."""

    field_type: FieldType

    def __init__(self, hub: LEDControllerHub, entry: ConfigEntry, field_name: str) -> None:
        super().__init__(hub, entry)
        self._field_name = field_name
        fdef = hub.registry.field(field_name)
        label = fdef.label if fdef is not None else field_name
        self._attr_unique_id = f"{entry.unique_id or entry.entry_id}_{field_name}"
        self._attr_name = f"{entry.data[CONF_NAME]} {label}"

    @property
    def field(self) -> Optional[FieldDefinition]:
        fdef = self._hub.registry.field(self._field_name)
        if fdef is None or fdef.type is not self.field_type:
            return None
        return fdef

    @property
    def available(self) -> bool:
        fdef = self.field
        if fdef is None:
            return False
        return fdef.command_name in self._hub.registry.command_table(self._hub.sections)

    @property
    def reading(self) -> Any:
        return self._hub.get_reading(self._field_name)

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        fdef = self.field
        if fdef is None:
            return {}
        return {"field": fdef.name, "section": fdef.section, "command": fdef.command_name}

    async def _async_send(self, value: Any) -> None:
        fdef = self.field
        if fdef is None:
            raise HomeAssistantError(f"Field {self._field_name} is no longer offered by the device")
        try:
            await self._hub.async_send_command(fdef.command_name, value)
        except ValidationError as err:
            raise ServiceValidationError(err.message) from err
        except NetworkError as err:
            raise HomeAssistantError(str(err)) from err


def async_setup_field_entities(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
    field_type: FieldType,
    factory: Callable[[LEDControllerHub, ConfigEntry, str], LEDControllerFieldEntity],
) -> None:
    """Add one entity per field of ``field_type``, now and after every rebuild."""

    hub: LEDControllerHub = hass.data[DOMAIN][entry.entry_id]
    known: set[str] = set()

    @callback
    def _sync() -> None:
        new_entities = []
        for fdef in hub.registry.command_table(hub.sections).values():
            if fdef.type is not field_type or fdef.name in known:
                continue
            known.add(fdef.name)
            new_entities.append(factory(hub, entry, fdef.name))
        if new_entities:
            async_add_entities(new_entities)

    _sync()
    entry.async_on_unload(
        async_dispatcher_connect(hass, signal_schema(entry.entry_id), _sync)
    )
