import asyncio
import importlib
from types import SimpleNamespace

import pytest
import voluptuous as vol

from homeassistant.exceptions import HomeAssistantError, ServiceValidationError

from custom_components.led_controller.const import DOMAIN
from custom_components.led_controller.lib.errors import (
    NetworkError,
    ValidationError,
    ValidationReason,
)

integration = importlib.import_module("custom_components.led_controller.__init__")


class _FakeHass:
    def __init__(self, hubs: dict) -> None:
        self.data = {DOMAIN: hubs} if hubs else {}


class _FakeCall:
    def __init__(self, data: dict, hass=None):
        self.data = data
        self.hass = hass if hass is not None else _FakeHass({})


class _FakeHub:
    def __init__(self, name: str) -> None:
        self.name = name
        self.error: Exception | None = None
        self.gets: list[str] = []

    async def async_send_command(self, command, value=None):
        if self.error is not None:
            raise self.error

    async def async_get(self, kind: str) -> str:
        self.gets.append(kind)
        if self.error is not None:
            raise self.error
        return f'{{"source": "{self.name}", "kind": "{kind}"}}'


class _FakeRegistry:
    def __init__(self, items: dict) -> None:
        self._items = items

    def async_get(self, key):
        return self._items.get(key)


@pytest.fixture
def registries(monkeypatch):
    devices: dict = {}
    entities: dict = {}
    monkeypatch.setattr(integration.dr, "async_get", lambda _hass: _FakeRegistry(devices))
    monkeypatch.setattr(integration.er, "async_get", lambda _hass: _FakeRegistry(entities))
    return devices, entities


def test_get_returns_raw_text() -> None:
    hub = _FakeHub("kitchen")
    hass = _FakeHass({"entry-1": hub})

    result = asyncio.run(
        integration._async_handle_get(_FakeCall({"entry_id": "entry-1", "kind": "palettes"}, hass))
    )

    assert result == {"kind": "palettes", "response": '{"source": "kitchen", "kind": "palettes"}'}
    assert hub.gets == ["palettes"]


def test_get_network_error_is_reported() -> None:
    hub = _FakeHub("kitchen")
    hub.error = NetworkError("/status returned HTTP 500")
    hass = _FakeHass({"entry-1": hub})

    with pytest.raises(HomeAssistantError, match="HTTP 500"):
        asyncio.run(integration._async_handle_get(_FakeCall({"kind": "status"}, hass)))


def test_get_without_controller_is_rejected() -> None:
    with pytest.raises(ServiceValidationError):
        asyncio.run(integration._async_handle_get(_FakeCall({"kind": "status"})))


def test_get_schema_only_accepts_known_kinds() -> None:
    assert integration.GET_SCHEMA({"kind": "modes"}) == {"kind": "modes"}

    with pytest.raises(vol.Invalid):
        integration.GET_SCHEMA({"kind": "firmware"})


def test_send_command_errors_are_translated() -> None:
    hub = _FakeHub("kitchen")
    hass = _FakeHass({"entry-1": hub})
    call = _FakeCall({"command": "brightness", "value": "999"}, hass)

    hub.error = ValidationError(ValidationReason.OUT_OF_RANGE, "brightness must be between 0 and 255")
    with pytest.raises(ServiceValidationError, match="between 0 and 255"):
        asyncio.run(integration._async_handle_send_command(call))

    hub.error = NetworkError("Timeout after 5s requesting /set")
    with pytest.raises(HomeAssistantError, match="Timeout"):
        asyncio.run(integration._async_handle_send_command(call))


def test_resolve_prefers_entry_id(registries) -> None:
    devices, entities = registries
    first, second = _FakeHub("first"), _FakeHub("second")
    hass = _FakeHass({"entry-1": first, "entry-2": second})
    devices["device-1"] = SimpleNamespace(config_entries={"entry-1"})
    entities["switch.first_power"] = SimpleNamespace(config_entry_id="entry-1")

    call = _FakeCall(
        {"entry_id": "entry-2", "device": "device-1", "entity_id": "switch.first_power"}, hass
    )

    assert integration._resolve_hub_from_call(hass, call) is second


def test_resolve_falls_back_to_device_then_entity(registries) -> None:
    devices, entities = registries
    first, second = _FakeHub("first"), _FakeHub("second")
    hass = _FakeHass({"entry-1": first, "entry-2": second})
    devices["device-2"] = SimpleNamespace(config_entries={"other-integration", "entry-2"})
    entities["switch.first_power"] = SimpleNamespace(config_entry_id="entry-1")

    by_device = _FakeCall(
        {"entry_id": "gone", "device": "device-2", "entity_id": "switch.first_power"}, hass
    )
    by_entity = _FakeCall({"device": "unknown", "entity_id": "switch.first_power"}, hass)

    assert integration._resolve_hub_from_call(hass, by_device) is second
    assert integration._resolve_hub_from_call(hass, by_entity) is first


def test_resolve_uses_single_controller(registries) -> None:
    only = _FakeHub("only")
    hass = _FakeHass({"entry-1": only})

    assert integration._resolve_hub_from_call(hass, _FakeCall({}, hass)) is only
    assert integration._resolve_hub_from_call(hass, _FakeCall({"entity_id": "light.other"}, hass)) is only


def test_resolve_is_ambiguous_with_several_controllers(registries) -> None:
    hass = _FakeHass({"entry-1": _FakeHub("first"), "entry-2": _FakeHub("second")})

    assert integration._resolve_hub_from_call(hass, _FakeCall({}, hass)) is None
    assert integration._resolve_hub_from_call(_FakeHass({}), _FakeCall({})) is None
