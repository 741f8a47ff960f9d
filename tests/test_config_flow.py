import pytest
import voluptuous as vol

from custom_components.led_controller.config_flow import options_schema, split_host_port
from custom_components.led_controller.const import (
    CONF_INTERVAL,
    CONF_SECTIONS,
    CONF_TIMEOUT,
    CONF_WEBSOCKET,
    parse_sections,
)


def test_split_host_port_defaults_to_port_80() -> None:
    assert split_host_port("192.168.1.50") == ("192.168.1.50", 80)
    assert split_host_port(" 192.168.1.50:8080 ") == ("192.168.1.50", 8080)


@pytest.mark.parametrize("value", ["controller.local", "::1", "300.1.1.1", "192.168.1.50:http"])
def test_split_host_port_rejects_non_ipv4(value) -> None:
    with pytest.raises(ValueError):
        split_host_port(value)


def test_options_schema_defaults() -> None:
    options = options_schema({})({})

    assert options == {
        CONF_INTERVAL: 30,
        CONF_TIMEOUT: 5,
        CONF_WEBSOCKET: False,
        CONF_SECTIONS: "",
    }


def test_options_schema_bounds() -> None:
    schema = options_schema({})

    assert schema({CONF_INTERVAL: "120"})[CONF_INTERVAL] == 120
    with pytest.raises(vol.Invalid):
        schema({CONF_INTERVAL: 0})
    with pytest.raises(vol.Invalid):
        schema({CONF_TIMEOUT: 61})


def test_parse_sections() -> None:
    assert parse_sections("main, effects ,") == ["main", "effects"]
    assert parse_sections("") is None
    assert parse_sections(" , ") is None
    assert parse_sections(None) is None
