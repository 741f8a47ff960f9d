import asyncio
from datetime import timedelta

import pytest

from custom_components.led_controller import hub as hub_module
from custom_components.led_controller.const import (
    RETRY_DELAY,
    STATE_ACTIVE,
    STATE_ERROR,
    WS_CONNECTED,
    WS_DISCONNECTED,
    WS_FAILED,
    signal_readings,
    signal_schema,
)
from custom_components.led_controller.hub import LEDControllerHub
from custom_components.led_controller.lib.errors import (
    NetworkError,
    ValidationError,
    ValidationReason,
)

STRUCTURE = [
    {"name": "main", "label": "Main", "type": 5},
    {"name": "power", "label": "Power", "type": 1, "min": 0, "max": 1},
    {"name": "brightness", "label": "Brightness", "type": 0, "min": 0, "max": 255},
    {"name": "colors", "label": "Colors", "type": 5},
    {"name": "solidColor", "label": "Solid color", "type": 3},
]


class FakeHass:
    def __init__(self, loop: asyncio.AbstractEventLoop):
        self.loop = loop

    async def async_add_executor_job(self, func, *args, **kwargs):  # pragma: no cover - passthrough
        return func(*args, **kwargs)

    def async_create_task(self, coro):  # pragma: no cover - passthrough
        return self.loop.create_task(coro)


class FakeApi:
    def __init__(self) -> None:
        self.timeout = 5
        self.structure = STRUCTURE
        self.structure_error: Exception | None = None
        self.all_values = {"values": [{"name": "power", "value": 1}, {"name": "brightness", "value": 80}]}
        self.set_response = None
        self.set_error: Exception | None = None
        self.set_calls: list = []

    async def async_get_structure(self):
        if self.structure_error is not None:
            raise self.structure_error
        return self.structure

    async def async_get_all_values(self):
        return self.all_values

    async def async_set(self, request):
        self.set_calls.append(request)
        if self.set_error is not None:
            raise self.set_error
        return self.set_response

    async def async_get_raw(self, kind):
        return f"raw {kind}"


class FakeChannel:
    def __init__(self, reads: list) -> None:
        self._reads = list(reads)
        self.closed = False

    @property
    def connected(self) -> bool:
        return not self.closed

    def read(self) -> bytes:
        item = self._reads.pop(0) if self._reads else b""
        if isinstance(item, Exception):
            self.closed = True
            raise item
        return item

    def close(self) -> None:
        self.closed = True


class Timers:
    def __init__(self) -> None:
        self.later: list[tuple[float, object]] = []
        self.intervals: list[tuple[timedelta, object]] = []
        self.cancelled = 0
        self.signals: list[str] = []

    def _unsub(self) -> None:
        self.cancelled += 1

    def call_later(self, _hass, delay, action):
        self.later.append((delay, action))
        return self._unsub

    def track_interval(self, _hass, action, interval):
        self.intervals.append((interval, action))
        return self._unsub

    def send(self, _hass, signal, *args):
        self.signals.append(signal)


@pytest.fixture
def timers(monkeypatch) -> Timers:
    timers = Timers()
    monkeypatch.setattr(hub_module, "async_call_later", timers.call_later)
    monkeypatch.setattr(hub_module, "async_track_time_interval", timers.track_interval)
    monkeypatch.setattr(hub_module, "async_dispatcher_send", timers.send)
    return timers


@pytest.fixture
def loop():
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    yield loop
    loop.close()


def _hub(loop, *, websocket_enabled: bool = False, sections=None) -> tuple[LEDControllerHub, FakeApi]:
    hub = LEDControllerHub(
        FakeHass(loop),
        "entry-id",
        "Living room",
        "192.168.1.50",
        80,
        interval=30,
        timeout=5,
        websocket_enabled=websocket_enabled,
        sections=sections,
        session=object(),
    )
    api = FakeApi()
    hub._api = api
    return hub, api


def _settle(loop) -> None:
    loop.run_until_complete(asyncio.sleep(0))
    loop.run_until_complete(asyncio.sleep(0))


def test_refresh_structure_builds_commands_and_starts_polling(loop, timers) -> None:
    hub, _api = _hub(loop)

    assert loop.run_until_complete(hub.async_refresh_structure()) is True
    _settle(loop)

    assert hub.state == STATE_ACTIVE
    assert hub.command_list == [
        "refresh",
        "brightness:slider,0,1,255",
        "on",
        "off",
        "solid_color:colorpicker,RGB",
    ]
    assert str(hub.widgets["solid_color"]) == "colorpicker,RGB"
    assert signal_schema("entry-id") in timers.signals
    assert timers.intervals[0][0] == timedelta(seconds=30)
    assert hub.readings["power"] == "on"
    assert hub.readings["state"] == "on"
    assert hub.readings["brightness"] == 80
    assert "lastUpdate" in hub.readings


def test_refresh_failure_marks_error_and_retries(loop, timers) -> None:
    hub, api = _hub(loop)
    api.structure_error = NetworkError("unreachable")

    assert loop.run_until_complete(hub.async_refresh_structure()) is False

    assert hub.state == STATE_ERROR
    assert timers.later[-1][0] == RETRY_DELAY
    assert timers.intervals == []


def test_rejected_structure_keeps_previous_registry(loop, timers) -> None:
    hub, api = _hub(loop)
    loop.run_until_complete(hub.async_refresh_structure())
    commands = list(hub.command_list)

    api.structure = []
    assert loop.run_until_complete(hub.async_refresh_structure()) is False

    assert hub.state == STATE_ERROR
    assert hub.registry.field("brightness") is not None
    assert hub.command_list == commands


def test_invalid_command_is_rejected_before_any_request(loop, timers) -> None:
    hub, api = _hub(loop)
    loop.run_until_complete(hub.async_refresh_structure())

    with pytest.raises(ValidationError) as excinfo:
        loop.run_until_complete(hub.async_send_command("brightness", "999"))
    assert excinfo.value.reason is ValidationReason.OUT_OF_RANGE

    with pytest.raises(ValidationError):
        loop.run_until_complete(hub.async_send_command("sparkle", "1"))

    assert api.set_calls == []


def test_color_command_sends_rgb_and_projects_answer(loop, timers) -> None:
    hub, api = _hub(loop)
    loop.run_until_complete(hub.async_refresh_structure())
    api.set_response = {"currentState": {"solidColor": 0x00FF00, "power": 1}}

    loop.run_until_complete(hub.async_send_command("solid_color", "00ff00"))

    request = api.set_calls[0]
    assert request.params == {"solidColor": "65280", "r": "0", "g": "255", "b": "0"}
    assert hub.readings["solidColor"] == "00FF00"
    assert hub.readings["state"] == "on"
    assert "lastUpdate" in hub.readings
    assert signal_readings("entry-id") in timers.signals


def test_network_error_on_send_marks_error(loop, timers) -> None:
    hub, api = _hub(loop)
    loop.run_until_complete(hub.async_refresh_structure())
    api.set_error = NetworkError("timeout")

    with pytest.raises(NetworkError):
        loop.run_until_complete(hub.async_send_command("off"))

    assert api.set_calls[0].params == {"power": "0"}
    assert hub.state == STATE_ERROR


def test_refresh_command_rediscovers(loop, timers) -> None:
    hub, api = _hub(loop)
    api.structure = [{"name": "speed", "type": 0, "min": 1, "max": 10}]

    loop.run_until_complete(hub.async_send_command("refresh"))

    assert hub.command_list == ["refresh", "speed:slider,1,1,10"]
    assert api.set_calls == []


def test_sections_limit_generated_commands(loop, timers) -> None:
    hub, _api = _hub(loop, sections=["colors"])
    loop.run_until_complete(hub.async_refresh_structure())

    assert hub.command_list == ["refresh", "solid_color:colorpicker,RGB"]


def test_websocket_read_step_projects_messages(loop, timers) -> None:
    hub, _api = _hub(loop, websocket_enabled=True)
    loop.run_until_complete(hub.async_refresh_structure())
    payload = b'{"name":"brightness","value":42}\x00{"name":"power","value":0}'
    hub._channel = FakeChannel([bytes([0x81, len(payload)]) + payload])

    hub._ws_read_step()

    assert hub.readings["brightness"] == 42
    assert hub.readings["power"] == "off"
    assert hub.readings["state"] == "off"
    assert "last_websocket_update" in hub.readings


def test_websocket_read_step_ignores_empty_reads(loop, timers) -> None:
    hub, _api = _hub(loop, websocket_enabled=True)
    hub._channel = FakeChannel([b""])
    timers.signals.clear()

    hub._ws_read_step()

    assert timers.signals == []


def test_websocket_lost_connection_schedules_reconnect(loop, timers) -> None:
    hub, _api = _hub(loop, websocket_enabled=True)
    hub._channel = FakeChannel([NetworkError("closed")])
    hub.websocket_state = WS_CONNECTED

    hub._ws_read_step()

    assert hub._channel is None
    assert hub.websocket_state == WS_DISCONNECTED
    assert timers.later[-1][0] == RETRY_DELAY


def test_websocket_connect_failure(loop, timers, monkeypatch) -> None:
    hub, _api = _hub(loop, websocket_enabled=True)

    def _fail(self, timeout):
        raise NetworkError("refused")

    monkeypatch.setattr(hub_module.WebSocketChannel, "connect", _fail)
    loop.run_until_complete(hub.async_connect_websocket())

    assert hub.websocket_state == WS_FAILED
    assert timers.later[-1][0] == RETRY_DELAY


def test_websocket_connect_starts_read_timer(loop, timers, monkeypatch) -> None:
    hub, _api = _hub(loop, websocket_enabled=True)
    monkeypatch.setattr(hub_module.WebSocketChannel, "connect", lambda self, timeout: None)

    loop.run_until_complete(hub.async_connect_websocket())

    assert hub.websocket_state == WS_CONNECTED
    assert timers.intervals[-1][0] == timedelta(seconds=1)

    loop.run_until_complete(hub.async_set_websocket_enabled(False))
    assert hub.websocket_state == WS_DISCONNECTED
    assert hub._channel is None


def test_apply_new_settings_with_new_sections(loop, timers) -> None:
    hub, _api = _hub(loop)
    loop.run_until_complete(hub.async_refresh_structure())

    loop.run_until_complete(
        hub.async_apply_new_settings(
            host="192.168.1.50",
            port=80,
            interval=60,
            timeout=3,
            websocket_enabled=False,
            sections=["main"],
        )
    )

    assert hub.command_list == ["refresh", "brightness:slider,0,1,255", "on", "off"]
    assert hub.interval == 60
    assert timers.intervals[-1][0] == timedelta(seconds=60)


def test_get_raw_passes_through(loop, timers) -> None:
    hub, _api = _hub(loop)

    assert loop.run_until_complete(hub.async_get("status")) == "raw status"


class YieldingHass(FakeHass):
    async def async_add_executor_job(self, func, *args, **kwargs):
        await asyncio.sleep(0)
        return func(*args, **kwargs)


def test_overlapping_websocket_connects_open_one_channel(loop, timers, monkeypatch) -> None:
    hub, _api = _hub(loop, websocket_enabled=True)
    hub.hass = YieldingHass(loop)
    handshakes: list[int] = []
    monkeypatch.setattr(
        hub_module.WebSocketChannel, "connect", lambda self, timeout: handshakes.append(timeout)
    )

    loop.run_until_complete(
        asyncio.gather(hub.async_connect_websocket(), hub.async_connect_websocket())
    )

    assert handshakes == [5]
    assert len(timers.intervals) == 1
    assert hub.websocket_state == WS_CONNECTED

    loop.run_until_complete(hub.async_stop())
    assert timers.cancelled == 1
    assert hub._channel is None


def test_reconnect_replaces_stale_channel_and_timer(loop, timers, monkeypatch) -> None:
    hub, _api = _hub(loop, websocket_enabled=True)
    monkeypatch.setattr(hub_module.WebSocketChannel, "connect", lambda self, timeout: None)
    stale = FakeChannel([])
    stale.closed = True
    hub._channel = stale
    hub._unsub_ws_read = timers._unsub

    loop.run_until_complete(hub.async_connect_websocket())

    assert timers.cancelled == 1
    assert hub._channel is not stale
    assert len(timers.intervals) == 1
