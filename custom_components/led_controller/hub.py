from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Optional

from aiohttp import ClientSession

from homeassistant.core import CALLBACK_TYPE, HomeAssistant, callback
from homeassistant.helpers.aiohttp_client import async_get_clientsession
from homeassistant.helpers.dispatcher import async_dispatcher_send
from homeassistant.helpers.event import async_call_later, async_track_time_interval

from .const import (
    INITIAL_DISCOVERY_DELAY,
    RETRY_DELAY,
    STATE_ACTIVE,
    STATE_ERROR,
    STATE_INITIALIZING,
    WS_CONNECTED,
    WS_CONNECTING,
    WS_DISCONNECTED,
    WS_FAILED,
    WS_READ_INTERVAL,
    signal_readings,
    signal_schema,
    signal_state,
)
from .lib.api import DeviceApi
from .lib.commands import CommandDispatcher
from .lib.errors import NetworkError, SchemaError
from .lib.field_kinds import WidgetDescriptor
from .lib.projector import HTTP_TIMESTAMP_READING, Reading, ReadingProjector
from .lib.schema import POWER_FIELD, SchemaRegistry
from .lib.websocket import WebSocketChannel, decode_messages, extract_frame_payload
from .lib.widgets import REFRESH_COMMAND, build_command_list, build_widget_table

_LOGGER = logging.getLogger(__name__)


class LEDControllerHub:
    """One controller session: schema, readings, HTTP client and WebSocket."""

    def __init__(
        self,
        hass: HomeAssistant,
        entry_id: str,
        name: str,
        host: str,
        port: int,
        *,
        interval: int,
        timeout: int,
        websocket_enabled: bool,
        sections: Optional[list[str]] = None,
        session: Optional[ClientSession] = None,
    ) -> None:
        self.hass = hass
        self.entry_id = entry_id
        self.name = name
        self.host = host
        self.port = int(port)
        self.interval = int(interval)
        self.timeout = int(timeout)
        self.websocket_enabled = bool(websocket_enabled)
        self.sections = sections

        self.registry = SchemaRegistry()
        self.dispatcher = CommandDispatcher(self.registry)
        self.projector = ReadingProjector(self.registry)
        self._session = session
        self._api = self._create_api()
        self._channel: Optional[WebSocketChannel] = None
        self._ws_connecting = False

        self.readings: dict[str, Any] = {}
        self.state: str = STATE_INITIALIZING
        self.websocket_state: str = WS_DISCONNECTED
        self.command_list: list[str] = []
        self.widgets: dict[str, Optional[WidgetDescriptor]] = {}

        self._unsub_discovery: Optional[CALLBACK_TYPE] = None
        self._unsub_status: Optional[CALLBACK_TYPE] = None
        self._unsub_ws_read: Optional[CALLBACK_TYPE] = None
        self._unsub_ws_reconnect: Optional[CALLBACK_TYPE] = None

    def _create_api(self) -> DeviceApi:
        session = self._session or async_get_clientsession(self.hass)
        return DeviceApi(session, self.host, self.port, self.timeout)

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------
    async def async_start(self) -> None:
        _LOGGER.debug("[%s] Starting hub for %s:%s", self.entry_id, self.host, self.port)
        self._schedule_discovery(INITIAL_DISCOVERY_DELAY)
        if self.websocket_enabled:
            self.hass.async_create_task(self.async_connect_websocket())

    async def async_stop(self) -> None:
        _LOGGER.debug("[%s] Stopping hub", self.entry_id)
        self._cancel_discovery()
        self._stop_status_polling()
        self._disconnect_websocket(WS_DISCONNECTED)

    async def async_apply_new_settings(
        self,
        *,
        host: str,
        port: int,
        interval: int,
        timeout: int,
        websocket_enabled: bool,
        sections: Optional[list[str]],
    ) -> None:
        endpoint_changed = str(host) != str(self.host) or int(port) != self.port
        interval_changed = int(interval) != self.interval
        sections_changed = sections != self.sections

        _LOGGER.debug(
            "[%s] Applying settings host=%s port=%s interval=%s timeout=%s websocket=%s sections=%s",
            self.entry_id,
            host,
            port,
            interval,
            timeout,
            websocket_enabled,
            sections,
        )

        self.interval = int(interval)
        self.timeout = int(timeout)
        self._api.timeout = self.timeout
        self.sections = sections

        if endpoint_changed:
            await self.async_stop()
            self.host = host
            self.port = int(port)
            self._api = self._create_api()
            # a different device may expose different fields
            self.registry.clear()
            self.readings.clear()
            self._rebuild_commands()
            async_dispatcher_send(self.hass, signal_schema(self.entry_id))
            self.websocket_enabled = bool(websocket_enabled)
            await self.async_start()
            return

        if sections_changed and self.registry.ready:
            self._rebuild_commands()
            async_dispatcher_send(self.hass, signal_schema(self.entry_id))

        if interval_changed and self._unsub_status is not None:
            self._start_status_polling()

        if bool(websocket_enabled) != self.websocket_enabled:
            await self.async_set_websocket_enabled(bool(websocket_enabled))

    # ------------------------------------------------------------------
    # discovery
    # ------------------------------------------------------------------
    def _schedule_discovery(self, delay: float) -> None:
        self._cancel_discovery()

        @callback
        def _fire(_now: datetime) -> None:
            self._unsub_discovery = None
            self.hass.async_create_task(self.async_refresh_structure())

        self._unsub_discovery = async_call_later(self.hass, delay, _fire)

    def _cancel_discovery(self) -> None:
        if self._unsub_discovery is not None:
            self._unsub_discovery()
            self._unsub_discovery = None

    async def async_refresh_structure(self) -> bool:
        """Fetch ``/all`` and replace the registry. Returns ``True`` on success."""

        _LOGGER.info("[%s] Retrieving field structure from %s", self.entry_id, self.host)
        self._cancel_discovery()
        try:
            raw = await self._api.async_get_structure()
            count = self.registry.rebuild(raw)
        except NetworkError as err:
            _LOGGER.warning("[%s] Field structure request failed: %s", self.entry_id, err)
            self._set_state(STATE_ERROR)
            self._schedule_discovery(RETRY_DELAY)
            return False
        except SchemaError as err:
            _LOGGER.warning(
                "[%s] Rejected field structure, keeping %d known fields: %s",
                self.entry_id,
                len(self.registry.fields),
                err,
            )
            self._set_state(STATE_ERROR)
            self._schedule_discovery(RETRY_DELAY)
            return False

        self._rebuild_commands()
        _LOGGER.info(
            "[%s] Field structure loaded with %d fields, %d commands",
            self.entry_id,
            count,
            len(self.command_list),
        )
        async_dispatcher_send(self.hass, signal_schema(self.entry_id))
        self._set_state(STATE_ACTIVE)
        self._start_status_polling()
        return True

    def _rebuild_commands(self) -> None:
        self.command_list = build_command_list(self.registry, self.sections)
        self.widgets = build_widget_table(self.registry, self.sections)
        _LOGGER.debug("[%s] Commands: %s", self.entry_id, " ".join(self.command_list))

    # ------------------------------------------------------------------
    # status polling
    # ------------------------------------------------------------------
    def _start_status_polling(self) -> None:
        self._stop_status_polling()

        @callback
        def _tick(_now: datetime) -> None:
            self.hass.async_create_task(self.async_update_status())

        self._unsub_status = async_track_time_interval(
            self.hass, _tick, timedelta(seconds=self.interval)
        )
        self.hass.async_create_task(self.async_update_status())

    def _stop_status_polling(self) -> None:
        if self._unsub_status is not None:
            self._unsub_status()
            self._unsub_status = None

    async def async_update_status(self) -> None:
        try:
            payload = await self._api.async_get_all_values()
        except NetworkError as err:
            _LOGGER.warning("[%s] Status update failed: %s", self.entry_id, err)
            self._set_state(STATE_ERROR)
            return
        if payload is None:
            return
        self._apply_readings(self.projector.project_all_values(payload))
        self._set_state(STATE_ACTIVE)

    # ------------------------------------------------------------------
    # commands
    # ------------------------------------------------------------------
    async def async_send_command(self, command: str, value: Any = None) -> None:
        """Validate and send one command.

        Raises :class:`~.lib.errors.ValidationError` before any request when
        the command or value is rejected, and
        :class:`~.lib.errors.NetworkError` when the controller is unreachable.
        """

        if command == REFRESH_COMMAND:
            await self.async_refresh_structure()
            return

        request = self.dispatcher.build_request(command, value)
        _LOGGER.debug("[%s] Sending %s: %s", self.entry_id, command, request.params)
        try:
            payload = await self._api.async_set(request)
        except NetworkError:
            self._set_state(STATE_ERROR)
            raise

        if isinstance(payload, dict) and ("currentState" in payload or POWER_FIELD in payload):
            readings = self.projector.project(payload, timestamp_reading=HTTP_TIMESTAMP_READING)
            self._apply_readings(readings)
        self._set_state(STATE_ACTIVE)

    async def async_get(self, kind: str) -> str:
        """Return the raw response of one of the informational endpoints."""

        return await self._api.async_get_raw(kind)

    # ------------------------------------------------------------------
    # websocket
    # ------------------------------------------------------------------
    async def async_set_websocket_enabled(self, enable: bool) -> None:
        _LOGGER.debug("[%s] Setting websocket enabled=%s", self.entry_id, enable)
        self.websocket_enabled = enable
        if enable:
            await self.async_connect_websocket()
        else:
            self._disconnect_websocket(WS_DISCONNECTED)

    async def async_connect_websocket(self) -> None:
        if self._ws_connecting:
            return
        if self._channel is not None and self._channel.connected:
            return
        self._ws_connecting = True
        try:
            await self._async_open_websocket()
        finally:
            self._ws_connecting = False

    async def _async_open_websocket(self) -> None:
        self._cancel_ws_reconnect()

        _LOGGER.info("[%s] Connecting WebSocket to %s:%s", self.entry_id, self.host, self.port)
        self._set_websocket_state(WS_CONNECTING)
        channel = WebSocketChannel(self.host, self.port)
        try:
            await self.hass.async_add_executor_job(channel.connect, self.timeout)
        except NetworkError as err:
            _LOGGER.warning("[%s] WebSocket connection failed: %s", self.entry_id, err)
            self._set_websocket_state(WS_FAILED)
            self._schedule_ws_reconnect()
            return

        if not self.websocket_enabled:
            # disabled while the handshake was running
            channel.close()
            self._set_websocket_state(WS_DISCONNECTED)
            return

        # drop a stale channel and its read timer
        if self._unsub_ws_read is not None:
            self._unsub_ws_read()
            self._unsub_ws_read = None
        if self._channel is not None:
            self._channel.close()
        self._channel = channel
        self._set_websocket_state(WS_CONNECTED)
        self._unsub_ws_read = async_track_time_interval(
            self.hass, self._ws_read_step, timedelta(seconds=WS_READ_INTERVAL)
        )

    @callback
    def _ws_read_step(self, _now: Optional[datetime] = None) -> None:
        channel = self._channel
        if channel is None:
            return

        try:
            data = channel.read()
        except NetworkError as err:
            _LOGGER.warning("[%s] WebSocket connection lost: %s", self.entry_id, err)
            self._disconnect_websocket(WS_DISCONNECTED)
            self._schedule_ws_reconnect()
            return

        if not data:
            return

        _LOGGER.debug("[%s] WebSocket data received: %r", self.entry_id, data)
        readings: list[Reading] = []
        for message in decode_messages(extract_frame_payload(data)):
            readings.extend(self.projector.project(message))
        if readings:
            self._apply_readings(readings)

    def _disconnect_websocket(self, new_state: str) -> None:
        self._cancel_ws_reconnect()
        if self._unsub_ws_read is not None:
            self._unsub_ws_read()
            self._unsub_ws_read = None
        if self._channel is not None:
            self._channel.close()
            self._channel = None
        self._set_websocket_state(new_state)

    def _schedule_ws_reconnect(self) -> None:
        if not self.websocket_enabled:
            return
        self._cancel_ws_reconnect()

        @callback
        def _fire(_now: datetime) -> None:
            self._unsub_ws_reconnect = None
            self.hass.async_create_task(self.async_connect_websocket())

        self._unsub_ws_reconnect = async_call_later(self.hass, RETRY_DELAY, _fire)

    def _cancel_ws_reconnect(self) -> None:
        if self._unsub_ws_reconnect is not None:
            self._unsub_ws_reconnect()
            self._unsub_ws_reconnect = None

    # ------------------------------------------------------------------
    # state
    # ------------------------------------------------------------------
    def _apply_readings(self, readings: list[Reading]) -> None:
        for reading in readings:
            self.readings[reading.name] = reading.value
        async_dispatcher_send(self.hass, signal_readings(self.entry_id))

    def _set_state(self, state: str) -> None:
        if state == self.state:
            return
        _LOGGER.debug("[%s] State %s -> %s", self.entry_id, self.state, state)
        self.state = state
        async_dispatcher_send(self.hass, signal_state(self.entry_id))

    def _set_websocket_state(self, state: str) -> None:
        if state == self.websocket_state:
            return
        self.websocket_state = state
        async_dispatcher_send(self.hass, signal_state(self.entry_id))

    def get_reading(self, name: str, default: Any = None) -> Any:
        return self.readings.get(name, default)
