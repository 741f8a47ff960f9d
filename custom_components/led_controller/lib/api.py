"""Async HTTP client for the controller's REST endpoints.

The firmware answers plain ``GET`` requests:

* ``/all``        field structure (discovery)
* ``/allvalues``  current values, ``{"values": [{"name": ..., "value": ...}]}``
* ``/status``, ``/getmodes``, ``/getpals``  informational dumps
* ``/set?<field>=<value>``  change a value; answers with the new state
"""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Optional

import aiohttp
from aiohttp import ClientError, ClientSession, ClientTimeout

from .commands import SetRequest
from .errors import NetworkError, SchemaError

_LOGGER = logging.getLogger(__name__)

PATH_STRUCTURE = "/all"
PATH_ALL_VALUES = "/allvalues"
PATH_SET = "/set"

RAW_GETS: dict[str, str] = {
    "status": "/status",
    "allvalues": PATH_ALL_VALUES,
    "structure": PATH_STRUCTURE,
    "modes": "/getmodes",
    "palettes": "/getpals",
}


class DeviceApi:
    """Thin wrapper around an ``aiohttp`` session bound to one controller."""

    def __init__(self, session: ClientSession, host: str, port: int, timeout: float = 5) -> None:
        self._session = session
        self.host = host
        self.port = int(port)
        self.timeout = timeout

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}"

    async def _get(self, path: str, params: Optional[dict[str, str]] = None) -> str:
        url = f"{self.base_url}{path}"
        _LOGGER.debug("GET %s params=%s", url, params)
        try:
            async with self._session.get(
                url, params=params, timeout=ClientTimeout(total=self.timeout)
            ) as resp:
                if resp.status != 200:
                    raise NetworkError(f"{path} returned HTTP {resp.status}")
                text = await resp.text()
        except asyncio.TimeoutError as err:
            raise NetworkError(f"Timeout after {self.timeout}s requesting {path}") from err
        except ClientError as err:
            raise NetworkError(f"Error requesting {path}: {err}") from err

        _LOGGER.debug("Response from %s: %s", path, text[:200])
        return text

    @staticmethod
    def _loads(text: str, path: str) -> Any:
        try:
            return json.loads(text)
        except ValueError:
            _LOGGER.warning("Invalid JSON response from %s: %s", path, text[:100])
            return None

    async def async_get_structure(self) -> Any:
        text = await self._get(PATH_STRUCTURE)
        try:
            return json.loads(text)
        except ValueError as err:
            raise SchemaError(f"Error parsing field structure: {err}") from err

    async def async_get_all_values(self) -> Any:
        return self._loads(await self._get(PATH_ALL_VALUES), PATH_ALL_VALUES)

    async def async_set(self, request: SetRequest) -> Any:
        text = await self._get(PATH_SET, params=request.params)
        return self._loads(text, PATH_SET)

    async def async_get_raw(self, kind: str) -> str:
        path = RAW_GETS.get(kind)
        if path is None:
            raise KeyError(kind)
        return await self._get(path)


async def async_fetch_structure(host: str, port: int, timeout: float = 5) -> Any:
    """One-off discovery fetch with a private session (used by the CLI)."""

    async with aiohttp.ClientSession() as session:
        return await DeviceApi(session, host, port, timeout).async_get_structure()


__all__ = ["DeviceApi", "RAW_GETS", "async_fetch_structure"]
