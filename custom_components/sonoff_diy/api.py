from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from typing import Any

import aiohttp

from .const import DEFAULT_PORT, PATH_INFO, PATH_SWITCH, REQUEST_TIMEOUT_SECONDS


class SonoffDiyApiError(Exception):
    """Raised on any API/transport error."""


class SonoffDiyConnectionError(SonoffDiyApiError):
    """The device could not be reached or answered with a bad HTTP status."""


class SonoffDiyResponseError(SonoffDiyApiError):
    """The device answered, but reported an error or sent an unusable payload."""

    def __init__(self, message: str, code: Any = None) -> None:
        super().__init__(message)
        self.code = code


@dataclass
class SonoffDiyInfo:
    is_on: bool
    device_id: str | None
    fw_version: str | None
    ssid: str | None
    signal_strength: int | None


def _switch_value(data: dict[str, Any]) -> bool:
    value = data.get("switch")
    if value not in ("on", "off"):
        raise SonoffDiyResponseError(f"Unexpected switch value: {value!r}")
    return value == "on"


class SonoffDiyApi:
    def __init__(
        self,
        session: aiohttp.ClientSession,
        host: str,
        port: int = DEFAULT_PORT,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
    ) -> None:
        self._session = session
        self._host = host.strip().rstrip("/")
        self._port = port
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    @property
    def base_url(self) -> str:
        return f"http://{self._host}:{self._port}"

    async def _post_json(self, path: str, data: dict[str, Any]) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            async with self._session.post(url, json={"data": data}, timeout=self._timeout) as resp:
                if resp.status != 200:
                    raise SonoffDiyConnectionError(f"POST {path} failed: HTTP {resp.status}")
                body = await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise SonoffDiyConnectionError(f"POST {path} failed: {e}") from e
        except ValueError as e:
            raise SonoffDiyResponseError(f"POST {path} returned invalid JSON: {e}") from e

        if not isinstance(body, dict):
            raise SonoffDiyResponseError(f"POST {path} returned {type(body).__name__}, expected object")

        # Firmware reports success as error=0; any falsy value counts as success
        error = body.get("error")
        if error:
            raise SonoffDiyResponseError(f"POST {path} failed: device error {error}", code=error)
        return body

    async def _info_data(self) -> dict[str, Any]:
        body = await self._post_json(PATH_INFO, {})
        data = body.get("data")
        # Older DIY firmware sends data as an encoded JSON string
        if isinstance(data, str):
            try:
                data = json.loads(data)
            except ValueError as e:
                raise SonoffDiyResponseError(f"Invalid info payload: {e}") from e
        if not isinstance(data, dict):
            raise SonoffDiyResponseError("Info response has no data object")
        return data

    async def async_set_switch(self, on: bool) -> dict[str, Any]:
        return await self._post_json(PATH_SWITCH, {"switch": "on" if on else "off"})

    async def async_get_switch(self) -> bool:
        return _switch_value(await self._info_data())

    async def async_get_info(self) -> SonoffDiyInfo:
        data = await self._info_data()
        signal = data.get("signalStrength")
        try:
            signal_strength = int(signal) if signal is not None else None
        except (TypeError, ValueError):
            signal_strength = None
        return SonoffDiyInfo(
            is_on=_switch_value(data),
            device_id=str(data["deviceid"]) if data.get("deviceid") else None,
            fw_version=data.get("fwVersion"),
            ssid=data.get("ssid"),
            signal_strength=signal_strength,
        )
