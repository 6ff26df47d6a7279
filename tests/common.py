"""Shared helpers for Sonoff DIY tests."""

from __future__ import annotations

from datetime import timedelta

from homeassistant.core import HomeAssistant
from homeassistant.util import dt as dt_util
from pytest_homeassistant_custom_component.common import async_fire_time_changed

from custom_components.sonoff_diy.api import SonoffDiyApiError, SonoffDiyInfo

HOST = "1.2.3.4"
PORT = 8081
DEVICE_ID = "1000abcdef"
INFO_URL = f"http://{HOST}:{PORT}/zeroconf/info"
SWITCH_URL = f"http://{HOST}:{PORT}/zeroconf/switch"


def info_payload(switch: str = "on") -> dict:
    return {
        "seq": 2,
        "error": 0,
        "data": {
            "switch": switch,
            "startup": "off",
            "pulse": "off",
            "pulseWidth": 500,
            "ssid": "home",
            "otaUnlock": False,
            "fwVersion": "3.6.0",
            "deviceid": DEVICE_ID,
            "bssid": "ec:17:2f:3d:15:e",
            "signalStrength": -55,
        },
    }


def fire_after(hass: HomeAssistant, seconds: float) -> None:
    """Fire every timer due within *seconds* from now."""
    async_fire_time_changed(hass, dt_util.utcnow() + timedelta(seconds=seconds))


class FakeSonoffApi:
    """In-memory stand-in for SonoffDiyApi."""

    base_url = f"http://{HOST}:{PORT}"

    def __init__(self, is_on: bool = False) -> None:
        self.is_on = is_on
        self.set_calls: list[bool] = []
        self.get_calls = 0
        self.set_error: SonoffDiyApiError | None = None
        self.get_error: SonoffDiyApiError | None = None

    async def async_set_switch(self, on: bool) -> dict:
        self.set_calls.append(on)
        if self.set_error is not None:
            raise self.set_error
        self.is_on = on
        return {"error": 0}

    async def async_get_switch(self) -> bool:
        self.get_calls += 1
        if self.get_error is not None:
            raise self.get_error
        return self.is_on

    async def async_get_info(self) -> SonoffDiyInfo:
        if self.get_error is not None:
            raise self.get_error
        return SonoffDiyInfo(
            is_on=self.is_on,
            device_id=DEVICE_ID,
            fw_version="3.6.0",
            ssid="home",
            signal_strength=-55,
        )
