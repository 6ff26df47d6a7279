from __future__ import annotations

from typing import Any

from homeassistant.components.switch import SwitchEntity
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers.device_registry import DeviceInfo
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from .api import SonoffDiyApiError
from .const import DOMAIN, MANUFACTURER, MODEL
from .coordinator import SonoffDiyCoordinator


async def async_setup_entry(
    hass: HomeAssistant, entry: ConfigEntry, async_add_entities: AddEntitiesCallback
) -> None:
    coordinator: SonoffDiyCoordinator = hass.data[DOMAIN][entry.entry_id]["coordinator"]
    async_add_entities([SonoffDiySwitch(coordinator, entry)])


class SonoffDiySwitch(SwitchEntity):
    _attr_has_entity_name = True
    _attr_name = None
    _attr_should_poll = False  # the coordinator pushes changes

    def __init__(self, coordinator: SonoffDiyCoordinator, entry: ConfigEntry) -> None:
        self.coordinator = coordinator
        unique_id = entry.unique_id or entry.entry_id
        self._attr_unique_id = f"{unique_id}_switch"

        info = coordinator.info
        self._attr_device_info = DeviceInfo(
            identifiers={(DOMAIN, unique_id)},
            name=entry.title,
            manufacturer=MANUFACTURER,
            model=MODEL,
            sw_version=info.fw_version if info else None,
            configuration_url=coordinator.api.base_url,
        )

    @property
    def is_on(self) -> bool | None:
        return self.coordinator.is_on

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        info = self.coordinator.info
        if info is None:
            return {}
        return {
            "device_id": info.device_id,
            "ssid": info.ssid,
            "signal_strength": info.signal_strength,
        }

    async def async_added_to_hass(self) -> None:
        await super().async_added_to_hass()
        self.async_on_remove(
            self.coordinator.register_update_callback(self.async_write_ha_state)
        )

    async def async_turn_on(self, **kwargs: Any) -> None:
        await self._async_set(True)

    async def async_turn_off(self, **kwargs: Any) -> None:
        await self._async_set(False)

    async def async_update(self) -> None:
        """Refresh from the device (used by ``homeassistant.update_entity``)."""
        try:
            await self.coordinator.async_request_refresh()
        except SonoffDiyApiError as err:
            raise HomeAssistantError(f"Failed to refresh {self.coordinator.name}: {err}") from err

    async def _async_set(self, value: bool) -> None:
        try:
            await self.coordinator.async_request_set(value)
        except SonoffDiyApiError as err:
            raise HomeAssistantError(
                f"Failed to turn {'on' if value else 'off'} {self.coordinator.name}: {err}"
            ) from err
