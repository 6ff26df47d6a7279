from __future__ import annotations

import logging

import voluptuous as vol

from homeassistant import config_entries
from homeassistant.core import HomeAssistant
from homeassistant.helpers.aiohttp_client import async_get_clientsession

from .api import SonoffDiyApi, SonoffDiyApiError
from .const import DOMAIN, CONF_HOST, CONF_NAME, CONF_PORT, DEFAULT_NAME, DEFAULT_PORT

_LOGGER = logging.getLogger(__name__)


async def _validate(hass: HomeAssistant, host: str, port: int) -> dict:
    api = SonoffDiyApi(async_get_clientsession(hass), host, port)
    info = await api.async_get_info()
    return {
        "title": DEFAULT_NAME,
        "unique_id": info.device_id or f"{host}:{port}",
    }


class SonoffDiyConfigFlow(config_entries.ConfigFlow, domain=DOMAIN):
    VERSION = 1

    async def async_step_user(self, user_input=None):
        errors = {}

        if user_input is not None:
            host = user_input[CONF_HOST].strip()
            port = user_input[CONF_PORT]
            name = user_input.get(CONF_NAME) or None

            try:
                result = await _validate(self.hass, host, port)
            except SonoffDiyApiError:
                errors["base"] = "cannot_connect"
            except Exception:  # noqa: BLE001
                _LOGGER.exception("Unexpected error while contacting %s:%s", host, port)
                errors["base"] = "unknown"
            else:
                await self.async_set_unique_id(result["unique_id"])
                self._abort_if_unique_id_configured(updates={CONF_HOST: host, CONF_PORT: port})

                data = {CONF_HOST: host, CONF_PORT: port}
                if name:
                    data[CONF_NAME] = name

                return self.async_create_entry(
                    title=name or result["title"],
                    data=data,
                )

        schema = vol.Schema(
            {
                vol.Required(CONF_HOST): str,
                vol.Optional(CONF_PORT, default=DEFAULT_PORT): vol.All(
                    vol.Coerce(int), vol.Range(min=1, max=65535)
                ),
                vol.Optional(CONF_NAME, default=""): str,
            }
        )

        return self.async_show_form(step_id="user", data_schema=schema, errors=errors)
