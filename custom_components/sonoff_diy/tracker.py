"""Background reconciliation of the cached switch state."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from homeassistant.core import CALLBACK_TYPE, HomeAssistant, callback
from homeassistant.helpers.event import async_track_time_interval

from .api import SonoffDiyApiError
from .dispatcher import CommandDispatcher

_LOGGER = logging.getLogger(__name__)


@dataclass
class SwitchState:
    """Last confirmed switch position; ``None`` until the device answered once."""

    is_on: bool | None = None


class StateTracker:
    """Polls the device through the dispatcher and reports external changes.

    Polls are started with :meth:`CommandDispatcher.attempt_now`, so a poll
    that falls while a command is in flight is skipped rather than queued.
    """

    def __init__(
        self,
        hass: HomeAssistant,
        name: str,
        dispatcher: CommandDispatcher,
        fetch: Callable[[], Awaitable[bool]],
        state: SwitchState,
        on_change: Callable[[bool], None],
        interval: timedelta,
    ) -> None:
        self._hass = hass
        self._name = name
        self._dispatcher = dispatcher
        self._fetch = fetch
        self._state = state
        self._on_change = on_change
        self.interval = interval

        self._unsub: CALLBACK_TYPE | None = None
        self._failing = False

    @callback
    def async_start(self) -> None:
        if self._unsub is not None:
            return
        self._unsub = async_track_time_interval(
            self._hass, self._async_poll_tick, self.interval, cancel_on_shutdown=True
        )
        _LOGGER.debug(
            "[%s] Started refreshing switch state every %s", self._name, self.interval
        )

    @callback
    def async_stop(self) -> None:
        if self._unsub is not None:
            self._unsub()
            self._unsub = None

    @callback
    def _async_poll_tick(self, _now: datetime) -> None:
        if not self._dispatcher.attempt_now(self.async_poll):
            _LOGGER.debug("[%s] Dispatcher busy, skipping poll", self._name)

    async def async_poll(self) -> None:
        """Read the switch once and reconcile the cached state."""
        try:
            new_state = await self._fetch()
        except SonoffDiyApiError as err:
            if not self._failing:
                self._failing = True
                _LOGGER.warning("[%s] Unable to read switch state: %s", self._name, err)
            else:
                _LOGGER.debug("[%s] Switch state still unavailable: %s", self._name, err)
            return

        if self._failing:
            self._failing = False
            _LOGGER.info("[%s] Switch state readable again", self._name)

        if self._state.is_on == new_state:
            return
        self._state.is_on = new_state
        _LOGGER.info("[%s] External state change detected, now %s", self._name, "on" if new_state else "off")
        self._on_change(new_state)
