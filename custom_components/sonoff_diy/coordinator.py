"""Sonoff DIY coordinator.

One coordinator exists per config entry.  It owns the cached switch state, a
:class:`~.dispatcher.CommandDispatcher` that paces every device call, and a
:class:`~.tracker.StateTracker` that keeps the cache in line with changes made
outside Home Assistant (wall button, eWeLink app, ...).

Entities never talk to the device directly: reads are answered from the cache
and writes are queued on the dispatcher's immediate lane.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import timedelta

from homeassistant.core import HomeAssistant, callback

from .api import SonoffDiyApi, SonoffDiyApiError, SonoffDiyInfo
from .const import DISPATCH_COOLDOWN_SECONDS, DISPATCH_FREQUENCY_HZ, SCAN_INTERVAL_SECONDS
from .dispatcher import CommandDispatcher
from .tracker import StateTracker, SwitchState

_LOGGER = logging.getLogger(__name__)


class SonoffDiyCoordinator:
    """Serialises commands and state polling for a single Sonoff DIY device.

    Attributes:
        api:        HTTP client for the device.
        name:       Human-readable name used in log messages.
        info:       Device details from the first refresh, if it succeeded.
        dispatcher: Command pacing.
        tracker:    Background state polling.
    """

    def __init__(
        self,
        hass: HomeAssistant,
        api: SonoffDiyApi,
        name: str,
        scan_interval: timedelta = timedelta(seconds=SCAN_INTERVAL_SECONDS),
        frequency: float = DISPATCH_FREQUENCY_HZ,
        cooldown: float = DISPATCH_COOLDOWN_SECONDS,
    ) -> None:
        self._hass = hass
        self.api = api
        self.name = name
        self.info: SonoffDiyInfo | None = None

        self.state = SwitchState()
        self.dispatcher = CommandDispatcher(hass, name, frequency, cooldown)
        self.tracker = StateTracker(
            hass,
            name,
            self.dispatcher,
            api.async_get_switch,
            self.state,
            self._on_external_change,
            scan_interval,
        )

        self._listeners: list[Callable[[], None]] = []
        # Requests whose job has not started yet
        self._pending: set[asyncio.Future[None]] = set()

    # ── Public API ─────────────────────────────────────────────────────────────

    @property
    def is_on(self) -> bool | None:
        """Return the cached switch state without touching the network.

        ``None`` means no read or write has succeeded yet.
        """
        return self.state.is_on

    def register_update_callback(self, cb: Callable[[], None]) -> Callable[[], None]:
        """Register a callback that is invoked whenever the switch state changes.

        Returns:
            A remove function; call it when the listener goes away.
        """
        self._listeners.append(cb)

        def _remove() -> None:
            try:
                self._listeners.remove(cb)
            except ValueError:
                pass

        return _remove

    async def async_first_refresh(self) -> None:
        """Read device details and seed the cache before the timers start.

        Raises:
            SonoffDiyApiError: The device could not be read.
        """
        self.info = await self.api.async_get_info()
        self.state.is_on = self.info.is_on
        _LOGGER.debug("[%s] Initial state: %s", self.name, "on" if self.info.is_on else "off")

    @callback
    def async_start(self) -> None:
        self.dispatcher.async_start()
        self.tracker.async_start()

    @callback
    def async_stop(self) -> None:
        """Stop both timers and fail requests whose job has not started.

        Requests already running on the device keep their future and resolve
        with the device's answer.
        """
        self.tracker.async_stop()
        self.dispatcher.async_stop()
        for future in self._pending:
            if not future.done():
                future.set_exception(self._shutdown_error())
        self._pending.clear()

    def _shutdown_error(self) -> SonoffDiyApiError:
        return SonoffDiyApiError(f"{self.name} is shutting down")

    async def async_request_set(self, value: bool) -> None:
        """Switch the device on or off.

        The write is placed on the dispatcher's immediate lane; this coroutine
        returns once the device has confirmed it.

        Raises:
            SonoffDiyApiError: The device rejected the command or was unreachable,
                or the coordinator was stopped before the command ran.
        """
        _LOGGER.debug("[%s] Handling set request, value: %s", self.name, value)
        future: asyncio.Future[None] = self._hass.loop.create_future()

        async def _set_job() -> None:
            # From here on the job itself resolves the future
            self._pending.discard(future)
            try:
                await self.api.async_set_switch(value)
            except SonoffDiyApiError as err:
                if not future.done():
                    future.set_exception(err)
                return
            except Exception as err:
                if not future.done():
                    future.set_exception(SonoffDiyApiError(f"Unexpected error: {err}"))
                raise
            changed = self.state.is_on != value
            self.state.is_on = value
            if not future.done():
                future.set_result(None)
            if changed:
                self._notify_listeners()

        if not self.dispatcher.submit_immediate(_set_job):
            raise self._shutdown_error()
        self._pending.add(future)
        try:
            await future
        finally:
            self._pending.discard(future)

    async def async_request_refresh(self) -> None:
        """Poll the device on the dispatcher's low-priority lane and wait for it.

        Unlike the periodic poll this is never skipped; it waits its turn.

        Raises:
            SonoffDiyApiError: The coordinator was stopped before the poll ran.
        """
        future: asyncio.Future[None] = self._hass.loop.create_future()

        async def _refresh_job() -> None:
            self._pending.discard(future)
            try:
                await self.tracker.async_poll()
            finally:
                if not future.done():
                    future.set_result(None)

        if not self.dispatcher.submit(_refresh_job):
            raise self._shutdown_error()
        self._pending.add(future)
        try:
            await future
        finally:
            self._pending.discard(future)

    # ── Listener notification ──────────────────────────────────────────────────

    @callback
    def _on_external_change(self, _value: bool) -> None:
        self._notify_listeners()

    @callback
    def _notify_listeners(self) -> None:
        for cb in list(self._listeners):
            try:
                cb()
            except Exception:  # noqa: BLE001
                _LOGGER.exception("[%s] Error in update callback", self.name)
