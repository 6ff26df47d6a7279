"""Paced command dispatch for a single Sonoff DIY device.

DIY-mode firmware copes badly with overlapping or back-to-back HTTP calls, so
every device call goes through a :class:`CommandDispatcher`.

Pacing
------
The dispatcher checks its lanes once per *tick* (``ceil(1000 / frequency)``
milliseconds).  At most one job runs at a time, and after a job finishes the
dispatcher stays *busy* for a further ``cooldown`` seconds.  A device is thus
never addressed more often than once per tick, and never sooner than
``cooldown`` after the previous call returned.

Lanes
-----
``immediate``
    Interactive commands (turn on / turn off).  Always served first.
``queued``
    Lower-priority work that must not be lost, e.g. an explicit refresh.

Jobs can also be started with :meth:`CommandDispatcher.attempt_now`, which
runs the job only if the dispatcher is idle and otherwise drops it.  Periodic
polling uses this path so that missed polls never pile up behind commands.
"""

from __future__ import annotations

import logging
import math
from collections import deque
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta

from homeassistant.core import CALLBACK_TYPE, HassJob, HomeAssistant, callback
from homeassistant.helpers.event import async_call_later, async_track_time_interval

from .const import DISPATCH_COOLDOWN_SECONDS, DISPATCH_FREQUENCY_HZ

_LOGGER = logging.getLogger(__name__)

Job = Callable[[], Awaitable[None]]


def tick_interval(frequency: float) -> timedelta:
    """Return the tick period for a dispatch frequency given in Hz.

    The period is rounded up to whole milliseconds, so 3 Hz gives 334 ms.
    """
    if frequency <= 0:
        raise ValueError(f"Dispatch frequency must be positive, got {frequency}")
    return timedelta(milliseconds=math.ceil(1000 / frequency))


class CommandDispatcher:
    """Runs device jobs one at a time with a tick and a cooldown.

    Attributes:
        tick_interval: Period of the scheduling check.
        cooldown:      Seconds the dispatcher stays busy after a job finishes.
    """

    def __init__(
        self,
        hass: HomeAssistant,
        name: str,
        frequency: float = DISPATCH_FREQUENCY_HZ,
        cooldown: float = DISPATCH_COOLDOWN_SECONDS,
    ) -> None:
        self._hass = hass
        self._name = name
        self.tick_interval = tick_interval(frequency)
        self.cooldown = cooldown

        self._immediate: deque[Job] = deque()
        self._queued: deque[Job] = deque()
        self._busy = False
        self._running = False
        self._stopped = False

        self._tick_unsub: CALLBACK_TYPE | None = None
        self._cooldown_unsub: CALLBACK_TYPE | None = None
        # Bound once so every timer firing refers to this instance
        self._release_job = HassJob(
            self._async_release, f"{name} dispatcher cooldown", cancel_on_shutdown=True
        )

    @property
    def busy(self) -> bool:
        """Return ``True`` while a job runs or the cooldown is pending."""
        return self._busy

    @property
    def pending(self) -> int:
        """Number of jobs waiting in both lanes."""
        return len(self._immediate) + len(self._queued)

    # ── Lifecycle ──────────────────────────────────────────────────────────────

    @callback
    def async_start(self) -> None:
        """Start the periodic tick."""
        self._stopped = False
        if self._tick_unsub is not None:
            return
        self._tick_unsub = async_track_time_interval(
            self._hass, self._async_tick, self.tick_interval, cancel_on_shutdown=True
        )
        _LOGGER.debug(
            "[%s] Dispatcher started, tick %d ms, cooldown %.3f s",
            self._name, self.tick_interval / timedelta(milliseconds=1), self.cooldown,
        )

    @callback
    def async_stop(self) -> None:
        """Stop ticking, drop pending jobs and return to idle.

        A job that is already running is left to finish and keeps the
        dispatcher busy until it does; no cooldown timer is scheduled for it.
        """
        self._stopped = True
        if self._tick_unsub is not None:
            self._tick_unsub()
            self._tick_unsub = None
        if self._cooldown_unsub is not None:
            self._cooldown_unsub()
            self._cooldown_unsub = None
        dropped = self.pending
        self._immediate.clear()
        self._queued.clear()
        if not self._running:
            self._busy = False
        if dropped:
            _LOGGER.debug("[%s] Dispatcher stopped, dropped %d pending job(s)", self._name, dropped)

    # ── Submission ─────────────────────────────────────────────────────────────

    @callback
    def submit_immediate(self, job: Job) -> bool:
        """Queue *job* on the high-priority lane.

        Returns:
            ``False`` if the dispatcher is stopped and the job was rejected.
        """
        if self._stopped:
            return False
        self._immediate.append(job)
        _LOGGER.debug("[%s] Immediate job added (%d pending)", self._name, self.pending)
        return True

    @callback
    def submit(self, job: Job) -> bool:
        """Queue *job* on the low-priority lane; ``False`` if stopped."""
        if self._stopped:
            return False
        self._queued.append(job)
        _LOGGER.debug("[%s] Queued job added (%d pending)", self._name, self.pending)
        return True

    @callback
    def attempt_now(self, job: Job) -> bool:
        """Start *job* right away if idle and not stopped, otherwise discard it.

        Returns:
            ``True`` if the job was started.
        """
        if self._busy or self._stopped:
            return False
        self._dispatch(job)
        return True

    # ── Scheduling ─────────────────────────────────────────────────────────────

    @callback
    def _async_tick(self, _now: datetime) -> None:
        if self._busy:
            return
        if self._immediate:
            _LOGGER.debug("[%s] Dispatching immediate job", self._name)
            self._dispatch(self._immediate.popleft())
        elif self._queued:
            _LOGGER.debug("[%s] Dispatching queued job", self._name)
            self._dispatch(self._queued.popleft())

    @callback
    def _dispatch(self, job: Job) -> None:
        # Must flip before the task is created so nothing else slips in
        self._busy = True
        self._running = True
        self._hass.async_create_task(self._async_execute(job))

    async def _async_execute(self, job: Job) -> None:
        try:
            await job()
        except Exception:  # noqa: BLE001
            _LOGGER.exception("[%s] Device job failed", self._name)
        finally:
            self._running = False
            if self._stopped:
                self._busy = False
            else:
                self._cooldown_unsub = async_call_later(
                    self._hass, self.cooldown, self._release_job
                )

    @callback
    def _async_release(self, _now: datetime) -> None:
        self._cooldown_unsub = None
        self._busy = False
