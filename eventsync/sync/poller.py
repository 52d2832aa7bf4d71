"""Lightweight change detection that triggers full reloads only on change."""

import asyncio
import logging
from collections.abc import Hashable
from enum import Enum
from typing import Awaitable, Callable, Optional

from ..connectivity.monitor import ConnectivityMonitor

logger = logging.getLogger(__name__)

SignalFetcher = Callable[[Hashable], Awaitable[int]]
Reloader = Callable[[Hashable], Awaitable[bool]]


class PollerState(str, Enum):
    """Per-context poller state."""

    IDLE = "idle"
    CHECKING = "checking"
    RELOADING = "reloading"


class ChangeDetectionPoller:
    """Polls a cheap change signal (a count) and reloads when it differs from the baseline.

    The poller is bound to one filter context at a time. Activating a new
    context resets the baseline, and results of a check or reload started under
    an earlier context are discarded. The baseline only moves forward after a
    successful reload, so a failed reload is retried on the next tick.
    """

    def __init__(
        self,
        name: str,
        fetch_signal: SignalFetcher,
        reload: Reloader,
        interval: float,
        connectivity: Optional[ConnectivityMonitor] = None,
        auto_start: bool = True,
    ) -> None:
        """Initialize change detection poller.

        Args:
            name: Label used in log messages
            fetch_signal: Returns the change signal for a context
            reload: Performs the full reload for a context, returns success
            interval: Seconds between ticks
            connectivity: When given, ticks are skipped while offline
            auto_start: Start the tick loop on activation
        """
        self.name = name
        self._fetch_signal = fetch_signal
        self._reload = reload
        self.interval = interval
        self._connectivity = connectivity
        self._auto_start = auto_start

        self._active = False
        self._context: Optional[Hashable] = None
        self._last_observed: Optional[int] = None
        self._state = PollerState.IDLE
        self._generation = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def state(self) -> PollerState:
        return self._state

    @property
    def context(self) -> Optional[Hashable]:
        return self._context

    @property
    def last_observed(self) -> Optional[int]:
        return self._last_observed

    @property
    def is_active(self) -> bool:
        return self._active

    def activate(self, context: Hashable, baseline: Optional[int] = None) -> None:
        """Bind the poller to a filter context.

        Args:
            context: Filter context the signal and reload are evaluated for
            baseline: Signal value of the data currently shown; when None the
                first tick only records the signal
        """
        if not self._active or context != self._context or baseline is not None:
            self._generation += 1
            self._context = context
            self._last_observed = baseline
            self._state = PollerState.IDLE
            logger.debug(f"{self.name} poller bound to {context} (baseline: {baseline})")

        self._active = True
        if self._auto_start:
            self.start()

    def deactivate(self) -> None:
        """Stop ticking and discard any in-flight check or reload."""
        if not self._active:
            return

        self._active = False
        self._generation += 1
        self._state = PollerState.IDLE
        if self._task is not None:
            self._task.cancel()
            self._task = None
        logger.debug(f"{self.name} poller deactivated")

    async def tick(self) -> bool:
        """Run one check cycle.

        Returns:
            True if a reload was triggered and succeeded for the current context
        """
        if not self._active:
            return False
        if self._connectivity is not None and not self._connectivity.is_online:
            logger.debug(f"{self.name} poller: offline, skipping tick")
            return False

        generation = self._generation
        context = self._context

        self._state = PollerState.CHECKING
        try:
            signal = await self._fetch_signal(context)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(f"{self.name} poller: change signal unavailable: {e}")
            self._settle(generation)
            return False

        if generation != self._generation:
            logger.debug(f"{self.name} poller: context changed during check, discarding")
            return False

        if self._last_observed is None:
            self._last_observed = signal
            self._state = PollerState.IDLE
            return False

        if signal == self._last_observed:
            self._state = PollerState.IDLE
            return False

        logger.info(f"{self.name} changed for {context}: {self._last_observed} -> {signal}, reloading")
        self._state = PollerState.RELOADING
        try:
            reloaded = await self._reload(context)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception(f"{self.name} poller: reload failed")
            reloaded = False

        if generation != self._generation:
            logger.debug(f"{self.name} poller: context changed during reload, discarding")
            return False

        self._state = PollerState.IDLE
        if not reloaded:
            logger.warning(f"{self.name} poller: reload unsuccessful, keeping baseline {self._last_observed}")
            return False

        self._last_observed = signal
        return True

    def _settle(self, generation: int) -> None:
        if generation == self._generation:
            self._state = PollerState.IDLE

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            await self.tick()

    def start(self) -> Optional[asyncio.Task]:
        """Start the tick loop in the running event loop."""
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._run(), name=f"eventsync-{self.name}-poller")
        return self._task

    async def stop(self) -> None:
        """Deactivate and wait for the tick loop to finish."""
        task = self._task
        self.deactivate()
        if task is None:
            return

        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            logger.debug(f"{self.name} poller stopped")
