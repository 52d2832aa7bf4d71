"""Background connectivity probe feeding the connectivity monitor."""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from .monitor import ConnectivityMonitor

logger = logging.getLogger(__name__)

HealthCheck = Callable[[], Awaitable[bool]]


class ConnectivityProbe:
    """Periodically requests a health URL and reports the outcome to the monitor.

    Without a configured probe URL there is no connectivity signal, and the
    monitor is switched to its ONLINE-always fallback.
    """

    def __init__(
        self,
        settings: Any,
        monitor: ConnectivityMonitor,
        api_client: Any = None,
        check: Optional[HealthCheck] = None,
    ) -> None:
        """Initialize connectivity probe.

        Args:
            settings: Application settings
            monitor: Monitor receiving the signal
            api_client: Client used for the default health check
            check: Optional custom health check coroutine function
        """
        self.settings = settings
        self.monitor = monitor
        self._api_client = api_client
        self._check = check
        self._task: Optional[asyncio.Task] = None

    @property
    def enabled(self) -> bool:
        return self._check is not None or bool(self.settings.connectivity_probe_url)

    async def _default_check(self) -> bool:
        return bool(
            await self._api_client.check_health(
                self.settings.connectivity_probe_url,
                timeout=self.settings.connectivity_probe_timeout,
            )
        )

    async def probe_once(self) -> Optional[bool]:
        """Run one probe and push the result into the monitor.

        Returns:
            The probe outcome, or None when no signal could be obtained
        """
        if not self.enabled:
            self.monitor.mark_unavailable()
            return None

        check = self._check or self._default_check
        try:
            online = await check()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Connectivity probe crashed, falling back to online")
            self.monitor.mark_unavailable()
            return None

        self.monitor.set_online(online)
        return online

    async def _run(self) -> None:
        while True:
            await self.probe_once()
            await asyncio.sleep(self.settings.connectivity_check_interval)

    def start(self) -> Optional[asyncio.Task]:
        """Start periodic probing in the running event loop."""
        if not self.enabled:
            logger.info("No connectivity probe configured, assuming always online")
            self.monitor.mark_unavailable()
            return None

        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._run(), name="eventsync-connectivity-probe")
            logger.debug("Connectivity probe started")
        return self._task

    async def stop(self) -> None:
        """Stop periodic probing."""
        if self._task is None:
            return

        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            logger.debug("Connectivity probe stopped")
        self._task = None
