"""Connectivity state tracking with transition notifications."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class ConnectivityState(str, Enum):
    """Transport-level connectivity of the client."""

    ONLINE = "online"
    OFFLINE = "offline"


@dataclass(frozen=True)
class ConnectivityChange:
    """Notification payload delivered to subscribers on every transition."""

    previous: ConnectivityState
    current: ConnectivityState
    refresh_needed: bool = False

    @property
    def came_online(self) -> bool:
        return self.current is ConnectivityState.ONLINE


ConnectivityListener = Callable[[ConnectivityChange], None]


class ConnectivityMonitor:
    """Holds the single shared connectivity snapshot and notifies on transitions.

    The monitor never probes the network itself: transport-level signals are
    pushed in through :meth:`set_online`. When no such signal exists the
    monitor is optimistic and reports ONLINE.
    """

    def __init__(
        self,
        refresh_policy: Optional[Callable[[], bool]] = None,
        initial_state: ConnectivityState = ConnectivityState.ONLINE,
    ) -> None:
        """Initialize connectivity monitor.

        Args:
            refresh_policy: Called on transition to ONLINE to decide whether
                subscribers should reload (e.g. the cache staleness check)
            initial_state: State reported before any signal arrives
        """
        self._state = initial_state
        self._refresh_policy = refresh_policy
        self._listeners: list[ConnectivityListener] = []
        self._signal_available = True

    def get_state(self) -> ConnectivityState:
        """Return the last-known state without blocking."""
        return self._state

    @property
    def is_online(self) -> bool:
        return self._state is ConnectivityState.ONLINE

    @property
    def signal_available(self) -> bool:
        """False once the platform signal has been reported unavailable."""
        return self._signal_available

    def subscribe(self, listener: ConnectivityListener) -> Callable[[], None]:
        """Register a transition listener.

        Args:
            listener: Called once per OFFLINE->ONLINE or ONLINE->OFFLINE transition

        Returns:
            Function that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def set_online(self, online: bool) -> Optional[ConnectivityChange]:
        """Apply a transport-level connectivity signal.

        Args:
            online: Whether the transport is reachable

        Returns:
            The transition delivered to listeners, or None if the state is unchanged
        """
        self._signal_available = True
        return self._transition(ConnectivityState.ONLINE if online else ConnectivityState.OFFLINE)

    def mark_unavailable(self) -> Optional[ConnectivityChange]:
        """Degrade to ONLINE-always when no connectivity signal can be obtained."""
        if self._signal_available:
            logger.warning("Connectivity signal unavailable, assuming online")
        self._signal_available = False
        return self._transition(ConnectivityState.ONLINE)

    def _transition(self, new_state: ConnectivityState) -> Optional[ConnectivityChange]:
        previous = self._state
        if new_state is previous:
            return None

        self._state = new_state
        change = ConnectivityChange(
            previous=previous,
            current=new_state,
            refresh_needed=new_state is ConnectivityState.ONLINE and self._needs_refresh(),
        )
        logger.info(
            f"Connectivity changed: {previous.value} -> {new_state.value}"
            + (" (refresh needed)" if change.refresh_needed else "")
        )
        self._notify(change)
        return change

    def _needs_refresh(self) -> bool:
        if self._refresh_policy is None:
            return True
        try:
            return self._refresh_policy()
        except Exception:
            logger.exception("Refresh policy failed, forcing refresh on reconnect")
            return True

    def _notify(self, change: ConnectivityChange) -> None:
        # Copy so listeners may unsubscribe while being notified
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception:
                logger.exception("Connectivity listener failed")
