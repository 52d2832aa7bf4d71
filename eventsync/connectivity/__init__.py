"""Connectivity tracking package."""

from .monitor import ConnectivityChange, ConnectivityMonitor, ConnectivityState
from .probe import ConnectivityProbe

__all__ = ["ConnectivityChange", "ConnectivityMonitor", "ConnectivityProbe", "ConnectivityState"]
