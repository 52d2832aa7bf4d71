"""EventSync - offline-aware data synchronization for a city events guide.

The package keeps an events/categories view model in step with the events
backend, serves a durable SQLite snapshot while offline, polls a cheap count
signal for remote changes and reconciles a user's favorite events with the
remote store.
"""

__version__ = "1.0.0"
__author__ = "EventSync Team"
__description__ = "Offline-aware events and favorites synchronization client"

# Package metadata
__all__ = [
    "__author__",
    "__description__",
    "__version__",
]
