"""Shared test fixtures for the EventSync test suite."""

import os
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Callable
from unittest.mock import AsyncMock

import pytest

from eventsync.api.client import EventsApiClient
from eventsync.api.models import Category, Event, Venue
from eventsync.cache.database import DatabaseManager
from eventsync.config.settings import EventSyncSettings, reset_settings

BASE_TIME = datetime(2024, 6, 1, 12, 0, 0)


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, now: datetime = BASE_TIME) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    """Keep tests independent of the developer's environment and config files."""
    for key in list(os.environ):
        if key.startswith("EVENTSYNC_"):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def test_settings(tmp_path: Path) -> EventSyncSettings:
    """Settings pointing at temporary directories with fast retry/poll timings."""
    return EventSyncSettings(
        api_base_url="http://testserver",
        config_dir=tmp_path / "config",
        data_dir=tmp_path / "data",
        max_retries=1,
        retry_backoff_factor=0.0,
        request_timeout=1.0,
        poll_interval=0.01,
        staleness_threshold=300,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def database(tmp_path: Path) -> DatabaseManager:
    return DatabaseManager(tmp_path / "data" / "test.db")


def make_category(category_id: int, name: str, **overrides: Any) -> Category:
    data = {
        "id": category_id,
        "name": name,
        "displayName": name.title(),
        "color": "#3366ff",
        "icon": "music",
    }
    data.update(overrides)
    return Category.model_validate(data)


def make_event(event_id: int, title: str = "", **overrides: Any) -> Event:
    data = {
        "id": event_id,
        "title": title or f"Event {event_id}",
        "description": f"Description of event {event_id}",
        "startDate": (BASE_TIME + timedelta(days=event_id)).isoformat(),
        "location": "Old Town Square",
        "organizerName": "City Culture Office",
        "isFeatured": False,
        "categories": [{"categoryId": 1, "categoryName": "music"}],
    }
    data.update(overrides)
    return Event.model_validate(data)


def make_venue(venue_id: int, name: str, **overrides: Any) -> Venue:
    data = {"id": venue_id, "name": name, "address": f"{venue_id} Main Street"}
    data.update(overrides)
    return Venue.model_validate(data)


@pytest.fixture
def sample_categories() -> list[Category]:
    return [make_category(1, "music"), make_category(2, "sports")]


@pytest.fixture
def sample_events() -> list[Event]:
    return [make_event(i) for i in range(1, 6)]


@pytest.fixture
def fake_api(sample_categories: list[Category], sample_events: list[Event]) -> AsyncMock:
    """API client double answering with the sample data."""
    api = AsyncMock(spec=EventsApiClient)
    api.get_categories.return_value = sample_categories
    api.get_events.return_value = sample_events
    api.get_event_count.return_value = len(sample_events)
    api.get_venues.return_value = [make_venue(1, "Concert Hall"), make_venue(2, "Stadium")]
    api.get_venue_count.return_value = 2
    api.get_favorites.return_value = set()
    api.check_health.return_value = True
    return api


@pytest.fixture
def event_factory() -> Callable[..., Event]:
    return make_event


@pytest.fixture
def venue_factory() -> Callable[..., Venue]:
    return make_venue
