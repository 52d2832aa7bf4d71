"""Unit tests for the sync session wiring."""

import asyncio

import pytest

from eventsync.api.models import EventFilter, User
from eventsync.cache.database import FAVORITES_KEY, USER_KEY
from eventsync.sync.poller import PollerState
from eventsync.sync.session import ActiveView, SyncSession


@pytest.fixture
async def session(test_settings, fake_api, database, clock):
    sync_session = SyncSession(test_settings, api_client=fake_api, db=database, clock=clock, auto_start=False)
    await sync_session.initialize()
    yield sync_session
    await sync_session.shutdown()


class TestLifecycle:
    """Test session start and stop."""

    @pytest.mark.asyncio
    async def test_initialize_when_no_probe_configured_then_online_without_signal(self, session) -> None:
        assert session.connectivity.is_online
        assert session.connectivity.signal_available is False
        assert session.user is None

    @pytest.mark.asyncio
    async def test_async_with_when_exited_then_pollers_stopped_and_injected_client_kept_open(
        self, test_settings, fake_api, database, clock
    ) -> None:
        async with SyncSession(test_settings, api_client=fake_api, db=database, clock=clock, auto_start=False) as s:
            await s.show_events()
            assert s.event_poller.is_active

        assert s.event_poller.is_active is False
        assert s.active_view is ActiveView.NONE
        fake_api.close.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_status_when_loaded_then_reports_cache_and_view(self, session, sample_events) -> None:
        await session.show_events()

        status = await session.status()

        assert status["connectivity"] == "online"
        assert status["events_shown"] == len(sample_events)
        assert status["cache"]["event_count"] == len(sample_events)
        assert status["active_view"] == "events"


class TestViews:
    """Test view activation and change polling."""

    @pytest.mark.asyncio
    async def test_show_events_when_loaded_then_event_poller_baseline_is_item_count(
        self, session, sample_events
    ) -> None:
        music = EventFilter(category="music")

        await session.show_events(music)

        assert session.event_poller.is_active
        assert session.event_poller.context == music
        assert session.event_poller.last_observed == len(sample_events)
        assert session.venue_poller.is_active is False

    @pytest.mark.asyncio
    async def test_show_venues_when_switching_from_events_then_event_poller_deactivated(self, session) -> None:
        await session.show_events()

        await session.show_venues(2)

        assert session.active_view is ActiveView.VENUES
        assert session.event_poller.is_active is False
        assert session.venue_poller.is_active
        assert session.venue_poller.last_observed == 2

    @pytest.mark.asyncio
    async def test_event_poller_when_count_changes_then_reloads_once(
        self, session, fake_api, sample_events, event_factory
    ) -> None:
        await session.show_events()
        fake_api.get_events.return_value = sample_events + [event_factory(6)]
        fake_api.get_event_count.return_value = 6

        assert await session.event_poller.tick() is True
        assert await session.event_poller.tick() is False

        assert fake_api.get_events.await_count == 2
        assert len(session.orchestrator.view.events) == 6
        assert session.event_poller.last_observed == 6
        assert session.event_poller.state is PollerState.IDLE

    @pytest.mark.asyncio
    async def test_venue_poller_when_count_changes_then_reloads_venues(self, session, fake_api) -> None:
        await session.show_venues()
        fake_api.get_venue_count.return_value = 3

        assert await session.venue_poller.tick() is True

        assert fake_api.get_venues.await_count == 2

    @pytest.mark.asyncio
    async def test_leave_view_when_called_then_both_pollers_inactive(self, session) -> None:
        await session.show_events()

        session.leave_view()

        assert session.event_poller.is_active is False
        assert session.venue_poller.is_active is False


class TestReconnect:
    """Test reconnect handling."""

    @pytest.mark.asyncio
    async def test_reconnect_when_never_synced_then_current_filter_reloaded(self, session, fake_api) -> None:
        session.connectivity.set_online(False)
        session.current_filter = EventFilter(category="sports")

        change = session.connectivity.set_online(True)
        await session.wait_for_background_tasks()

        assert change.refresh_needed is True
        fake_api.get_events.assert_awaited_once_with(EventFilter(category="sports"))

    @pytest.mark.asyncio
    async def test_reconnect_when_cache_fresh_then_no_reload(self, session, fake_api, clock) -> None:
        await session.show_events()
        session.connectivity.set_online(False)
        clock.advance(60)

        change = session.connectivity.set_online(True)
        await session.wait_for_background_tasks()

        assert change.refresh_needed is False
        assert fake_api.get_events.await_count == 1

    @pytest.mark.asyncio
    async def test_reconnect_when_cache_stale_then_reload(self, session, fake_api, clock) -> None:
        await session.show_events()
        session.connectivity.set_online(False)
        clock.advance(301)

        session.connectivity.set_online(True)
        await session.wait_for_background_tasks()

        assert fake_api.get_events.await_count == 2

    @pytest.mark.asyncio
    async def test_reconnect_when_logged_in_then_favorites_pushed(self, session, fake_api) -> None:
        await session.login(User(id=7))
        await session.favorites.toggle(3)
        session.connectivity.set_online(False)

        session.connectivity.set_online(True)
        await session.wait_for_background_tasks()

        fake_api.add_favorite.assert_awaited_with(7, 3)


class TestUserAndFavorites:
    """Test login, logout and favorite toggling."""

    @pytest.mark.asyncio
    async def test_login_when_remote_has_favorites_then_local_replaced_and_user_persisted(
        self, session, fake_api, database
    ) -> None:
        fake_api.get_favorites.return_value = {4, 5}

        await session.login(User(id=7, name="Alex"))

        assert session.favorites.favorites == {4, 5}
        assert await database.get_value(USER_KEY) == {"id": 7, "name": "Alex", "email": None}

    @pytest.mark.asyncio
    async def test_initialize_when_user_persisted_then_restored_and_remote_loaded(
        self, test_settings, fake_api, database, clock
    ) -> None:
        await database.set_value(USER_KEY, {"id": 7})
        fake_api.get_favorites.return_value = {9}

        async with SyncSession(test_settings, api_client=fake_api, db=database, clock=clock, auto_start=False) as s:
            await s.wait_for_background_tasks()

            assert s.user == User(id=7)
            assert s.favorites.favorites == {9}

    @pytest.mark.asyncio
    async def test_initialize_when_persisted_user_corrupt_then_anonymous(
        self, test_settings, fake_api, database, clock
    ) -> None:
        await database.set_value(USER_KEY, {"name": "no id"})

        async with SyncSession(test_settings, api_client=fake_api, db=database, clock=clock, auto_start=False) as s:
            assert s.user is None

    @pytest.mark.asyncio
    async def test_toggle_favorite_when_logged_in_and_online_then_pushed_in_background(
        self, session, fake_api
    ) -> None:
        await session.login(User(id=7))

        assert await session.toggle_favorite(12) is True
        await session.wait_for_background_tasks()

        fake_api.add_favorite.assert_awaited_once_with(7, 12)

    @pytest.mark.asyncio
    async def test_toggle_favorite_when_offline_then_local_only(self, session, fake_api) -> None:
        await session.login(User(id=7))
        session.connectivity.set_online(False)

        assert await session.toggle_favorite(12) is True
        await session.wait_for_background_tasks()

        assert session.favorites.is_favorite(12)
        fake_api.add_favorite.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_toggle_favorite_when_anonymous_then_no_remote_calls(self, session, fake_api) -> None:
        await session.toggle_favorite(12)
        await session.wait_for_background_tasks()

        fake_api.add_favorite.assert_not_awaited()
        assert await session.sync_favorites() is None

    @pytest.mark.asyncio
    async def test_logout_when_logged_in_then_identity_and_favorites_cleared(self, session, database) -> None:
        await session.login(User(id=7))
        await session.toggle_favorite(1)

        await session.logout()

        assert session.user is None
        assert session.favorites.favorites == frozenset()
        assert await database.get_value(USER_KEY) is None


class TestConcurrentActions:
    """Test user actions interleaving with background work."""

    @pytest.mark.asyncio
    async def test_toggle_favorite_when_login_load_in_flight_then_toggle_kept_and_pushed(
        self, test_settings, fake_api, database, clock
    ) -> None:
        await database.set_value(USER_KEY, {"id": 7})
        remote: set[int] = set()
        remote_gate = asyncio.Event()

        async def get_favorites(user_id):
            await remote_gate.wait()
            return set(remote)

        async def add_favorite(user_id, event_id):
            remote.add(event_id)

        fake_api.get_favorites.side_effect = get_favorites
        fake_api.add_favorite.side_effect = add_favorite

        async with SyncSession(test_settings, api_client=fake_api, db=database, clock=clock, auto_start=False) as s:
            assert await s.toggle_favorite(5) is True
            remote_gate.set()
            await s.wait_for_background_tasks()

            assert s.favorites.favorites == {5}
            assert await database.get_value(FAVORITES_KEY) == [5]
            assert remote == {5}

    @pytest.mark.asyncio
    async def test_show_events_when_poller_check_in_flight_for_old_filter_then_new_filter_wins(
        self, session, fake_api, sample_events
    ) -> None:
        music = EventFilter(category="music")
        sports = EventFilter(category="sports")
        await session.show_events(music)
        count_gate = asyncio.Event()

        async def get_event_count(event_filter):
            await count_gate.wait()
            return len(sample_events) + 1

        fake_api.get_event_count.side_effect = get_event_count
        tick = asyncio.create_task(session.event_poller.tick())
        await asyncio.sleep(0)

        await session.show_events(sports)
        count_gate.set()

        assert await tick is False
        assert session.orchestrator.view.filter == sports
        assert session.event_poller.context == sports
        assert session.event_poller.last_observed == len(sample_events)
        fake_api.get_events.assert_awaited_with(sports)
        assert fake_api.get_events.await_count == 2

    @pytest.mark.asyncio
    async def test_show_venues_when_poller_check_in_flight_for_old_category_then_new_category_wins(
        self, session, fake_api
    ) -> None:
        await session.show_venues(1)
        count_gate = asyncio.Event()

        async def get_venue_count(category_id):
            await count_gate.wait()
            return 3

        fake_api.get_venue_count.side_effect = get_venue_count
        tick = asyncio.create_task(session.venue_poller.tick())
        await asyncio.sleep(0)

        await session.show_venues(2)
        count_gate.set()

        assert await tick is False
        assert session.orchestrator.view.venue_category_id == 2
        assert session.venue_poller.context == 2
        assert fake_api.get_venues.await_count == 2

    @pytest.mark.asyncio
    async def test_toggle_favorite_when_pushes_overlap_then_remote_ends_at_latest_local_set(
        self, session, fake_api
    ) -> None:
        remote: set[int] = set()
        add_gate = asyncio.Event()

        async def get_favorites(user_id):
            return set(remote)

        async def add_favorite(user_id, event_id):
            await add_gate.wait()
            remote.add(event_id)

        async def remove_favorite(user_id, event_id):
            remote.discard(event_id)

        fake_api.get_favorites.side_effect = get_favorites
        fake_api.add_favorite.side_effect = add_favorite
        fake_api.remove_favorite.side_effect = remove_favorite
        await session.login(User(id=7))

        await session.toggle_favorite(5)
        while fake_api.add_favorite.await_count == 0:
            await asyncio.sleep(0)
        await session.toggle_favorite(5)
        add_gate.set()
        await session.wait_for_background_tasks()

        assert session.favorites.favorites == frozenset()
        assert remote == set()
