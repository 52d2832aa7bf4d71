"""Unit tests for change detection polling."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from eventsync.api.models import EventFilter
from eventsync.connectivity.monitor import ConnectivityMonitor
from eventsync.sync.poller import ChangeDetectionPoller, PollerState

ALL = EventFilter()
MUSIC = EventFilter(category="music")


def make_poller(signal: AsyncMock, reload: AsyncMock, **kwargs) -> ChangeDetectionPoller:
    kwargs.setdefault("auto_start", False)
    return ChangeDetectionPoller("events", fetch_signal=signal, reload=reload, interval=0.01, **kwargs)


class TestChangeDetection:
    """Test baseline comparison and reload triggering."""

    @pytest.mark.asyncio
    async def test_tick_when_signal_unchanged_then_no_reload(self) -> None:
        signal, reload = AsyncMock(return_value=5), AsyncMock(return_value=True)
        poller = make_poller(signal, reload)
        poller.activate(ALL, baseline=5)

        for _ in range(3):
            assert await poller.tick() is False

        reload.assert_not_awaited()
        assert signal.await_count == 3
        assert poller.state is PollerState.IDLE

    @pytest.mark.asyncio
    async def test_tick_when_signal_changes_then_exactly_one_reload_and_baseline_updated(self) -> None:
        signal, reload = AsyncMock(return_value=6), AsyncMock(return_value=True)
        poller = make_poller(signal, reload)
        poller.activate(ALL, baseline=5)

        assert await poller.tick() is True
        assert await poller.tick() is False

        reload.assert_awaited_once_with(ALL)
        assert poller.last_observed == 6

    @pytest.mark.asyncio
    async def test_tick_when_reload_fails_then_baseline_kept_and_retried(self) -> None:
        signal, reload = AsyncMock(return_value=6), AsyncMock(side_effect=[False, True])
        poller = make_poller(signal, reload)
        poller.activate(ALL, baseline=5)

        assert await poller.tick() is False
        assert poller.last_observed == 5
        assert await poller.tick() is True

        assert reload.await_count == 2
        assert poller.last_observed == 6

    @pytest.mark.asyncio
    async def test_tick_when_reload_raises_then_treated_as_failure(self) -> None:
        signal, reload = AsyncMock(return_value=6), AsyncMock(side_effect=RuntimeError("boom"))
        poller = make_poller(signal, reload)
        poller.activate(ALL, baseline=5)

        assert await poller.tick() is False
        assert poller.last_observed == 5
        assert poller.state is PollerState.IDLE

    @pytest.mark.asyncio
    async def test_tick_when_no_baseline_then_first_signal_recorded_without_reload(self) -> None:
        signal, reload = AsyncMock(return_value=8), AsyncMock(return_value=True)
        poller = make_poller(signal, reload)
        poller.activate(ALL)

        assert await poller.tick() is False

        reload.assert_not_awaited()
        assert poller.last_observed == 8

    @pytest.mark.asyncio
    async def test_tick_when_signal_fetch_fails_then_no_reload(self) -> None:
        signal, reload = AsyncMock(side_effect=OSError("down")), AsyncMock(return_value=True)
        poller = make_poller(signal, reload)
        poller.activate(ALL, baseline=5)

        assert await poller.tick() is False

        reload.assert_not_awaited()
        assert poller.last_observed == 5

    @pytest.mark.asyncio
    async def test_tick_when_offline_then_skipped(self) -> None:
        monitor = ConnectivityMonitor()
        monitor.set_online(False)
        signal, reload = AsyncMock(return_value=6), AsyncMock(return_value=True)
        poller = make_poller(signal, reload, connectivity=monitor)
        poller.activate(ALL, baseline=5)

        assert await poller.tick() is False

        signal.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_tick_when_inactive_then_nothing_requested(self) -> None:
        signal, reload = AsyncMock(return_value=6), AsyncMock(return_value=True)
        poller = make_poller(signal, reload)

        assert await poller.tick() is False

        signal.assert_not_awaited()


class TestFilterContexts:
    """Test context switching and cancellation."""

    @pytest.mark.asyncio
    async def test_activate_when_context_changes_then_baseline_reset(self) -> None:
        signal, reload = AsyncMock(return_value=3), AsyncMock(return_value=True)
        poller = make_poller(signal, reload)
        poller.activate(ALL, baseline=5)

        poller.activate(MUSIC)
        await poller.tick()

        reload.assert_not_awaited()
        assert poller.context == MUSIC
        assert poller.last_observed == 3

    @pytest.mark.asyncio
    async def test_activate_when_same_context_without_baseline_then_baseline_kept(self) -> None:
        poller = make_poller(AsyncMock(return_value=5), AsyncMock(return_value=True))
        poller.activate(ALL, baseline=5)

        poller.activate(EventFilter(category="all"))

        assert poller.last_observed == 5

    @pytest.mark.asyncio
    async def test_tick_when_context_replaced_during_check_then_result_discarded(self) -> None:
        gate = asyncio.Event()

        async def slow_signal(context):
            await gate.wait()
            return 99

        reload = AsyncMock(return_value=True)
        poller = make_poller(AsyncMock(side_effect=slow_signal), reload)
        poller.activate(ALL, baseline=5)

        tick = asyncio.create_task(poller.tick())
        await asyncio.sleep(0)
        assert poller.state is PollerState.CHECKING
        poller.activate(MUSIC, baseline=2)
        gate.set()

        assert await tick is False
        reload.assert_not_awaited()
        assert poller.last_observed == 2
        assert poller.state is PollerState.IDLE

    @pytest.mark.asyncio
    async def test_tick_when_deactivated_during_reload_then_baseline_untouched(self) -> None:
        gate = asyncio.Event()

        async def slow_reload(context):
            await gate.wait()
            return True

        poller = make_poller(AsyncMock(return_value=6), AsyncMock(side_effect=slow_reload))
        poller.activate(ALL, baseline=5)

        tick = asyncio.create_task(poller.tick())
        await asyncio.sleep(0)
        assert poller.state is PollerState.RELOADING
        poller.deactivate()
        gate.set()

        assert await tick is False
        assert poller.last_observed == 5
        assert poller.state is PollerState.IDLE
        assert poller.is_active is False


class TestTickLoop:
    """Test the background tick loop."""

    @pytest.mark.asyncio
    async def test_activate_when_auto_start_then_ticks_until_stopped(self) -> None:
        signal = AsyncMock(return_value=5)
        poller = make_poller(signal, AsyncMock(return_value=True), auto_start=True)

        poller.activate(ALL, baseline=5)
        await asyncio.sleep(0.05)
        await poller.stop()
        calls = signal.await_count
        await asyncio.sleep(0.03)

        assert calls >= 2
        assert signal.await_count == calls
        assert poller.is_active is False
