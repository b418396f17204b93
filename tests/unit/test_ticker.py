"""Unit tests for the periodic banner re-evaluation."""

import asyncio

import pytest

from shop_dashboard.config.models import BannerConfig
from shop_dashboard.pending.ledger import HeldSaleLedger
from shop_dashboard.pending.store import JsonFileKeyValueStore
from shop_dashboard.pending.ticker import BannerTicker
from shop_dashboard.pending.tracker import BannerState, PendingSaleTracker
from shop_dashboard.shared.models import HeldSale

DAY = 24 * 60 * 60 * 1000


def _held(held_id: str, timestamp: int) -> HeldSale:
    return HeldSale.model_validate({"id": held_id, "timestamp": timestamp, "items": []})


@pytest.fixture
def tracker(store, clock):
    HeldSaleLedger(store).append(_held("h1", clock.now))
    tracker = PendingSaleTracker(store, BannerConfig(tick_interval_seconds=0.01), clock=clock).start()
    yield tracker
    tracker.stop()


class TestTick:
    """Test a single tick."""

    def test_interval_defaults_to_settings(self, tracker):
        assert BannerTicker(tracker).interval_seconds == 0.01
        assert BannerTicker(tracker, interval_seconds=5).interval_seconds == 5

    def test_tick_surfaces_expired_dismissal(self, tracker, clock):
        tracker.dismiss()
        clock.advance(DAY)
        ticker = BannerTicker(tracker)

        ticker.tick()

        assert tracker.status.state == BannerState.VISIBLE
        assert ticker.ticks == 1

    def test_tick_polls_file_store(self, tmp_path, clock):
        path = tmp_path / "store.json"
        store = JsonFileKeyValueStore(path)
        with PendingSaleTracker(store, clock=clock) as tracker:
            assert tracker.summary.count == 0

            HeldSaleLedger(JsonFileKeyValueStore(path)).append(_held("h1", clock.now))
            BannerTicker(tracker).tick()

            assert tracker.summary.count == 1


class TestBackgroundTask:
    """Test starting and stopping the asyncio task."""

    @pytest.mark.asyncio
    async def test_runs_until_stopped(self, tracker):
        ticker = BannerTicker(tracker)
        ticker.start()
        assert ticker.running

        await asyncio.sleep(0.1)
        await ticker.stop()

        assert not ticker.running
        assert ticker.ticks >= 1
        ticks = ticker.ticks
        await asyncio.sleep(0.05)
        assert ticker.ticks == ticks

    @pytest.mark.asyncio
    async def test_context_manager(self, tracker, clock):
        tracker.snooze()
        clock.advance(DAY)

        async with BannerTicker(tracker):
            await asyncio.sleep(0.1)

        assert tracker.banner_visible

    @pytest.mark.asyncio
    async def test_start_twice_keeps_one_task(self, tracker):
        ticker = BannerTicker(tracker)
        ticker.start()
        task = ticker._task
        ticker.start()

        assert ticker._task is task
        await ticker.stop()

    @pytest.mark.asyncio
    async def test_stop_without_start(self, tracker):
        await BannerTicker(tracker).stop()
