"""
Integration tests for held-sale tracking across tabs.

Two processes are modelled by two file-backed stores over one JSON file;
writes from one side reach the other through polling by the ticker.
"""

import asyncio

import pytest

from shop_dashboard.config.models import BannerConfig
from shop_dashboard.pending.ledger import HeldSaleLedger, write_banner_settings
from shop_dashboard.pending.store import JsonFileKeyValueStore
from shop_dashboard.pending.ticker import BannerTicker
from shop_dashboard.pending.tracker import BannerState, PendingSaleTracker
from shop_dashboard.shared.models import HeldSale

HOUR = 60 * 60 * 1000


def _held(held_id: str, timestamp: int, price: float) -> HeldSale:
    return HeldSale.model_validate(
        {"id": held_id, "timestamp": timestamp, "items": [{"productId": "p", "quantity": 1, "unitPrice": price}]}
    )


@pytest.fixture
def store_path(tmp_path):
    return tmp_path / "shared" / "store.json"


class TestHeldSalesAcrossProcesses:
    """Test dismiss/snooze and new held sales over a shared file."""

    @pytest.mark.integration
    def test_dismissal_and_new_sale_propagate(self, store_path, clock):
        pos_store = JsonFileKeyValueStore(store_path)
        dashboard_store = JsonFileKeyValueStore(store_path)
        pos_ledger = HeldSaleLedger(pos_store)

        pos_ledger.append(_held("h1", clock.now, 250))
        dashboard_store.poll()
        with PendingSaleTracker(dashboard_store, BannerConfig(), clock=clock) as dashboard:
            assert dashboard.banner_visible
            assert dashboard.summary.total_value == 250

            dashboard.dismiss()
            assert not dashboard.banner_visible

            clock.advance(HOUR)
            pos_store.poll()
            pos_ledger.append(_held("h2", clock.now, 100))
            BannerTicker(dashboard).tick()

            assert dashboard.status.state == BannerState.VISIBLE
            assert dashboard.summary.count == 2
            assert dashboard.summary.oldest_timestamp == clock.now - HOUR

    @pytest.mark.integration
    def test_settings_change_from_other_process(self, store_path, clock):
        settings_store = JsonFileKeyValueStore(store_path)
        dashboard_store = JsonFileKeyValueStore(store_path)
        HeldSaleLedger(dashboard_store).append(_held("h1", clock.now, 10))

        with PendingSaleTracker(dashboard_store, clock=clock) as dashboard:
            dashboard.snooze()

            settings_store.poll()
            write_banner_settings(settings_store, allow_banner_dismissal=False, banner_dismissal_duration_ms=0)
            BannerTicker(dashboard).tick()

            assert dashboard.banner_visible
            assert dashboard.snooze() is False

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_ticker_surfaces_expired_snooze(self, store_path, clock):
        store = JsonFileKeyValueStore(store_path)
        HeldSaleLedger(store).append(_held("h1", clock.now, 10))

        with PendingSaleTracker(store, BannerConfig(tick_interval_seconds=0.01), clock=clock) as dashboard:
            dashboard.snooze()
            clock.advance(HOUR)

            async with BannerTicker(dashboard) as ticker:
                await asyncio.sleep(0.1)

            assert ticker.ticks >= 1
            assert dashboard.banner_visible
