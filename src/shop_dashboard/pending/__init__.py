"""Held-sale tracking: shared store, persisted ledger and the pending banner policy."""

from .ledger import (
    HELD_SALES_KEY,
    SETTINGS_KEY,
    BannerKey,
    BannerMarkers,
    HeldSaleLedger,
    read_banner_settings,
    write_banner_settings,
)
from .store import InMemoryKeyValueStore, JsonFileKeyValueStore, KeyValueStore, StoreChange, create_store
from .ticker import BannerTicker
from .tracker import BannerState, BannerStatus, HeldSaleSummary, PendingSaleTracker, summarize_held_sales

__all__ = [
    "HELD_SALES_KEY",
    "SETTINGS_KEY",
    "BannerKey",
    "BannerMarkers",
    "HeldSaleLedger",
    "read_banner_settings",
    "write_banner_settings",
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "KeyValueStore",
    "StoreChange",
    "create_store",
    "BannerTicker",
    "BannerState",
    "BannerStatus",
    "HeldSaleSummary",
    "PendingSaleTracker",
    "summarize_held_sales",
]
