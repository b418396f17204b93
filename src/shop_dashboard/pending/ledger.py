"""
Persisted held-sale state.

The held-sale list lives in the shared store as one JSON array and is
always read and written whole. Banner markers (dismissal timestamp,
snooze-until timestamp) are stored per banner under independent keys.
Anything unreadable is treated as absent.
"""

import json
import logging
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from shop_dashboard.config.models import BannerConfig
from shop_dashboard.pending.store import KeyValueStore
from shop_dashboard.shared import metrics
from shop_dashboard.shared.models import HeldSale

logger = logging.getLogger(__name__)

HELD_SALES_KEY = "held_sales"
SETTINGS_KEY = "app_settings"


class BannerKey(str, Enum):
    """Banners with their own dismissal state."""

    PENDING = "pending"
    LOW_STOCK = "low_stock"  # reserved


def dismissed_at_key(banner: BannerKey) -> str:
    return f"banner:{banner.value}:dismissed_at"


def snoozed_until_key(banner: BannerKey) -> str:
    return f"banner:{banner.value}:snoozed_until"


class HeldSaleLedger:
    """Read/append/remove access to the persisted held-sale list."""

    def __init__(self, store: KeyValueStore) -> None:
        self.store = store

    def read(self) -> list[HeldSale]:
        """
        Return the held sales in stored order.

        Malformed JSON yields an empty list; entries that fail validation are
        skipped individually.
        """
        raw = self.store.get(HELD_SALES_KEY)
        if not raw:
            return []
        try:
            entries = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"Held-sale list is not valid JSON, treating as empty: {e}")
            metrics.malformed_records_total.labels(kind="held_sales").inc()
            return []
        if not isinstance(entries, list):
            logger.warning("Held-sale list is not a JSON array, treating as empty")
            metrics.malformed_records_total.labels(kind="held_sales").inc()
            return []

        held: list[HeldSale] = []
        for entry in entries:
            try:
                held.append(HeldSale.model_validate(entry))
            except ValidationError as e:
                logger.warning(f"Skipping malformed held sale: {e.error_count()} validation error(s)")
                metrics.malformed_records_total.labels(kind="held_sale").inc()
        return held

    def write(self, held: list[HeldSale]) -> None:
        payload = [sale.model_dump(mode="json", by_alias=True) for sale in held]
        self.store.set(HELD_SALES_KEY, json.dumps(payload))

    def append(self, sale: HeldSale) -> None:
        """Park a sale (POS side). Replaces an existing entry with the same ID."""
        held = [existing for existing in self.read() if existing.id != sale.id]
        held.append(sale)
        self.write(held)

    def remove(self, held_sale_id: str) -> bool:
        """Drop a held sale after it is resumed or completed (POS side)."""
        held = self.read()
        remaining = [sale for sale in held if sale.id != held_sale_id]
        if len(remaining) == len(held):
            return False
        self.write(remaining)
        return True


def _read_ms(store: KeyValueStore, key: str) -> int | None:
    raw = store.get(key)
    if raw is None:
        return None
    try:
        return int(float(raw))
    except (ValueError, OverflowError):
        logger.warning(f"Ignoring malformed banner marker {key}={raw!r}")
        return None


class BannerMarkers:
    """Dismissal/snooze markers for one banner."""

    def __init__(self, store: KeyValueStore, banner: BannerKey = BannerKey.PENDING) -> None:
        self.store = store
        self.banner = banner

    @property
    def dismissed_at(self) -> int | None:
        return _read_ms(self.store, dismissed_at_key(self.banner))

    @property
    def snoozed_until(self) -> int | None:
        return _read_ms(self.store, snoozed_until_key(self.banner))

    @property
    def present(self) -> bool:
        return (
            self.store.get(dismissed_at_key(self.banner)) is not None
            or self.store.get(snoozed_until_key(self.banner)) is not None
        )

    def dismiss(self, at: int) -> None:
        self.store.remove(snoozed_until_key(self.banner))
        self.store.set(dismissed_at_key(self.banner), str(at))

    def snooze(self, until: int) -> None:
        self.store.remove(dismissed_at_key(self.banner))
        self.store.set(snoozed_until_key(self.banner), str(until))

    def clear_dismissal(self) -> bool:
        return self.store.remove(dismissed_at_key(self.banner))

    def clear_snooze(self) -> bool:
        return self.store.remove(snoozed_until_key(self.banner))

    def clear(self) -> bool:
        """Remove both markers; True if anything was removed."""
        removed_dismissal = self.clear_dismissal()
        removed_snooze = self.clear_snooze()
        return removed_dismissal or removed_snooze


class StoredBannerSettings(BaseModel):
    """Banner flags as kept in the shared store's settings entry."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    allow_banner_dismissal: bool | None = None
    banner_dismissal_duration_ms: int | None = Field(None, ge=0)


def read_banner_settings(store: KeyValueStore, defaults: BannerConfig) -> BannerConfig:
    """Overlay the store's settings entry on the configured banner policy."""

    raw = store.get(SETTINGS_KEY)
    if not raw:
        return defaults
    try:
        stored = StoredBannerSettings.model_validate_json(raw)
    except ValidationError as e:
        logger.warning(f"Ignoring malformed banner settings: {e.error_count()} validation error(s)")
        return defaults
    overrides = stored.model_dump(exclude_none=True)
    return defaults.model_copy(update=overrides)


def write_banner_settings(
    store: KeyValueStore,
    allow_banner_dismissal: bool,
    banner_dismissal_duration_ms: int,
) -> None:
    """Persist banner flags (settings screen side)."""

    settings = StoredBannerSettings(
        allow_banner_dismissal=allow_banner_dismissal,
        banner_dismissal_duration_ms=banner_dismissal_duration_ms,
    )
    store.set(SETTINGS_KEY, settings.model_dump_json(by_alias=True))
