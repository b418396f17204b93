"""
Held-sale tracking and the "pending sales" banner policy.

The tracker observes the held-sale list that the POS flow keeps in the
shared store, summarises it, and decides whether the pending-sales banner
is shown. Several trackers (one per open tab) may share one store; each
re-reads the full state on every change signal, so they converge on the
same view without exchanging deltas.

State Transitions (per banner):
    Visible -> Dismissed   (dismiss(); rejected when dismissal is disabled)
    Visible -> Snoozed     (snooze(); rejected when dismissal is disabled)
    Dismissed -> Visible   (dismissal duration elapsed, or a new held sale appears)
    Snoozed -> Visible     (snooze-until elapsed, or a new held sale appears)

A dismissal duration of 0 keeps the banner dismissed until a new held sale
appears. Leaving the Dismissed/Snoozed state always removes the persisted
marker, so every tab sees the same outcome.
"""

import logging
import threading
from enum import Enum
from typing import Callable

from pydantic import BaseModel

from shop_dashboard.config.models import BannerConfig
from shop_dashboard.pending.ledger import (
    HELD_SALES_KEY,
    SETTINGS_KEY,
    BannerKey,
    BannerMarkers,
    HeldSaleLedger,
    dismissed_at_key,
    read_banner_settings,
    snoozed_until_key,
)
from shop_dashboard.pending.store import KeyValueStore, StoreChange
from shop_dashboard.shared import metrics
from shop_dashboard.shared.logging_utils import get_structured_logger
from shop_dashboard.shared.models import HeldSale, now_ms

logger = logging.getLogger(__name__)
structured_logger = get_structured_logger(__name__)

MINUTE_MS = 60_000


class BannerState(str, Enum):
    VISIBLE = "visible"
    DISMISSED = "dismissed"
    SNOOZED = "snoozed"


class BannerStatus(BaseModel):
    """Evaluated state of one banner."""

    banner: BannerKey
    state: BannerState = BannerState.VISIBLE
    visible: bool = False
    hidden_until: int | None = None
    permanent: bool = False


class HeldSaleSummary(BaseModel):
    """Aggregate view of the held-sale list."""

    count: int = 0
    oldest_timestamp: int | None = None
    total_value: float = 0.0
    oldest_age_minutes: int | None = None


def summarize_held_sales(held: list[HeldSale], now: int) -> HeldSaleSummary:
    """Count, oldest parking time and total value of the held sales."""

    if not held:
        return HeldSaleSummary()
    oldest = min(sale.timestamp for sale in held)
    return HeldSaleSummary(
        count=len(held),
        oldest_timestamp=oldest,
        total_value=sum(sale.value for sale in held),
        oldest_age_minutes=max(0, (now - oldest) // MINUTE_MS),
    )


class PendingSaleTracker:
    """
    Per-tab view of held sales and the pending banner.

    Attributes:
        store: Shared key-value store
        defaults: Banner policy from configuration; the store's settings
            entry overrides it when present
    """

    def __init__(
        self,
        store: KeyValueStore,
        config: BannerConfig | None = None,
        clock: Callable[[], int] = now_ms,
        banner: BannerKey = BannerKey.PENDING,
    ) -> None:
        self.store = store
        self.defaults = config or BannerConfig()
        self.banner = banner
        self._clock = clock
        self._ledger = HeldSaleLedger(store)
        self._markers = BannerMarkers(store, banner)
        self._watched_keys = {
            HELD_SALES_KEY,
            SETTINGS_KEY,
            dismissed_at_key(banner),
            snoozed_until_key(banner),
        }

        self._lock = threading.RLock()
        self._evaluating = False
        self._rerun = False
        self._unsubscribe: Callable[[], None] | None = None

        self._settings = self.defaults
        self._held: list[HeldSale] = []
        self._known_ids: set[str] | None = None
        self._summary = HeldSaleSummary()
        self._status = BannerStatus(banner=banner)

    # ---- lifecycle ----

    def start(self) -> "PendingSaleTracker":
        """Subscribe to store changes and perform the initial evaluation."""
        if self._unsubscribe is None:
            self._unsubscribe = self.store.subscribe(self._on_store_change)
        self.evaluate()
        return self

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def __enter__(self) -> "PendingSaleTracker":
        return self.start()

    def __exit__(self, *exc) -> None:
        self.stop()

    # ---- read side ----

    @property
    def settings(self) -> BannerConfig:
        return self._settings

    @property
    def held_sales(self) -> list[HeldSale]:
        return list(self._held)

    @property
    def summary(self) -> HeldSaleSummary:
        return self._summary

    @property
    def status(self) -> BannerStatus:
        return self._status

    @property
    def banner_visible(self) -> bool:
        return self._status.visible

    def banners(self) -> dict[str, bool]:
        """Visibility per banner key, as exposed to the presentation layer."""
        return {self.banner.value: self._status.visible}

    # ---- user actions ----

    def dismiss(self) -> bool:
        """
        Hide the banner for the configured dismissal duration.

        Returns:
            False (and persists nothing) when dismissal is disabled
        """
        return self._hide("dismiss", lambda now: self._markers.dismiss(now))

    def snooze(self) -> bool:
        """
        Hide the banner until now + ``snooze_duration_ms``.

        Returns:
            False (and persists nothing) when dismissal is disabled
        """
        return self._hide(
            "snooze", lambda now: self._markers.snooze(now + self._settings.snooze_duration_ms)
        )

    def _hide(self, action: str, write_marker: Callable[[int], None]) -> bool:
        with self._lock:
            self._settings = read_banner_settings(self.store, self.defaults)
            if not self._settings.allow_banner_dismissal:
                logger.info(f"{action.capitalize()} of banner '{self.banner.value}' rejected: disabled by settings")
                metrics.banner_transitions_total.labels(
                    banner=self.banner.value, transition=f"{action}_rejected"
                ).inc()
                return False

            with structured_logger.correlation_scope():
                structured_logger.info("Banner action", banner=self.banner.value, action=action)
                # Signals raised by our own marker writes are folded into the
                # evaluation below instead of running mid-write.
                self._evaluating = True
                try:
                    write_marker(self._clock())
                finally:
                    self._evaluating = False
                self._run_evaluation(None)
        self._drain()
        return True

    # ---- evaluation ----

    def _on_store_change(self, change: StoreChange) -> None:
        if change.key is None or change.key in self._watched_keys:
            self._rerun = True
            self._drain()

    def evaluate(self, now: int | None = None) -> BannerStatus:
        """
        Re-read settings, held sales and markers, then re-derive the banner.

        Safe to call from any trigger (tick, store signal, config change).
        Store writes made while evaluating re-trigger this method; those
        nested calls are folded into one more pass of the running call.
        """
        with self._lock:
            if self._evaluating:
                self._rerun = True
                return self._status
            self._run_evaluation(now)
        self._drain()
        return self._status

    def _run_evaluation(self, now: int | None) -> None:
        # Caller holds self._lock.
        self._evaluating = True
        try:
            with structured_logger.correlation_scope():
                while True:
                    self._rerun = False
                    self._refresh(self._clock() if now is None else now)
                    if not self._rerun:
                        break
        finally:
            self._evaluating = False

    def _drain(self) -> None:
        """
        Run evaluations requested by store signals, never blocking on the lock.

        Store listeners run on the writer's thread, which may be holding
        another tracker's lock. A signal that finds this tracker's lock held
        by another thread only raises ``_rerun``; the holder drains it after
        releasing the lock, so no signal is lost and no two trackers wait on
        each other.
        """
        while self._rerun and self._lock.acquire(blocking=False):
            try:
                if self._evaluating:
                    # Re-entrant signal on the evaluating thread; its loop reruns.
                    return
                self._run_evaluation(None)
            finally:
                self._lock.release()

    def _refresh(self, now: int) -> None:
        previous = self._status
        self._settings = read_banner_settings(self.store, self.defaults)

        if not self._settings.allow_banner_dismissal and self._markers.present:
            self._markers.clear()
            logger.info(f"Cleared banner '{self.banner.value}' markers: dismissal disabled by settings")

        held = self._ledger.read()
        ids = {sale.id for sale in held}
        new_ids = ids - self._known_ids if self._known_ids is not None else set()
        self._held = held

        if new_ids and self._markers.present:
            # Ids count as seen only once the markers hiding them are gone;
            # a failed clear leaves them new for the next evaluation.
            self._markers.clear()
        self._known_ids = ids

        status = self._derive_status(now, bool(held))
        self._summary = summarize_held_sales(held, now)
        metrics.held_sales_count.set(self._summary.count)
        metrics.held_sales_value.set(self._summary.total_value)

        if status.state != previous.state:
            if new_ids:
                self._record_transition(previous.state, status.state, "new_held_sale", new_ids=sorted(new_ids))
            else:
                self._record_transition(previous.state, status.state, "evaluate")
        self._status = status

    def _derive_status(self, now: int, has_held: bool) -> BannerStatus:
        snoozed_until = self._markers.snoozed_until
        dismissed_at = self._markers.dismissed_at

        if snoozed_until is not None:
            if now < snoozed_until:
                return BannerStatus(banner=self.banner, state=BannerState.SNOOZED, hidden_until=snoozed_until)
            self._markers.clear_snooze()

        if dismissed_at is not None:
            duration = self._settings.banner_dismissal_duration_ms
            if duration == 0:
                return BannerStatus(banner=self.banner, state=BannerState.DISMISSED, permanent=True)
            if now < dismissed_at + duration:
                return BannerStatus(
                    banner=self.banner,
                    state=BannerState.DISMISSED,
                    hidden_until=dismissed_at + duration,
                )
            self._markers.clear_dismissal()

        return BannerStatus(banner=self.banner, state=BannerState.VISIBLE, visible=has_held)

    def _record_transition(self, before: BannerState, after: BannerState, reason: str, **context) -> None:
        metrics.banner_transitions_total.labels(banner=self.banner.value, transition=f"{before.value}_to_{after.value}").inc()
        structured_logger.info(
            "Banner state changed",
            banner=self.banner.value,
            before=before.value,
            after=after.value,
            reason=reason,
            **context,
        )
