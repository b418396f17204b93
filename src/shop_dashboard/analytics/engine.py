"""
Dashboard engine.

Holds the four source collections after a single bulk fetch and derives the
dashboard snapshot from them on demand. Every figure in a snapshot comes
from the same two interval-filtered subsets of sales, and ``compute`` has
no side effects beyond logging and metrics, so calling it twice with the
same inputs returns equal snapshots.

State Transitions:
    unloaded -> loaded (when load() or load_records() completes)

Recompute triggers (all call ``compute``): initial load, period change,
category change, leaderboard metric change, and the presentation layer's
own timer. A category selection narrows the sales feeding every figure
except the operations summary, which always describes the whole shop.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Callable

from pydantic import BaseModel, Field

from shop_dashboard.analytics.aggregator import AggregateStats, aggregate_sales, build_aggregate_stats, filter_sales
from shop_dashboard.analytics.buckets import ChartBucket, build_chart_buckets
from shop_dashboard.analytics.categories import (
    CategoryBreakdown,
    CategoryShare,
    category_breakdown,
    category_distribution,
    filter_by_category,
)
from shop_dashboard.analytics.leaderboard import (
    CustomerRank,
    LeaderboardMetric,
    ProductRank,
    top_customers,
    top_products,
)
from shop_dashboard.analytics.operations import OperationsSummary, summarize_operations
from shop_dashboard.analytics.periods import (
    BucketGrain,
    PeriodMode,
    PeriodSelection,
    resolve_period,
)
from shop_dashboard.config.models import DashboardConfig
from shop_dashboard.services.record_source import RecordSet, RecordSource, fetch_record_set
from shop_dashboard.shared import metrics
from shop_dashboard.shared.exceptions import DashboardNotLoadedError
from shop_dashboard.shared.logging_utils import get_structured_logger
from shop_dashboard.shared.models import Product, now_ms

logger = logging.getLogger(__name__)
structured_logger = get_structured_logger(__name__)


class DashboardSnapshot(BaseModel):
    """Everything the presentation layer renders for one selection."""

    mode: PeriodMode
    grain: BucketGrain
    metric: LeaderboardMetric
    category: str | None = None
    generated_at: int
    period_start: int | None = None
    period_end: int | None = None
    stats: AggregateStats
    buckets: list[ChartBucket] = Field(default_factory=list)
    top_products: list[ProductRank] = Field(default_factory=list)
    top_customers: list[CustomerRank] = Field(default_factory=list)
    categories: list[CategoryShare] = Field(default_factory=list)
    category_breakdown: list[CategoryBreakdown] = Field(default_factory=list)
    operations: OperationsSummary


class DashboardEngine:
    """Derives dashboard snapshots from records loaded once."""

    def __init__(
        self,
        config: DashboardConfig | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        """
        Initialize the engine.

        Args:
            config: Dashboard configuration (defaults when omitted)
            clock: Returns the current time in epoch milliseconds
        """
        self.config = config or DashboardConfig()
        self._clock = clock
        self._tz = self.config.analytics.tzinfo()
        self._records: RecordSet | None = None
        self._products: dict[str, Product] = {}
        self.selection = PeriodSelection()
        self.metric = LeaderboardMetric.QUANTITY
        self.category: str | None = None

    @property
    def loaded(self) -> bool:
        return self._records is not None

    @property
    def records(self) -> RecordSet:
        if self._records is None:
            raise DashboardNotLoadedError()
        return self._records

    async def load(self, source: RecordSource) -> RecordSet:
        """
        Fetch the four collections once and make them available for aggregation.

        Raises:
            RecordSourceError: If the fetch fails; the engine stays unloaded
        """
        record_set = await fetch_record_set(source)
        self.load_records(record_set)
        return record_set

    def load_records(self, record_set: RecordSet) -> None:
        """Install an already-fetched record set."""

        self._records = record_set
        self._products = record_set.product_index()
        logger.info(
            f"Loaded {len(record_set.sales)} sales, {len(record_set.products)} products, "
            f"{len(record_set.repairs)} repairs, {len(record_set.stock_logs)} stock log entries"
        )

    def select_period(
        self,
        mode: PeriodMode | str,
        start_date: date | str | None = None,
        end_date: date | str | None = None,
    ) -> PeriodSelection:
        """Change the time-range selector."""

        self.selection = PeriodSelection(mode=mode, start_date=start_date, end_date=end_date)
        logger.debug(f"Period selection changed to {self.selection.mode.value}")
        return self.selection

    def select_metric(self, metric: LeaderboardMetric | str) -> LeaderboardMetric:
        """Change the leaderboard ranking metric."""

        self.metric = LeaderboardMetric(metric)
        return self.metric

    def select_category(self, category: str | None) -> str | None:
        """
        Restrict every sales figure to one product category.

        ``None``, an empty string or ``"All"`` clears the selection. Lines
        whose product no longer exists belong to the configured "other"
        category label.
        """
        if category is None or category.strip() in ("", "All"):
            self.category = None
        else:
            self.category = category.strip()
        logger.debug(f"Category selection changed to {self.category or 'All'}")
        return self.category

    def compute(self, now: int | None = None) -> DashboardSnapshot:
        """
        Derive the snapshot for the current selection.

        Args:
            now: Wall-clock time in epoch milliseconds (defaults to the clock)

        Returns:
            DashboardSnapshot

        Raises:
            DashboardNotLoadedError: If called before the initial load
        """
        records = self.records
        now = self._clock() if now is None else now
        analytics = self.config.analytics

        with metrics.dashboard_recompute_duration_seconds.time():
            window = resolve_period(self.selection, now, self._tz)
            sales = filter_by_category(
                records.sales, self._products, self.category, analytics.other_category_label
            )
            current_sales = filter_sales(sales, window.current)
            previous_sales = filter_sales(sales, window.previous) if window.has_comparison else None

            current = aggregate_sales(current_sales, self._products)
            previous = aggregate_sales(previous_sales, self._products) if previous_sales is not None else None

            customers = top_customers(
                current_sales,
                previous_sales,
                limit=analytics.leaderboard_size,
                walk_in_label=analytics.walk_in_label,
            )
            operations = summarize_operations(
                records.sales,
                records.products,
                records.repairs,
                records.stock_logs,
                recent_limit=analytics.recent_sales_limit,
                activity_limit=analytics.activity_feed_limit,
            )
            stats = build_aggregate_stats(
                current,
                previous,
                top_customer=customers[0].customer_name if customers else None,
                inventory_value=operations.inventory_value,
                low_stock_count=operations.low_stock_count,
            )

            snapshot = DashboardSnapshot(
                mode=window.mode,
                grain=window.grain,
                metric=self.metric,
                category=self.category,
                generated_at=now,
                period_start=window.current.start,
                period_end=window.current.end,
                stats=stats,
                buckets=build_chart_buckets(current_sales, window.grain, self._tz, self._products),
                top_products=top_products(
                    current_sales,
                    self._products,
                    metric=self.metric,
                    previous_sales=previous_sales,
                    limit=analytics.leaderboard_size,
                ),
                top_customers=customers,
                categories=category_distribution(
                    current_sales, self._products, analytics.other_category_label
                ),
                category_breakdown=category_breakdown(
                    current_sales, self._products, analytics.other_category_label
                ),
                operations=operations,
            )

        metrics.dashboard_recomputations_total.labels(mode=window.mode.value).inc()
        with structured_logger.correlation_scope():
            structured_logger.debug(
                "Dashboard snapshot computed",
                mode=window.mode.value,
                metric=self.metric.value,
                category=self.category,
                sales_in_period=len(current_sales),
                comparison_sales=len(previous_sales) if previous_sales is not None else None,
                revenue=stats.revenue,
            )
        return snapshot
