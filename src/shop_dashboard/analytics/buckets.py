"""
Chart bucketing for the sales trend chart.

Hourly charts always carry 24 buckets so quiet hours still render; daily
and monthly charts only carry buckets that received a sale. Buckets come
back in chronological order regardless of the order sales were folded in.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import tzinfo
from typing import Iterable, Mapping

from pydantic import BaseModel

from shop_dashboard.analytics.periods import BucketGrain, from_epoch_ms
from shop_dashboard.shared import metrics
from shop_dashboard.shared.models import Product, Sale

logger = logging.getLogger(__name__)

HOURS_PER_DAY = 24


class ChartBucket(BaseModel):
    """One point on the trend chart."""

    key: int | str
    label: str
    revenue: float = 0.0
    orders: int = 0
    profit: float = 0.0


@dataclass(slots=True)
class _BucketTotals:
    key: int | str
    label: str
    revenue: float = 0.0
    orders: int = 0
    profit: float = 0.0


def _hour_label(hour: int) -> str:
    return f"{hour:02d}:00"


def _locate(timestamp: int, grain: BucketGrain, tz: tzinfo) -> tuple[tuple, int | str, str]:
    """Return (sort key, bucket key, label) for a timestamp."""

    moment = from_epoch_ms(timestamp, tz)
    if grain == BucketGrain.HOUR:
        return (moment.hour,), moment.hour, _hour_label(moment.hour)
    if grain == BucketGrain.DAY:
        iso = moment.date().isoformat()
        return (iso,), iso, f"{moment:%b} {moment.day}"
    return (
        (moment.year, moment.month),
        f"{moment.year:04d}-{moment.month:02d}",
        f"{moment:%b} {moment.year}",
    )


def _sale_profit(sale: Sale, products: Mapping[str, Product]) -> float:
    profit = 0.0
    for item in sale.items:
        product = products.get(item.product_id)
        if product is not None:
            profit += item.line_total - product.cost_price * item.quantity
    return profit


def build_chart_buckets(
    sales: Iterable[Sale],
    grain: BucketGrain,
    tz: tzinfo,
    products: Mapping[str, Product] | None = None,
) -> list[ChartBucket]:
    """
    Partition already-filtered sales into ordered chart buckets.

    Args:
        sales: Sales inside the current interval
        grain: Bucket granularity
        tz: Time zone used to place sales into hours/days/months
        products: Optional product lookup used for per-bucket profit

    Returns:
        Buckets sorted by their chronological key
    """
    products = products or {}
    buckets: dict[tuple, _BucketTotals] = {}

    if grain == BucketGrain.HOUR:
        for hour in range(HOURS_PER_DAY):
            buckets[(hour,)] = _BucketTotals(key=hour, label=_hour_label(hour))

    skipped = 0
    for sale in sales:
        if sale.timestamp is None:
            skipped += 1
            continue
        try:
            sort_key, key, label = _locate(sale.timestamp, grain, tz)
        except (OverflowError, OSError, ValueError):
            skipped += 1
            logger.debug(f"Sale {sale.id or sale.receipt_no} has an out-of-range timestamp")
            continue

        totals = buckets.get(sort_key)
        if totals is None:
            totals = _BucketTotals(key=key, label=label)
            buckets[sort_key] = totals
        totals.revenue += sale.total
        totals.orders += 1
        totals.profit += _sale_profit(sale, products)

    if skipped:
        metrics.malformed_records_total.labels(kind="bucket_timestamp").inc(skipped)

    return [
        ChartBucket(
            key=totals.key,
            label=totals.label,
            revenue=totals.revenue,
            orders=totals.orders,
            profit=totals.profit,
        )
        for _, totals in sorted(buckets.items(), key=lambda entry: entry[0])
    ]
