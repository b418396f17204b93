"""
Product and customer leaderboards.

Groups are kept in first-appearance order and ranked with Python's stable
sort, so rows with an equal ranking value keep the order in which they first
appeared in the input.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Mapping

from pydantic import BaseModel

from shop_dashboard.analytics.trend import trend
from shop_dashboard.shared.models import Product, Sale

DEFAULT_WALK_IN_LABEL = "Walk-in Customer"


class LeaderboardMetric(str, Enum):
    """Ranking metric for the top products list."""

    QUANTITY = "quantity"
    REVENUE = "revenue"


class ProductRank(BaseModel):
    """A row of the top products list."""

    product_id: str
    name: str
    sku: str
    quantity: int
    revenue: float
    trend_pct: float = 0.0


class CustomerRank(BaseModel):
    """A row of the top customers list."""

    customer_name: str
    total_spend: float
    orders: int
    trend_pct: float = 0.0


@dataclass(slots=True)
class _ProductTotals:
    quantity: int = 0
    revenue: float = 0.0


def _group_products(sales: Iterable[Sale]) -> dict[str, _ProductTotals]:
    groups: dict[str, _ProductTotals] = {}
    for sale in sales:
        for item in sale.items:
            totals = groups.setdefault(item.product_id, _ProductTotals())
            totals.quantity += item.quantity
            totals.revenue += item.line_total
    return groups


def _entity_trend(current: float, previous: float, comparison_has_sales: bool) -> float:
    if not comparison_has_sales:
        return 0.0
    return trend(current, previous)


def top_products(
    current_sales: Iterable[Sale],
    products: Mapping[str, Product],
    metric: LeaderboardMetric = LeaderboardMetric.QUANTITY,
    previous_sales: Iterable[Sale] | None = None,
    limit: int = 5,
) -> list[ProductRank]:
    """
    Rank products by units or revenue within the current interval.

    Line items whose product no longer exists are dropped. Each row's trend
    compares the chosen metric against the comparison interval; it is 0 when
    there is no comparison interval or it holds no sales.

    Args:
        current_sales: Sales in the current interval
        products: Product lookup by ID
        metric: Ranking metric
        previous_sales: Sales in the comparison interval, ``None`` for all-time
        limit: Number of rows kept

    Returns:
        Up to ``limit`` rows, best first
    """
    previous_list = list(previous_sales) if previous_sales is not None else []
    previous_groups = _group_products(previous_list)
    comparison_has_sales = bool(previous_list)

    rows: list[ProductRank] = []
    for product_id, totals in _group_products(current_sales).items():
        product = products.get(product_id)
        if product is None:
            continue
        before = previous_groups.get(product_id, _ProductTotals())
        if metric == LeaderboardMetric.REVENUE:
            change = _entity_trend(totals.revenue, before.revenue, comparison_has_sales)
        else:
            change = _entity_trend(totals.quantity, before.quantity, comparison_has_sales)
        rows.append(
            ProductRank(
                product_id=product_id,
                name=product.name,
                sku=product.sku,
                quantity=totals.quantity,
                revenue=totals.revenue,
                trend_pct=change,
            )
        )

    if metric == LeaderboardMetric.REVENUE:
        rows.sort(key=lambda row: row.revenue, reverse=True)
    else:
        rows.sort(key=lambda row: row.quantity, reverse=True)
    return rows[:limit]


def customer_label(name: str | None, walk_in_label: str = DEFAULT_WALK_IN_LABEL) -> str:
    """Normalise a sale's customer name; blank names share the walk-in label."""

    if name is None or not name.strip():
        return walk_in_label
    return name.strip()


def _group_customers(
    sales: Iterable[Sale], walk_in_label: str
) -> dict[str, tuple[float, int]]:
    groups: dict[str, tuple[float, int]] = {}
    for sale in sales:
        label = customer_label(sale.customer_name, walk_in_label)
        spend, orders = groups.get(label, (0.0, 0))
        groups[label] = (spend + sale.total, orders + 1)
    return groups


def top_customers(
    current_sales: Iterable[Sale],
    previous_sales: Iterable[Sale] | None = None,
    limit: int = 5,
    walk_in_label: str = DEFAULT_WALK_IN_LABEL,
) -> list[CustomerRank]:
    """
    Rank customers by total spend within the current interval.

    All unnamed sales are treated as one walk-in customer, including for the
    trend join against the comparison interval.
    """
    previous_list = list(previous_sales) if previous_sales is not None else []
    previous_groups = _group_customers(previous_list, walk_in_label)
    comparison_has_sales = bool(previous_list)

    rows = [
        CustomerRank(
            customer_name=label,
            total_spend=spend,
            orders=orders,
            trend_pct=_entity_trend(
                spend, previous_groups.get(label, (0.0, 0))[0], comparison_has_sales
            ),
        )
        for label, (spend, orders) in _group_customers(current_sales, walk_in_label).items()
    ]
    rows.sort(key=lambda row: row.total_spend, reverse=True)
    return rows[:limit]
