"""
Scalar sales aggregates for an interval.

Every figure is produced by a single fold over the interval's sales into a
``SalesAccumulator`` so revenue, quantity, cost and payment splits always
describe exactly the same subset.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Iterable, Mapping

from pydantic import BaseModel, Field

from shop_dashboard.analytics.periods import Interval
from shop_dashboard.analytics.trend import comparative_trend
from shop_dashboard.shared.models import PaymentMethod, Product, Sale


def filter_sales(sales: Iterable[Sale], interval: Interval | None) -> list[Sale]:
    """Sales whose timestamp falls in ``interval``; ``None`` selects nothing."""

    if interval is None:
        return []
    return [sale for sale in sales if interval.contains(sale.timestamp)]


def _ratio_pct(numerator: float, denominator: float) -> float:
    if denominator == 0:
        return 0.0
    value = numerator / denominator * 100
    return value if math.isfinite(value) else 0.0


@dataclass(slots=True)
class SalesAccumulator:
    """Composite running totals over a set of sales."""

    revenue: float = 0.0
    orders: int = 0
    qty_sold: int = 0
    costed_revenue: float = 0.0
    cost: float = 0.0
    method_revenue: dict[str, float] = field(default_factory=dict)
    method_counts: dict[str, int] = field(default_factory=dict)

    def add(self, sale: Sale, products: Mapping[str, Product]) -> None:
        """
        Fold one sale in.

        Lines whose product no longer exists still count toward quantity and
        revenue but are left out of profit entirely.
        """
        self.revenue += sale.total
        self.orders += 1
        for item in sale.items:
            self.qty_sold += item.quantity
            product = products.get(item.product_id)
            if product is not None:
                self.costed_revenue += item.line_total
                self.cost += product.cost_price * item.quantity
        method = sale.payment_method
        self.method_revenue[method] = self.method_revenue.get(method, 0.0) + sale.total
        self.method_counts[method] = self.method_counts.get(method, 0) + 1

    @property
    def profit(self) -> float:
        """Line revenue minus cost over lines with a known product."""
        return self.costed_revenue - self.cost

    @property
    def margin(self) -> float:
        """Profit as a percentage of revenue; 0 when there is no revenue."""
        return _ratio_pct(self.profit, self.revenue)

    @property
    def average_order_value(self) -> float:
        if self.orders == 0:
            return 0.0
        return self.revenue / self.orders

    def revenue_for(self, method: PaymentMethod) -> float:
        return self.method_revenue.get(method.value, 0.0)


def aggregate_sales(
    sales: Iterable[Sale],
    products: Mapping[str, Product],
    interval: Interval | None = None,
) -> SalesAccumulator:
    """
    Fold sales into totals, optionally restricting to an interval first.

    Args:
        sales: Source sales (any order)
        products: Product lookup by ID
        interval: Optional interval filter; when omitted ``sales`` is used as-is

    Returns:
        SalesAccumulator over the selected sales
    """
    selected = sales if interval is None else filter_sales(sales, interval)
    accumulator = SalesAccumulator()
    for sale in selected:
        accumulator.add(sale, products)
    return accumulator


class AggregateStats(BaseModel):
    """Headline statistics for the selected period. Derived, never persisted."""

    revenue: float = 0.0
    revenue_trend_pct: float = 0.0
    orders: int = 0
    orders_trend_pct: float = 0.0
    profit: float = 0.0
    profit_trend_pct: float = 0.0
    margin: float = 0.0
    qty_sold: int = 0
    qty_trend_pct: float = 0.0
    average_order_value: float = 0.0
    top_customer: str | None = None
    cash_revenue: float = 0.0
    mobile_money_revenue: float = 0.0
    bank_revenue: float = 0.0
    credit_revenue: float = 0.0
    payment_counts: dict[str, int] = Field(default_factory=dict)
    inventory_value: float = 0.0
    low_stock_count: int = 0


def build_aggregate_stats(
    current: SalesAccumulator,
    previous: SalesAccumulator | None,
    top_customer: str | None = None,
    inventory_value: float = 0.0,
    low_stock_count: int = 0,
) -> AggregateStats:
    """Combine current/previous accumulators into the headline statistics."""

    has_comparison = previous is not None
    baseline = previous or SalesAccumulator()
    return AggregateStats(
        revenue=current.revenue,
        revenue_trend_pct=comparative_trend(current.revenue, baseline.revenue, has_comparison),
        orders=current.orders,
        orders_trend_pct=comparative_trend(current.orders, baseline.orders, has_comparison),
        profit=current.profit,
        profit_trend_pct=comparative_trend(current.profit, baseline.profit, has_comparison),
        margin=current.margin,
        qty_sold=current.qty_sold,
        qty_trend_pct=comparative_trend(current.qty_sold, baseline.qty_sold, has_comparison),
        average_order_value=current.average_order_value,
        top_customer=top_customer,
        cash_revenue=current.revenue_for(PaymentMethod.CASH),
        mobile_money_revenue=current.revenue_for(PaymentMethod.MOBILE_MONEY),
        bank_revenue=current.revenue_for(PaymentMethod.BANK),
        credit_revenue=current.revenue_for(PaymentMethod.CREDIT),
        payment_counts=dict(current.method_counts),
        inventory_value=inventory_value,
        low_stock_count=low_stock_count,
    )
