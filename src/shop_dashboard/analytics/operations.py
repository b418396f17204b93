"""
Period-independent operational figures for the dashboard.

Workshop and stock counts, the most recent sales, and a merged activity
feed of sales, repairs and stock adjustments.
"""

from __future__ import annotations

from enum import Enum
from typing import Iterable

from pydantic import BaseModel, Field

from shop_dashboard.shared.models import Product, Repair, RepairStatus, Sale, StockLogEntry

CLOSED_REPAIR_STATUSES = {RepairStatus.DELIVERED, RepairStatus.CANCELLED}


class ActivityKind(str, Enum):
    SALE = "sale"
    REPAIR = "repair"
    STOCK = "stock"


class ActivityEntry(BaseModel):
    """One line of the activity feed."""

    kind: ActivityKind
    reference: str
    description: str
    timestamp: int
    amount: float | None = None


class OperationsSummary(BaseModel):
    """Counts that do not depend on the selected period."""

    active_repairs: int = 0
    ready_for_pickup: int = 0
    low_stock_count: int = 0
    product_count: int = 0
    units_in_hand: int = 0
    inventory_value: float = 0.0
    recent_sales: list[Sale] = Field(default_factory=list)
    activity: list[ActivityEntry] = Field(default_factory=list)


def is_low_stock(product: Product) -> bool:
    return product.stock_quantity <= product.reorder_level


def inventory_value(products: Iterable[Product]) -> float:
    """Stock on hand valued at cost; negative stock counts as none."""

    return sum(product.cost_price * max(product.stock_quantity, 0) for product in products)


def recent_sales(sales: Iterable[Sale], limit: int = 5) -> list[Sale]:
    """Newest sales first; sales without a usable timestamp are left out."""

    dated = [sale for sale in sales if sale.timestamp is not None]
    dated.sort(key=lambda sale: sale.timestamp, reverse=True)
    return dated[:limit]


def activity_feed(
    sales: Iterable[Sale],
    repairs: Iterable[Repair],
    stock_logs: Iterable[StockLogEntry],
    limit: int = 10,
) -> list[ActivityEntry]:
    """Merge sales, repairs and stock changes into one newest-first feed."""

    entries: list[ActivityEntry] = []
    for sale in sales:
        if sale.timestamp is None:
            continue
        entries.append(
            ActivityEntry(
                kind=ActivityKind.SALE,
                reference=sale.receipt_no or (sale.id or ""),
                description=f"Sale to {sale.customer_name or 'walk-in'} ({sale.payment_method or 'unknown'})",
                timestamp=sale.timestamp,
                amount=sale.total,
            )
        )
    for repair in repairs:
        if repair.timestamp is None:
            continue
        entries.append(
            ActivityEntry(
                kind=ActivityKind.REPAIR,
                reference=repair.job_card_no or (repair.id or ""),
                description=f"{repair.device_model} for {repair.customer_name}: {repair.status.value}",
                timestamp=repair.timestamp,
                amount=repair.estimated_cost,
            )
        )
    for log in stock_logs:
        if log.timestamp is None:
            continue
        entries.append(
            ActivityEntry(
                kind=ActivityKind.STOCK,
                reference=log.product_id,
                description=f"{log.product_name} {log.change_amount:+d} ({log.reason})",
                timestamp=log.timestamp,
            )
        )

    entries.sort(key=lambda entry: entry.timestamp, reverse=True)
    return entries[:limit]


def summarize_operations(
    sales: list[Sale],
    products: list[Product],
    repairs: list[Repair],
    stock_logs: list[StockLogEntry],
    recent_limit: int = 5,
    activity_limit: int = 10,
) -> OperationsSummary:
    """Build the period-independent part of the dashboard."""

    return OperationsSummary(
        active_repairs=sum(1 for r in repairs if r.status not in CLOSED_REPAIR_STATUSES),
        ready_for_pickup=sum(1 for r in repairs if r.status == RepairStatus.COMPLETED),
        low_stock_count=sum(1 for p in products if is_low_stock(p)),
        product_count=len(products),
        units_in_hand=sum(p.stock_quantity for p in products),
        inventory_value=inventory_value(products),
        recent_sales=recent_sales(sales, recent_limit),
        activity=activity_feed(sales, repairs, stock_logs, activity_limit),
    )
