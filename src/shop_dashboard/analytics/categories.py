"""Category distribution and per-category breakdown of units sold."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping

from pydantic import BaseModel

from shop_dashboard.shared.models import Product, Sale

DEFAULT_OTHER_LABEL = "Other"


class CategoryShare(BaseModel):
    category: str
    unit_count: int


class CategoryBreakdown(BaseModel):
    """Row of the per-category sales table."""

    category: str
    revenue: float
    items_sold: int
    total_cost: float
    avg_price: float
    avg_cost: float
    profit_per_item: float


def _category_of(product: Product | None, other_label: str) -> str:
    if product is None:
        return other_label
    return product.type.value


def filter_by_category(
    sales: Iterable[Sale],
    products: Mapping[str, Product],
    category: str | None,
    other_label: str = DEFAULT_OTHER_LABEL,
) -> list[Sale]:
    """
    Narrow sales to the lines of one category.

    A sale with some matching lines is kept with only those lines and a
    total equal to their line totals; a sale with none is dropped. Every
    aggregate computed from the result (orders, revenue, profit, quantity,
    payment splits) therefore describes that category alone.

    Args:
        sales: Source sales
        products: Product lookup by ID
        category: Product type label, or ``other_label`` for lines whose
            product no longer exists; None keeps every sale unchanged
        other_label: Label used for unresolved products

    Returns:
        The narrowed sales, in source order
    """
    if category is None:
        return list(sales)

    narrowed: list[Sale] = []
    for sale in sales:
        matching = [
            item
            for item in sale.items
            if _category_of(products.get(item.product_id), other_label) == category
        ]
        if not matching:
            continue
        if len(matching) == len(sale.items):
            narrowed.append(sale)
        else:
            narrowed.append(
                sale.model_copy(
                    update={"items": matching, "total": sum(item.line_total for item in matching)}
                )
            )
    return narrowed


def category_distribution(
    sales: Iterable[Sale],
    products: Mapping[str, Product],
    other_label: str = DEFAULT_OTHER_LABEL,
) -> list[CategoryShare]:
    """Units sold per product type, in first-seen order."""

    counts: dict[str, int] = {}
    for sale in sales:
        for item in sale.items:
            category = _category_of(products.get(item.product_id), other_label)
            counts[category] = counts.get(category, 0) + item.quantity
    return [CategoryShare(category=name, unit_count=count) for name, count in counts.items()]


@dataclass(slots=True)
class _CategoryTotals:
    revenue: float = 0.0
    count: int = 0
    cost: float = 0.0
    profit: float = 0.0


def category_breakdown(
    sales: Iterable[Sale],
    products: Mapping[str, Product],
    other_label: str = DEFAULT_OTHER_LABEL,
) -> list[CategoryBreakdown]:
    """Revenue, units and cost per product type; unknown products add no cost or profit."""

    totals: dict[str, _CategoryTotals] = {}
    for sale in sales:
        for item in sale.items:
            product = products.get(item.product_id)
            entry = totals.setdefault(_category_of(product, other_label), _CategoryTotals())
            entry.revenue += item.line_total
            entry.count += item.quantity
            if product is not None:
                line_cost = product.cost_price * item.quantity
                entry.cost += line_cost
                entry.profit += item.line_total - line_cost

    rows = []
    for name, entry in totals.items():
        rows.append(
            CategoryBreakdown(
                category=name,
                revenue=entry.revenue,
                items_sold=entry.count,
                total_cost=entry.cost,
                avg_price=entry.revenue / entry.count if entry.count else 0.0,
                avg_cost=entry.cost / entry.count if entry.count else 0.0,
                profit_per_item=entry.profit / entry.count if entry.count else 0.0,
            )
        )
    return rows
