"""
Record source interface and ingestion.

The persistent store is an external collaborator: the engine only needs the
four collections it reads, fetched once as unordered sets. ``RecordSet``
validates raw rows into models, skipping rows that cannot be validated at
all instead of failing the whole load.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Protocol, TypeVar, runtime_checkable

from pydantic import BaseModel, ValidationError

from shop_dashboard.shared import metrics
from shop_dashboard.shared.exceptions import RecordSourceError
from shop_dashboard.shared.models import Product, Repair, Sale, StockLogEntry

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


@runtime_checkable
class RecordSource(Protocol):
    """Read-only access to the shop's transactional collections."""

    async def fetch_sales(self) -> Iterable[Any]: ...

    async def fetch_products(self) -> Iterable[Any]: ...

    async def fetch_repairs(self) -> Iterable[Any]: ...

    async def fetch_stock_logs(self) -> Iterable[Any]: ...


class InMemoryRecordSource:
    """Record source backed by in-memory lists of dicts or models."""

    def __init__(
        self,
        sales: Iterable[Any] | None = None,
        products: Iterable[Any] | None = None,
        repairs: Iterable[Any] | None = None,
        stock_logs: Iterable[Any] | None = None,
    ) -> None:
        self.sales = list(sales or [])
        self.products = list(products or [])
        self.repairs = list(repairs or [])
        self.stock_logs = list(stock_logs or [])

    async def fetch_sales(self) -> list[Any]:
        return list(self.sales)

    async def fetch_products(self) -> list[Any]:
        return list(self.products)

    async def fetch_repairs(self) -> list[Any]:
        return list(self.repairs)

    async def fetch_stock_logs(self) -> list[Any]:
        return list(self.stock_logs)


def _validate_rows(model: type[ModelT], rows: Iterable[Any], kind: str) -> list[ModelT]:
    validated: list[ModelT] = []
    skipped = 0
    for row in rows:
        if isinstance(row, model):
            validated.append(row)
            continue
        try:
            validated.append(model.model_validate(row))
        except ValidationError as e:
            skipped += 1
            logger.warning(f"Skipping malformed {kind} record: {e.error_count()} validation error(s)")
    if skipped:
        metrics.malformed_records_total.labels(kind=kind).inc(skipped)
    return validated


@dataclass(slots=True)
class RecordSet:
    """The four source collections held in memory after the initial fetch."""

    sales: list[Sale] = field(default_factory=list)
    products: list[Product] = field(default_factory=list)
    repairs: list[Repair] = field(default_factory=list)
    stock_logs: list[StockLogEntry] = field(default_factory=list)

    @classmethod
    def from_raw(
        cls,
        sales: Iterable[Any] = (),
        products: Iterable[Any] = (),
        repairs: Iterable[Any] = (),
        stock_logs: Iterable[Any] = (),
    ) -> "RecordSet":
        """Validate raw rows into a record set, skipping unusable rows."""

        record_set = cls(
            sales=_validate_rows(Sale, sales, "sale"),
            products=_validate_rows(Product, products, "product"),
            repairs=_validate_rows(Repair, repairs, "repair"),
            stock_logs=_validate_rows(StockLogEntry, stock_logs, "stock_log"),
        )
        for collection, rows in (
            ("sales", record_set.sales),
            ("products", record_set.products),
            ("repairs", record_set.repairs),
            ("stock_logs", record_set.stock_logs),
        ):
            metrics.records_loaded.labels(collection=collection).set(len(rows))
        return record_set

    def product_index(self) -> dict[str, Product]:
        """Products keyed by ID; later duplicates win."""

        return {product.id: product for product in self.products}


async def fetch_record_set(source: RecordSource) -> RecordSet:
    """
    Fetch all four collections concurrently and validate them.

    Raises:
        RecordSourceError: If any collection cannot be fetched
    """
    names = ("sales", "products", "repairs", "stock_logs")
    results = await asyncio.gather(
        source.fetch_sales(),
        source.fetch_products(),
        source.fetch_repairs(),
        source.fetch_stock_logs(),
        return_exceptions=True,
    )
    for name, result in zip(names, results):
        if isinstance(result, asyncio.CancelledError):
            raise result
        if isinstance(result, Exception):
            raise RecordSourceError("fetch failed", collection=name, original_error=result)

    sales, products, repairs, stock_logs = results
    return RecordSet.from_raw(sales, products, repairs, stock_logs)
