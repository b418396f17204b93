"""Unit tests for record ingestion."""

import asyncio

import pytest

from shop_dashboard.services.record_source import (
    InMemoryRecordSource,
    RecordSet,
    RecordSource,
    fetch_record_set,
)
from shop_dashboard.shared.exceptions import RecordSourceError
from shop_dashboard.shared.models import Product


class TestRecordSet:
    """Test validation of raw rows."""

    def test_from_raw(self, sample_sales, sample_products, sample_repairs, sample_stock_logs):
        record_set = RecordSet.from_raw(sample_sales, sample_products, sample_repairs, sample_stock_logs)

        assert len(record_set.sales) == 5
        assert len(record_set.products) == 3
        assert len(record_set.repairs) == 3
        assert len(record_set.stock_logs) == 1

    def test_invalid_rows_skipped(self):
        record_set = RecordSet.from_raw(products=[{"id": "ok"}, {"name": "no id"}, "garbage"])
        assert [product.id for product in record_set.products] == ["ok"]

    def test_models_pass_through(self):
        product = Product(id="p")
        assert RecordSet.from_raw(products=[product]).products == [product]

    def test_product_index(self):
        record_set = RecordSet.from_raw(products=[{"id": "a", "name": "old"}, {"id": "a", "name": "new"}])
        assert record_set.product_index()["a"].name == "new"


class TestFetchRecordSet:
    """Test the concurrent bulk fetch."""

    def test_in_memory_source_satisfies_protocol(self):
        assert isinstance(InMemoryRecordSource(), RecordSource)

    @pytest.mark.asyncio
    async def test_fetch(self, sample_sales):
        record_set = await fetch_record_set(InMemoryRecordSource(sales=sample_sales))

        assert len(record_set.sales) == 5
        assert record_set.products == []

    @pytest.mark.asyncio
    async def test_failure_wrapped(self):
        class BrokenSource(InMemoryRecordSource):
            async def fetch_products(self):
                raise TimeoutError("slow store")

        with pytest.raises(RecordSourceError) as exc_info:
            await fetch_record_set(BrokenSource())

        assert exc_info.value.collection == "products"
        assert isinstance(exc_info.value.original_error, TimeoutError)

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self):
        class CancelledSource(InMemoryRecordSource):
            async def fetch_sales(self):
                raise asyncio.CancelledError()

        with pytest.raises(asyncio.CancelledError):
            await fetch_record_set(CancelledSource())
