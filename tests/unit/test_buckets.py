"""Unit tests for chart bucketing."""

from zoneinfo import ZoneInfo

from shop_dashboard.analytics.buckets import build_chart_buckets
from shop_dashboard.analytics.periods import BucketGrain
from shop_dashboard.shared.models import Product, Sale

UTC = ZoneInfo("UTC")


def _sale(sale_id: str, total: float, timestamp: int | None) -> Sale:
    return Sale(id=sale_id, total=total, payment_method="Cash", timestamp=timestamp)


class TestHourBuckets:
    """Test hour grain pre-seeding."""

    def test_scenario_two_sales_today(self, ts):
        sales = [_sale("a", 1000, ts(2026, 10, 18, 9)), _sale("b", 2000, ts(2026, 10, 18, 14))]
        buckets = build_chart_buckets(sales, BucketGrain.HOUR, UTC)

        assert len(buckets) == 24
        assert [bucket.key for bucket in buckets] == list(range(24))
        assert buckets[9].revenue == 1000
        assert buckets[14].revenue == 2000
        assert sum(1 for bucket in buckets if bucket.revenue == 0) == 22

    def test_empty_day_still_has_24_buckets(self):
        buckets = build_chart_buckets([], BucketGrain.HOUR, UTC)

        assert len(buckets) == 24
        assert all(bucket.orders == 0 for bucket in buckets)
        assert buckets[0].label == "00:00"
        assert buckets[23].label == "23:00"

    def test_orders_counted_per_hour(self, ts):
        sales = [_sale("a", 10, ts(2026, 10, 18, 9)), _sale("b", 20, ts(2026, 10, 18, 9, 45))]
        buckets = build_chart_buckets(sales, BucketGrain.HOUR, UTC)

        assert buckets[9].orders == 2
        assert buckets[9].revenue == 30


class TestDayAndMonthBuckets:
    """Test lazily created buckets."""

    def test_day_buckets_sorted_chronologically(self, ts):
        sales = [
            _sale("late", 5, ts(2026, 10, 12, 10)),
            _sale("early", 7, ts(2026, 10, 3, 10)),
            _sale("mid", 9, ts(2026, 10, 9, 10)),
        ]
        buckets = build_chart_buckets(sales, BucketGrain.DAY, UTC)

        assert [bucket.key for bucket in buckets] == ["2026-10-03", "2026-10-09", "2026-10-12"]
        assert buckets[0].label == "Oct 3"

    def test_month_buckets_sorted_across_years(self, ts):
        sales = [
            _sale("a", 1, ts(2026, 2, 1)),
            _sale("b", 2, ts(2025, 11, 5)),
            _sale("c", 3, ts(2026, 2, 20)),
        ]
        buckets = build_chart_buckets(sales, BucketGrain.MONTH, UTC)

        assert [bucket.key for bucket in buckets] == ["2025-11", "2026-02"]
        assert buckets[1].revenue == 4
        assert buckets[1].label == "Feb 2026"

    def test_no_gap_filling(self, ts):
        sales = [_sale("a", 1, ts(2026, 10, 1)), _sale("b", 1, ts(2026, 10, 5))]
        assert len(build_chart_buckets(sales, BucketGrain.DAY, UTC)) == 2


class TestBucketConsistency:
    """Test bucket totals against the sales they partition."""

    def test_bucket_revenue_sums_to_total(self, ts):
        sales = [_sale(str(i), 100 + i, ts(2026, 10, 18, i)) for i in range(12)]
        buckets = build_chart_buckets(sales, BucketGrain.HOUR, UTC)

        assert sum(bucket.revenue for bucket in buckets) == sum(sale.total for sale in sales)

    def test_untimed_sale_excluded(self, ts):
        sales = [_sale("a", 10, None), _sale("b", 20, ts(2026, 10, 18, 3))]
        buckets = build_chart_buckets(sales, BucketGrain.DAY, UTC)

        assert len(buckets) == 1
        assert buckets[0].revenue == 20

    def test_out_of_range_timestamp_excluded(self, ts):
        sales = [_sale("a", 10, 10**20), _sale("b", 20, ts(2026, 10, 18, 3))]
        buckets = build_chart_buckets(sales, BucketGrain.MONTH, UTC)

        assert [bucket.revenue for bucket in buckets] == [20]

    def test_profit_per_bucket(self, ts):
        product = Product(id="p1", cost_price=60)
        sale = Sale.model_validate(
            {
                "id": "a",
                "items": [{"productId": "p1", "quantity": 1, "unitPrice": 100}],
                "total": 100,
                "timestamp": ts(2026, 10, 18, 10),
            }
        )
        buckets = build_chart_buckets([sale], BucketGrain.HOUR, UTC, {"p1": product})

        assert buckets[10].profit == 40
