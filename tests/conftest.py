"""
Pytest configuration and fixtures for shop dashboard tests.

Provides a controllable clock, sample records and shared stores.
"""

import sys
from datetime import UTC, datetime
from pathlib import Path

import pytest

# Ensure src/ is on sys.path for local test runs without installation
_SRC = Path(__file__).resolve().parents[1] / "src"
if _SRC.exists() and str(_SRC) not in sys.path:
    sys.path.insert(0, str(_SRC))

from shop_dashboard.config.models import AnalyticsConfig, BannerConfig, DashboardConfig  # noqa: E402
from shop_dashboard.pending.store import InMemoryKeyValueStore  # noqa: E402

MINUTE = 60 * 1000
HOUR = 60 * MINUTE
DAY = 24 * HOUR


def ms(year: int, month: int, day: int, hour: int = 0, minute: int = 0) -> int:
    """Epoch milliseconds for a UTC wall-clock time."""
    return int(datetime(year, month, day, hour, minute, tzinfo=UTC).timestamp() * 1000)


# 2026-10-18 12:00 UTC
NOW = ms(2026, 10, 18, 12)


class FakeClock:
    """Manually advanced clock returning epoch milliseconds."""

    def __init__(self, start: int = NOW):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, delta_ms: int) -> int:
        self.now += delta_ms
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def utc_config() -> DashboardConfig:
    """Dashboard configuration pinned to UTC calendar boundaries."""
    return DashboardConfig(analytics=AnalyticsConfig(timezone="UTC"))


@pytest.fixture
def banner_config() -> BannerConfig:
    return BannerConfig()


@pytest.fixture
def store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def sample_products() -> list[dict]:
    """Products as stored (camelCase keys)."""
    return [
        {
            "id": "p1",
            "name": "Phone X",
            "sku": "PX-1",
            "type": "Phone",
            "category": "Smartphones",
            "costPrice": 800,
            "sellingPrice": 1000,
            "stockQuantity": 4,
            "reorderLevel": 2,
        },
        {
            "id": "p2",
            "name": "USB-C Cable",
            "sku": "CB-2",
            "type": "Accessory",
            "category": "Cables",
            "costPrice": 50,
            "sellingPrice": 100,
            "stockQuantity": 1,
            "reorderLevel": 5,
        },
        {
            "id": "p3",
            "name": "Screen",
            "sku": "SC-3",
            "type": "Spare Part",
            "category": "Screens",
            "costPrice": 200,
            "sellingPrice": 300,
            "stockQuantity": 10,
            "reorderLevel": 3,
        },
    ]


@pytest.fixture
def sample_sales() -> list[dict]:
    """
    Sales spread over today, yesterday, earlier this month and last month.

    Today (2026-10-18): 2000 + 1000 = 3000 revenue.
    Yesterday: 1500.
    """
    return [
        {
            "id": "s1",
            "receiptNo": "R-001",
            "items": [
                {"productId": "p1", "name": "Phone X", "quantity": 2, "unitPrice": 1000, "lineTotal": 2000}
            ],
            "total": 2000,
            "paymentMethod": "Cash",
            "customerName": "Alice",
            "timestamp": ms(2026, 10, 18, 9, 15),
        },
        {
            "id": "s2",
            "receiptNo": "R-002",
            "items": [
                {"productId": "p2", "name": "USB-C Cable", "quantity": 4, "unitPrice": 100, "lineTotal": 400},
                {"productId": "p3", "name": "Screen", "quantity": 2, "unitPrice": 300, "lineTotal": 600},
            ],
            "total": 1000,
            "paymentMethod": "Mobile Money",
            "customerName": None,
            "timestamp": ms(2026, 10, 18, 11, 30),
        },
        {
            "id": "s3",
            "receiptNo": "R-003",
            "items": [
                {"productId": "p1", "name": "Phone X", "quantity": 1, "unitPrice": 1000, "lineTotal": 1000},
                {"productId": "p2", "name": "USB-C Cable", "quantity": 5, "unitPrice": 100, "lineTotal": 500},
            ],
            "total": 1500,
            "paymentMethod": "Bank",
            "customerName": "Alice",
            "timestamp": ms(2026, 10, 17, 16),
        },
        {
            "id": "s4",
            "receiptNo": "R-004",
            "items": [
                {"productId": "p3", "name": "Screen", "quantity": 1, "unitPrice": 300, "lineTotal": 300}
            ],
            "total": 300,
            "paymentMethod": "Credit",
            "customerName": "Bob",
            "timestamp": ms(2026, 10, 2, 10),
        },
        {
            "id": "s5",
            "receiptNo": "R-005",
            "items": [
                {"productId": "p1", "name": "Phone X", "quantity": 1, "unitPrice": 1000, "lineTotal": 1000}
            ],
            "total": 1000,
            "paymentMethod": "Cash",
            "customerName": "Bob",
            "timestamp": ms(2026, 9, 20, 14),
        },
    ]


@pytest.fixture
def sample_repairs() -> list[dict]:
    return [
        {
            "id": "r1",
            "jobCardNo": "JC-1",
            "customerName": "Carol",
            "deviceModel": "Phone Y",
            "status": "In Repair",
            "estimatedCost": 150,
            "timestamp": ms(2026, 10, 18, 8),
        },
        {
            "id": "r2",
            "jobCardNo": "JC-2",
            "customerName": "Dan",
            "deviceModel": "Tablet Z",
            "status": "Completed",
            "estimatedCost": 90,
            "timestamp": ms(2026, 10, 16, 8),
        },
        {
            "id": "r3",
            "jobCardNo": "JC-3",
            "customerName": "Eve",
            "deviceModel": "Phone X",
            "status": "Delivered",
            "estimatedCost": 60,
            "timestamp": ms(2026, 10, 10, 8),
        },
    ]


@pytest.fixture
def sample_stock_logs() -> list[dict]:
    return [
        {
            "id": "l1",
            "productId": "p2",
            "productName": "USB-C Cable",
            "previousStock": 5,
            "newStock": 1,
            "changeAmount": -4,
            "reason": "Sale",
            "user": "cashier",
            "timestamp": ms(2026, 10, 18, 11, 31),
        }
    ]


@pytest.fixture
def ts():
    """Helper building UTC epoch milliseconds: ``ts(2026, 10, 18, 9)``."""
    return ms


@pytest.fixture
def now() -> int:
    return NOW
