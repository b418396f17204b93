"""
Core data models for the shop dashboard engine.

This module contains the source record models read from the shop's
transactional store (sales, products, repairs, stock log), the held-sale
records kept in the shared browser-style key-value store, and the enums
they reference.

Records are validated leniently: camelCase keys from the store are accepted
alongside snake_case, and an unparseable timestamp degrades to ``None`` so
the record can still take part in period-independent figures.
"""

import logging
import time
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)


# ================================
# ENUMS
# ================================


class PaymentMethod(str, Enum):
    """Payment methods accepted at the till."""

    CASH = "Cash"
    MOBILE_MONEY = "Mobile Money"
    BANK = "Bank"
    CREDIT = "Credit"


class ProductType(str, Enum):
    """Product category enum used for the category distribution."""

    PHONE = "Phone"
    ACCESSORY = "Accessory"
    SPARE_PART = "Spare Part"
    OTHERS = "Others"


class RepairStatus(str, Enum):
    """Lifecycle states of a repair job card."""

    RECEIVED = "Received"
    DIAGNOSING = "Diagnosing"
    WAITING_FOR_PARTS = "Waiting for Parts"
    IN_REPAIR = "In Repair"
    COMPLETED = "Completed"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"


# ================================
# HELPERS
# ================================


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return time.time_ns() // 1_000_000


def parse_timestamp_ms(value: Any) -> int | None:
    """
    Coerce a raw timestamp into epoch milliseconds.

    Accepts integers, floats, numeric strings, ISO-8601 strings and
    ``datetime`` objects. Anything else yields ``None``.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return int(value.timestamp() * 1000)
    if isinstance(value, (int, float)):
        if value != value or value in (float("inf"), float("-inf")):
            return None
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return int(float(text))
        except ValueError:
            pass
        try:
            return int(datetime.fromisoformat(text).timestamp() * 1000)
        except ValueError:
            logger.debug(f"Unparseable timestamp {value!r}")
            return None
    return None


class RecordModel(BaseModel):
    """Base model for records read from the store (camelCase or snake_case keys)."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )


# ================================
# SOURCE RECORDS
# ================================


class SaleItem(RecordModel):
    """A single line on a sale."""

    product_id: str = Field(..., description="Referenced product ID")
    name: str | None = Field(None, description="Product name at time of sale")
    quantity: int = Field(..., description="Units sold")
    unit_price: float = Field(
        0.0,
        validation_alias=AliasChoices("unitPrice", "unit_price", "price"),
        description="Price per unit after line discounts",
    )
    line_total: float = Field(
        0.0,
        validation_alias=AliasChoices("lineTotal", "line_total", "total"),
        description="Extended line amount",
    )

    @field_validator("product_id", mode="before")
    @classmethod
    def coerce_product_id(cls, v):
        """Product IDs may arrive as integers from older stores."""
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @model_validator(mode="before")
    @classmethod
    def default_line_total(cls, data):
        """Derive the line total from price x quantity when it is absent."""
        if isinstance(data, dict):
            has_total = any(k in data for k in ("lineTotal", "line_total", "total"))
            if not has_total:
                price = data.get("unitPrice", data.get("unit_price", data.get("price", 0)))
                try:
                    data = {**data, "lineTotal": float(price or 0) * float(data.get("quantity", 0))}
                except (TypeError, ValueError):
                    pass
        return data


class Sale(RecordModel):
    """A completed sale. Immutable once created."""

    id: str | None = Field(None, description="Primary key")
    receipt_no: str = Field("", description="Printed receipt number")
    items: list[SaleItem] = Field(default_factory=list, description="Ordered sale lines")
    total: float = Field(0.0, description="Amount charged for the sale")
    payment_method: str = Field("", description="Payment method (see PaymentMethod)")
    customer_name: str | None = Field(None, description="Optional customer name")
    cashier_name: str | None = Field(None, description="Cashier who rang the sale")
    timestamp: int | None = Field(None, description="Epoch milliseconds")

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v):
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("payment_method", mode="before")
    @classmethod
    def coerce_payment_method(cls, v):
        if isinstance(v, PaymentMethod):
            return v.value
        return v or ""

    @field_validator("timestamp", mode="before")
    @classmethod
    def coerce_timestamp(cls, v):
        return parse_timestamp_ms(v)


class Product(RecordModel):
    """Product master record."""

    id: str = Field(..., description="Primary key")
    name: str = Field("", description="Display name")
    sku: str = Field("", description="Stock keeping unit")
    type: ProductType = Field(ProductType.OTHERS, description="Product category enum")
    category: str = Field("", description="Free-form category label")
    cost_price: float = Field(0.0, description="Unit cost")
    selling_price: float = Field(
        0.0,
        validation_alias=AliasChoices("sellingPrice", "selling_price"),
        description="Unit retail price",
    )
    stock_quantity: int = Field(0, description="Units in hand")
    reorder_level: int = Field(0, description="Low-stock threshold")

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v):
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("type", mode="before")
    @classmethod
    def coerce_type(cls, v):
        """Unknown product types collapse into ``Others``."""
        try:
            return ProductType(v)
        except ValueError:
            return ProductType.OTHERS


class Repair(RecordModel):
    """Repair job card."""

    id: str | None = Field(None, description="Primary key")
    job_card_no: str = Field("", description="Job card number")
    customer_name: str = Field("", description="Customer name")
    device_model: str = Field("", description="Device under repair")
    status: RepairStatus = Field(RepairStatus.RECEIVED, description="Job status")
    estimated_cost: float = Field(0.0, description="Quoted cost")
    deposit_paid: float = Field(0.0, description="Deposit collected")
    is_paid: bool = Field(False, description="Whether the job is fully paid")
    timestamp: int | None = Field(None, description="Epoch milliseconds")

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v):
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("timestamp", mode="before")
    @classmethod
    def coerce_timestamp(cls, v):
        return parse_timestamp_ms(v)


class StockLogEntry(RecordModel):
    """Stock adjustment log entry."""

    id: str | None = Field(None, description="Primary key")
    product_id: str = Field("", description="Adjusted product")
    product_name: str = Field("", description="Product name at time of change")
    previous_stock: int = Field(0)
    new_stock: int = Field(0)
    change_amount: int = Field(0)
    reason: str = Field("", description="Adjustment reason")
    user: str = Field("", description="User who made the change")
    timestamp: int | None = Field(None, description="Epoch milliseconds")

    @field_validator("id", "product_id", mode="before")
    @classmethod
    def coerce_ids(cls, v):
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("timestamp", mode="before")
    @classmethod
    def coerce_timestamp(cls, v):
        return parse_timestamp_ms(v)


# ================================
# HELD SALES
# ================================


class HeldSaleItem(RecordModel):
    """Line captured in a parked, not-yet-finalised sale."""

    product_id: str = Field(..., description="Referenced product ID")
    name: str | None = Field(None)
    quantity: int = Field(..., description="Units in the cart")
    unit_price: float = Field(
        ...,
        validation_alias=AliasChoices("unitPrice", "unit_price", "price"),
        description="Price per unit",
    )

    @field_validator("product_id", mode="before")
    @classmethod
    def coerce_product_id(cls, v):
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @property
    def value(self) -> float:
        return self.unit_price * self.quantity


class HeldSale(RecordModel):
    """A sale the cashier parked; created and removed by the POS flow."""

    id: str = Field(..., min_length=1, description="Held sale identifier")
    items: list[HeldSaleItem] = Field(default_factory=list)
    timestamp: int = Field(..., description="Epoch milliseconds when parked")
    note: str | None = Field(None)
    customer_name: str | None = Field(None)

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v):
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("timestamp", mode="before")
    @classmethod
    def require_timestamp(cls, v):
        parsed = parse_timestamp_ms(v)
        if parsed is None:
            raise ValueError("timestamp must be epoch milliseconds")
        return parsed

    @property
    def value(self) -> float:
        """Sum of unit price x quantity over the parked lines."""
        return sum(item.value for item in self.items)
