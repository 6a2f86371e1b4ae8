# dataclass models shared by the core, the repositories and the screens
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Literal, Optional, Tuple, Union

Quantity = Union[int, Decimal]


class MeasureType(str, Enum):
    STANDARD = "standard"
    LENGTH = "length"


class CreditStatus(str, Enum):
    PENDING = "pending"
    PARTIALLY_PAID = "partially_paid"
    PAID = "paid"


Role = Literal["admin", "user"]


@dataclass(frozen=True)
class InventoryItem:
    id: str
    name: str
    category: str
    brand: str
    model: str
    min_price: Decimal
    max_price: Decimal
    cost: Decimal
    quantity: int
    length: Optional[Decimal]
    measure_type: MeasureType
    description: str
    created_at: datetime
    updated_at: datetime

    @property
    def is_length(self) -> bool:
        return self.measure_type is MeasureType.LENGTH

    @property
    def stock(self) -> Quantity:
        """The authoritative stock measure, selected by measure_type."""
        if self.is_length:
            return self.length if self.length is not None else Decimal("0")
        return self.quantity


@dataclass(frozen=True)
class CartLine:
    line_id: int
    item: InventoryItem
    selected_price: Decimal
    quantity: Quantity

    @property
    def subtotal(self) -> Decimal:
        return self.selected_price * self.quantity


@dataclass(frozen=True)
class SaleLine:
    """Snapshot of a cart line at the moment of sale."""

    item_id: str
    name: str
    brand: str
    model: str
    category: str
    measure_type: MeasureType
    quantity: Quantity
    unit_price: Decimal

    @property
    def subtotal(self) -> Decimal:
        return self.unit_price * self.quantity

    @classmethod
    def from_cart_line(cls, line: CartLine) -> SaleLine:
        item = line.item
        return cls(
            item_id=item.id,
            name=item.name,
            brand=item.brand,
            model=item.model,
            category=item.category,
            measure_type=item.measure_type,
            quantity=line.quantity,
            unit_price=line.selected_price,
        )


@dataclass(frozen=True, kw_only=True)
class Sale:
    id: str
    receipt_number: str
    customer_name: str
    sold_by: str
    sold_at: datetime
    total: Decimal
    lines: Tuple[SaleLine, ...]
    checkout_id: str = ""

    @property
    def is_credit(self) -> bool:
        return False

    @property
    def units(self) -> Quantity:
        return sum((line.quantity for line in self.lines), 0)


@dataclass(frozen=True, kw_only=True)
class CreditSale(Sale):
    customer_phone: str
    amount_paid: Decimal
    due_date: date
    notes: Optional[str] = None

    @property
    def is_credit(self) -> bool:
        return True

    @property
    def remaining_amount(self) -> Decimal:
        return self.total - self.amount_paid

    @property
    def status(self) -> CreditStatus:
        return credit_status(self.total, self.amount_paid)


def credit_status(total: Decimal, amount_paid: Decimal) -> CreditStatus:
    if amount_paid >= total:
        return CreditStatus.PAID
    if amount_paid == 0:
        return CreditStatus.PENDING
    return CreditStatus.PARTIALLY_PAID


@dataclass(frozen=True)
class CreditPayment:
    id: str
    credit_sale_id: str
    amount: Decimal
    method: str
    recorded_by: str
    recorded_at: datetime
    notes: Optional[str] = None


@dataclass(frozen=True)
class User:
    id: str
    name: str
    email: str
    role: Role
    created_at: datetime

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


@dataclass(frozen=True)
class Category:
    id: str
    name: str
    description: Optional[str]
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class TopSellingItem:
    item_id: str
    name: str
    quantity_sold: Quantity
    revenue: Decimal


@dataclass(frozen=True)
class Session:
    user: User
    started_at: datetime = field(default_factory=datetime.now)
