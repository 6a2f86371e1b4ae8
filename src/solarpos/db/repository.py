# backend interface used by the core and the screens
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional

from solarpos.core.models import (
    Category,
    CreditPayment,
    CreditSale,
    InventoryItem,
    MeasureType,
    Quantity,
    Role,
    Sale,
    TopSellingItem,
    User,
)
from solarpos.errors import ValidationError
from solarpos.utils.formatting import money, round_money


@dataclass(frozen=True)
class ItemDraft:
    """Editable fields of an inventory item, as entered in the admin form."""

    name: str
    category: str
    brand: str
    model: str
    min_price: Decimal
    max_price: Decimal
    cost: Decimal
    measure_type: MeasureType
    quantity: int = 0
    length: Optional[Decimal] = None
    description: str = ""

    def validate(self) -> None:
        if not self.name.strip() or not self.category.strip():
            raise ValidationError("Name and category are required.")
        if self.min_price < 0 or self.max_price < 0 or self.cost < 0:
            raise ValidationError("Prices and cost cannot be negative.")
        if self.min_price > self.max_price:
            raise ValidationError("Minimum price cannot exceed maximum price.")
        if self.measure_type is MeasureType.LENGTH:
            if self.length is None or self.length < 0:
                raise ValidationError("Length is required for items sold by length.")
        elif self.quantity < 0:
            raise ValidationError("Quantity cannot be negative.")


class Repository(ABC):
    """
    Everything the application needs from storage. Implemented by
    SqliteRepository and by InMemoryRepository (used in tests).
    """

    # ---------------------------
    # Inventory
    # ---------------------------

    @abstractmethod
    async def fetch_inventory(self) -> List[InventoryItem]:
        """All items, newest first."""

    @abstractmethod
    async def get_item(self, item_id: str) -> Optional[InventoryItem]: ...

    @abstractmethod
    async def create_item(self, draft: ItemDraft) -> InventoryItem: ...

    @abstractmethod
    async def update_item(self, item_id: str, draft: ItemDraft) -> InventoryItem: ...

    @abstractmethod
    async def delete_item(self, item_id: str) -> None: ...

    @abstractmethod
    async def adjust_stock(self, item_id: str, delta: Quantity) -> InventoryItem:
        """Add delta to the item's stock measure; refuses to go below zero."""

    # ---------------------------
    # Categories
    # ---------------------------

    @abstractmethod
    async def list_categories(self) -> List[Category]: ...

    @abstractmethod
    async def create_category(
        self, name: str, description: Optional[str] = None
    ) -> Category: ...

    @abstractmethod
    async def delete_category(self, category_id: str) -> None:
        """Refuses to delete a category used by any item."""

    # ---------------------------
    # Sales
    # ---------------------------

    @abstractmethod
    async def create_sale(self, sale: Sale) -> Sale:
        """
        Persist the sale, its lines and the stock decrements as one unit.
        A sale of either kind already committed under the same checkout_id
        is returned instead of recording a second one.
        """

    @abstractmethod
    async def create_credit_sale(
        self, sale: CreditSale, payment_method: str = "cash"
    ) -> CreditSale:
        """As create_sale, plus an initial payment entry when amount_paid > 0."""

    @abstractmethod
    async def fetch_sales(self) -> List[Sale]:
        """Regular sales, newest first."""

    @abstractmethod
    async def fetch_credit_sales(self) -> List[CreditSale]: ...

    @abstractmethod
    async def record_credit_payment(
        self,
        credit_sale_id: str,
        amount: Decimal,
        method: str,
        recorded_by: str,
        notes: Optional[str] = None,
    ) -> CreditSale: ...

    @abstractmethod
    async def fetch_credit_payments(self, credit_sale_id: str) -> List[CreditPayment]: ...

    @abstractmethod
    async def top_selling_items(self, limit: int = 10) -> List[TopSellingItem]: ...

    # ---------------------------
    # Users
    # ---------------------------

    @abstractmethod
    async def authenticate(self, email: str, password: str) -> Optional[User]:
        """Return the user if the credentials match, otherwise None."""

    @abstractmethod
    async def fetch_users(self) -> List[User]: ...

    @abstractmethod
    async def create_user(
        self, name: str, email: str, password: str, role: Role = "user"
    ) -> User: ...

    @abstractmethod
    async def update_user(
        self,
        user_id: str,
        name: str,
        email: str,
        role: Role,
        password: Optional[str] = None,
    ) -> User: ...

    @abstractmethod
    async def delete_user(self, user_id: str) -> None: ...


def validate_user_fields(name: str, email: str, role: str) -> None:
    if not name.strip() or not email.strip():
        raise ValidationError("Name and email are required.")
    if "@" not in email:
        raise ValidationError("Email address is not valid.")
    if role not in ("admin", "user"):
        raise ValidationError(f"Unknown role {role!r}.")


def settle_payment(sale: CreditSale, amount: Decimal) -> Decimal:
    """
    Check a payment against the balance in whole cents and return the new
    amount_paid. A payment that rounds to the balance settles it exactly.
    """
    if amount <= 0:
        raise ValidationError("Payment amount must be greater than zero.")
    remaining = sale.remaining_amount
    if round_money(amount) > round_money(remaining):
        raise ValidationError(
            f"Payment exceeds the remaining balance of {money(remaining)}."
        )
    return min(sale.amount_paid + amount, sale.total)


def rank_top_selling(rows: dict, limit: int) -> List[TopSellingItem]:
    """rows maps item_id -> (name, quantity, revenue)."""
    ranked = sorted(rows.items(), key=lambda kv: (-kv[1][1], kv[1][0], kv[0]))
    return [
        TopSellingItem(item_id=item_id, name=name, quantity_sold=qty, revenue=revenue)
        for item_id, (name, qty, revenue) in ranked[: max(limit, 0)]
    ]
