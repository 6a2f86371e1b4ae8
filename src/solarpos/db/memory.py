# in-memory repository, used by tests and for running the UI without a database file
from __future__ import annotations

import dataclasses
import uuid
from collections import defaultdict
from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

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
from solarpos.db.database import check_password, hash_password
from solarpos.db.repository import (
    ItemDraft,
    Repository,
    rank_top_selling,
    settle_payment,
    validate_user_fields,
)
from solarpos.errors import InsufficientStockError, NotFoundError, ValidationError


class InMemoryRepository(Repository):
    """
    Same contract as SqliteRepository, kept in dicts. Sales are validated
    completely before anything is written, so a rejected checkout leaves no
    trace. fail_next can be set to an exception to simulate a backend failure.
    """

    def __init__(self, items: Iterable[InventoryItem] = ()) -> None:
        self.items: Dict[str, InventoryItem] = {item.id: item for item in items}
        self.categories: Dict[str, Category] = {}
        self.sales: Dict[str, Sale] = {}
        self.credit_sales: Dict[str, CreditSale] = {}
        self.payments: List[CreditPayment] = []
        self.users: Dict[str, Tuple[User, str]] = {}
        self.fail_next: Optional[Exception] = None
        self.calls: List[str] = []

    def _enter(self, name: str) -> None:
        self.calls.append(name)
        if self.fail_next is not None:
            exc, self.fail_next = self.fail_next, None
            raise exc

    # ---------------------------
    # Inventory
    # ---------------------------

    async def fetch_inventory(self) -> List[InventoryItem]:
        self._enter("fetch_inventory")
        return sorted(self.items.values(), key=lambda i: i.created_at, reverse=True)

    async def get_item(self, item_id: str) -> Optional[InventoryItem]:
        return self.items.get(item_id)

    def _from_draft(self, item_id: str, draft: ItemDraft, created_at: datetime) -> InventoryItem:
        is_length = draft.measure_type is MeasureType.LENGTH
        return InventoryItem(
            id=item_id,
            name=draft.name.strip(),
            category=draft.category,
            brand=draft.brand,
            model=draft.model,
            min_price=draft.min_price,
            max_price=draft.max_price,
            cost=draft.cost,
            quantity=0 if is_length else int(draft.quantity),
            length=draft.length if is_length else None,
            measure_type=draft.measure_type,
            description=draft.description,
            created_at=created_at,
            updated_at=datetime.now(),
        )

    async def create_item(self, draft: ItemDraft) -> InventoryItem:
        self._enter("create_item")
        draft.validate()
        item = self._from_draft(uuid.uuid4().hex, draft, datetime.now())
        self.items[item.id] = item
        return item

    async def update_item(self, item_id: str, draft: ItemDraft) -> InventoryItem:
        self._enter("update_item")
        draft.validate()
        current = self._require_item(item_id)
        item = self._from_draft(item_id, draft, current.created_at)
        self.items[item_id] = item
        return item

    async def delete_item(self, item_id: str) -> None:
        self._enter("delete_item")
        self._require_item(item_id)
        del self.items[item_id]

    def _require_item(self, item_id: str) -> InventoryItem:
        item = self.items.get(item_id)
        if item is None:
            raise NotFoundError(f"Inventory item {item_id} not found.")
        return item

    def _with_stock(self, item: InventoryItem, delta: Quantity) -> InventoryItem:
        new_stock = item.stock + delta
        if new_stock < 0:
            raise InsufficientStockError(
                f"Insufficient stock for {item.name}: {item.stock} available.",
                available=Decimal(item.stock),
            )
        if item.is_length:
            return dataclasses.replace(item, length=new_stock, updated_at=datetime.now())
        if Decimal(delta) != Decimal(delta).to_integral_value():
            raise ValidationError("Standard stock changes must be whole numbers.")
        return dataclasses.replace(item, quantity=int(new_stock), updated_at=datetime.now())

    async def adjust_stock(self, item_id: str, delta: Quantity) -> InventoryItem:
        self._enter("adjust_stock")
        item = self._with_stock(self._require_item(item_id), delta)
        self.items[item_id] = item
        return item

    # ---------------------------
    # Categories
    # ---------------------------

    async def list_categories(self) -> List[Category]:
        return sorted(self.categories.values(), key=lambda c: c.name)

    async def create_category(
        self, name: str, description: Optional[str] = None
    ) -> Category:
        self._enter("create_category")
        name = (name or "").strip()
        if not name:
            raise ValidationError("Category name is required.")
        if any(c.name.lower() == name.lower() for c in self.categories.values()):
            raise ValidationError(f"Category {name} already exists.")
        now = datetime.now()
        category = Category(uuid.uuid4().hex, name, description, now, now)
        self.categories[category.id] = category
        return category

    async def delete_category(self, category_id: str) -> None:
        self._enter("delete_category")
        category = self.categories.get(category_id)
        if category is None:
            raise NotFoundError(f"Category {category_id} not found.")
        if any(item.category == category.name for item in self.items.values()):
            raise ValidationError(f"Category {category.name} is used by inventory items.")
        del self.categories[category_id]

    # ---------------------------
    # Sales
    # ---------------------------

    def _committed(self, checkout_id: str) -> Optional[Sale]:
        for sale in (*self.sales.values(), *self.credit_sales.values()):
            if checkout_id and sale.checkout_id == checkout_id:
                return sale
        return None

    def _reserve_stock(self, sale: Sale) -> Dict[str, InventoryItem]:
        needed: Dict[str, Quantity] = defaultdict(int)
        for line in sale.lines:
            needed[line.item_id] += line.quantity
        updated = {}
        for item_id, qty in needed.items():
            item = self.items.get(item_id)
            if item is None:
                raise NotFoundError(f"Inventory item {item_id} no longer exists.")
            updated[item_id] = self._with_stock(item, -qty)
        return updated

    def _check_receipt(self, sale: Sale) -> None:
        for other in (*self.sales.values(), *self.credit_sales.values()):
            if other.receipt_number == sale.receipt_number:
                raise ValidationError(f"Receipt number {sale.receipt_number} is taken.")

    async def create_sale(self, sale: Sale) -> Sale:
        self._enter("create_sale")
        existing = self._committed(sale.checkout_id)
        if existing:
            return existing
        self._check_receipt(sale)
        updated = self._reserve_stock(sale)
        self.sales[sale.id] = sale
        self.items.update(updated)
        return sale

    async def create_credit_sale(
        self, sale: CreditSale, payment_method: str = "cash"
    ) -> CreditSale:
        self._enter("create_credit_sale")
        existing = self._committed(sale.checkout_id)
        if existing:
            return existing
        self._check_receipt(sale)
        updated = self._reserve_stock(sale)
        self.credit_sales[sale.id] = sale
        self.items.update(updated)
        if sale.amount_paid > 0:
            self.payments.append(
                CreditPayment(
                    id=uuid.uuid4().hex,
                    credit_sale_id=sale.id,
                    amount=sale.amount_paid,
                    method=payment_method,
                    recorded_by=sale.sold_by,
                    recorded_at=sale.sold_at,
                    notes="Initial payment",
                )
            )
        return sale

    async def fetch_sales(self) -> List[Sale]:
        self._enter("fetch_sales")
        return sorted(self.sales.values(), key=lambda s: s.sold_at, reverse=True)

    async def fetch_credit_sales(self) -> List[CreditSale]:
        self._enter("fetch_credit_sales")
        return sorted(self.credit_sales.values(), key=lambda s: s.sold_at, reverse=True)

    async def record_credit_payment(
        self,
        credit_sale_id: str,
        amount: Decimal,
        method: str,
        recorded_by: str,
        notes: Optional[str] = None,
    ) -> CreditSale:
        self._enter("record_credit_payment")
        sale = self.credit_sales.get(credit_sale_id)
        if sale is None:
            raise NotFoundError(f"Credit sale {credit_sale_id} not found.")
        amount_paid = settle_payment(sale, amount)
        self.payments.append(
            CreditPayment(
                id=uuid.uuid4().hex,
                credit_sale_id=credit_sale_id,
                amount=amount,
                method=method,
                recorded_by=recorded_by,
                recorded_at=datetime.now(),
                notes=notes,
            )
        )
        updated = dataclasses.replace(sale, amount_paid=amount_paid)
        self.credit_sales[credit_sale_id] = updated
        return updated

    async def fetch_credit_payments(self, credit_sale_id: str) -> List[CreditPayment]:
        return [p for p in self.payments if p.credit_sale_id == credit_sale_id]

    async def top_selling_items(self, limit: int = 10) -> List[TopSellingItem]:
        totals: Dict[str, Tuple[str, Quantity, Decimal]] = {}
        for sale in (*self.sales.values(), *self.credit_sales.values()):
            for line in sale.lines:
                name, qty, revenue = totals.get(line.item_id, (line.name, 0, Decimal("0")))
                totals[line.item_id] = (name, qty + line.quantity, revenue + line.subtotal)
        return rank_top_selling(totals, limit)

    # ---------------------------
    # Users
    # ---------------------------

    async def authenticate(self, email: str, password: str) -> Optional[User]:
        self._enter("authenticate")
        for user, password_hash in self.users.values():
            if user.email.lower() == (email or "").strip().lower():
                return user if check_password(password, password_hash) else None
        return None

    async def fetch_users(self) -> List[User]:
        return sorted((u for u, _ in self.users.values()), key=lambda u: u.name)

    def _email_taken(self, email: str, exclude_id: Optional[str] = None) -> bool:
        return any(
            u.email.lower() == email.lower() and u.id != exclude_id
            for u, _ in self.users.values()
        )

    async def create_user(
        self, name: str, email: str, password: str, role: Role = "user"
    ) -> User:
        self._enter("create_user")
        validate_user_fields(name, email, role)
        if not password:
            raise ValidationError("Password is required.")
        if self._email_taken(email.strip()):
            raise ValidationError("A user with this email already exists.")
        user = User(uuid.uuid4().hex, name.strip(), email.strip(), role, datetime.now())
        self.users[user.id] = (user, hash_password(password))
        return user

    async def update_user(
        self,
        user_id: str,
        name: str,
        email: str,
        role: Role,
        password: Optional[str] = None,
    ) -> User:
        self._enter("update_user")
        validate_user_fields(name, email, role)
        if user_id not in self.users:
            raise NotFoundError(f"User {user_id} not found.")
        if self._email_taken(email.strip(), exclude_id=user_id):
            raise ValidationError("A user with this email already exists.")
        current, password_hash = self.users[user_id]
        user = dataclasses.replace(current, name=name.strip(), email=email.strip(), role=role)
        self.users[user_id] = (user, hash_password(password) if password else password_hash)
        return user

    async def delete_user(self, user_id: str) -> None:
        self._enter("delete_user")
        if user_id not in self.users:
            raise NotFoundError(f"User {user_id} not found.")
        del self.users[user_id]
