# sqlite implementation of the repository, one connection per call
from __future__ import annotations

import sqlite3
import uuid
from collections import defaultdict
from contextlib import asynccontextmanager
from datetime import date, datetime
from decimal import Decimal
from typing import AsyncIterator, Dict, List, Optional, Tuple

import aiosqlite

from solarpos.config import settings
from solarpos.core.models import (
    Category,
    CreditPayment,
    CreditSale,
    InventoryItem,
    MeasureType,
    Quantity,
    Role,
    Sale,
    SaleLine,
    TopSellingItem,
    User,
)
from solarpos.db import database
from solarpos.db.repository import (
    ItemDraft,
    Repository,
    rank_top_selling,
    settle_payment,
    validate_user_fields,
)
from solarpos.errors import (
    BackendError,
    InsufficientStockError,
    NotFoundError,
    ValidationError,
)
from solarpos.utils.logger import get_logger

_logger = get_logger(__name__)

ITEM_COLUMNS = (
    "id, name, category, brand, model, min_price, max_price, cost, quantity, "
    "length, measure_type, description, created_at, updated_at"
)
LINE_COLUMNS = "line_no, item_id, name, brand, model, category, measure_type, quantity, unit_price"


def _now() -> str:
    return datetime.now().isoformat(timespec="seconds")


def _parse_quantity(raw, measure_type: MeasureType) -> Quantity:
    value = Decimal(str(raw))
    if measure_type is MeasureType.STANDARD:
        return int(value)
    return value


def _row_to_item(row) -> InventoryItem:
    return InventoryItem(
        id=row["id"],
        name=row["name"],
        category=row["category"],
        brand=row["brand"],
        model=row["model"],
        min_price=Decimal(row["min_price"]),
        max_price=Decimal(row["max_price"]),
        cost=Decimal(row["cost"]),
        quantity=int(row["quantity"]),
        length=Decimal(row["length"]) if row["length"] is not None else None,
        measure_type=MeasureType(row["measure_type"]),
        description=row["description"],
        created_at=datetime.fromisoformat(row["created_at"]),
        updated_at=datetime.fromisoformat(row["updated_at"]),
    )


def _row_to_line(row) -> SaleLine:
    measure_type = MeasureType(row["measure_type"])
    return SaleLine(
        item_id=row["item_id"],
        name=row["name"],
        brand=row["brand"],
        model=row["model"],
        category=row["category"],
        measure_type=measure_type,
        quantity=_parse_quantity(row["quantity"], measure_type),
        unit_price=Decimal(row["unit_price"]),
    )


def _row_to_user(row) -> User:
    return User(
        id=row["id"],
        name=row["name"],
        email=row["email"],
        role=row["role"],
        created_at=datetime.fromisoformat(row["created_at"]),
    )


def _row_to_category(row) -> Category:
    return Category(
        id=row["id"],
        name=row["name"],
        description=row["description"],
        created_at=datetime.fromisoformat(row["created_at"]),
        updated_at=datetime.fromisoformat(row["updated_at"]),
    )


def _sale_fields(row, lines: Tuple[SaleLine, ...]) -> dict:
    return dict(
        id=row["id"],
        receipt_number=row["receipt_number"],
        customer_name=row["customer_name"],
        sold_by=row["sold_by"],
        sold_at=datetime.fromisoformat(row["sold_at"]),
        total=Decimal(row["total"]),
        lines=lines,
        checkout_id=row["checkout_id"],
    )


def _row_to_credit_sale(row, lines: Tuple[SaleLine, ...]) -> CreditSale:
    return CreditSale(
        **_sale_fields(row, lines),
        customer_phone=row["customer_phone"],
        amount_paid=Decimal(row["amount_paid"]),
        due_date=date.fromisoformat(row["due_date"]),
        notes=row["notes"],
    )


class SqliteRepository(Repository):
    """
    Repository backed by a local sqlite file. Multi-step writes (checkout,
    stock adjustment, payments) run inside one BEGIN IMMEDIATE transaction.
    """

    def __init__(self, db_path: Optional[str] = None) -> None:
        self.db_path = db_path or settings.db_path

    @asynccontextmanager
    async def _connect(self) -> AsyncIterator[aiosqlite.Connection]:
        try:
            async with database.connect(self.db_path) as conn:
                yield conn
        except sqlite3.Error as exc:
            _logger.error(f"Database error: {exc}")
            raise BackendError(f"Database error: {exc}") from exc

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        async with self._connect() as conn:
            await conn.execute("BEGIN IMMEDIATE;")
            try:
                yield conn
            except BaseException:
                await conn.rollback()
                raise
            await conn.commit()

    async def _fetchone(self, conn: aiosqlite.Connection, sql: str, params=()):
        cur = await conn.execute(sql, params)
        row = await cur.fetchone()
        await cur.close()
        return row

    async def _fetchall(self, conn: aiosqlite.Connection, sql: str, params=()):
        cur = await conn.execute(sql, params)
        rows = await cur.fetchall()
        await cur.close()
        return rows

    # ---------------------------
    # Inventory
    # ---------------------------

    async def fetch_inventory(self) -> List[InventoryItem]:
        async with self._connect() as conn:
            rows = await self._fetchall(
                conn,
                f"SELECT {ITEM_COLUMNS} FROM inventory_items ORDER BY created_at DESC, name;",
            )
        return [_row_to_item(row) for row in rows]

    async def _get_item(
        self, conn: aiosqlite.Connection, item_id: str
    ) -> Optional[InventoryItem]:
        row = await self._fetchone(
            conn, f"SELECT {ITEM_COLUMNS} FROM inventory_items WHERE id = ?;", (item_id,)
        )
        return _row_to_item(row) if row else None

    async def get_item(self, item_id: str) -> Optional[InventoryItem]:
        async with self._connect() as conn:
            return await self._get_item(conn, item_id)

    @staticmethod
    def _stock_params(draft: ItemDraft) -> Tuple[int, Optional[str]]:
        if draft.measure_type is MeasureType.LENGTH:
            return 0, str(draft.length)
        return int(draft.quantity), None

    async def create_item(self, draft: ItemDraft) -> InventoryItem:
        draft.validate()
        item_id = uuid.uuid4().hex
        quantity, length = self._stock_params(draft)
        now = _now()
        async with self._connect() as conn:
            await conn.execute(
                f"INSERT INTO inventory_items({ITEM_COLUMNS}) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);",
                (
                    item_id,
                    draft.name.strip(),
                    draft.category,
                    draft.brand,
                    draft.model,
                    str(draft.min_price),
                    str(draft.max_price),
                    str(draft.cost),
                    quantity,
                    length,
                    draft.measure_type.value,
                    draft.description,
                    now,
                    now,
                ),
            )
            await conn.commit()
            item = await self._get_item(conn, item_id)
        _logger.info(f"Created inventory item {item.name} ({item_id})")
        return item

    async def update_item(self, item_id: str, draft: ItemDraft) -> InventoryItem:
        draft.validate()
        quantity, length = self._stock_params(draft)
        async with self._connect() as conn:
            res = await conn.execute(
                """
                UPDATE inventory_items
                SET name = ?, category = ?, brand = ?, model = ?, min_price = ?,
                    max_price = ?, cost = ?, quantity = ?, length = ?,
                    measure_type = ?, description = ?, updated_at = ?
                WHERE id = ?;
                """,
                (
                    draft.name.strip(),
                    draft.category,
                    draft.brand,
                    draft.model,
                    str(draft.min_price),
                    str(draft.max_price),
                    str(draft.cost),
                    quantity,
                    length,
                    draft.measure_type.value,
                    draft.description,
                    _now(),
                    item_id,
                ),
            )
            await conn.commit()
            if res.rowcount == 0:
                raise NotFoundError(f"Inventory item {item_id} not found.")
            item = await self._get_item(conn, item_id)
        _logger.info(f"Updated inventory item {item.name} ({item_id})")
        return item

    async def delete_item(self, item_id: str) -> None:
        async with self._connect() as conn:
            res = await conn.execute(
                "DELETE FROM inventory_items WHERE id = ?;", (item_id,)
            )
            await conn.commit()
        if res.rowcount == 0:
            raise NotFoundError(f"Inventory item {item_id} not found.")
        _logger.info(f"Deleted inventory item {item_id}")

    async def _apply_stock_delta(
        self, conn: aiosqlite.Connection, item: InventoryItem, delta: Quantity
    ) -> None:
        new_stock = item.stock + delta
        if new_stock < 0:
            raise InsufficientStockError(
                f"Insufficient stock for {item.name}: {item.stock} available.",
                available=Decimal(item.stock),
            )
        if item.is_length:
            await conn.execute(
                "UPDATE inventory_items SET length = ?, updated_at = ? WHERE id = ?;",
                (str(new_stock), _now(), item.id),
            )
        else:
            if Decimal(delta) != Decimal(delta).to_integral_value():
                raise ValidationError("Standard stock changes must be whole numbers.")
            await conn.execute(
                "UPDATE inventory_items SET quantity = ?, updated_at = ? WHERE id = ?;",
                (int(new_stock), _now(), item.id),
            )

    async def adjust_stock(self, item_id: str, delta: Quantity) -> InventoryItem:
        async with self._transaction() as conn:
            item = await self._get_item(conn, item_id)
            if item is None:
                raise NotFoundError(f"Inventory item {item_id} not found.")
            await self._apply_stock_delta(conn, item, delta)
        _logger.info(f"Adjusted stock of {item_id} by {delta}")
        return await self.get_item(item_id)

    # ---------------------------
    # Categories
    # ---------------------------

    async def list_categories(self) -> List[Category]:
        async with self._connect() as conn:
            rows = await self._fetchall(
                conn,
                "SELECT id, name, description, created_at, updated_at "
                "FROM categories ORDER BY name;",
            )
        return [_row_to_category(row) for row in rows]

    async def create_category(
        self, name: str, description: Optional[str] = None
    ) -> Category:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Category name is required.")
        now = _now()
        category_id = uuid.uuid4().hex
        async with self._connect() as conn:
            exists = await self._fetchone(
                conn, "SELECT 1 FROM categories WHERE name = ?;", (name,)
            )
            if exists:
                raise ValidationError(f"Category {name} already exists.")
            await conn.execute(
                "INSERT INTO categories(id, name, description, created_at, updated_at) "
                "VALUES (?, ?, ?, ?, ?);",
                (category_id, name, description, now, now),
            )
            await conn.commit()
        return Category(
            category_id,
            name,
            description,
            datetime.fromisoformat(now),
            datetime.fromisoformat(now),
        )

    async def delete_category(self, category_id: str) -> None:
        async with self._connect() as conn:
            row = await self._fetchone(
                conn, "SELECT name FROM categories WHERE id = ?;", (category_id,)
            )
            if not row:
                raise NotFoundError(f"Category {category_id} not found.")
            used = await self._fetchone(
                conn,
                "SELECT 1 FROM inventory_items WHERE category = ? LIMIT 1;",
                (row["name"],),
            )
            if used:
                raise ValidationError(
                    f"Category {row['name']} is used by inventory items."
                )
            await conn.execute("DELETE FROM categories WHERE id = ?;", (category_id,))
            await conn.commit()

    # ---------------------------
    # Sales
    # ---------------------------

    async def _load_lines(
        self, conn: aiosqlite.Connection, table: str, fk: str, sale_id: str
    ) -> Tuple[SaleLine, ...]:
        rows = await self._fetchall(
            conn,
            f"SELECT {LINE_COLUMNS} FROM {table} WHERE {fk} = ? ORDER BY line_no;",
            (sale_id,),
        )
        return tuple(_row_to_line(row) for row in rows)

    async def _load_all_lines(
        self, conn: aiosqlite.Connection, table: str, fk: str
    ) -> Dict[str, List[SaleLine]]:
        rows = await self._fetchall(
            conn, f"SELECT {fk}, {LINE_COLUMNS} FROM {table} ORDER BY {fk}, line_no;"
        )
        grouped: Dict[str, List[SaleLine]] = defaultdict(list)
        for row in rows:
            grouped[row[fk]].append(_row_to_line(row))
        return grouped

    async def _load_sale(
        self, conn: aiosqlite.Connection, where: str, value: str
    ) -> Optional[Sale]:
        row = await self._fetchone(conn, f"SELECT * FROM sales WHERE {where} = ?;", (value,))
        if not row:
            return None
        lines = await self._load_lines(conn, "sale_items", "sale_id", row["id"])
        return Sale(**_sale_fields(row, lines))

    async def _load_credit_sale(
        self, conn: aiosqlite.Connection, where: str, value: str
    ) -> Optional[CreditSale]:
        row = await self._fetchone(
            conn, f"SELECT * FROM credit_sales WHERE {where} = ?;", (value,)
        )
        if not row:
            return None
        lines = await self._load_lines(
            conn, "credit_sale_items", "credit_sale_id", row["id"]
        )
        return _row_to_credit_sale(row, lines)

    async def _load_committed(
        self, conn: aiosqlite.Connection, checkout_id: Optional[str]
    ) -> Optional[Sale]:
        """The sale of either kind already recorded under checkout_id."""
        if not checkout_id:
            return None
        return await self._load_sale(
            conn, "checkout_id", checkout_id
        ) or await self._load_credit_sale(conn, "checkout_id", checkout_id)

    async def _reserve_stock(self, conn: aiosqlite.Connection, sale: Sale) -> None:
        """Check every item still has enough stock, then decrement it."""
        needed: Dict[str, Quantity] = defaultdict(int)
        for line in sale.lines:
            needed[line.item_id] += line.quantity

        items = []
        for item_id, qty in needed.items():
            item = await self._get_item(conn, item_id)
            if item is None:
                raise NotFoundError(f"Inventory item {item_id} no longer exists.")
            if qty > item.stock:
                raise InsufficientStockError(
                    f"Insufficient stock for {item.name}: {item.stock} available, {qty} requested.",
                    available=Decimal(item.stock),
                )
            items.append((item, qty))
        for item, qty in items:
            await self._apply_stock_delta(conn, item, -qty)

    async def _insert_lines(
        self, conn: aiosqlite.Connection, table: str, fk: str, sale: Sale
    ) -> None:
        await conn.executemany(
            f"INSERT INTO {table}({fk}, {LINE_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?);",
            [
                (
                    sale.id,
                    line_no,
                    line.item_id,
                    line.name,
                    line.brand,
                    line.model,
                    line.category,
                    line.measure_type.value,
                    str(line.quantity),
                    str(line.unit_price),
                )
                for line_no, line in enumerate(sale.lines, start=1)
            ],
        )

    async def create_sale(self, sale: Sale) -> Sale:
        async with self._transaction() as conn:
            existing = await self._load_committed(conn, sale.checkout_id)
            if existing:
                _logger.info(f"Checkout {sale.checkout_id} already committed")
                return existing
            await conn.execute(
                "INSERT INTO sales(id, receipt_number, checkout_id, customer_name, "
                "sold_by, sold_at, total) VALUES (?, ?, ?, ?, ?, ?, ?);",
                (
                    sale.id,
                    sale.receipt_number,
                    sale.checkout_id or sale.id,
                    sale.customer_name,
                    sale.sold_by,
                    sale.sold_at.isoformat(timespec="seconds"),
                    str(sale.total),
                ),
            )
            await self._insert_lines(conn, "sale_items", "sale_id", sale)
            await self._reserve_stock(conn, sale)
            stored = await self._load_sale(conn, "id", sale.id)
        _logger.info(f"Recorded sale {sale.receipt_number} ({sale.total})")
        return stored

    async def create_credit_sale(
        self, sale: CreditSale, payment_method: str = "cash"
    ) -> CreditSale:
        async with self._transaction() as conn:
            existing = await self._load_committed(conn, sale.checkout_id)
            if existing:
                _logger.info(f"Checkout {sale.checkout_id} already committed")
                return existing
            await conn.execute(
                "INSERT INTO credit_sales(id, receipt_number, checkout_id, customer_name, "
                "customer_phone, sold_by, sold_at, total, amount_paid, due_date, notes) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);",
                (
                    sale.id,
                    sale.receipt_number,
                    sale.checkout_id or sale.id,
                    sale.customer_name,
                    sale.customer_phone,
                    sale.sold_by,
                    sale.sold_at.isoformat(timespec="seconds"),
                    str(sale.total),
                    str(sale.amount_paid),
                    sale.due_date.isoformat(),
                    sale.notes,
                ),
            )
            await self._insert_lines(conn, "credit_sale_items", "credit_sale_id", sale)
            if sale.amount_paid > 0:
                await self._insert_payment(
                    conn, sale.id, sale.amount_paid, payment_method, sale.sold_by,
                    "Initial payment", sale.sold_at,
                )
            await self._reserve_stock(conn, sale)
            stored = await self._load_credit_sale(conn, "id", sale.id)
        _logger.info(
            f"Recorded credit sale {sale.receipt_number} ({sale.total}, paid {sale.amount_paid})"
        )
        return stored

    async def fetch_sales(self) -> List[Sale]:
        async with self._connect() as conn:
            rows = await self._fetchall(conn, "SELECT * FROM sales ORDER BY sold_at DESC;")
            lines = await self._load_all_lines(conn, "sale_items", "sale_id")
        return [Sale(**_sale_fields(row, tuple(lines.get(row["id"], ())))) for row in rows]

    async def fetch_credit_sales(self) -> List[CreditSale]:
        async with self._connect() as conn:
            rows = await self._fetchall(
                conn, "SELECT * FROM credit_sales ORDER BY sold_at DESC;"
            )
            lines = await self._load_all_lines(conn, "credit_sale_items", "credit_sale_id")
        return [
            _row_to_credit_sale(row, tuple(lines.get(row["id"], ()))) for row in rows
        ]

    async def _insert_payment(
        self,
        conn: aiosqlite.Connection,
        credit_sale_id: str,
        amount: Decimal,
        method: str,
        recorded_by: str,
        notes: Optional[str],
        when: datetime,
    ) -> None:
        await conn.execute(
            "INSERT INTO credit_payments(id, credit_sale_id, amount, method, recorded_by, "
            "recorded_at, notes) VALUES (?, ?, ?, ?, ?, ?, ?);",
            (
                uuid.uuid4().hex,
                credit_sale_id,
                str(amount),
                method,
                recorded_by,
                when.isoformat(timespec="seconds"),
                notes,
            ),
        )

    async def record_credit_payment(
        self,
        credit_sale_id: str,
        amount: Decimal,
        method: str,
        recorded_by: str,
        notes: Optional[str] = None,
    ) -> CreditSale:
        async with self._transaction() as conn:
            sale = await self._load_credit_sale(conn, "id", credit_sale_id)
            if sale is None:
                raise NotFoundError(f"Credit sale {credit_sale_id} not found.")
            amount_paid = settle_payment(sale, amount)
            await self._insert_payment(
                conn, credit_sale_id, amount, method, recorded_by, notes, datetime.now()
            )
            await conn.execute(
                "UPDATE credit_sales SET amount_paid = ? WHERE id = ?;",
                (str(amount_paid), credit_sale_id),
            )
            updated = await self._load_credit_sale(conn, "id", credit_sale_id)
        _logger.info(f"Recorded payment of {amount} on {sale.receipt_number}")
        return updated

    async def fetch_credit_payments(self, credit_sale_id: str) -> List[CreditPayment]:
        async with self._connect() as conn:
            rows = await self._fetchall(
                conn,
                "SELECT * FROM credit_payments WHERE credit_sale_id = ? ORDER BY recorded_at;",
                (credit_sale_id,),
            )
        return [
            CreditPayment(
                id=row["id"],
                credit_sale_id=row["credit_sale_id"],
                amount=Decimal(row["amount"]),
                method=row["method"],
                recorded_by=row["recorded_by"],
                recorded_at=datetime.fromisoformat(row["recorded_at"]),
                notes=row["notes"],
            )
            for row in rows
        ]

    async def top_selling_items(self, limit: int = 10) -> List[TopSellingItem]:
        async with self._connect() as conn:
            rows = await self._fetchall(
                conn,
                """
                SELECT item_id, name, measure_type, quantity, unit_price FROM sale_items
                UNION ALL
                SELECT item_id, name, measure_type, quantity, unit_price FROM credit_sale_items;
                """,
            )
        totals: Dict[str, Tuple[str, Quantity, Decimal]] = {}
        for row in rows:
            qty = _parse_quantity(row["quantity"], MeasureType(row["measure_type"]))
            name, prev_qty, prev_rev = totals.get(row["item_id"], (row["name"], 0, Decimal("0")))
            totals[row["item_id"]] = (
                name,
                prev_qty + qty,
                prev_rev + Decimal(row["unit_price"]) * qty,
            )
        return rank_top_selling(totals, limit)

    # ---------------------------
    # Users
    # ---------------------------

    async def authenticate(self, email: str, password: str) -> Optional[User]:
        async with self._connect() as conn:
            row = await self._fetchone(
                conn,
                "SELECT id, name, email, role, created_at, password_hash FROM users WHERE email = ?;",
                ((email or "").strip(),),
            )
        if not row or not database.check_password(password, row["password_hash"]):
            return None
        return _row_to_user(row)

    async def fetch_users(self) -> List[User]:
        async with self._connect() as conn:
            rows = await self._fetchall(
                conn, "SELECT id, name, email, role, created_at FROM users ORDER BY name;"
            )
        return [_row_to_user(row) for row in rows]

    async def _email_taken(
        self, conn: aiosqlite.Connection, email: str, exclude_id: Optional[str] = None
    ) -> bool:
        row = await self._fetchone(
            conn,
            "SELECT 1 FROM users WHERE email = ? AND id IS NOT ?;",
            (email, exclude_id),
        )
        return row is not None

    async def create_user(
        self, name: str, email: str, password: str, role: Role = "user"
    ) -> User:
        validate_user_fields(name, email, role)
        if not password:
            raise ValidationError("Password is required.")
        email = email.strip()
        user_id = uuid.uuid4().hex
        now = _now()
        async with self._connect() as conn:
            if await self._email_taken(conn, email):
                raise ValidationError("A user with this email already exists.")
            await conn.execute(
                "INSERT INTO users(id, name, email, password_hash, role, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?);",
                (user_id, name.strip(), email, database.hash_password(password), role, now),
            )
            await conn.commit()
        _logger.info(f"Created user {email} ({role})")
        return User(user_id, name.strip(), email, role, datetime.fromisoformat(now))

    async def update_user(
        self,
        user_id: str,
        name: str,
        email: str,
        role: Role,
        password: Optional[str] = None,
    ) -> User:
        validate_user_fields(name, email, role)
        email = email.strip()
        async with self._connect() as conn:
            if await self._email_taken(conn, email, exclude_id=user_id):
                raise ValidationError("A user with this email already exists.")
            res = await conn.execute(
                "UPDATE users SET name = ?, email = ?, role = ? WHERE id = ?;",
                (name.strip(), email, role, user_id),
            )
            if res.rowcount == 0:
                raise NotFoundError(f"User {user_id} not found.")
            if password:
                await conn.execute(
                    "UPDATE users SET password_hash = ? WHERE id = ?;",
                    (database.hash_password(password), user_id),
                )
            await conn.commit()
            row = await self._fetchone(
                conn, "SELECT id, name, email, role, created_at FROM users WHERE id = ?;", (user_id,)
            )
        return _row_to_user(row)

    async def delete_user(self, user_id: str) -> None:
        async with self._connect() as conn:
            res = await conn.execute("DELETE FROM users WHERE id = ?;", (user_id,))
            await conn.commit()
        if res.rowcount == 0:
            raise NotFoundError(f"User {user_id} not found.")
        _logger.info(f"Deleted user {user_id}")
