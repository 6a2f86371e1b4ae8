from __future__ import annotations

from decimal import Decimal
from typing import List, Optional, Tuple

from solarpos.core.models import CartLine, InventoryItem, Quantity
from solarpos.core.stock import available_for
from solarpos.errors import InsufficientStockError, ValidationError
from solarpos.utils.formatting import format_quantity, money, to_decimal
from solarpos.utils.logger import get_logger

_logger = get_logger(__name__)


class Cart:
    """
    In-memory ordered list of cart lines for the active session.

    Standard items are merged into one line per item id. Length items get a
    new line per requested cut, so several lines may share one item.
    """

    def __init__(self) -> None:
        self._lines: List[CartLine] = []
        self._next_line_id = 1
        self.revision = 0

    @property
    def lines(self) -> Tuple[CartLine, ...]:
        return tuple(self._lines)

    def __len__(self) -> int:
        return len(self._lines)

    def __bool__(self) -> bool:
        return bool(self._lines)

    def get_line(self, line_id: int) -> CartLine:
        for line in self._lines:
            if line.line_id == line_id:
                return line
        raise ValidationError(f"Cart line {line_id} does not exist.")

    def find_standard_line(self, item_id: str) -> Optional[CartLine]:
        for line in self._lines:
            if line.item.id == item_id and not line.item.is_length:
                return line
        return None

    def item_count(self) -> Quantity:
        return sum((line.quantity for line in self._lines), 0)

    def total(self) -> Decimal:
        """Exact sum of selected_price x quantity; round only for display."""
        return sum((line.subtotal for line in self._lines), Decimal("0"))

    # ---------------------------
    # Mutations
    # ---------------------------

    def add_line(self, item: InventoryItem, selected_price) -> CartLine:
        """
        Add one unit of a standard item at selected_price, merging into the
        existing line for that item. Length items go through add_length_line.
        """
        if item.is_length:
            raise ValidationError(f"Enter a length to add {item.name} to the cart.")
        price = self.check_price(item, selected_price)

        existing = self.find_standard_line(item.id)
        available = available_for(item, self)
        if available < 1:
            _logger.debug(f"Rejected add of {item.id}: {available} available")
            raise InsufficientStockError(
                f"Insufficient stock: only {format_quantity(max(available, 0))} "
                f"units of {item.name} available.",
                available=Decimal(max(available, 0)),
            )

        if existing:
            line = CartLine(
                existing.line_id, existing.item, existing.selected_price, existing.quantity + 1
            )
            self._replace(line)
        else:
            line = self._append(item, price, 1)
        return line

    def add_length_line(self, item: InventoryItem, selected_price, length) -> CartLine:
        """Append a new line cut from the item's length pool."""
        if not item.is_length:
            raise ValidationError(f"{item.name} is not sold by length.")
        price = self.check_price(item, selected_price)
        length = to_decimal(length, "Length")
        if length <= 0:
            raise ValidationError("Length must be greater than zero.")

        available = available_for(item, self)
        if length > available:
            _logger.debug(f"Rejected {length} m of {item.id}: {available} m available")
            raise InsufficientStockError(
                f"Insufficient length: only {format_quantity(max(available, 0))} "
                f"m of {item.name} available.",
                available=max(available, Decimal("0")),
            )
        return self._append(item, price, length)

    def update_quantity(self, line_id: int, new_quantity) -> CartLine:
        """
        Replace a line's quantity. Rejected requests leave the cart unchanged.
        """
        line = self.get_line(line_id)
        item = line.item
        if item.is_length:
            quantity = to_decimal(new_quantity, "Length")
        else:
            quantity = to_decimal(new_quantity, "Quantity")
            if quantity != quantity.to_integral_value():
                raise ValidationError("Quantity must be a whole number.")
            quantity = int(quantity)
        if quantity <= 0:
            raise ValidationError("Quantity must be greater than zero.")

        available = available_for(item, self, exclude_line_id=line_id)
        if quantity > available:
            unit = "m" if item.is_length else "units"
            raise InsufficientStockError(
                f"Insufficient stock: only {format_quantity(max(available, 0))} "
                f"{unit} of {item.name} available.",
                available=Decimal(max(available, 0)),
            )

        updated = CartLine(line.line_id, item, line.selected_price, quantity)
        self._replace(updated)
        return updated

    def remove_line(self, line_id: int) -> None:
        line = self.get_line(line_id)
        self._lines.remove(line)
        self.revision += 1

    def clear(self) -> None:
        self._lines.clear()
        self.revision += 1

    def sync_items(self, items) -> None:
        """Swap in freshly fetched item rows so stock checks use current figures."""
        fresh = {item.id: item for item in items}
        for idx, line in enumerate(self._lines):
            item = fresh.get(line.item.id)
            if item is not None and item != line.item:
                self._lines[idx] = CartLine(
                    line.line_id, item, line.selected_price, line.quantity
                )

    # ---------------------------
    # Helpers
    # ---------------------------

    @staticmethod
    def check_price(item: InventoryItem, selected_price) -> Decimal:
        price = to_decimal(selected_price, "Price")
        if not item.min_price <= price <= item.max_price:
            raise ValidationError(
                f"Price for {item.name} must be between "
                f"{money(item.min_price)} and {money(item.max_price)}."
            )
        return price

    def _append(self, item: InventoryItem, price: Decimal, quantity: Quantity) -> CartLine:
        line = CartLine(self._next_line_id, item, price, quantity)
        self._next_line_id += 1
        self._lines.append(line)
        self.revision += 1
        return line

    def _replace(self, line: CartLine) -> None:
        for idx, existing in enumerate(self._lines):
            if existing.line_id == line.line_id:
                self._lines[idx] = line
                self.revision += 1
                return
