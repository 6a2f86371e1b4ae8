from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Iterable, List, Literal, Optional

from solarpos.config import settings
from solarpos.core.models import CartLine, InventoryItem, Quantity

if TYPE_CHECKING:
    from solarpos.core.cart import Cart

StockStatus = Literal["out", "low", "in"]


def reserved_quantity(
    item_id: str, lines: Iterable[CartLine], exclude_line_id: Optional[int] = None
) -> Quantity:
    """Sum of quantities of cart lines for item_id, skipping exclude_line_id."""
    return sum(
        (
            line.quantity
            for line in lines
            if line.item.id == item_id and line.line_id != exclude_line_id
        ),
        0,
    )


def available_for(
    item: InventoryItem, cart: Cart, exclude_line_id: Optional[int] = None
) -> Quantity:
    """
    Quantity (standard) or length (meters) of item still purchasable given the
    current cart. Lines for the same item share one pool, so this is recomputed
    on every add or update; the line being edited is left out of the sum.
    """
    return item.stock - reserved_quantity(item.id, cart.lines, exclude_line_id)


def stock_status(item: InventoryItem, low_threshold: Optional[int] = None) -> StockStatus:
    """Below low_threshold (SOLARPOS_LOW_STOCK by default) counts as low."""
    if low_threshold is None:
        low_threshold = settings.low_stock_threshold
    stock = item.stock
    if stock <= 0:
        return "out"
    if stock < low_threshold:
        return "low"
    return "in"


def format_stock(item: InventoryItem) -> str:
    if item.is_length:
        return f"{Decimal(item.stock):.2f} m"
    return str(item.stock)


def filter_inventory(
    items: Iterable[InventoryItem], search: str = "", category: Optional[str] = None
) -> List[InventoryItem]:
    """Case-insensitive match on name, brand, model or category."""
    needle = (search or "").strip().lower()
    return [
        item
        for item in items
        if (not category or item.category == category)
        and (
            not needle
            or any(
                needle in field.lower()
                for field in (item.name, item.brand, item.model, item.category)
            )
        )
    ]
