from typing import List, Optional

from textual import on, work
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.widgets import Button, DataTable, Input, Label, Select

from solarpos.core.models import InventoryItem
from solarpos.core.stock import available_for, filter_inventory, stock_status
from solarpos.errors import PosError
from solarpos.utils.formatting import format_quantity, money, plain_money
from solarpos.utils.messages import CartChangedMessage
from solarpos.views.base_screen import BaseScreen
from solarpos.views.modal_cart import CartModal
from solarpos.views.modal_length import LengthInputModal
from solarpos.views.modal_receipt import ReceiptModal

ALL_CATEGORIES = "__all__"
STATUS_LABELS = {"out": "Out of Stock", "low": "Low Stock", "in": "In Stock"}


class InventoryScreen(BaseScreen):
    """
    Browse inventory, pick a price within the item's range and add it to the
    cart. Length items ask for the number of meters first.
    """

    BINDINGS = [
        Binding("ctrl+o", "open_cart", "Open Cart", show=True),
    ]

    def __init__(self) -> None:
        super().__init__()
        self._current_item: Optional[InventoryItem] = None

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical():
            with Horizontal(id="hort-filters"):
                yield Input(
                    placeholder="Search by name, brand, model or category...",
                    id="input-search",
                )
                yield Select(
                    [("All Categories", ALL_CATEGORIES)],
                    value=ALL_CATEGORIES,
                    allow_blank=False,
                    id="select-category",
                )
                yield Button("Cart (0)", id="btn-cart", variant="primary")
            yield DataTable(id="table-items")
            with Horizontal(id="hort-controls"):
                yield Label("Select an item", id="label-selected")
                yield Label("Price ($):")
                yield Input(id="input-price", type="number")
                yield Button("Add to Cart", id="btn-addcart", variant="success")

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns(
            "Name", "Brand", "Model", "Category", "Price Range", "Available", "Status"
        )
        self.query_one("#input-search", Input).focus()
        self.handle_reload()

    @on(ScreenResume)
    @work(exclusive=True)
    async def handle_reload(self) -> None:
        state = self.app.state
        if state.user is None:
            return
        try:
            await state.refresh_inventory()
            categories = await state.repo.list_categories()
        except PosError as exc:
            self.notify(f"Failed to load inventory: {exc}", severity="error")
            return

        select = self.query_one("#select-category", Select)
        current = select.value
        names = sorted({c.name for c in categories} | {i.category for i in state.inventory})
        select.set_options(
            [("All Categories", ALL_CATEGORIES)] + [(name, name) for name in names]
        )
        select.value = current if current in names else ALL_CATEGORIES
        self._render_table()

    def _find_item(self, item_id: str) -> Optional[InventoryItem]:
        return next((i for i in self.app.state.inventory if i.id == item_id), None)

    def _visible_items(self) -> List[InventoryItem]:
        category = self.query_one("#select-category", Select).value
        return filter_inventory(
            self.app.state.inventory,
            self.query_one("#input-search", Input).value,
            None if category in (ALL_CATEGORIES, Select.BLANK) else category,
        )

    def _render_table(self) -> None:
        cart = self.app.state.cart
        table = self.query_one(DataTable)
        table.clear()
        for item in self._visible_items():
            available = available_for(item, cart)
            table.add_row(
                item.name,
                item.brand,
                item.model,
                item.category,
                f"{money(item.min_price)} - {money(item.max_price)}",
                f"{format_quantity(available)} m" if item.is_length else str(available),
                STATUS_LABELS[stock_status(item)],
                key=item.id,
            )
        self.query_one("#btn-cart", Button).label = f"Cart ({len(cart)})"
        self._render_selected()

    def _render_selected(self) -> None:
        # the cached row goes stale after a reload
        item = self._find_item(self._current_item.id) if self._current_item else None
        self._current_item = item
        btn_addcart = self.query_one("#btn-addcart", Button)
        if item is None:
            btn_addcart.disabled = True
            return
        available = available_for(item, self.app.state.cart)
        unit = "m" if item.is_length else "units"
        self.query_one("#label-selected", Label).update(
            f"{item.name}: {format_quantity(available)} {unit} left, "
            f"{money(item.min_price)} to {money(item.max_price)}"
        )
        if available <= 0:
            btn_addcart.label = "Out of Stock"
            btn_addcart.disabled = True
        else:
            btn_addcart.label = "Add Length" if item.is_length else "Add to Cart"
            btn_addcart.disabled = False

    @on(Input.Changed, "#input-search")
    @on(Select.Changed, "#select-category")
    def handle_filter_changed(self) -> None:
        self._render_table()

    @on(CartChangedMessage)
    def handle_cart_changed(self) -> None:
        self._render_table()

    @on(DataTable.RowHighlighted, "#table-items")
    def handle_row_highlight(self, event: DataTable.RowHighlighted) -> None:
        if event.row_key is None:
            return
        item = self._find_item(event.row_key.value)
        previous = self._current_item
        if item is not None and (previous is None or previous.id != item.id):
            self.query_one("#input-price", Input).value = plain_money(item.min_price)
        self._current_item = item
        self._render_selected()

    @on(Button.Pressed, "#btn-addcart")
    @on(Input.Submitted, "#input-price")
    @work(exclusive=True)
    async def handle_addcart(self) -> None:
        item = self._current_item
        if item is None:
            self.notify("Select an item first.", severity="warning")
            return
        cart = self.app.state.cart
        price_input = self.query_one("#input-price", Input)

        try:
            price = cart.check_price(item, price_input.value)
            if item.is_length:
                length = await self.app.push_screen_wait(
                    LengthInputModal(item, available_for(item, cart), price)
                )
                if length is None:
                    return
                cart.add_length_line(item, price, length)
                self.notify(f"Added {format_quantity(length)} m of {item.name} to cart.")
            else:
                cart.add_line(item, price)
                self.notify(f"{item.name} added to cart.")
        except PosError as exc:
            price_input.add_class("-invalid")
            self.notify(str(exc), severity="error")
            return

        price_input.remove_class("-invalid")
        self.post_message(CartChangedMessage())

    @on(Button.Pressed, "#btn-cart")
    def handle_open_cart(self) -> None:
        self.action_open_cart()

    @work(exclusive=True, group="cart")
    async def action_open_cart(self) -> None:
        if not self.app.state.cart:
            self.notify("Cart is empty.", severity="warning")
            return
        sale = await self.app.push_screen_wait(CartModal())
        if sale is not None:
            await self.app.push_screen_wait(ReceiptModal(sale))
        self._render_table()
