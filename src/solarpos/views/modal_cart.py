from typing import Optional

from textual import events, on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, DataTable, Input, Label

from solarpos.core.models import Sale
from solarpos.errors import BackendError, PosError
from solarpos.utils.formatting import format_quantity, money
from solarpos.utils.messages import SaleCompletedMessage
from solarpos.views.modal_credit import CreditSaleModal
from solarpos.views.modal_dialog import DialogModal


class CartModal(ModalScreen[Optional[Sale]]):
    """
    Cart review and checkout. Lines can be re-quantified or removed; the
    customer name is required for both full and credit sales.
    Returns the committed sale, or None if the user went back.
    """

    def __init__(self) -> None:
        super().__init__()
        self._line_id: Optional[int] = None

    def compose(self) -> ComposeResult:
        with Vertical(id="div-cart"):
            yield Label("Shopping Cart", classes="modal-title")
            yield DataTable(id="table-cart")
            with Horizontal(id="hort-line-controls"):
                yield Label("Quantity / Length:")
                yield Input(id="input-line-qty", type="number")
                yield Button("Update", id="btn-update-line")
                yield Button("Remove", id="btn-remove-line", variant="error")
            yield Label("Total: $0.00", id="label-cart-total")
            yield Label("Customer Name")
            yield Input(placeholder="Enter customer name", id="input-customer")
            with Horizontal(id="hort-cart-btns"):
                yield Button("Back", id="btn-back")
                yield Button("Clear Cart", id="btn-clear")
                yield Button("Credit Sale", id="btn-credit", variant="warning")
                yield Button("Complete Sale", id="btn-complete", variant="success")

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("Item", "Brand / Model", "Unit Price", "Qty", "Subtotal")
        self._render_cart()
        self.query_one("#input-customer").focus()

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.dismiss(None)

    def _render_cart(self) -> None:
        cart = self.app.state.cart
        table = self.query_one(DataTable)
        table.clear()
        for line in cart.lines:
            qty = format_quantity(line.quantity)
            if line.item.is_length:
                qty += " m"
            table.add_row(
                line.item.name,
                f"{line.item.brand} {line.item.model}",
                money(line.selected_price),
                qty,
                money(line.subtotal),
                key=str(line.line_id),
            )

        self.query_one("#label-cart-total", Label).update(f"Total: {money(cart.total())}")
        for btn_id in ("#btn-credit", "#btn-complete", "#btn-clear"):
            self.query_one(btn_id, Button).disabled = not cart
        for widget_id in ("#input-line-qty", "#btn-update-line", "#btn-remove-line"):
            self.query_one(widget_id).disabled = not cart
        if not cart:
            self._line_id = None

    @on(DataTable.RowHighlighted, "#table-cart")
    def handle_row_highlight(self, event: DataTable.RowHighlighted) -> None:
        if event.row_key is None or event.row_key.value is None:
            return
        self._line_id = int(event.row_key.value)
        line = self.app.state.cart.get_line(self._line_id)
        self.query_one("#input-line-qty", Input).value = format_quantity(line.quantity)

    @on(Button.Pressed, "#btn-update-line")
    @on(Input.Submitted, "#input-line-qty")
    def handle_update_line(self) -> None:
        if self._line_id is None:
            self.notify("Select a cart line first.", severity="warning")
            return
        value = self.query_one("#input-line-qty", Input).value
        try:
            self.app.state.cart.update_quantity(self._line_id, value)
        except PosError as exc:
            self.notify(str(exc), severity="error")
            return
        self._render_cart()

    @on(Button.Pressed, "#btn-remove-line")
    def handle_remove_line(self) -> None:
        if self._line_id is None:
            self.notify("Select a cart line first.", severity="warning")
            return
        self.app.state.cart.remove_line(self._line_id)
        self._line_id = None
        self.notify("Item removed from cart.")
        self._render_cart()

    @on(Button.Pressed, "#btn-clear")
    @work()
    async def handle_clear(self) -> None:
        if await self.app.push_screen_wait(
            DialogModal(
                "Do you really want to remove all items from cart?",
                primary_text="Yes",
                secondary_text="No",
                tone="error",
            )
        ):
            self.app.state.cart.clear()
            self._render_cart()

    def _customer_name(self) -> Optional[str]:
        input_customer = self.query_one("#input-customer", Input)
        try:
            self.app.state.checkout_processor().validate(input_customer.value)
        except PosError as exc:
            input_customer.add_class("-invalid")
            input_customer.focus()
            self.notify(str(exc), severity="error")
            return None
        input_customer.remove_class("-invalid")
        return input_customer.value.strip()

    @on(Button.Pressed, "#btn-complete")
    @work(exclusive=True)
    async def handle_complete(self) -> None:
        name = self._customer_name()
        if name is None:
            return
        total = self.app.state.cart.total()
        if not await self.app.push_screen_wait(
            DialogModal(
                f"Complete sale of {money(total)} for {name}?",
                primary_text="Yes",
                secondary_text="No",
                tone="positive",
            )
        ):
            return

        try:
            sale = await self.app.state.checkout_processor().checkout(name)
        except BackendError as exc:
            self.notify(
                f"Sale failed: {exc}. Inventory was reloaded, please try again.",
                severity="error",
            )
            self._render_cart()
            return
        except PosError as exc:
            self.notify(str(exc), severity="error")
            self._render_cart()
            return

        self.notify(f"Sale {sale.receipt_number} completed. Total {money(sale.total)}")
        self.app.post_message(SaleCompletedMessage(sale.receipt_number))
        self.dismiss(sale)

    @on(Button.Pressed, "#btn-credit")
    @work(exclusive=True)
    async def handle_credit(self) -> None:
        name = self._customer_name()
        if name is None:
            return
        sale = await self.app.push_screen_wait(
            CreditSaleModal(
                self.app.state.checkout_processor(), name, self.app.state.cart.total()
            )
        )
        if sale is None:
            self._render_cart()
            return
        self.app.post_message(SaleCompletedMessage(sale.receipt_number))
        self.dismiss(sale)

    @on(Button.Pressed, "#btn-back")
    def handle_back(self) -> None:
        self.dismiss(None)
