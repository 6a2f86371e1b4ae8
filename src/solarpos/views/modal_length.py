from decimal import Decimal
from typing import Optional

from textual import events, on
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Label

from solarpos.core.models import InventoryItem
from solarpos.errors import ValidationError
from solarpos.utils.formatting import money, to_decimal


class LengthInputModal(ModalScreen[Optional[Decimal]]):
    """
    Asks how many meters to cut from a length item.
    Returns the length, or None when cancelled.
    """

    def __init__(self, item: InventoryItem, available: Decimal, price: Decimal) -> None:
        super().__init__()
        self._item = item
        self._available = available
        self._price = price

    def compose(self) -> ComposeResult:
        with Vertical(id="div-length"):
            yield Label(f"Enter Length for {self._item.name}", classes="modal-title")
            yield Label(f"{self._item.brand} {self._item.model}")
            yield Label(f"Available: {self._available:.2f} m", id="label-available")
            yield Label(f"Price per meter: {money(self._price)}")
            yield Label("Length (meters)")
            yield Input(placeholder="e.g. 10.5", id="input-length", type="number")
            yield Label("", id="label-length-total")
            with Horizontal():
                yield Button("Cancel", id="btn-cancel")
                yield Button("Add to Cart", id="btn-submit", variant="primary")

    def on_mount(self) -> None:
        self.query_one("#input-length").focus()

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.dismiss(None)

    @on(Input.Changed, "#input-length")
    def handle_length_changed(self, event: Input.Changed) -> None:
        label = self.query_one("#label-length-total", Label)
        try:
            length = to_decimal(event.value, "Length")
        except ValidationError:
            label.update("")
            return
        label.update(f"Total: {money(self._price * length)}" if length > 0 else "")

    @on(Button.Pressed, "#btn-submit")
    @on(Input.Submitted, "#input-length")
    def handle_submit(self) -> None:
        input_length = self.query_one("#input-length", Input)
        try:
            length = to_decimal(input_length.value, "Length")
        except ValidationError:
            length = Decimal("0")

        if length <= 0:
            input_length.add_class("-invalid")
            self.notify("Please enter a valid length greater than 0.", severity="error")
            return
        if length > self._available:
            input_length.add_class("-invalid")
            self.notify(
                f"Only {self._available:.2f} m available in stock.", severity="error"
            )
            return
        self.dismiss(length)

    @on(Button.Pressed, "#btn-cancel")
    def handle_cancel(self) -> None:
        self.dismiss(None)
