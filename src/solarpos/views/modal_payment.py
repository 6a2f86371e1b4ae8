from typing import Optional

from textual import events, on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Label, Select

from solarpos.core.models import CreditSale
from solarpos.errors import PosError
from solarpos.utils.formatting import money, plain_money, to_decimal
from solarpos.views.modal_credit import PAYMENT_METHODS


class RecordPaymentModal(ModalScreen[Optional[CreditSale]]):
    """
    Records a payment against a credit sale. Returns the updated sale.
    """

    def __init__(self, sale: CreditSale) -> None:
        super().__init__()
        self._sale = sale

    def compose(self) -> ComposeResult:
        sale = self._sale
        with Vertical(id="div-payment"):
            yield Label(f"Record Payment: {sale.receipt_number}", classes="modal-title")
            yield Label(f"Customer: {sale.customer_name} ({sale.customer_phone})")
            yield Label(f"Total: {money(sale.total)}   Paid: {money(sale.amount_paid)}")
            yield Label(f"Remaining: {money(sale.remaining_amount)}")
            yield Label("Amount")
            yield Input(
                plain_money(sale.remaining_amount), id="input-amount", type="number"
            )
            yield Label("Payment Method")
            yield Select(
                PAYMENT_METHODS, value="cash", allow_blank=False, id="select-method"
            )
            yield Label("Notes")
            yield Input(placeholder="optional", id="input-notes")
            with Horizontal():
                yield Button("Cancel", id="btn-cancel")
                yield Button("Record Payment", id="btn-submit", variant="success")

    def on_mount(self) -> None:
        self.query_one("#input-amount").focus()

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.dismiss(None)

    @on(Button.Pressed, "#btn-submit")
    @work(exclusive=True)
    async def handle_submit(self) -> None:
        state = self.app.state
        amount_input = self.query_one("#input-amount", Input)
        try:
            updated = await state.repo.record_credit_payment(
                self._sale.id,
                to_decimal(amount_input.value, "Amount"),
                self.query_one("#select-method", Select).value,
                state.user.name,
                self.query_one("#input-notes", Input).value.strip() or None,
            )
        except PosError as exc:
            amount_input.add_class("-invalid")
            self.notify(str(exc), severity="error")
            return
        self.notify(
            f"Payment recorded. Remaining balance {money(updated.remaining_amount)}."
        )
        self.dismiss(updated)

    @on(Button.Pressed, "#btn-cancel")
    def handle_cancel(self) -> None:
        self.dismiss(None)
