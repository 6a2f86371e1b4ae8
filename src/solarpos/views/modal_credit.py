from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

from textual import events, on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Label, Select

from solarpos.core.checkout import CheckoutProcessor, CreditTerms, PaymentMode
from solarpos.core.models import CreditSale
from solarpos.errors import BackendError, PosError, ValidationError
from solarpos.utils.formatting import money, to_decimal

PAYMENT_METHODS = [
    ("Cash", "cash"),
    ("Card", "card"),
    ("Bank Transfer", "bank_transfer"),
    ("Mobile Money", "mobile_money"),
]


class CreditSaleModal(ModalScreen[Optional[CreditSale]]):
    """
    Collects credit terms and runs the credit checkout.
    Returns the committed CreditSale, or None when cancelled.
    """

    def __init__(self, processor: CheckoutProcessor, customer_name: str, total: Decimal):
        super().__init__()
        self._processor = processor
        self._customer_name = customer_name
        self._total = total

    def compose(self) -> ComposeResult:
        with Vertical(id="div-credit"):
            yield Label("Credit Sale", classes="modal-title")
            yield Label(f"Customer: {self._customer_name}")
            yield Label(f"Total: {money(self._total)}", id="label-credit-total")
            yield Label("Phone Number")
            yield Input(placeholder="+1 555 0100", id="input-phone")
            yield Label("Due Date (YYYY-MM-DD)")
            yield Input(
                value=(date.today() + timedelta(days=30)).isoformat(), id="input-due"
            )
            yield Label("Amount Paid Now")
            yield Input(value="0", id="input-paid", type="number")
            yield Label("Payment Method")
            yield Select(
                PAYMENT_METHODS, value="cash", allow_blank=False, id="select-method"
            )
            yield Label("Notes")
            yield Input(placeholder="optional", id="input-notes")
            yield Label(f"Remaining: {money(self._total)}", id="label-remaining")
            with Horizontal():
                yield Button("Cancel", id="btn-cancel")
                yield Button("Create Credit Sale", id="btn-submit", variant="warning")

    def on_mount(self) -> None:
        self.query_one("#input-phone").focus()

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.dismiss(None)

    @on(Input.Changed, "#input-paid")
    def handle_paid_changed(self, event: Input.Changed) -> None:
        try:
            paid = to_decimal(event.value or "0", "Paid amount")
        except ValidationError:
            return
        remaining = max(self._total - paid, Decimal("0"))
        self.query_one("#label-remaining", Label).update(f"Remaining: {money(remaining)}")

    def _read_terms(self) -> CreditTerms:
        due_raw = self.query_one("#input-due", Input).value.strip()
        due_date = None
        if due_raw:
            try:
                due_date = date.fromisoformat(due_raw)
            except ValueError as exc:
                raise ValidationError("Due date must look like 2024-12-31.") from exc
        return CreditTerms(
            customer_phone=self.query_one("#input-phone", Input).value,
            due_date=due_date,
            paid_amount=to_decimal(
                self.query_one("#input-paid", Input).value or "0", "Paid amount"
            ),
            payment_method=self.query_one("#select-method", Select).value,
            notes=self.query_one("#input-notes", Input).value.strip() or None,
        )

    @on(Button.Pressed, "#btn-submit")
    @work(exclusive=True)
    async def handle_submit(self) -> None:
        try:
            terms = self._read_terms()
            sale = await self._processor.checkout(
                self._customer_name, PaymentMode.CREDIT, terms
            )
        except BackendError as exc:
            self.notify(
                f"Credit sale failed: {exc}. Inventory was reloaded.", severity="error"
            )
            return
        except PosError as exc:
            self.notify(str(exc), severity="error")
            return

        self.notify(f"Credit sale {sale.receipt_number} created.")
        self.dismiss(sale)

    @on(Button.Pressed, "#btn-cancel")
    def handle_cancel(self) -> None:
        self.dismiss(None)
