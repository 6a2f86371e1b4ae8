from datetime import date
from typing import List, Optional

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.widgets import Button, DataTable, Input, MarkdownViewer, Select

from solarpos.core.models import CreditSale, CreditStatus
from solarpos.core.reports import credit_summary, filter_credit_sales, is_overdue
from solarpos.errors import PosError
from solarpos.utils.formatting import generate_markdown_table, money
from solarpos.views.base_screen import BaseScreen
from solarpos.views.modal_payment import RecordPaymentModal
from solarpos.views.scr_admin_sales import SORT_OPTIONS

ALL_STATUSES = "__all__"
STATUS_OPTIONS = [
    ("All Statuses", ALL_STATUSES),
    ("Pending", CreditStatus.PENDING.value),
    ("Partially Paid", CreditStatus.PARTIALLY_PAID.value),
    ("Paid", CreditStatus.PAID.value),
]
STATUS_LABELS = {
    CreditStatus.PENDING: "Pending",
    CreditStatus.PARTIALLY_PAID: "Partially Paid",
    CreditStatus.PAID: "Paid",
}


class AdminCreditScreen(BaseScreen):
    """
    Credit sales with outstanding balances, overdue flags and payment recording.
    """

    def __init__(self) -> None:
        super().__init__()
        self._credit_sales: List[CreditSale] = []
        self._filtered: List[CreditSale] = []

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical():
            yield MarkdownViewer(id="md-credit-summary", show_table_of_contents=False)
            with Horizontal(id="hort-filters"):
                yield Input(
                    placeholder="Search receipt, customer, phone or item...",
                    id="input-search",
                )
                yield Select(
                    STATUS_OPTIONS, value=ALL_STATUSES, allow_blank=False, id="select-status"
                )
                yield Select(SORT_OPTIONS, value="newest", allow_blank=False, id="select-sort")
                yield Button("Refresh", id="btn-refresh")
                yield Button("Record Payment", id="btn-payment", variant="success")
            yield DataTable(id="table-credit")

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns(
            "Receipt", "Customer", "Phone", "Total", "Paid", "Remaining", "Due", "Status"
        )
        self.handle_reload()

    @on(Button.Pressed, "#btn-refresh")
    @on(ScreenResume)
    @work(exclusive=True)
    async def handle_reload(self) -> None:
        try:
            self._credit_sales = await self.app.state.repo.fetch_credit_sales()
        except PosError as exc:
            self.notify(f"Failed to load credit sales: {exc}", severity="error")
            return
        self._render_credit()

    @on(Input.Changed, "#input-search")
    @on(Select.Changed, "#select-status")
    @on(Select.Changed, "#select-sort")
    def handle_filter_changed(self) -> None:
        self._render_credit()

    def _render_credit(self) -> None:
        status = self.query_one("#select-status", Select).value
        self._filtered = filter_credit_sales(
            self._credit_sales,
            self.query_one("#input-search", Input).value,
            None if status in (ALL_STATUSES, Select.BLANK) else CreditStatus(status),
            self.query_one("#select-sort", Select).value,
        )

        today = date.today()
        table = self.query_one(DataTable)
        table.clear()
        for sale in self._filtered:
            due = f"{sale.due_date:%Y-%m-%d}"
            if is_overdue(sale, today):
                due += " (Overdue)"
            table.add_row(
                sale.receipt_number,
                sale.customer_name,
                sale.customer_phone,
                money(sale.total),
                money(sale.amount_paid),
                money(sale.remaining_amount),
                due,
                STATUS_LABELS[sale.status],
                key=sale.id,
            )
        self._render_summary()

    @work(exclusive=True, group="summary")
    async def _render_summary(self) -> None:
        summary = credit_summary(self._credit_sales)
        md = "### Credit Overview\n\n" + generate_markdown_table(
            ["Outstanding Credit", "Total Paid", "Pending Payments", "Overdue"],
            [
                [
                    money(summary.outstanding),
                    money(summary.total_paid),
                    summary.pending_count,
                    summary.overdue_count,
                ]
            ],
        )
        await self.query_one("#md-credit-summary", MarkdownViewer).document.update(md)

    def _selected_sale(self) -> Optional[CreditSale]:
        table = self.query_one(DataTable)
        if table.row_count == 0:
            return None
        sale_id = table.coordinate_to_cell_key(table.cursor_coordinate).row_key.value
        return next((s for s in self._filtered if s.id == sale_id), None)

    @on(Button.Pressed, "#btn-payment")
    @work(exclusive=True, group="payment")
    async def handle_record_payment(self) -> None:
        sale = self._selected_sale()
        if sale is None:
            self.notify("Select a credit sale first.", severity="warning")
            return
        if sale.status is CreditStatus.PAID:
            self.notify("This credit sale is already paid in full.", severity="warning")
            return
        updated = await self.app.push_screen_wait(RecordPaymentModal(sale))
        if updated is not None:
            self.handle_reload()
