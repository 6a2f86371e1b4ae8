from datetime import datetime
from typing import List

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.widgets import Button, DataTable, Input, MarkdownViewer, Select

from solarpos.core.models import Sale
from solarpos.core.reports import (
    filter_sales,
    sales_summary,
    sellers,
    write_sales_report_pdf,
)
from solarpos.errors import PosError
from solarpos.utils.formatting import format_quantity, generate_markdown_table, money
from solarpos.views.base_screen import BaseScreen

ALL_SELLERS = "__all__"
SORT_OPTIONS = [
    ("Newest First", "newest"),
    ("Oldest First", "oldest"),
    ("Highest Amount", "highest"),
    ("Lowest Amount", "lowest"),
]


class AdminSalesScreen(BaseScreen):
    """
    Sales history with search, seller filter and sorting. The summary and
    the PDF export follow the current filter.
    """

    def __init__(self) -> None:
        super().__init__()
        self._sales: List[Sale] = []
        self._filtered: List[Sale] = []

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical():
            yield MarkdownViewer(id="md-sales-summary", show_table_of_contents=False)
            with Horizontal(id="hort-filters"):
                yield Input(
                    placeholder="Search receipt, seller, customer or item...",
                    id="input-search",
                )
                yield Select(
                    [("All Sellers", ALL_SELLERS)],
                    value=ALL_SELLERS,
                    allow_blank=False,
                    id="select-seller",
                )
                yield Select(SORT_OPTIONS, value="newest", allow_blank=False, id="select-sort")
                yield Button("Refresh", id="btn-refresh")
                yield Button("Export PDF", id="btn-export", variant="primary")
            yield DataTable(id="table-sales")

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("Receipt", "Date", "Customer", "Seller", "Items", "Total", "Type")
        self.handle_reload()

    @on(Button.Pressed, "#btn-refresh")
    @on(ScreenResume)
    @work(exclusive=True)
    async def handle_reload(self) -> None:
        try:
            repo = self.app.state.repo
            self._sales = [*await repo.fetch_sales(), *await repo.fetch_credit_sales()]
        except PosError as exc:
            self.notify(f"Failed to load sales: {exc}", severity="error")
            return

        select = self.query_one("#select-seller", Select)
        current = select.value
        names = sellers(self._sales)
        select.set_options([("All Sellers", ALL_SELLERS)] + [(n, n) for n in names])
        select.value = current if current in names else ALL_SELLERS
        self._render_sales()

    @on(Input.Changed, "#input-search")
    @on(Select.Changed, "#select-seller")
    @on(Select.Changed, "#select-sort")
    def handle_filter_changed(self) -> None:
        self._render_sales()

    def _render_sales(self) -> None:
        seller = self.query_one("#select-seller", Select).value
        self._filtered = filter_sales(
            self._sales,
            self.query_one("#input-search", Input).value,
            None if seller in (ALL_SELLERS, Select.BLANK) else seller,
            self.query_one("#select-sort", Select).value,
        )

        table = self.query_one(DataTable)
        table.clear()
        for sale in self._filtered:
            table.add_row(
                sale.receipt_number,
                f"{sale.sold_at:%Y-%m-%d %H:%M}",
                sale.customer_name,
                sale.sold_by,
                format_quantity(sale.units),
                money(sale.total),
                "Credit" if sale.is_credit else "Paid",
                key=sale.id,
            )
        self._render_summary()

    @work(exclusive=True, group="summary")
    async def _render_summary(self) -> None:
        summary = sales_summary(self._filtered)
        md = "### Sales Summary\n\n" + generate_markdown_table(
            ["Total Revenue", "Total Sales", "Average Sale", "Units Sold"],
            [
                [
                    money(summary.total_revenue),
                    summary.sale_count,
                    money(summary.average_sale),
                    format_quantity(summary.units_sold),
                ]
            ],
        )
        await self.query_one("#md-sales-summary", MarkdownViewer).document.update(md)

    @on(Button.Pressed, "#btn-export")
    def handle_export(self) -> None:
        if not self._filtered:
            self.notify("No sales to export.", severity="warning")
            return
        try:
            path = write_sales_report_pdf(
                None, self._filtered, sales_summary(self._filtered), datetime.now()
            )
        except OSError as exc:
            self.notify(f"Could not write report: {exc}", severity="error")
            return
        self.notify(f"Sales report saved to {path}")
