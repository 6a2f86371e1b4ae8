from textual import on, work
from textual.app import ComposeResult
from textual.containers import Vertical
from textual.events import ScreenResume
from textual.widgets import Button, MarkdownViewer

from solarpos.core.reports import inventory_stats, low_stock_items
from solarpos.core.stock import format_stock
from solarpos.errors import PosError
from solarpos.utils.formatting import format_quantity, generate_markdown_table, money
from solarpos.views.base_screen import BaseScreen


class DashboardScreen(BaseScreen):
    """
    Welcome page: inventory totals, items running low and, for admins,
    the best sellers.
    """

    def __init__(self) -> None:
        super().__init__()

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical():
            yield MarkdownViewer(id="md-dashboard", show_table_of_contents=False)
            yield Button("Refresh", id="btn-refresh")

    def on_mount(self) -> None:
        self.handle_reload()

    @on(Button.Pressed, "#btn-refresh")
    @on(ScreenResume)
    @work(exclusive=True)
    async def handle_reload(self) -> None:
        state = self.app.state
        if state.user is None:
            return
        try:
            items = await state.refresh_inventory()
            top = await state.repo.top_selling_items(5) if state.is_admin else []
        except PosError as exc:
            self.notify(f"Failed to load dashboard: {exc}", severity="error")
            return

        stats = inventory_stats(items)
        md = (
            f"## Welcome back, {state.user.name}!\n\n"
            f"- Total items in stock: {stats.total_units}\n"
            f"- Cable and wire on hand: {format_quantity(stats.total_length)} m\n"
            f"- Inventory value: {money(stats.stock_value)}\n"
            f"- Products: {len(items)}\n\n"
        )

        low = low_stock_items(items)
        md += "### Low Stock Alerts\n\n"
        if low:
            md += generate_markdown_table(
                ["Item", "Brand", "Model", "Remaining"],
                [[i.name, i.brand, i.model, format_stock(i)] for i in low],
                ["l", "l", "l", "r"],
            )
        else:
            md += "All items are well stocked."
        md += "\n\n"

        if state.is_admin:
            md += "### Top Selling Items\n\n"
            if top:
                md += generate_markdown_table(
                    ["#", "Item", "Sold", "Revenue"],
                    [
                        [rank, t.name, format_quantity(t.quantity_sold), money(t.revenue)]
                        for rank, t in enumerate(top, start=1)
                    ],
                    ["r", "l", "r", "r"],
                )
            else:
                md += "No sales recorded yet."

        await self.query_one("#md-dashboard", MarkdownViewer).document.update(md)
