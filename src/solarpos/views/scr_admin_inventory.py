from typing import List, Optional

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.widgets import (
    Button,
    DataTable,
    Input,
    Label,
    TabbedContent,
    TabPane,
)

from solarpos.core.models import Category, InventoryItem
from solarpos.core.reports import inventory_stats
from solarpos.core.stock import format_stock
from solarpos.errors import PosError
from solarpos.utils.formatting import format_quantity, money, to_decimal
from solarpos.utils.messages import InventoryChangedMessage
from solarpos.views.base_screen import BaseScreen
from solarpos.views.modal_dialog import DialogModal
from solarpos.views.modal_item_form import ItemFormModal


class AdminInventoryScreen(BaseScreen):
    """
    Admin inventory management: create, edit and delete items, adjust stock,
    and maintain the category list.
    """

    def __init__(self) -> None:
        super().__init__()
        self._inventory: List[InventoryItem] = []
        self._categories: List[Category] = []

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with TabbedContent(id="tabs-admin-inventory"):
            with TabPane("Items", id="tab-items"):
                with Vertical():
                    yield Label("", id="label-inventory-stats")
                    yield DataTable(id="table-admin-items")
                    with Horizontal(id="hort-item-btns"):
                        yield Button("Add Item", id="btn-add-item", variant="primary")
                        yield Button("Edit", id="btn-edit-item")
                        yield Button("Delete", id="btn-delete-item", variant="error")
                        yield Input(
                            placeholder="+/- stock", id="input-stock-delta", type="number"
                        )
                        yield Button("Adjust Stock", id="btn-adjust-stock")
            with TabPane("Categories", id="tab-categories"):
                with Vertical():
                    yield DataTable(id="table-categories")
                    with Horizontal(id="hort-category-btns"):
                        yield Input(placeholder="Category name", id="input-category-name")
                        yield Input(
                            placeholder="Description (optional)",
                            id="input-category-desc",
                        )
                        yield Button("Add", id="btn-add-category", variant="primary")
                        yield Button("Delete", id="btn-delete-category", variant="error")

    def on_mount(self) -> None:
        items_table = self.query_one("#table-admin-items", DataTable)
        items_table.cursor_type = "row"
        items_table.zebra_stripes = True
        items_table.add_columns(
            "Name", "Category", "Brand / Model", "Price Range", "Cost", "Stock", "Type"
        )
        cat_table = self.query_one("#table-categories", DataTable)
        cat_table.cursor_type = "row"
        cat_table.add_columns("Name", "Description", "Items")
        self.handle_reload()

    @on(ScreenResume)
    @on(InventoryChangedMessage)
    @work(exclusive=True)
    async def handle_reload(self) -> None:
        repo = self.app.state.repo
        try:
            self._inventory = await repo.fetch_inventory()
            self._categories = await repo.list_categories()
        except PosError as exc:
            self.notify(f"Failed to load inventory: {exc}", severity="error")
            return

        stats = inventory_stats(self._inventory)
        self.query_one("#label-inventory-stats", Label).update(
            f"Products: {len(self._inventory)}   Units: {stats.total_units}   "
            f"Wire: {format_quantity(stats.total_length)} m   "
            f"Value: {money(stats.stock_value)}   Low stock: {stats.low_stock_count}"
        )

        table = self.query_one("#table-admin-items", DataTable)
        table.clear()
        for item in self._inventory:
            table.add_row(
                item.name,
                item.category,
                f"{item.brand} {item.model}",
                f"{money(item.min_price)} - {money(item.max_price)}",
                money(item.cost),
                format_stock(item),
                "Length" if item.is_length else "Standard",
                key=item.id,
            )

        cat_table = self.query_one("#table-categories", DataTable)
        cat_table.clear()
        for category in self._categories:
            used = sum(1 for i in self._inventory if i.category == category.name)
            cat_table.add_row(
                category.name, category.description or "", str(used), key=category.id
            )

    @staticmethod
    def _selected_key(table: DataTable) -> Optional[str]:
        if table.row_count == 0:
            return None
        return table.coordinate_to_cell_key(table.cursor_coordinate).row_key.value

    def _selected_item(self) -> Optional[InventoryItem]:
        item_id = self._selected_key(self.query_one("#table-admin-items", DataTable))
        item = next((i for i in self._inventory if i.id == item_id), None)
        if item is None:
            self.notify("Select an item first.", severity="warning")
        return item

    @on(Button.Pressed, "#btn-add-item")
    @work(exclusive=True, group="item-form")
    async def handle_add_item(self) -> None:
        draft = await self.app.push_screen_wait(
            ItemFormModal([c.name for c in self._categories])
        )
        if draft is None:
            return
        try:
            item = await self.app.state.repo.create_item(draft)
        except PosError as exc:
            self.notify(f"Failed to add item: {exc}", severity="error")
            return
        self.notify(f"{item.name} added to inventory.")
        self.post_message(InventoryChangedMessage())

    @on(Button.Pressed, "#btn-edit-item")
    @work(exclusive=True, group="item-form")
    async def handle_edit_item(self) -> None:
        item = self._selected_item()
        if item is None:
            return
        draft = await self.app.push_screen_wait(
            ItemFormModal([c.name for c in self._categories], item)
        )
        if draft is None:
            return
        try:
            await self.app.state.repo.update_item(item.id, draft)
        except PosError as exc:
            self.notify(f"Failed to update item: {exc}", severity="error")
            return
        self.notify(f"{draft.name} updated.")
        self.post_message(InventoryChangedMessage())

    @on(Button.Pressed, "#btn-delete-item")
    @work(exclusive=True, group="item-form")
    async def handle_delete_item(self) -> None:
        item = self._selected_item()
        if item is None:
            return
        if not await self.app.push_screen_wait(
            DialogModal(
                f"Delete {item.name}? This cannot be undone.",
                primary_text="Delete",
                secondary_text="Cancel",
                tone="error",
            )
        ):
            return
        try:
            await self.app.state.repo.delete_item(item.id)
        except PosError as exc:
            self.notify(f"Failed to delete item: {exc}", severity="error")
            return
        self.notify(f"{item.name} deleted.")
        self.post_message(InventoryChangedMessage())

    @on(Button.Pressed, "#btn-adjust-stock")
    @work(exclusive=True, group="stock")
    async def handle_adjust_stock(self) -> None:
        item = self._selected_item()
        if item is None:
            return
        delta_input = self.query_one("#input-stock-delta", Input)
        try:
            delta = to_decimal(delta_input.value, "Stock change")
            if not item.is_length:
                if delta != delta.to_integral_value():
                    delta_input.add_class("-invalid")
                    self.notify("Stock change must be a whole number.", severity="error")
                    return
                delta = int(delta)
            updated = await self.app.state.repo.adjust_stock(item.id, delta)
        except PosError as exc:
            delta_input.add_class("-invalid")
            self.notify(str(exc), severity="error")
            return
        delta_input.value = ""
        delta_input.remove_class("-invalid")
        self.notify(f"{updated.name} stock is now {format_stock(updated)}.")
        self.post_message(InventoryChangedMessage())

    @on(Button.Pressed, "#btn-add-category")
    @work(exclusive=True, group="category")
    async def handle_add_category(self) -> None:
        name_input = self.query_one("#input-category-name", Input)
        desc_input = self.query_one("#input-category-desc", Input)
        try:
            category = await self.app.state.repo.create_category(
                name_input.value, desc_input.value.strip() or None
            )
        except PosError as exc:
            self.notify(str(exc), severity="error")
            return
        name_input.value = ""
        desc_input.value = ""
        self.notify(f"Category {category.name} created.")
        self.post_message(InventoryChangedMessage())

    @on(Button.Pressed, "#btn-delete-category")
    @work(exclusive=True, group="category")
    async def handle_delete_category(self) -> None:
        category_id = self._selected_key(self.query_one("#table-categories", DataTable))
        category = next((c for c in self._categories if c.id == category_id), None)
        if category is None:
            self.notify("Select a category first.", severity="warning")
            return
        if not await self.app.push_screen_wait(
            DialogModal(
                f"Delete category {category.name}?",
                primary_text="Delete",
                secondary_text="Cancel",
                tone="error",
            )
        ):
            return
        try:
            await self.app.state.repo.delete_category(category.id)
        except PosError as exc:
            self.notify(str(exc), severity="error")
            return
        self.notify(f"Category {category.name} deleted.")
        self.post_message(InventoryChangedMessage())
