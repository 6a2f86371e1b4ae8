from typing import List, Optional

from textual import events, on
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Label, Select

from solarpos.core.models import InventoryItem, MeasureType
from solarpos.db.repository import ItemDraft
from solarpos.errors import ValidationError
from solarpos.utils.formatting import plain_money, to_decimal

MEASURE_OPTIONS = [
    ("Standard (units)", MeasureType.STANDARD.value),
    ("Length (meters)", MeasureType.LENGTH.value),
]


class ItemFormModal(ModalScreen[Optional[ItemDraft]]):
    """
    Add or edit an inventory item. Returns a validated ItemDraft, or None.
    """

    def __init__(self, categories: List[str], item: Optional[InventoryItem] = None):
        super().__init__()
        self._categories = categories
        self._editing = item

    def compose(self) -> ComposeResult:
        item = self._editing
        title = f"Edit {item.name}" if item else "Add New Item"
        categories = list(self._categories)
        if item and item.category not in categories:
            categories.append(item.category)

        with Vertical(id="div-item-form"):
            yield Label(title, classes="modal-title")
            with VerticalScroll():
                yield Label("Name *")
                yield Input(item.name if item else "", id="input-name")
                yield Label("Category *")
                yield Select(
                    [(c, c) for c in categories],
                    value=item.category if item else Select.BLANK,
                    prompt="Select category",
                    id="select-category",
                )
                yield Label("Brand")
                yield Input(item.brand if item else "", id="input-brand")
                yield Label("Model")
                yield Input(item.model if item else "", id="input-model")
                with Horizontal(classes="form-row"):
                    with Vertical():
                        yield Label("Min Price *")
                        yield Input(
                            plain_money(item.min_price) if item else "",
                            id="input-min-price",
                            type="number",
                        )
                    with Vertical():
                        yield Label("Max Price *")
                        yield Input(
                            plain_money(item.max_price) if item else "",
                            id="input-max-price",
                            type="number",
                        )
                    with Vertical():
                        yield Label("Cost")
                        yield Input(
                            plain_money(item.cost) if item else "0",
                            id="input-cost",
                            type="number",
                        )
                yield Label("Measure Type")
                yield Select(
                    MEASURE_OPTIONS,
                    value=(item.measure_type if item else MeasureType.STANDARD).value,
                    allow_blank=False,
                    id="select-measure",
                )
                yield Label("Quantity *", id="label-quantity")
                yield Input(
                    str(item.quantity) if item else "0", id="input-quantity", type="integer"
                )
                yield Label("Length (meters) *", id="label-length")
                yield Input(
                    f"{item.length:.2f}" if item and item.length is not None else "0",
                    id="input-length",
                    type="number",
                )
                yield Label("Description")
                yield Input(item.description if item else "", id="input-description")
            with Horizontal():
                yield Button("Cancel", id="btn-cancel")
                yield Button("Save", id="btn-save", variant="primary")

    def on_mount(self) -> None:
        self._toggle_measure_inputs()
        self.query_one("#input-name").focus()

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.dismiss(None)

    @on(Select.Changed, "#select-measure")
    def _toggle_measure_inputs(self) -> None:
        is_length = self.query_one("#select-measure", Select).value == MeasureType.LENGTH.value
        for widget_id in ("#label-length", "#input-length"):
            self.query_one(widget_id).display = is_length
        for widget_id in ("#label-quantity", "#input-quantity"):
            self.query_one(widget_id).display = not is_length

    def _read_draft(self) -> ItemDraft:
        def value(widget_id: str) -> str:
            return self.query_one(widget_id, Input).value.strip()

        category = self.query_one("#select-category", Select).value
        measure_type = MeasureType(self.query_one("#select-measure", Select).value)
        quantity = 0
        length = None
        if measure_type is MeasureType.LENGTH:
            length = to_decimal(value("#input-length") or "0", "Length")
        else:
            raw = to_decimal(value("#input-quantity") or "0", "Quantity")
            if raw != raw.to_integral_value():
                raise ValidationError("Quantity must be a whole number.")
            quantity = int(raw)

        draft = ItemDraft(
            name=value("#input-name"),
            category="" if category is Select.BLANK else str(category),
            brand=value("#input-brand"),
            model=value("#input-model"),
            min_price=to_decimal(value("#input-min-price"), "Min price"),
            max_price=to_decimal(value("#input-max-price"), "Max price"),
            cost=to_decimal(value("#input-cost") or "0", "Cost"),
            measure_type=measure_type,
            quantity=quantity,
            length=length,
            description=value("#input-description"),
        )
        draft.validate()
        return draft

    @on(Button.Pressed, "#btn-save")
    def handle_save(self) -> None:
        try:
            draft = self._read_draft()
        except ValidationError as exc:
            self.notify(str(exc), severity="error")
            return
        self.dismiss(draft)

    @on(Button.Pressed, "#btn-cancel")
    def handle_cancel(self) -> None:
        self.dismiss(None)
