from textual import events, on
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.screen import ModalScreen
from textual.widgets import Button, Label, Static

from solarpos.core.models import Sale
from solarpos.core.receipt import export_receipt, render_receipt


class ReceiptModal(ModalScreen[None]):
    """
    Shows the receipt text; Download writes the same text to the export directory.
    """

    def __init__(self, sale: Sale) -> None:
        super().__init__()
        self._sale = sale

    def compose(self) -> ComposeResult:
        with Vertical(id="div-receipt"):
            yield Label("Sale Receipt", classes="modal-title")
            with VerticalScroll(id="vertscroll-receipt"):
                yield Static(render_receipt(self._sale), markup=False, id="static-receipt")
            with Horizontal():
                yield Button("Download", id="btn-download")
                yield Button("Close", id="btn-close", variant="primary")

    def on_mount(self) -> None:
        self.query_one("#btn-close").focus()

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.dismiss(None)

    @on(Button.Pressed, "#btn-download")
    def handle_download(self) -> None:
        try:
            path = export_receipt(self._sale)
        except OSError as exc:
            self.notify(f"Could not save receipt: {exc}", severity="error")
            return
        self.notify(f"Receipt saved to {path}")

    @on(Button.Pressed, "#btn-close")
    def handle_close(self) -> None:
        self.dismiss(None)
