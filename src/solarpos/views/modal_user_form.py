from dataclasses import dataclass
from typing import Optional

from textual import events, on
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Label, Select

from solarpos.core.models import Role, User
from solarpos.db.repository import validate_user_fields
from solarpos.errors import ValidationError

ROLE_OPTIONS = [("User", "user"), ("Admin", "admin")]


@dataclass(frozen=True)
class UserForm:
    name: str
    email: str
    role: Role
    password: Optional[str]


class UserFormModal(ModalScreen[Optional[UserForm]]):
    """
    Create a user, or edit one when user is given. On edit a blank password
    keeps the current one.
    """

    def __init__(self, user: Optional[User] = None) -> None:
        super().__init__()
        self._editing = user

    def compose(self) -> ComposeResult:
        user = self._editing
        with Vertical(id="div-user-form"):
            yield Label(f"Edit {user.name}" if user else "Add New User", classes="modal-title")
            yield Label("Name *")
            yield Input(user.name if user else "", placeholder="Jane Doe", id="input-name")
            yield Label("Email *")
            yield Input(
                user.email if user else "", placeholder="user@example.com", id="input-email"
            )
            yield Label("Password" if user else "Password *")
            yield Input(
                placeholder="leave blank to keep" if user else "*********",
                password=True,
                id="input-password",
            )
            yield Label("Role")
            yield Select(
                ROLE_OPTIONS,
                value=user.role if user else "user",
                allow_blank=False,
                id="select-role",
            )
            with Horizontal():
                yield Button("Cancel", id="btn-cancel")
                yield Button("Save", id="btn-save", variant="primary")

    def on_mount(self) -> None:
        self.query_one("#input-name").focus()

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.dismiss(None)

    @on(Button.Pressed, "#btn-save")
    def handle_save(self) -> None:
        form = UserForm(
            name=self.query_one("#input-name", Input).value.strip(),
            email=self.query_one("#input-email", Input).value.strip(),
            role=self.query_one("#select-role", Select).value,
            password=self.query_one("#input-password", Input).value or None,
        )
        try:
            validate_user_fields(form.name, form.email, form.role)
            if self._editing is None and not form.password:
                raise ValidationError("Password is required.")
        except ValidationError as exc:
            self.notify(str(exc), severity="error")
            return
        self.dismiss(form)

    @on(Button.Pressed, "#btn-cancel")
    def handle_cancel(self) -> None:
        self.dismiss(None)
