from typing import List, Optional

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.widgets import Button, DataTable, Label

from solarpos.core.models import User
from solarpos.errors import PosError
from solarpos.views.base_screen import BaseScreen
from solarpos.views.modal_dialog import DialogModal
from solarpos.views.modal_user_form import UserFormModal


class AdminUsersScreen(BaseScreen):
    """
    Admins list, create, edit and delete user accounts.
    """

    def __init__(self) -> None:
        super().__init__()
        self._users: List[User] = []

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical():
            yield Label("", id="label-user-stats")
            yield DataTable(id="table-users")
            with Horizontal(id="hort-user-btns"):
                yield Button("Add User", id="btn-add-user", variant="primary")
                yield Button("Edit", id="btn-edit-user")
                yield Button("Delete", id="btn-delete-user", variant="error")

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("Name", "Email", "Role", "Created")
        self.handle_reload()

    @on(ScreenResume)
    @work(exclusive=True)
    async def handle_reload(self) -> None:
        try:
            self._users = await self.app.state.repo.fetch_users()
        except PosError as exc:
            self.notify(f"Failed to load users: {exc}", severity="error")
            return

        admins = sum(1 for u in self._users if u.is_admin)
        self.query_one("#label-user-stats", Label).update(
            f"Users: {len(self._users)}   Admins: {admins}   "
            f"Sales staff: {len(self._users) - admins}"
        )
        table = self.query_one(DataTable)
        table.clear()
        for user in self._users:
            table.add_row(
                user.name,
                user.email,
                "Admin" if user.is_admin else "User",
                f"{user.created_at:%Y-%m-%d}",
                key=user.id,
            )

    def _selected_user(self) -> Optional[User]:
        table = self.query_one(DataTable)
        user = None
        if table.row_count:
            user_id = table.coordinate_to_cell_key(table.cursor_coordinate).row_key.value
            user = next((u for u in self._users if u.id == user_id), None)
        if user is None:
            self.notify("Select a user first.", severity="warning")
        return user

    @on(Button.Pressed, "#btn-add-user")
    @work(exclusive=True, group="user-form")
    async def handle_add_user(self) -> None:
        form = await self.app.push_screen_wait(UserFormModal())
        if form is None:
            return
        try:
            user = await self.app.state.repo.create_user(
                form.name, form.email, form.password, form.role
            )
        except PosError as exc:
            self.notify(f"Failed to create user: {exc}", severity="error")
            return
        self.notify(f"User {user.email} created.")
        self.handle_reload()

    @on(Button.Pressed, "#btn-edit-user")
    @work(exclusive=True, group="user-form")
    async def handle_edit_user(self) -> None:
        user = self._selected_user()
        if user is None:
            return
        form = await self.app.push_screen_wait(UserFormModal(user))
        if form is None:
            return
        try:
            await self.app.state.repo.update_user(
                user.id, form.name, form.email, form.role, form.password
            )
        except PosError as exc:
            self.notify(f"Failed to update user: {exc}", severity="error")
            return
        self.notify(f"User {form.email} updated.")
        self.handle_reload()

    @on(Button.Pressed, "#btn-delete-user")
    @work(exclusive=True, group="user-form")
    async def handle_delete_user(self) -> None:
        user = self._selected_user()
        if user is None:
            return
        if not await self.app.push_screen_wait(
            DialogModal(
                f"Delete user {user.email}?",
                primary_text="Delete",
                secondary_text="Cancel",
                tone="error",
            )
        ):
            return
        try:
            await self.app.state.delete_user(user.id)
        except PosError as exc:
            self.notify(f"Failed to delete user: {exc}", severity="error")
            return
        self.notify(f"User {user.email} deleted.")
        self.handle_reload()
