from typing import List

from textual import on, work
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Container
from textual.events import Resize, ScreenResume
from textual.screen import Screen
from textual.widgets import Button, Footer, Header, Label, ListItem, ListView, Markdown

from solarpos.config import settings
from solarpos.utils.formatting import generate_markdown_table
from solarpos.utils.messages import ModeSwitchedMessage, UserLogoutMessage
from solarpos.views.modal_dialog import (
    DialogModal,
    QuitDialogModal,
    ResizeScreenPromptModal,
)


class Sidebar(Container):
    def __init__(self) -> None:
        super().__init__()
        self._user_id = None

    def compose(self) -> ComposeResult:
        yield Label("User Info", id="label-info-1")
        yield Markdown(self._user_markdown(), id="md-userinfo")
        yield Button("Log out", id="btn-logout", variant="error")
        yield Label("Menu", id="label-info-2")
        yield ListView(*self._menu_items(), id="list-menu")

    def on_mount(self):
        self.highlight_item(self.app.current_mode)

    def _user_markdown(self) -> str:
        user = self.app.state.user
        if user is None:
            return ""
        self._user_id = user.id
        table_rows = [
            ["Name", user.name],
            ["Email", user.email],
            ["Role", "Administrator" if user.is_admin else "Sales"],
        ]
        return generate_markdown_table(None, table_rows, ["l", "l"])

    def _menu_items(self) -> List[ListItem]:
        """Menu entries keyed by mode name; admins also get the admin modes."""
        modes = dict(self.app.USER_MODES)
        if self.app.state.is_admin:
            modes.update(self.app.ADMIN_MODES)
        return [ListItem(Label(v), name=k) for k, v in modes.items()]

    async def reload(self) -> None:
        user = self.app.state.user
        if user is not None and user.id != self._user_id:
            await self.query_one(Markdown).update(self._user_markdown())
            list_menu = self.query_one("#list-menu", ListView)
            await list_menu.clear()
            await list_menu.extend(self._menu_items())
        self.highlight_item(self.app.current_mode)

    async def on_list_view_selected(self, event: ListView.Selected):
        selected_mode = event.item.name
        self.highlight_item(self.app.current_mode)
        if self.app.current_mode != selected_mode:
            self.app.post_message(
                ModeSwitchedMessage(self.app.current_mode, selected_mode)
            )
            await self.app.switch_mode(selected_mode)

    @on(Button.Pressed, "#btn-logout")
    @work()
    async def handle_logout(self):
        if not await self.app.push_screen_wait(
            DialogModal(
                "Are you sure you want to log out?",
                primary_text="Yes",
                secondary_text="No",
                tone="warning",
            )
        ):
            return

        self.post_message(UserLogoutMessage())

    def highlight_item(self, mode_str: str):
        list_menu = self.query_one("#list-menu")
        for item in list_menu.children:
            item.highlighted = item.name == mode_str


class BaseScreen(Screen):
    """
    Inherited by all screens, contains common elements like
    headers, footers, sidebar, and keybindings.
    """

    BINDINGS = [
        Binding("ctrl+z", "quit", "Quit App", show=True),
    ]

    MIN_WIDTH = 80
    MIN_HEIGHT = 24

    def __init__(self):
        super().__init__()

        self.configure()

    def configure(
        self,
        header_sub_title: str = "",
        show_sidebar: bool = True,
    ) -> None:
        """
        configure behavior of the base screen
        """

        self.app.title = settings.store_name
        self.sub_title = header_sub_title
        all_modes = {**self.app.USER_MODES, **self.app.ADMIN_MODES}
        for k, v in self.app.MODES.items():
            if isinstance(self, v) and k in all_modes:
                self.sub_title = all_modes[k]

        self._show_sidebar = show_sidebar

    def compose(self) -> ComposeResult:
        if self._show_sidebar:
            yield Sidebar()
        yield Header()
        yield Footer(show_command_palette=False)

    async def on_resize(self, event: Resize) -> None:
        if isinstance(self.app.screen, ResizeScreenPromptModal):
            return
        if event.size.width < self.MIN_WIDTH or event.size.height < self.MIN_HEIGHT:
            self.app.push_screen(ResizeScreenPromptModal(self.MIN_WIDTH, self.MIN_HEIGHT))

    @on(ScreenResume)
    async def _reload_sidebar(self) -> None:
        # another user may have logged in since this screen was last shown
        for sidebar in self.query(Sidebar):
            await sidebar.reload()

    @work()
    async def action_quit(self):
        await self.app.push_screen_wait(QuitDialogModal())
