from typing import Optional

from textual import on, work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import LoadingIndicator

from solarpos.config import settings
from solarpos.db.repository import Repository
from solarpos.db.sqlite_repo import SqliteRepository
from solarpos.utils.logger import get_logger
from solarpos.utils.messages import (
    ModeSwitchedMessage,
    QuitRequestedMessage,
    SaleCompletedMessage,
    UserLoginMessage,
    UserLogoutMessage,
)
from solarpos.utils.state import AppState
from solarpos.views.scr_admin_credit import AdminCreditScreen
from solarpos.views.scr_admin_inventory import AdminInventoryScreen
from solarpos.views.scr_admin_sales import AdminSalesScreen
from solarpos.views.scr_admin_users import AdminUsersScreen
from solarpos.views.scr_dashboard import DashboardScreen
from solarpos.views.scr_inventory import InventoryScreen
from solarpos.views.scr_login import LoginScreen

_logger = get_logger(__name__)


class SolarPosApp(App):
    BINDINGS = [
        Binding("ctrl+t", "switch_light", "Toggle Theme", show=True),
    ]

    MODES = {
        "dashboard": DashboardScreen,
        "inventory": InventoryScreen,
        "admin_inventory": AdminInventoryScreen,
        "admin_sales": AdminSalesScreen,
        "admin_credit": AdminCreditScreen,
        "admin_users": AdminUsersScreen,
    }

    USER_MODES = {"dashboard": "Dashboard", "inventory": "Inventory"}
    ADMIN_MODES = {
        "admin_inventory": "Manage Inventory",
        "admin_sales": "Sales Report",
        "admin_credit": "Credit Sales",
        "admin_users": "Users",
    }

    CSS_PATH = "styles/app.tcss"

    state: AppState

    def __init__(self, repo: Optional[Repository] = None):
        super().__init__()
        self.state = AppState(repo or SqliteRepository(settings.db_path))

    def compose(self) -> ComposeResult:
        yield LoadingIndicator()

    async def on_mount(self) -> None:
        self.main_flow()

    def action_switch_light(self):
        if self.theme == "textual-dark":
            self.theme = "solarized-light"
        else:
            self.theme = "textual-dark"
        self.notify(f"Theme changed to {self.theme}")

    @on(UserLogoutMessage)
    def handle_user_logout(self):
        self.state.logout()
        self.sub_title = ""
        self.notify("Logout successful.")
        self.main_flow()

    @on(QuitRequestedMessage)
    def handle_quit(self):
        self.state.logout()
        self.exit()

    @on(UserLoginMessage)
    def handle_user_login(self):
        self.sub_title = self.state.user.name if self.state.user else ""

    @on(ModeSwitchedMessage)
    def handle_mode_switched(self, message: ModeSwitchedMessage):
        _logger.debug(f"Mode {message.old_mode} -> {message.new_mode}")

    @on(SaleCompletedMessage)
    def handle_sale_completed(self, message: SaleCompletedMessage):
        _logger.debug(f"Sale {message.receipt_number} completed in the UI")

    @work(exclusive=True, group="main-flow")
    async def main_flow(self):
        await self.push_screen_wait(LoginScreen())
        self.post_message(ModeSwitchedMessage(self.current_mode, "dashboard"))
        await self.switch_mode("dashboard")


def main() -> None:
    _logger.info(f"Starting {settings.store_name} POS with database {settings.db_path}")
    app = SolarPosApp()
    app.run()


if __name__ == "__main__":
    main()
