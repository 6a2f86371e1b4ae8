from textual.message import Message


class QuitRequestedMessage(Message):
    """
    broadcasted when the app is about to quit
    """

    bubble = True


class UserLogoutMessage(Message):
    """
    broadcasted when the user logs out
    """

    bubble = True


class UserLoginMessage(Message):
    """
    Fired by the login screen once app.state holds a session
    """

    bubble = True


class CartChangedMessage(Message):
    """
    Fired when a line is added from the inventory screen.
    Refreshes the availability column and the cart badge.
    """

    bubble = True


class InventoryChangedMessage(Message):
    """
    Fired after an admin edit: item, category or stock adjustment.
    """

    bubble = True


class SaleCompletedMessage(Message):
    """
    Fired when a sale (regular or credit) is committed.
    """

    bubble = True

    def __init__(self, receipt_number: str) -> None:
        super().__init__()
        self.receipt_number = receipt_number


class ModeSwitchedMessage(Message):
    """
    fired whenever switch_mode is called
    must be fired from app level
    """

    bubble = True

    def __init__(self, old_mode: str, new_mode: str) -> None:
        super().__init__()
        self.old_mode = old_mode
        self.new_mode = new_mode
