from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from solarpos.core.cart import Cart
from solarpos.core.checkout import CheckoutProcessor
from solarpos.core.models import InventoryItem, Session, User
from solarpos.db.repository import Repository
from solarpos.errors import AuthError, ValidationError
from solarpos.utils.logger import get_logger

_logger = get_logger(__name__)


@dataclass
class AppState:
    """
    Centralized application state shared by screens.

    Fields:
      - repo: storage backend, sqlite in the app and in-memory in tests
      - session: the logged-in user, None before login
      - cart: the active cart, emptied on logout
      - inventory: last fetched inventory, used for stock checks in the cart
    """

    repo: Repository
    session: Optional[Session] = None
    cart: Cart = field(default_factory=Cart)
    inventory: List[InventoryItem] = field(default_factory=list)
    _processor: Optional[CheckoutProcessor] = field(default=None, repr=False)

    @property
    def user(self) -> Optional[User]:
        return self.session.user if self.session else None

    @property
    def is_admin(self) -> bool:
        return self.user is not None and self.user.is_admin

    async def login(self, email: str, password: str) -> User:
        """Start a session, raising AuthError on bad credentials."""
        email = (email or "").strip()
        if not email or not password:
            raise ValidationError("Email and password are required.")
        user = await self.repo.authenticate(email, password)
        if user is None:
            _logger.info(f"Failed login for {email}")
            raise AuthError("Invalid email or password.")
        self.session = Session(user)
        self.cart.clear()
        self._processor = None
        _logger.info(f"{user.email} logged in as {user.role}")
        return user

    def logout(self) -> None:
        if self.session is not None:
            _logger.info(f"{self.session.user.email} logged out")
        self.session = None
        self.cart.clear()
        self.inventory = []
        self._processor = None

    async def refresh_inventory(self) -> List[InventoryItem]:
        """Re-read inventory and point cart lines at the fresh rows."""
        self.inventory = await self.repo.fetch_inventory()
        self.cart.sync_items(self.inventory)
        return self.inventory

    def checkout_processor(self) -> CheckoutProcessor:
        """One processor per session, so retries reuse its checkout id."""
        if self.user is None:
            raise AuthError("Log in before checking out.")
        if self._processor is None:
            self._processor = CheckoutProcessor(
                self.repo,
                self.cart,
                seller=self.user.name,
                refresh_inventory=self.refresh_inventory,
            )
        return self._processor

    async def delete_user(self, user_id: str) -> None:
        """Admins cannot remove the account they are logged in with."""
        if self.user is not None and self.user.id == user_id:
            raise ValidationError("You cannot delete your own account.")
        await self.repo.delete_user(user_id)
