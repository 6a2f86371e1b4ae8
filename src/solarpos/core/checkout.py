from __future__ import annotations

import random
import uuid
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Awaitable, Callable, Optional, Union

from solarpos.core.cart import Cart
from solarpos.core.models import CreditSale, Sale, SaleLine
from solarpos.db.repository import Repository
from solarpos.errors import BackendError, ValidationError
from solarpos.utils.formatting import round_money, to_decimal
from solarpos.utils.logger import get_logger

_logger = get_logger(__name__)

RECEIPT_PREFIX = "JSS"


class PaymentMode(str, Enum):
    FULL = "full"
    CREDIT = "credit"


@dataclass(frozen=True)
class CreditTerms:
    customer_phone: str
    due_date: Optional[date]
    paid_amount: Decimal = Decimal("0")
    payment_method: str = "cash"
    notes: Optional[str] = None


def generate_receipt_number(when: datetime) -> str:
    """
    Date prefix plus a random suffix, e.g. JSS-20240120-482913.
    Collisions are possible and rejected by the backend's unique constraint.
    """
    return f"{RECEIPT_PREFIX}-{when:%Y%m%d}-{random.randint(0, 999999):06d}"


class CheckoutProcessor:
    """
    Turns the cart into a persisted sale.

    The backend writes the sale, its lines, the initial credit payment and all
    stock decrements in one transaction keyed by checkout_id. The processor
    reuses the same checkout_id while the cart is unchanged, so re-submitting
    after a failure whose outcome is unknown cannot record the sale twice.
    """

    def __init__(
        self,
        repo: Repository,
        cart: Cart,
        seller: str,
        refresh_inventory: Optional[Callable[[], Awaitable[None]]] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._repo = repo
        self._cart = cart
        self._seller = seller
        self._refresh_inventory = refresh_inventory
        self._clock = clock
        self._attempt: Optional[tuple[int, str]] = None

    @property
    def checkout_id(self) -> str:
        """Idempotency key for the current cart contents."""
        if self._attempt is None or self._attempt[0] != self._cart.revision:
            self._attempt = (self._cart.revision, uuid.uuid4().hex)
        return self._attempt[1]

    def validate(
        self,
        customer_name: str,
        mode: PaymentMode = PaymentMode.FULL,
        credit: Optional[CreditTerms] = None,
        today: Optional[date] = None,
    ) -> Decimal:
        """Check the cart and form input; return the sale total."""
        if not self._cart:
            raise ValidationError("Cart is empty. Add items before checkout.")
        if not (customer_name or "").strip():
            raise ValidationError("Customer name is required.")

        total = self._cart.total()
        if mode is PaymentMode.CREDIT:
            if credit is None or not credit.customer_phone.strip():
                raise ValidationError("Customer phone number is required.")
            if credit.due_date is None:
                raise ValidationError("Due date is required.")
            today = today or self._clock().date()
            if credit.due_date < today:
                raise ValidationError("Due date cannot be in the past.")
            paid = to_decimal(credit.paid_amount, "Paid amount")
            if paid < 0:
                raise ValidationError("Paid amount cannot be negative.")
            if round_money(paid) > round_money(total):
                raise ValidationError("Paid amount cannot be greater than the total.")
        return total

    @staticmethod
    def _initial_payment(credit: CreditTerms, total: Decimal) -> Decimal:
        # the displayed total, rounded to cents, pays the sale off in full
        return min(to_decimal(credit.paid_amount, "Paid amount"), total)

    async def checkout(
        self,
        customer_name: str,
        mode: PaymentMode = PaymentMode.FULL,
        credit: Optional[CreditTerms] = None,
    ) -> Union[Sale, CreditSale]:
        now = self._clock()
        total = self.validate(customer_name, mode, credit, today=now.date())

        fields = dict(
            id=uuid.uuid4().hex,
            receipt_number=generate_receipt_number(now),
            customer_name=customer_name.strip(),
            sold_by=self._seller,
            sold_at=now,
            total=total,
            lines=tuple(SaleLine.from_cart_line(line) for line in self._cart.lines),
            checkout_id=self.checkout_id,
        )

        try:
            if mode is PaymentMode.CREDIT:
                sale = await self._repo.create_credit_sale(
                    CreditSale(
                        **fields,
                        customer_phone=credit.customer_phone.strip(),
                        amount_paid=self._initial_payment(credit, total),
                        due_date=credit.due_date,
                        notes=credit.notes,
                    ),
                    payment_method=credit.payment_method,
                )
            else:
                sale = await self._repo.create_sale(Sale(**fields))
        except (BackendError, ValidationError):
            _logger.warning("Checkout failed; re-reading inventory")
            await self._refresh()
            raise

        _logger.info(
            f"Sale {sale.receipt_number} recorded: {len(sale.lines)} lines, total {sale.total}"
        )
        self._cart.clear()
        self._attempt = None
        await self._refresh()
        return sale

    async def _refresh(self) -> None:
        if self._refresh_inventory is not None:
            await self._refresh_inventory()
