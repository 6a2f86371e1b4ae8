import re
import unittest
from datetime import date, datetime
from decimal import Decimal

from sample_data import make_item, make_wire
from solarpos.core.cart import Cart
from solarpos.core.checkout import (
    CheckoutProcessor,
    CreditTerms,
    PaymentMode,
    generate_receipt_number,
)
from solarpos.core.models import CreditStatus
from solarpos.db.memory import InMemoryRepository
from solarpos.errors import BackendError, InsufficientStockError, ValidationError
from solarpos.utils.formatting import plain_money

NOW = datetime(2024, 1, 20, 10, 30)


class LostReplyRepository(InMemoryRepository):
    """Commits the sale, then fails as if the reply never arrived."""

    lose_next_reply = True

    async def create_sale(self, sale):
        stored = await super().create_sale(sale)
        if self.lose_next_reply:
            self.lose_next_reply = False
            raise BackendError("connection reset")
        return stored


class CheckoutTestCase(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.repo = InMemoryRepository([make_item(quantity=50), make_wire(length="500")])
        self.cart = Cart()
        self.refreshes = 0
        self.processor = self._processor(self.repo)

    def _processor(self, repo):
        async def refresh():
            self.refreshes += 1
            self.cart.sync_items(await repo.fetch_inventory())

        return CheckoutProcessor(
            repo, self.cart, seller="Cashier", refresh_inventory=refresh, clock=lambda: NOW
        )

    def _fill_cart(self, panels=2):
        panel = self.repo.items["item-1"]
        for _ in range(panels):
            self.cart.add_line(panel, "250")

    def test_receipt_number_format(self):
        self.assertRegex(generate_receipt_number(NOW), r"^JSS-20240120-\d{6}$")

    async def test_rejects_empty_cart(self):
        with self.assertRaises(ValidationError):
            await self.processor.checkout("Alice")
        self.assertNotIn("create_sale", self.repo.calls)

    async def test_rejects_blank_customer_name(self):
        self._fill_cart()
        with self.assertRaises(ValidationError):
            await self.processor.checkout("   ")
        self.assertNotIn("create_sale", self.repo.calls)
        self.assertEqual(len(self.cart), 1)

    async def test_full_sale(self):
        self._fill_cart()
        self.cart.add_length_line(self.repo.items["item-4"], "2.75", "3.5")

        sale = await self.processor.checkout("  Alice  ")

        self.assertFalse(sale.is_credit)
        self.assertEqual(sale.customer_name, "Alice")
        self.assertEqual(sale.sold_by, "Cashier")
        self.assertEqual(sale.sold_at, NOW)
        self.assertEqual(sale.total, Decimal("509.625"))
        self.assertTrue(re.match(r"^JSS-20240120-\d{6}$", sale.receipt_number))
        self.assertEqual(len(sale.lines), 2)
        self.assertEqual(sale.lines[1].quantity, Decimal("3.5"))

        self.assertEqual(self.repo.items["item-1"].quantity, 48)
        self.assertEqual(self.repo.items["item-4"].length, Decimal("496.5"))
        self.assertFalse(self.cart)
        self.assertEqual(self.refreshes, 1)

    async def test_credit_sale_partially_paid(self):
        self._fill_cart(4)
        terms = CreditTerms("0917 555 0101", date(2024, 2, 20), Decimal("300"), "gcash")

        sale = await self.processor.checkout("Bob", PaymentMode.CREDIT, terms)

        self.assertTrue(sale.is_credit)
        self.assertEqual(sale.total, Decimal("1000"))
        self.assertEqual(sale.remaining_amount, Decimal("700"))
        self.assertEqual(sale.status, CreditStatus.PARTIALLY_PAID)
        self.assertEqual(sale.customer_phone, "0917 555 0101")

        payments = await self.repo.fetch_credit_payments(sale.id)
        self.assertEqual(len(payments), 1)
        self.assertEqual(payments[0].amount, Decimal("300"))
        self.assertEqual(payments[0].method, "gcash")
        self.assertEqual(self.repo.items["item-1"].quantity, 46)

    async def test_credit_sale_without_payment_is_pending(self):
        self._fill_cart()
        terms = CreditTerms("0917", date(2024, 1, 20))

        sale = await self.processor.checkout("Bob", PaymentMode.CREDIT, terms)

        self.assertEqual(sale.status, CreditStatus.PENDING)
        self.assertEqual(await self.repo.fetch_credit_payments(sale.id), [])

    async def test_credit_after_lost_full_sale_reply_records_once(self):
        repo = LostReplyRepository([make_item(quantity=50)])
        self.repo = repo
        processor = self._processor(repo)
        self._fill_cart()

        with self.assertRaises(BackendError):
            await processor.checkout("Alice")

        terms = CreditTerms("0917", date(2024, 2, 1))
        sale = await processor.checkout("Alice", PaymentMode.CREDIT, terms)

        self.assertFalse(sale.is_credit)
        self.assertEqual(len(repo.sales), 1)
        self.assertEqual(repo.credit_sales, {})
        self.assertEqual(repo.items["item-1"].quantity, 48)

    async def test_credit_paid_at_displayed_total_settles(self):
        self._fill_cart()
        self.cart.add_length_line(self.repo.items["item-4"], "2.75", "3.5")

        with self.assertRaises(ValidationError):
            await self.processor.checkout(
                "Bob", PaymentMode.CREDIT, CreditTerms("0917", date(2024, 2, 1), Decimal("509.64"))
            )

        terms = CreditTerms("0917", date(2024, 2, 1), Decimal("509.63"))
        sale = await self.processor.checkout("Bob", PaymentMode.CREDIT, terms)

        self.assertEqual(sale.amount_paid, Decimal("509.625"))
        self.assertEqual(sale.remaining_amount, Decimal("0"))
        self.assertEqual(sale.status, CreditStatus.PAID)

    async def test_payment_of_rounded_balance_settles(self):
        self._fill_cart()
        self.cart.add_length_line(self.repo.items["item-4"], "2.75", "3.5")
        terms = CreditTerms("0917", date(2024, 2, 1), Decimal("500"))
        sale = await self.processor.checkout("Bob", PaymentMode.CREDIT, terms)
        self.assertEqual(sale.remaining_amount, Decimal("9.625"))

        with self.assertRaises(ValidationError):
            await self.repo.record_credit_payment(sale.id, Decimal("9.64"), "cash", "Admin")

        partial = await self.repo.record_credit_payment(sale.id, Decimal("9.62"), "cash", "Admin")
        self.assertEqual(partial.status, CreditStatus.PARTIALLY_PAID)

        settled = await self.repo.record_credit_payment(
            sale.id, Decimal(plain_money(partial.remaining_amount)), "cash", "Admin"
        )
        self.assertEqual(settled.amount_paid, sale.total)
        self.assertEqual(settled.status, CreditStatus.PAID)

    async def test_credit_terms_validation(self):
        self._fill_cart()
        bad_terms = [
            None,
            CreditTerms(" ", date(2024, 2, 1)),
            CreditTerms("0917", None),
            CreditTerms("0917", date(2024, 1, 19)),
            CreditTerms("0917", date(2024, 2, 1), Decimal("-1")),
            CreditTerms("0917", date(2024, 2, 1), Decimal("500.01")),
        ]
        for terms in bad_terms:
            with self.subTest(terms=terms):
                with self.assertRaises(ValidationError):
                    await self.processor.checkout("Bob", PaymentMode.CREDIT, terms)
        self.assertEqual(self.repo.credit_sales, {})
        self.assertEqual(len(self.cart), 1)

    async def test_backend_failure_keeps_cart_and_refreshes(self):
        self._fill_cart()
        checkout_id = self.processor.checkout_id
        self.repo.fail_next = BackendError("database is locked")

        with self.assertRaises(BackendError):
            await self.processor.checkout("Alice")

        self.assertEqual(len(self.cart), 1)
        self.assertEqual(self.refreshes, 1)
        self.assertEqual(self.processor.checkout_id, checkout_id)
        self.assertEqual(self.repo.items["item-1"].quantity, 50)

        self.cart.add_line(self.repo.items["item-1"], "250")
        self.assertNotEqual(self.processor.checkout_id, checkout_id)

    async def test_retry_after_lost_reply_records_once(self):
        repo = LostReplyRepository([make_item(quantity=50)])
        self.repo = repo
        processor = self._processor(repo)
        self._fill_cart()

        with self.assertRaises(BackendError):
            await processor.checkout("Alice")
        self.assertEqual(len(self.cart), 1)

        sale = await processor.checkout("Alice")

        self.assertEqual(len(repo.sales), 1)
        self.assertIn(sale.id, repo.sales)
        self.assertEqual(repo.items["item-1"].quantity, 48)
        self.assertFalse(self.cart)

    async def test_stale_stock_is_rejected_without_writes(self):
        self._fill_cart(3)
        # another terminal sold most of the stock
        self.repo.items["item-1"] = make_item(quantity=2)

        with self.assertRaises(InsufficientStockError):
            await self.processor.checkout("Alice")

        self.assertEqual(self.repo.sales, {})
        self.assertEqual(self.repo.items["item-1"].quantity, 2)
        self.assertEqual(self.refreshes, 1)
        self.assertEqual(self.cart.lines[0].item.quantity, 2)

    async def test_new_checkout_id_after_success(self):
        self._fill_cart()
        first_id = self.processor.checkout_id
        sale = await self.processor.checkout("Alice")
        self.assertEqual(sale.checkout_id, first_id)

        self._fill_cart(1)
        self.assertNotEqual(self.processor.checkout_id, first_id)


if __name__ == "__main__":
    unittest.main()
