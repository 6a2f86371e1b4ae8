import unittest

from sample_data import make_item
from solarpos.db.memory import InMemoryRepository
from solarpos.errors import AuthError, ValidationError
from solarpos.utils.state import AppState


class AppStateTestCase(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.repo = InMemoryRepository([make_item(quantity=5)])
        self.admin = await self.repo.create_user("Admin", "admin@example.com", "admin", "admin")
        self.cashier = await self.repo.create_user("Cashier", "cashier@example.com", "secret")
        self.state = AppState(self.repo)

    async def test_login_and_logout(self):
        user = await self.state.login(" cashier@example.com ", "secret")
        self.assertEqual(user.id, self.cashier.id)
        self.assertEqual(self.state.user, user)
        self.assertFalse(self.state.is_admin)

        await self.state.refresh_inventory()
        self.state.cart.add_line(self.state.inventory[0], "250")

        self.state.logout()
        self.assertIsNone(self.state.user)
        self.assertFalse(self.state.cart)
        self.assertEqual(self.state.inventory, [])

    async def test_bad_credentials(self):
        with self.assertRaises(AuthError):
            await self.state.login("cashier@example.com", "wrong")
        with self.assertRaises(AuthError):
            await self.state.login("nobody@example.com", "secret")
        with self.assertRaises(ValidationError):
            await self.state.login("", "secret")
        self.assertIsNone(self.state.user)

    async def test_admin_flag(self):
        await self.state.login("admin@example.com", "admin")
        self.assertTrue(self.state.is_admin)

    async def test_refresh_inventory_updates_cart_lines(self):
        await self.state.login("cashier@example.com", "secret")
        await self.state.refresh_inventory()
        line = self.state.cart.add_line(self.state.inventory[0], "250")

        await self.repo.adjust_stock("item-1", -3)
        await self.state.refresh_inventory()

        self.assertEqual(self.state.cart.get_line(line.line_id).item.quantity, 2)

    async def test_checkout_processor_is_per_session(self):
        with self.assertRaises(AuthError):
            self.state.checkout_processor()

        await self.state.login("cashier@example.com", "secret")
        processor = self.state.checkout_processor()
        self.assertIs(self.state.checkout_processor(), processor)

        await self.state.refresh_inventory()
        self.state.cart.add_line(self.state.inventory[0], "250")
        sale = await processor.checkout("Alice")
        self.assertEqual(sale.sold_by, "Cashier")
        self.assertEqual(self.repo.items["item-1"].quantity, 4)
        self.assertEqual(self.state.inventory[0].quantity, 4)

        self.state.logout()
        await self.state.login("admin@example.com", "admin")
        self.assertIsNot(self.state.checkout_processor(), processor)

    async def test_cannot_delete_own_account(self):
        await self.state.login("admin@example.com", "admin")
        with self.assertRaises(ValidationError):
            await self.state.delete_user(self.admin.id)

        await self.state.delete_user(self.cashier.id)
        self.assertNotIn(self.cashier.id, self.repo.users)


if __name__ == "__main__":
    unittest.main()
