import unittest
from decimal import Decimal

from sample_data import make_item, make_wire
from solarpos.core.cart import Cart
from solarpos.errors import InsufficientStockError, ValidationError
from solarpos.utils.formatting import money


class CartTestCase(unittest.TestCase):
    def setUp(self):
        self.cart = Cart()
        self.panel = make_item(quantity=2)
        self.wire = make_wire(length="10")

    def test_add_line_merges_standard_item(self):
        first = self.cart.add_line(self.panel, "250")
        merged = self.cart.add_line(self.panel, "260")

        self.assertEqual(len(self.cart), 1)
        self.assertEqual(merged.line_id, first.line_id)
        self.assertEqual(merged.quantity, 2)
        # the price chosen on the first add is kept
        self.assertEqual(merged.selected_price, Decimal("250"))

    def test_add_line_rejects_beyond_stock(self):
        self.cart.add_line(self.panel, "250")
        self.cart.add_line(self.panel, "250")
        revision = self.cart.revision

        with self.assertRaises(InsufficientStockError) as ctx:
            self.cart.add_line(self.panel, "250")
        self.assertEqual(ctx.exception.available, Decimal("0"))
        self.assertIn("only 0 units of Solar Panel 300W", str(ctx.exception))
        self.assertEqual(self.cart.lines[0].quantity, 2)
        self.assertEqual(self.cart.revision, revision)

    def test_add_line_rejects_out_of_stock(self):
        with self.assertRaises(InsufficientStockError):
            self.cart.add_line(make_item(quantity=0), "250")
        self.assertFalse(self.cart)

    def test_price_outside_range_rejected(self):
        with self.assertRaises(ValidationError):
            self.cart.add_line(self.panel, "249.99")
        with self.assertRaises(ValidationError):
            self.cart.add_line(self.panel, "300.01")
        with self.assertRaises(ValidationError):
            self.cart.add_line(self.panel, "abc")
        self.assertFalse(self.cart)

        line = self.cart.add_line(self.panel, "300")
        self.assertEqual(line.selected_price, Decimal("300"))

    def test_length_item_needs_length_line(self):
        with self.assertRaises(ValidationError):
            self.cart.add_line(self.wire, "2.50")
        with self.assertRaises(ValidationError):
            self.cart.add_length_line(self.panel, "250", "1")

    def test_length_lines_share_one_pool(self):
        first = self.cart.add_length_line(self.wire, "2.50", "6")

        with self.assertRaises(InsufficientStockError) as ctx:
            self.cart.add_length_line(self.wire, "2.50", "5")
        self.assertEqual(ctx.exception.available, Decimal("4"))
        self.assertIn("only 4 m of", str(ctx.exception))
        self.assertEqual(len(self.cart), 1)

        second = self.cart.add_length_line(self.wire, "2.75", "4")
        self.assertNotEqual(first.line_id, second.line_id)
        self.assertEqual(len(self.cart), 2)
        self.assertEqual(self.cart.item_count(), Decimal("10"))

    def test_rejection_reports_cut_length_left(self):
        self.cart.add_length_line(self.wire, "2.50", "7.75")

        with self.assertRaises(InsufficientStockError) as ctx:
            self.cart.add_length_line(self.wire, "2.50", "3")
        self.assertEqual(ctx.exception.available, Decimal("2.25"))
        self.assertIn("only 2.25 m of", str(ctx.exception))

    def test_length_must_be_positive(self):
        for length in ("0", "-1", "x"):
            with self.assertRaises(ValidationError):
                self.cart.add_length_line(self.wire, "2.50", length)
        self.assertFalse(self.cart)

    def test_update_quantity_excludes_own_line(self):
        first = self.cart.add_length_line(self.wire, "2.50", "6")
        self.cart.add_length_line(self.wire, "2.50", "4")

        updated = self.cart.update_quantity(first.line_id, "6")
        self.assertEqual(updated.quantity, Decimal("6"))

        with self.assertRaises(InsufficientStockError):
            self.cart.update_quantity(first.line_id, "7")
        self.assertEqual(self.cart.get_line(first.line_id).quantity, Decimal("6"))

        shrunk = self.cart.update_quantity(first.line_id, "2.5")
        self.assertEqual(shrunk.quantity, Decimal("2.5"))

    def test_update_quantity_standard(self):
        line = self.cart.add_line(make_item(quantity=5), "250")

        self.assertEqual(self.cart.update_quantity(line.line_id, "5").quantity, 5)
        with self.assertRaises(InsufficientStockError):
            self.cart.update_quantity(line.line_id, 6)
        with self.assertRaises(ValidationError):
            self.cart.update_quantity(line.line_id, "1.5")
        with self.assertRaises(ValidationError):
            self.cart.update_quantity(line.line_id, 0)
        with self.assertRaises(ValidationError):
            self.cart.update_quantity(99, 1)
        self.assertEqual(self.cart.get_line(line.line_id).quantity, 5)

    def test_remove_and_clear_bump_revision(self):
        line = self.cart.add_line(self.panel, "250")
        self.cart.add_length_line(self.wire, "2.50", "1")
        revision = self.cart.revision

        self.cart.remove_line(line.line_id)
        self.assertEqual(len(self.cart), 1)
        self.assertGreater(self.cart.revision, revision)

        revision = self.cart.revision
        self.cart.clear()
        self.assertFalse(self.cart)
        self.assertGreater(self.cart.revision, revision)

    def test_total_is_exact_and_rounds_half_up_for_display(self):
        panel = make_item(quantity=10)
        self.cart.add_line(panel, "250")
        self.cart.add_line(panel, "250")
        self.cart.add_length_line(self.wire, "2.75", "3.5")

        self.assertEqual(self.cart.total(), Decimal("509.625"))
        self.assertEqual(money(self.cart.total()), "$509.63")

    def test_sync_items_updates_snapshots(self):
        line = self.cart.add_line(self.panel, "250")
        revision = self.cart.revision

        fresh = make_item(quantity=1)
        self.cart.sync_items([fresh])
        self.assertEqual(self.cart.get_line(line.line_id).item.quantity, 1)
        self.assertEqual(self.cart.revision, revision)
        with self.assertRaises(InsufficientStockError):
            self.cart.add_line(fresh, "250")


if __name__ == "__main__":
    unittest.main()
