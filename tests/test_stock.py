import dataclasses
import unittest
from decimal import Decimal
from unittest import mock

from sample_data import make_item, make_wire
from solarpos.config import settings
from solarpos.core.cart import Cart
from solarpos.core.stock import (
    available_for,
    filter_inventory,
    format_stock,
    reserved_quantity,
    stock_status,
)


class StockTestCase(unittest.TestCase):
    def test_available_for_empty_cart_is_full_stock(self):
        self.assertEqual(available_for(make_item(quantity=7), Cart()), 7)
        self.assertEqual(available_for(make_wire(length="12.5"), Cart()), Decimal("12.5"))

    def test_reserved_quantity_sums_lines_of_same_item(self):
        wire = make_wire(length="100")
        cart = Cart()
        first = cart.add_length_line(wire, "2.50", "10")
        cart.add_length_line(wire, "2.50", "15.5")
        cart.add_line(make_item(), "250")

        self.assertEqual(reserved_quantity(wire.id, cart.lines), Decimal("25.5"))
        self.assertEqual(
            reserved_quantity(wire.id, cart.lines, exclude_line_id=first.line_id),
            Decimal("15.5"),
        )
        self.assertEqual(available_for(wire, cart), Decimal("74.5"))
        self.assertEqual(
            available_for(wire, cart, exclude_line_id=first.line_id), Decimal("84.5")
        )

    def test_stock_status(self):
        self.assertEqual(stock_status(make_item(quantity=0)), "out")
        self.assertEqual(stock_status(make_item(quantity=9)), "low")
        self.assertEqual(stock_status(make_item(quantity=10)), "in")
        self.assertEqual(stock_status(make_wire(length="0")), "out")
        self.assertEqual(stock_status(make_item(quantity=4), low_threshold=3), "in")

    def test_stock_status_uses_configured_threshold(self):
        with mock.patch(
            "solarpos.core.stock.settings",
            dataclasses.replace(settings, low_stock_threshold=3),
        ):
            self.assertEqual(stock_status(make_item(quantity=4)), "in")
            self.assertEqual(stock_status(make_item(quantity=2)), "low")
            self.assertEqual(stock_status(make_wire(length="2.5")), "low")

    def test_format_stock(self):
        self.assertEqual(format_stock(make_item(quantity=12)), "12")
        self.assertEqual(format_stock(make_wire(length="500")), "500.00 m")

    def test_filter_inventory(self):
        items = [
            make_item(),
            make_item("item-2", "Battery Storage 100Ah", category="Batteries", brand="Tesla"),
            make_wire(),
        ]
        self.assertEqual([i.id for i in filter_inventory(items, "tesla")], ["item-2"])
        self.assertEqual([i.id for i in filter_inventory(items, "  WIRE ")], ["item-4"])
        self.assertEqual(
            [i.id for i in filter_inventory(items, category="Solar Panels")], ["item-1"]
        )
        self.assertEqual(len(filter_inventory(items)), 3)
        self.assertEqual(filter_inventory(items, "panel", category="Batteries"), [])


if __name__ == "__main__":
    unittest.main()
