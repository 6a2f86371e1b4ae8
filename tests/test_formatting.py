import unittest
from decimal import Decimal

from solarpos.errors import ValidationError
from solarpos.utils.formatting import (
    format_quantity,
    generate_markdown_table,
    money,
    plain_money,
    round_money,
    to_decimal,
)


class FormattingTestCase(unittest.TestCase):
    def test_round_money_half_up(self):
        self.assertEqual(round_money(Decimal("509.625")), Decimal("509.63"))
        self.assertEqual(round_money(Decimal("0.005")), Decimal("0.01"))
        self.assertEqual(round_money(Decimal("2.344")), Decimal("2.34"))

    def test_money(self):
        self.assertEqual(money(Decimal("1234.5")), "$1,234.50")
        self.assertEqual(plain_money(Decimal("1234.5")), "1234.50")

    def test_format_quantity(self):
        self.assertEqual(format_quantity(3), "3")
        self.assertEqual(format_quantity(Decimal("4.00")), "4")
        self.assertEqual(format_quantity(Decimal("2.5")), "2.5")
        self.assertEqual(format_quantity(Decimal("1.255")), "1.26")

    def test_to_decimal(self):
        self.assertEqual(to_decimal(" 2.75 "), Decimal("2.75"))
        self.assertEqual(to_decimal(3), Decimal("3"))
        for bad in ("", "abc", "nan", "inf", None):
            with self.assertRaises(ValidationError):
                to_decimal(bad, "Price")

    def test_markdown_table(self):
        md = generate_markdown_table(["Name", "Qty"], [["Wire | 2.5mm", 3]], ["l", "r"])
        self.assertEqual(
            md.splitlines(),
            ["| Name | Qty |", "| :--- | ---: |", "| Wire \\| 2.5mm | 3 |"],
        )
        self.assertEqual(generate_markdown_table(["A"], []), "")
        with self.assertRaises(ValueError):
            generate_markdown_table(["A", "B"], [[1, 2]], ["l"])


if __name__ == "__main__":
    unittest.main()
