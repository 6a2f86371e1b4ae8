import tempfile
import unittest
from datetime import date
from decimal import Decimal
from pathlib import Path

from sample_data import make_sale
from solarpos.config import settings
from solarpos.core.receipt import export_receipt, receipt_filename, render_receipt


class ReceiptTestCase(unittest.TestCase):
    def test_render_full_sale(self):
        text = render_receipt(make_sale())
        lines = text.splitlines()

        self.assertIn(settings.store_name, lines[1])
        self.assertIn("Receipt #: JSS-20240120-000001", lines)
        self.assertIn("Date: 2024-01-20 10:30:05", lines)
        self.assertIn("Customer: Alice", lines)
        self.assertIn("Sold by: Cashier", lines)
        self.assertIn("SunPower SP-300M", lines)
        self.assertIn("2 × $250.00 = $500.00", lines)
        self.assertIn("3.5 m × $2.75 = $9.63", lines)
        self.assertIn("TOTAL: $509.63", lines)
        self.assertNotIn("CREDIT SALE", lines)
        self.assertEqual(lines[-1], "All sales are final")

    def test_render_credit_sale(self):
        sale = make_sale(
            total="1000",
            customer_phone="0917 555 0101",
            amount_paid=Decimal("300"),
            due_date=date(2024, 2, 20),
        )
        lines = render_receipt(sale).splitlines()

        self.assertIn("CREDIT SALE", lines)
        self.assertIn("Phone: 0917 555 0101", lines)
        self.assertIn("Paid: $300.00", lines)
        self.assertIn("Remaining: $700.00", lines)
        self.assertIn("Due date: 2024-02-20", lines)
        self.assertIn("Status: Partially Paid", lines)

    def test_export_writes_rendered_text(self):
        sale = make_sale()
        with tempfile.TemporaryDirectory() as tmp:
            path = export_receipt(sale, Path(tmp) / "receipts")

            self.assertEqual(path.name, "receipt-JSS-20240120-000001.txt")
            self.assertEqual(path.name, receipt_filename(sale))
            self.assertEqual(path.read_text(encoding="utf-8"), render_receipt(sale))


if __name__ == "__main__":
    unittest.main()
