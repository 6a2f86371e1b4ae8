import tempfile
import unittest
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path

from sample_data import make_item, make_sale, make_wire
from solarpos.core.models import CreditStatus, MeasureType, SaleLine
from solarpos.core.reports import (
    credit_summary,
    filter_credit_sales,
    filter_sales,
    inventory_stats,
    is_low_stock,
    is_overdue,
    low_stock_items,
    sales_summary,
    sellers,
    write_sales_report_pdf,
)

BATTERY = SaleLine(
    "item-2", "Battery Storage 100Ah", "Tesla", "PW-100", "Batteries",
    MeasureType.STANDARD, 1, Decimal("800"),
)


def credit(receipt, total, paid, due, customer="Bob", phone="0917", sold_at=None):
    return make_sale(
        receipt,
        total=total,
        customer=customer,
        sold_at=sold_at or datetime(2024, 1, 10, 9, 0),
        customer_phone=phone,
        amount_paid=Decimal(paid),
        due_date=due,
    )


class SalesReportTestCase(unittest.TestCase):
    def setUp(self):
        self.sales = [
            make_sale("JSS-20240110-000001", total="509.625", sold_at=datetime(2024, 1, 10)),
            make_sale(
                "JSS-20240111-000002",
                total="800",
                customer="Carol",
                seller="Admin",
                sold_at=datetime(2024, 1, 11),
                lines=[BATTERY],
            ),
            make_sale("JSS-20240112-000003", total="100", sold_at=datetime(2024, 1, 12)),
        ]

    def test_filter_sales_search(self):
        self.assertEqual(len(filter_sales(self.sales, "battery")), 1)
        self.assertEqual(len(filter_sales(self.sales, "CAROL")), 1)
        self.assertEqual(len(filter_sales(self.sales, "000003")), 1)
        self.assertEqual(len(filter_sales(self.sales, "panel")), 2)
        self.assertEqual(filter_sales(self.sales, "nothing"), [])

    def test_filter_sales_seller_and_sort(self):
        by_seller = filter_sales(self.sales, seller="Cashier")
        self.assertEqual(len(by_seller), 2)

        newest = filter_sales(self.sales)
        self.assertEqual(newest[0].receipt_number, "JSS-20240112-000003")
        oldest = filter_sales(self.sales, sort="oldest")
        self.assertEqual(oldest[0].receipt_number, "JSS-20240110-000001")
        highest = filter_sales(self.sales, sort="highest")
        self.assertEqual([s.total for s in highest], [Decimal("800"), Decimal("509.625"), Decimal("100")])
        lowest = filter_sales(self.sales, sort="lowest")
        self.assertEqual(lowest[0].total, Decimal("100"))

    def test_sellers(self):
        self.assertEqual(sellers(self.sales), ["Admin", "Cashier"])

    def test_sales_summary(self):
        summary = sales_summary(self.sales)
        self.assertEqual(summary.sale_count, 3)
        self.assertEqual(summary.total_revenue, Decimal("1409.625"))
        self.assertEqual(summary.average_sale, Decimal("469.875"))
        self.assertEqual(summary.units_sold, Decimal("12"))

        empty = sales_summary([])
        self.assertEqual(empty.sale_count, 0)
        self.assertEqual(empty.average_sale, Decimal("0"))

    def test_pdf_report(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = write_sales_report_pdf(
                Path(tmp) / "report.pdf", self.sales * 30, generated_on=datetime(2024, 1, 20)
            )
            self.assertTrue(path.read_bytes().startswith(b"%PDF"))


class CreditReportTestCase(unittest.TestCase):
    today = date(2024, 2, 1)

    def setUp(self):
        self.sales = [
            credit("JSS-1", "1000", "300", date(2024, 1, 31), sold_at=datetime(2024, 1, 1)),
            credit("JSS-2", "500", "0", date(2024, 2, 15), customer="Dan", phone="0999"),
            credit("JSS-3", "200", "200", date(2024, 1, 15)),
        ]

    def test_is_overdue(self):
        late, on_time, paid = self.sales
        self.assertTrue(is_overdue(late, self.today))
        self.assertFalse(is_overdue(on_time, self.today))
        # paid sales are never overdue
        self.assertFalse(is_overdue(paid, self.today))
        self.assertFalse(is_overdue(late, date(2024, 1, 31)))

    def test_filter_credit_sales(self):
        pending = filter_credit_sales(self.sales, status=CreditStatus.PENDING)
        self.assertEqual([s.receipt_number for s in pending], ["JSS-2"])
        self.assertEqual(len(filter_credit_sales(self.sales, "0999")), 1)
        self.assertEqual(len(filter_credit_sales(self.sales, "dan")), 1)

        highest = filter_credit_sales(self.sales, sort="highest")
        self.assertEqual(
            [s.remaining_amount for s in highest],
            [Decimal("700"), Decimal("500"), Decimal("0")],
        )

    def test_credit_summary(self):
        summary = credit_summary(self.sales, self.today)
        self.assertEqual(summary.outstanding, Decimal("1200"))
        self.assertEqual(summary.total_paid, Decimal("500"))
        self.assertEqual(summary.pending_count, 2)
        self.assertEqual(summary.overdue_count, 1)


class InventoryReportTestCase(unittest.TestCase):
    def test_low_stock(self):
        self.assertTrue(is_low_stock(make_item(quantity=2)))
        self.assertFalse(is_low_stock(make_item(quantity=3)))
        self.assertTrue(is_low_stock(make_wire(length="9.99")))
        self.assertFalse(is_low_stock(make_wire(length="10")))

        items = [make_item("a", quantity=2), make_item("b", quantity=0), make_item("c", quantity=40)]
        self.assertEqual([i.id for i in low_stock_items(items)], ["b", "a"])

    def test_inventory_stats(self):
        stats = inventory_stats(
            [make_item(quantity=4), make_item("item-2", quantity=20), make_wire(length="500")]
        )
        self.assertEqual(stats.total_units, 24)
        self.assertEqual(stats.total_length, Decimal("500"))
        self.assertEqual(stats.stock_value, Decimal("7250"))
        self.assertEqual(stats.low_stock_count, 1)


if __name__ == "__main__":
    unittest.main()
