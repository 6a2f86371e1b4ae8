# filtering, summaries and PDF export for the admin sales and credit screens
from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Iterable, List, Literal, Optional, Sequence

from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from solarpos.config import settings
from solarpos.core.models import (
    CreditSale,
    CreditStatus,
    InventoryItem,
    Quantity,
    Sale,
)
from solarpos.utils.formatting import format_quantity, money, round_money
from solarpos.utils.logger import get_logger

_logger = get_logger(__name__)

SortOrder = Literal["newest", "oldest", "highest", "lowest"]
REPORT_FILENAME = "sales-report.pdf"

# below these the dashboard lists an item as running low
LOW_QUANTITY = 3
LOW_LENGTH = Decimal("10")


@dataclass(frozen=True)
class SalesSummary:
    total_revenue: Decimal
    sale_count: int
    average_sale: Decimal
    units_sold: Quantity


@dataclass(frozen=True)
class CreditSummary:
    outstanding: Decimal
    total_paid: Decimal
    pending_count: int
    overdue_count: int


@dataclass(frozen=True)
class InventoryStats:
    total_units: int
    total_length: Decimal
    stock_value: Decimal
    low_stock_count: int


def _matches(sale: Sale, needle: str, fields: Iterable[str]) -> bool:
    if not needle:
        return True
    if any(needle in value.lower() for value in fields):
        return True
    return any(needle in line.name.lower() for line in sale.lines)


def _sort(sales: List[Sale], sort: SortOrder, amount) -> List[Sale]:
    if sort == "oldest":
        return sorted(sales, key=lambda s: s.sold_at)
    if sort == "highest":
        return sorted(sales, key=amount, reverse=True)
    if sort == "lowest":
        return sorted(sales, key=amount)
    return sorted(sales, key=lambda s: s.sold_at, reverse=True)


def filter_sales(
    sales: Iterable[Sale],
    search: str = "",
    seller: Optional[str] = None,
    sort: SortOrder = "newest",
) -> List[Sale]:
    """
    Case-insensitive search over receipt number, seller, customer and item
    names, optionally narrowed to one seller. highest/lowest sort by total.
    """
    needle = (search or "").strip().lower()
    matched = [
        sale
        for sale in sales
        if _matches(sale, needle, (sale.receipt_number, sale.sold_by, sale.customer_name))
        and (not seller or sale.sold_by == seller)
    ]
    return _sort(matched, sort, lambda s: s.total)


def sellers(sales: Iterable[Sale]) -> List[str]:
    return sorted({sale.sold_by for sale in sales})


def sales_summary(sales: Sequence[Sale]) -> SalesSummary:
    total = sum((sale.total for sale in sales), Decimal("0"))
    count = len(sales)
    return SalesSummary(
        total_revenue=total,
        sale_count=count,
        average_sale=total / count if count else Decimal("0"),
        units_sold=sum((sale.units for sale in sales), 0),
    )


def is_overdue(sale: CreditSale, today: Optional[date] = None) -> bool:
    today = today or date.today()
    return sale.status is not CreditStatus.PAID and sale.due_date < today


def filter_credit_sales(
    sales: Iterable[CreditSale],
    search: str = "",
    status: Optional[CreditStatus] = None,
    sort: SortOrder = "newest",
) -> List[CreditSale]:
    """Like filter_sales, but filtered by status and ranked by remaining amount."""
    needle = (search or "").strip().lower()
    matched = [
        sale
        for sale in sales
        if _matches(sale, needle, (sale.receipt_number, sale.customer_name, sale.customer_phone))
        and (status is None or sale.status is status)
    ]
    return _sort(matched, sort, lambda s: s.remaining_amount)


def credit_summary(
    sales: Sequence[CreditSale], today: Optional[date] = None
) -> CreditSummary:
    return CreditSummary(
        outstanding=sum((s.remaining_amount for s in sales), Decimal("0")),
        total_paid=sum((s.amount_paid for s in sales), Decimal("0")),
        pending_count=sum(1 for s in sales if s.status is not CreditStatus.PAID),
        overdue_count=sum(1 for s in sales if is_overdue(s, today)),
    )


def is_low_stock(item: InventoryItem) -> bool:
    if item.is_length:
        return item.stock < LOW_LENGTH
    return item.stock < LOW_QUANTITY


def low_stock_items(items: Iterable[InventoryItem]) -> List[InventoryItem]:
    return sorted((i for i in items if is_low_stock(i)), key=lambda i: i.stock)


def inventory_stats(items: Sequence[InventoryItem]) -> InventoryStats:
    """Totals for the dashboard and admin inventory headers; value is at min price."""
    return InventoryStats(
        total_units=sum(i.quantity for i in items if not i.is_length),
        total_length=sum((i.stock for i in items if i.is_length), Decimal("0")),
        stock_value=sum((i.min_price * i.stock for i in items), Decimal("0")),
        low_stock_count=sum(1 for i in items if i.stock < settings.low_stock_threshold),
    )


def write_sales_report_pdf(
    path: Optional[Path],
    sales: Sequence[Sale],
    summary: Optional[SalesSummary] = None,
    generated_on: Optional[datetime] = None,
) -> Path:
    """
    Render a sales report with reportlab: title, generation date, a summary
    block and one row per sale. Writes to <export_dir>/sales-report.pdf when
    path is None.
    """
    if path is None:
        os.makedirs(settings.export_dir, exist_ok=True)
        path = settings.export_path / REPORT_FILENAME
    path = Path(path)
    summary = summary or sales_summary(sales)
    generated_on = generated_on or datetime.now()

    c = canvas.Canvas(str(path), pagesize=A4)
    w, h = A4

    y = h - 50
    c.setFont("Helvetica-Bold", 16)
    c.drawString(40, y, f"{settings.store_name} - Sales Report")
    y -= 20

    c.setFont("Helvetica", 10)
    c.drawString(40, y, f"Generated on: {generated_on:%Y-%m-%d %H:%M}")
    y -= 24

    c.setFont("Helvetica-Bold", 12)
    c.drawString(40, y, "Summary")
    y -= 16
    c.setFont("Helvetica", 10)
    c.drawString(40, y, f"Total Revenue: {money(summary.total_revenue)}")
    y -= 14
    c.drawString(40, y, f"Total Sales: {summary.sale_count}")
    y -= 14
    c.drawString(40, y, f"Average Sale: {money(summary.average_sale)}")
    y -= 14
    c.drawString(40, y, f"Units Sold: {format_quantity(summary.units_sold)}")
    y -= 24

    def header(y: float) -> float:
        c.setFont("Helvetica-Bold", 9)
        c.drawString(40, y, "Receipt")
        c.drawRightString(200, y, "Items")
        c.drawRightString(270, y, "Total")
        c.drawString(280, y, "Customer")
        c.drawString(380, y, "Seller")
        c.drawString(450, y, "Date")
        c.drawString(515, y, "Status")
        y -= 8
        c.line(40, y, 555, y)
        c.setFont("Helvetica", 9)
        return y - 14

    y = header(y)
    for sale in sales:
        c.drawString(40, y, sale.receipt_number[:24])
        c.drawRightString(200, y, format_quantity(sale.units))
        c.drawRightString(270, y, f"{round_money(sale.total):,.2f}")
        c.drawString(280, y, sale.customer_name[:18])
        c.drawString(380, y, sale.sold_by[:12])
        c.drawString(450, y, f"{sale.sold_at:%Y-%m-%d}")
        c.drawString(515, y, "Credit" if sale.is_credit else "Paid")
        y -= 14
        if y < 60:
            c.showPage()
            y = header(h - 50)

    c.save()
    _logger.info(f"Sales report with {len(sales)} sales written to {path}")
    return path
