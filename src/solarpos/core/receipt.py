from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Union

from solarpos.config import settings
from solarpos.core.models import CreditSale, MeasureType, Sale
from solarpos.utils.formatting import format_quantity, money
from solarpos.utils.logger import get_logger

_logger = get_logger(__name__)

WIDTH = 37
RULE = "=" * WIDTH
THIN_RULE = "-" * WIDTH

FOOTER = [
    "Thank you for your business!",
    "Visit us at jokersolar.com",
    "All sales are final",
]


def render_receipt(sale: Union[Sale, CreditSale]) -> str:
    """
    Plain-text receipt. The receipt dialog shows this string and the
    download button writes it unchanged.
    """
    lines: List[str] = [
        RULE,
        settings.store_name.center(WIDTH).rstrip(),
        settings.store_tagline.center(WIDTH).rstrip(),
        "Solar Energy Equipment".center(WIDTH).rstrip(),
        RULE,
        "",
        f"Receipt #: {sale.receipt_number}",
        f"Date: {sale.sold_at:%Y-%m-%d %H:%M:%S}",
        f"Customer: {sale.customer_name}",
        f"Sold by: {sale.sold_by}",
        "",
        THIN_RULE,
        "ITEMS",
        THIN_RULE,
    ]

    for line in sale.lines:
        qty = format_quantity(line.quantity)
        if line.measure_type is MeasureType.LENGTH:
            qty += " m"
        lines.append(line.name)
        lines.append(f"{line.brand} {line.model}".strip())
        lines.append(f"{qty} × {money(line.unit_price)} = {money(line.subtotal)}")
        lines.append("")

    lines.append(THIN_RULE)
    lines.append(f"TOTAL: {money(sale.total)}")

    if isinstance(sale, CreditSale):
        lines.append(THIN_RULE)
        lines.append("CREDIT SALE")
        lines.append(f"Phone: {sale.customer_phone}")
        lines.append(f"Paid: {money(sale.amount_paid)}")
        lines.append(f"Remaining: {money(sale.remaining_amount)}")
        lines.append(f"Due date: {sale.due_date:%Y-%m-%d}")
        lines.append(f"Status: {sale.status.value.replace('_', ' ').title()}")

    lines.append(RULE)
    lines.append("")
    lines.extend(FOOTER)
    return "\n".join(lines)


def receipt_filename(sale: Sale) -> str:
    return f"receipt-{sale.receipt_number}.txt"


def export_receipt(sale: Sale, export_dir: Optional[Path] = None) -> Path:
    """Write the rendered receipt to the export directory and return its path."""
    export_dir = Path(export_dir) if export_dir is not None else settings.export_path
    export_dir.mkdir(parents=True, exist_ok=True)
    path = export_dir / receipt_filename(sale)
    path.write_text(render_receipt(sale), encoding="utf-8")
    _logger.info(f"Receipt {sale.receipt_number} written to {path}")
    return path
