from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import List, Literal, Optional

from solarpos.config import settings
from solarpos.errors import ValidationError

CENT = Decimal("0.01")


def to_decimal(value, name: str = "value") -> Decimal:
    """Parse user input (str, int, float, Decimal) into a Decimal."""
    if isinstance(value, Decimal):
        return value
    try:
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError(f"{name} must be a number.") from exc
    if not result.is_finite():
        raise ValidationError(f"{name} must be a number.")
    return result


def round_money(value) -> Decimal:
    """Round half up to cents; 509.625 -> 509.63."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def money(value) -> str:
    return f"{settings.currency_symbol}{round_money(value):,.2f}"


def plain_money(value) -> str:
    return f"{round_money(value):.2f}"


def format_quantity(quantity) -> str:
    """Integers stay integers; lengths keep up to two decimals."""
    if isinstance(quantity, int):
        return str(quantity)
    q = Decimal(quantity)
    if q == q.to_integral_value():
        return str(int(q))
    return f"{q.quantize(CENT, rounding=ROUND_HALF_UP).normalize():f}"


def generate_markdown_table(
    headers: Optional[List[str]],
    rows: List[List[object]],
    aligns: Optional[List[Literal["l", "c", "r"]]] = None,
) -> str:
    """
    Build a Markdown table for MarkdownViewer widgets.

    Args:
        headers: column headers, or None to use the first row.
        rows: table rows; cells are converted with str().
        aligns: 'l', 'c' or 'r' per column, default centered.
    """
    if not rows:
        return ""

    if not headers:
        headers, rows = rows[0], rows[1:]

    headers = [str(h) for h in headers]
    # pipes inside cells would split columns
    rows = [[str(cell).replace("|", "\\|") for cell in row] for row in rows]

    if aligns is None:
        aligns = ["c"] * len(headers)
    elif len(aligns) != len(headers):
        raise ValueError("Length of aligns must match number of headers.")

    align_map = {"l": ":---", "c": ":---:", "r": "---:"}
    lines = [
        "| " + " | ".join(headers) + " |",
        "| " + " | ".join(align_map[a] for a in aligns) + " |",
    ]
    lines.extend("| " + " | ".join(row) + " |" for row in rows)
    return "\n".join(lines)
