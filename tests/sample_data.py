# shared builders for the test modules
from datetime import datetime
from decimal import Decimal

from solarpos.core.models import CreditSale, InventoryItem, MeasureType, Sale, SaleLine

CREATED = datetime(2024, 1, 15, 10, 0)


def make_item(
    item_id="item-1",
    name="Solar Panel 300W",
    min_price="250.00",
    max_price="300.00",
    quantity=50,
    category="Solar Panels",
    brand="SunPower",
    model="SP-300M",
) -> InventoryItem:
    return InventoryItem(
        id=item_id,
        name=name,
        category=category,
        brand=brand,
        model=model,
        min_price=Decimal(min_price),
        max_price=Decimal(max_price),
        cost=Decimal("0"),
        quantity=quantity,
        length=None,
        measure_type=MeasureType.STANDARD,
        description="",
        created_at=CREATED,
        updated_at=CREATED,
    )


def make_wire(item_id="item-4", length="500.00", min_price="2.50", max_price="3.00") -> InventoryItem:
    return InventoryItem(
        id=item_id,
        name="Wire 2.5mm",
        category="Wire",
        brand="ElectroCable",
        model="THHN-2.5",
        min_price=Decimal(min_price),
        max_price=Decimal(max_price),
        cost=Decimal("0"),
        quantity=0,
        length=Decimal(length),
        measure_type=MeasureType.LENGTH,
        description="",
        created_at=CREATED,
        updated_at=CREATED,
    )


def make_sale(
    receipt_number="JSS-20240120-000001",
    total="509.625",
    customer="Alice",
    seller="Cashier",
    sold_at=datetime(2024, 1, 20, 10, 30, 5),
    lines=None,
    **credit,
):
    """A Sale, or a CreditSale when credit fields (customer_phone, ...) are given."""
    if lines is None:
        lines = (
            SaleLine("item-1", "Solar Panel 300W", "SunPower", "SP-300M", "Solar Panels",
                     MeasureType.STANDARD, 2, Decimal("250")),
            SaleLine("item-4", "Wire 2.5mm", "ElectroCable", "THHN-2.5", "Wire",
                     MeasureType.LENGTH, Decimal("3.5"), Decimal("2.75")),
        )
    fields = dict(
        id=f"sale-{receipt_number}",
        receipt_number=receipt_number,
        customer_name=customer,
        sold_by=seller,
        sold_at=sold_at,
        total=Decimal(total),
        lines=tuple(lines),
        checkout_id=f"chk-{receipt_number}",
    )
    if credit:
        return CreditSale(**fields, **credit)
    return Sale(**fields)
