from decimal import Decimal
from typing import Any, Optional


def to_decimal(value: Any) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def effective_unit_price(price: Any, sale_price: Optional[Any]) -> Decimal:
    """Sale price when it is positive and below the list price, else list price."""

    list_price = to_decimal(price)
    if sale_price is None:
        return list_price
    sale = to_decimal(sale_price)
    if Decimal("0") < sale < list_price:
        return sale
    return list_price


def money(value: Any) -> float:
    return float(to_decimal(value))
