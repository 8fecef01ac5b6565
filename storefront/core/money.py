"""
Money helpers

All amounts are in the store currency (UYU). Prices are kept as Decimal
quantized to cents; display drops the decimals for whole amounts.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Union

CENT = Decimal("0.01")

Amount = Union[Decimal, int, float, str]


def to_money(value: Amount) -> Decimal:
    """Coerce a backend number into a cent-quantized Decimal"""
    if isinstance(value, float):
        # str() avoids binary float artifacts such as 0.1 + 0.2
        value = str(value)
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def money_equal(a: Amount, b: Amount) -> bool:
    return to_money(a) == to_money(b)


def format_uyu(amount: Amount) -> str:
    """
    Format an amount the way es-UY renders UYU.

    >>> format_uyu(1234)
    '$ 1.234'
    >>> format_uyu("1234.5")
    '$ 1.234,5'
    """
    value = to_money(amount)
    sign = "-" if value < 0 else ""
    value = abs(value)

    whole, cents = divmod(value, 1)
    grouped = f"{int(whole):,}".replace(",", ".")

    if cents == 0:
        return f"{sign}$ {grouped}"

    fraction = f"{cents:.2f}"[2:].rstrip("0")
    return f"{sign}$ {grouped},{fraction}"
