"""Shared utilities used across the scheduling core."""

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union


def quantize(value: Union[Decimal, int, str], places: int) -> Decimal:
    """Round ``value`` half-up to ``places`` decimal places.

    Examples:
        >>> quantize(Decimal("2.345"), 2)
        Decimal('2.35')
        >>> quantize(Decimal("4.25"), 1)
        Decimal('4.3')
    """
    return Decimal(value).quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def clean_text(value: Optional[str]) -> Optional[str]:
    """Strip surrounding whitespace, turning blank strings into None.

    Examples:
        >>> clean_text("  Room 4  ")
        'Room 4'
        >>> clean_text("   ") is None
        True
    """
    if value is None:
        return None
    value = value.strip()
    return value or None
