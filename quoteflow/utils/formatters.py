"""
Formatting helpers for emails and PDF output.
Numbers, money and dates in French/Belgian style.
"""
from decimal import Decimal, InvalidOperation
from datetime import date, datetime
from typing import Union, Optional


def truncate(value: Optional[str], max_length: int) -> Optional[str]:
    """
    Silently clamp a string to max_length characters.

    Examples:
        truncate("a" * 600, 255) -> "aaa..." (255 chars)
        truncate(None, 255) -> None
    """
    if value is None:
        return None
    value = str(value)
    if len(value) <= max_length:
        return value
    return value[:max_length]


def num_fr(value: Union[int, float, Decimal, str, None], decimals: int = 2) -> str:
    """
    Format a number in French style:
    - Thousands separator: narrow space
    - Decimal separator: comma (,)

    Examples:
        num_fr(1500) -> "1 500,00"
        num_fr(1500.5) -> "1 500,50"
        num_fr(None) -> "-"
    """
    if value is None or value == "":
        return "-"

    try:
        num = Decimal(str(value).replace(",", ".")).quantize(Decimal(10) ** -decimals)
    except (InvalidOperation, ValueError, TypeError):
        return "-"

    sign = "-" if num < 0 else ""
    num = abs(num)

    text = f"{num:.{decimals}f}"
    if "." in text:
        integer_part, decimal_part = text.split(".")
    else:
        integer_part, decimal_part = text, ""

    # Group thousands
    reversed_int = integer_part[::-1]
    groups = [reversed_int[i:i+3] for i in range(0, len(reversed_int), 3)]
    integer_formatted = ' '.join(groups)[::-1]

    if decimal_part:
        return f"{sign}{integer_formatted},{decimal_part}"
    return f"{sign}{integer_formatted}"


def money_eur(value: Union[int, float, Decimal, str, None]) -> str:
    """
    Format an amount in euros with exactly 2 decimals.

    Examples:
        money_eur(1500) -> "1 500,00 €"
        money_eur(None) -> "-"
    """
    formatted = num_fr(value, 2)
    if formatted == "-":
        return formatted
    return f"{formatted} €"


def date_fr(value: Union[date, datetime, str, None]) -> str:
    """
    Format a date as DD/MM/YYYY.

    Examples:
        date_fr(date(2026, 1, 12)) -> "12/01/2026"
        date_fr("2026-01-12") -> "12/01/2026"
    """
    if value is None or value == "":
        return "-"

    if isinstance(value, str):
        try:
            value = date.fromisoformat(value[:10])
        except ValueError:
            return "-"

    if isinstance(value, datetime):
        value = value.date()

    if not isinstance(value, date):
        return "-"

    return value.strftime("%d/%m/%Y")
