"""Amount parsing utilities (accepts French/Belgian and plain decimal input)."""
import re
from decimal import Decimal, InvalidOperation

from quoteflow.exceptions import ValidationError

CENT = Decimal('0.01')
MILLI = Decimal('0.001')

# 1 234,56 / 1.234,56 / 1234,56 (comma as decimal separator)
FR_NUMBER_PATTERN = re.compile(r"^(?:\d{1,3}(?:[ .  ]\d{3})+|\d+)(?:,\d+)?$")
FR_GROUP_SEPARATORS = re.compile(r"[ .  ]")


def _to_decimal(value, field) -> Decimal:
    if isinstance(value, bool):
        raise ValidationError(f'Montant invalide pour {field}', field=field)

    try:
        if isinstance(value, str):
            cleaned = value.strip()
            if FR_NUMBER_PATTERN.match(cleaned):
                cleaned = FR_GROUP_SEPARATORS.sub('', cleaned).replace(',', '.')
            decimal_value = Decimal(cleaned)
        else:
            decimal_value = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError(f'Montant invalide pour {field}', field=field)

    if not decimal_value.is_finite():
        raise ValidationError(f'Montant invalide pour {field}', field=field)

    if decimal_value < 0:
        raise ValidationError(f'Le montant {field} ne peut pas être négatif', field=field)

    return decimal_value


def _is_blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def parse_amount(value, field='amount') -> Decimal:
    """
    Parse a monetary value to a non-negative Decimal quantized to cents.

    Accepts int, float, Decimal or str. Strings may use the French format
    (space or dot thousands, comma decimals) or a plain dotted decimal.

    Rules:
    - None or empty string -> Decimal('0.00')
    - No negatives
    - Rounded to 2 decimal places

    Raises:
        ValidationError: if the value is negative or unparseable.
    """
    if _is_blank(value):
        return Decimal('0.00')
    return _to_decimal(value, field).quantize(CENT)


def parse_optional_amount(value, field='amount'):
    """parse_amount, but None/empty stays None."""
    if _is_blank(value):
        return None
    return _to_decimal(value, field).quantize(CENT)


def parse_quantity(value, field='quantity') -> Decimal:
    """
    Parse a quantity (hours, m2, units). Keeps 3 decimal places.
    Missing quantity means 1.
    """
    if _is_blank(value):
        return Decimal('1.000')
    return _to_decimal(value, field).quantize(MILLI)
