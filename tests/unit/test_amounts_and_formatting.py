"""
Unit tests for amount parsing, string clamping and display formatting.
"""

import pytest
from datetime import date
from decimal import Decimal

from quoteflow.exceptions import ValidationError
from quoteflow.utils.number_format import parse_amount, parse_optional_amount, parse_quantity
from quoteflow.utils.formatters import truncate, num_fr, money_eur, date_fr


class TestParseAmount:

    def test_plain_decimal(self):
        assert parse_amount('1234.5') == Decimal('1234.50')

    def test_french_format(self):
        assert parse_amount('1 234,56') == Decimal('1234.56')
        assert parse_amount('1.234,56') == Decimal('1234.56')

    def test_numbers_are_quantized(self):
        assert parse_amount(Decimal('3.14159')) == Decimal('3.14')
        assert parse_amount(42) == Decimal('42.00')

    def test_missing_is_zero(self):
        assert parse_amount(None) == Decimal('0.00')
        assert parse_amount('  ') == Decimal('0.00')

    def test_negative_rejected(self):
        with pytest.raises(ValidationError) as exc:
            parse_amount(-5, field='total_amount')
        assert exc.value.payload == {'field': 'total_amount'}

    def test_garbage_rejected(self):
        with pytest.raises(ValidationError):
            parse_amount('douze euros')

    def test_bool_rejected(self):
        with pytest.raises(ValidationError):
            parse_amount(True)

    def test_optional_amount_keeps_none(self):
        assert parse_optional_amount(None) is None
        assert parse_optional_amount('7,5') == Decimal('7.50')

    def test_quantity_defaults_to_one(self):
        assert parse_quantity(None) == Decimal('1.000')
        assert parse_quantity('2,25') == Decimal('2.250')


class TestTruncate:

    def test_long_value_clamped(self):
        assert len(truncate('x' * 600, 255)) == 255

    def test_short_value_unchanged(self):
        assert truncate('Devis cuisine', 255) == 'Devis cuisine'

    def test_none_passthrough(self):
        assert truncate(None, 50) is None


class TestFormatters:

    def test_num_fr(self):
        assert num_fr(1500) == '1 500,00'
        assert num_fr(1234567.891) == '1 234 567,89'
        assert num_fr(None) == '-'

    def test_money_eur(self):
        assert money_eur(Decimal('1089.00')) == '1 089,00 €'
        assert money_eur('abc') == '-'

    def test_date_fr(self):
        assert date_fr(date(2026, 1, 12)) == '12/01/2026'
        assert date_fr('2026-01-12') == '12/01/2026'
        assert date_fr(None) == '-'
