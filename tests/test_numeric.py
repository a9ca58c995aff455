"""Tests for exact decimal normalization."""

from decimal import Decimal

import pytest

from chainfolio.numeric import (
    from_minor_units,
    hex_to_unsigned_integer,
    multiply_minor_units,
    parse_quantity,
    power_of_ten,
    to_decimal,
    to_hex,
)


class TestPowerOfTen:
    """Tests for the scale divisor."""

    def test_positive_exponent(self):
        """10**e for e > 0."""
        assert power_of_ten(18) == Decimal("1000000000000000000")

    @pytest.mark.parametrize("exponent", [0, -1, -18])
    def test_non_positive_exponent_is_identity(self, exponent):
        """Zero or negative exponents do not scale."""
        assert power_of_ten(exponent) == Decimal(1)

    def test_huge_exponent_does_not_overflow(self):
        """Exponents far beyond any real token still scale exactly."""
        assert power_of_ten(1_000_000) == Decimal("1E+1000000")
        assert from_minor_units(5, 1_000_000) == Decimal("5E-1000000")


class TestHexDecoding:
    """Tests for hex quantity decoding."""

    def test_prefixed_hex(self):
        """0x prefix is stripped."""
        assert hex_to_unsigned_integer("0x14d1120d7b160000") == Decimal(1500000000000000000)

    def test_unprefixed_hex(self):
        """Prefix is optional."""
        assert hex_to_unsigned_integer("ff") == Decimal(255)

    @pytest.mark.parametrize("value", ["", "0x", "0xZZ", "hello", None, 42])
    def test_malformed_input_is_zero(self, value):
        """Malformed hex degrades to zero instead of raising."""
        assert hex_to_unsigned_integer(value) == Decimal(0)

    @pytest.mark.parametrize("n", [0, 1, 255, 10**18, 2**256 - 1])
    def test_hex_round_trip(self, n):
        """Decoding an encoded integer gives it back exactly."""
        assert hex_to_unsigned_integer(to_hex(n)) == Decimal(n)

    def test_to_hex_rejects_negative(self):
        """Negative integers have no hex quantity."""
        with pytest.raises(ValueError):
            to_hex(-1)


class TestScaling:
    """Tests for minor-unit scaling."""

    def test_one_and_a_half_ether(self):
        """1.5 ETH in wei scales to exactly 1.5."""
        assert from_minor_units(1500000000000000000, 18) == Decimal("1.5")

    @pytest.mark.parametrize("n", [0, 7, 123456789, 2**256 - 1])
    def test_zero_exponent_is_identity(self, n):
        """No scaling with exponent 0."""
        assert from_minor_units(n, 0) == Decimal(n)

    def test_repeated_calls_are_stable(self):
        """Normalization is deterministic."""
        first = from_minor_units(123456789012345678901234567890, 18)
        assert all(from_minor_units(123456789012345678901234567890, 18) == first for _ in range(5))

    def test_large_values_are_exact(self):
        """uint256 max keeps every digit."""
        value = from_minor_units(2**256 - 1, 18)
        assert str(value) == (
            "115792089237316195423570985008687907853269984665640564039457.584007913129639935"
        )

    @pytest.mark.parametrize(
        "raw,exponent,expected",
        [
            ("100000000", 8, Decimal("1")),
            ("1000000", 6, Decimal("1")),
            ("1000000000", 9, Decimal("1")),
            ("0x5f5e100", 8, Decimal("1")),
            (5, 1, Decimal("0.5")),
        ],
    )
    def test_to_decimal(self, raw, exponent, expected):
        """Hex and decimal strings scale for common exponents."""
        assert to_decimal(raw, exponent) == expected

    @pytest.mark.parametrize("raw", [None, "", "abc", "NaN", "Infinity", 1.5])
    def test_to_decimal_bad_input_is_zero(self, raw):
        """Unparseable amounts are zero."""
        assert to_decimal(raw, 18) == Decimal(0)


class TestFeeMath:
    """Tests for explorer fee fields."""

    def test_gas_fee(self):
        """gasUsed * gasPrice scaled by native decimals."""
        assert multiply_minor_units("21000", "20000000000", 18) == Decimal("0.00042")

    def test_gas_fee_with_bad_side(self):
        """An unparseable factor makes the fee zero."""
        assert multiply_minor_units("21000", "", 18) == Decimal(0)
        assert multiply_minor_units(None, "1", 18) == Decimal(0)

    def test_parse_quantity(self):
        """Unscaled quantities parse as-is."""
        assert parse_quantity("21000") == Decimal(21000)
        assert parse_quantity(None) == Decimal(0)
