"""Exact decimal conversion between minor units and human-scale amounts.

Upstreams report amounts as hex (RPC) or decimal strings (explorers) of
integer minor units (wei, satoshis, ...). All scaling goes through Decimal
with a context wide enough for uint256 values, so no binary floating point
ever touches an amount.
"""

import logging
from decimal import MAX_EMAX, MIN_EMIN, Context, Decimal, InvalidOperation
from typing import Union

logger = logging.getLogger(__name__)

# uint256 has 78 decimal digits; leave headroom for products like gasUsed * gasPrice.
# Exponent limits are the widest allowed; scales come from upstream data.
_EXACT = Context(prec=200, Emax=MAX_EMAX, Emin=MIN_EMIN)

# Largest decimal exponent a token can declare (uint8 decimals())
MAX_DECIMALS = 255

_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")

ZERO = Decimal("0")


def power_of_ten(exponent: int) -> Decimal:
    """Return 10**exponent, or 1 for a zero or negative exponent."""
    if exponent <= 0:
        return Decimal(1)
    return _EXACT.power(Decimal(10), exponent)


def hex_to_unsigned_integer(value: str) -> Decimal:
    """Decode a hex string (optional 0x prefix) into a non-negative Decimal.

    Malformed input degrades to zero instead of raising.
    """
    if not isinstance(value, str):
        return ZERO

    digits = value.strip()
    if digits[:2].lower() == "0x":
        digits = digits[2:]

    if not digits:
        return ZERO

    if not all(char in _HEX_DIGITS for char in digits):
        logger.debug(f"Non-hex numeric value treated as zero: {value!r}")
        return ZERO

    return Decimal(int(digits, 16))


def to_hex(value: int) -> str:
    """Encode a non-negative integer as a 0x-prefixed hex quantity."""
    if value < 0:
        raise ValueError("Only non-negative integers can be hex encoded")
    return hex(value)


def _parse_decimal_string(value: str) -> Decimal:
    try:
        parsed = Decimal(value.strip())
    except (InvalidOperation, AttributeError):
        return ZERO
    if not parsed.is_finite():
        return ZERO
    return parsed


def from_minor_units(raw: Union[int, Decimal], exponent: int) -> Decimal:
    """Scale an integer minor-unit amount down by 10**exponent."""
    return _EXACT.divide(Decimal(raw), power_of_ten(exponent))


def to_decimal(value: Union[str, int, Decimal, None], exponent: int) -> Decimal:
    """Parse a hex or decimal string of minor units and scale it.

    ``"0x..."`` strings are decoded as hex, anything else as a base-10
    number. Unparseable input yields zero.
    """
    if value is None:
        return ZERO

    if isinstance(value, (int, Decimal)):
        raw = Decimal(value)
    elif isinstance(value, str) and value.strip()[:2].lower() == "0x":
        raw = hex_to_unsigned_integer(value)
    elif isinstance(value, str):
        raw = _parse_decimal_string(value)
    else:
        return ZERO

    return from_minor_units(raw, exponent)


def multiply_minor_units(left: str, right: str, exponent: int) -> Decimal:
    """Multiply two decimal-string quantities and scale the product.

    Used for explorer fee fields (``gasUsed * gasPrice``). If either side
    is unparseable the product is zero.
    """
    lhs = _parse_decimal_string(left) if isinstance(left, str) else ZERO
    rhs = _parse_decimal_string(right) if isinstance(right, str) else ZERO
    return from_minor_units(_EXACT.multiply(lhs, rhs), exponent)


def parse_quantity(value: Union[str, None]) -> Decimal:
    """Parse an unscaled decimal string such as ``gasUsed``; bad input is zero."""
    if not isinstance(value, str):
        return ZERO
    return _parse_decimal_string(value)
