"""Minimal ERC-20 ABI encoding and decoding.

Only the pieces needed for balanceOf/name/symbol/decimals calls:
- selector + one left-padded address argument
- dynamic ``string`` return values
- small unsigned integer return values
"""

import re

from chainfolio.errors import MalformedResponseError
from chainfolio.numeric import MAX_DECIMALS, hex_to_unsigned_integer

# ERC-20 function selectors
BALANCE_OF_SELECTOR = "0x70a08231"
NAME_SELECTOR = "0x06fdde03"
SYMBOL_SELECTOR = "0x95d89b41"
DECIMALS_SELECTOR = "0x313ce567"

# One ABI word is 32 bytes = 64 hex chars; a dynamic string has an offset word
# followed by a length word before the payload.
WORD_HEX_LENGTH = 64
STRING_HEAD_HEX_LENGTH = 2 * WORD_HEX_LENGTH

_HEX_RE = re.compile(r"^[0-9a-fA-F]*$")
_CONTROL_CHARS = "".join(chr(code) for code in range(32)) + "\x7f"


def _strip_prefix(value: str, what: str) -> str:
    if not isinstance(value, str) or not value.startswith("0x"):
        raise MalformedResponseError(f"{what}: expected 0x-prefixed hex", upstream="rpc")
    body = value[2:]
    if not _HEX_RE.match(body):
        raise MalformedResponseError(f"{what}: non-hex characters", upstream="rpc")
    return body


def encode_call(selector: str, address: str) -> str:
    """Encode ``selector(address)`` as eth_call data.

    Raises:
        MalformedResponseError: The address is not 0x-prefixed hex of at
            most 32 bytes
    """
    argument = _strip_prefix(address, "address argument").lower()
    if len(argument) > WORD_HEX_LENGTH:
        raise MalformedResponseError(f"address argument too long: {address}", upstream="rpc")
    return f"{selector}{argument.zfill(WORD_HEX_LENGTH)}"


def decode_dynamic_string(result: str) -> str:
    """Decode an ABI-encoded dynamic string return value.

    The offset/length head is skipped; the payload is cut to the declared
    length when it fits, then decoded as UTF-8 with control characters
    (NUL padding) stripped. An empty string decodes to ``"Unknown"``.
    """
    body = _strip_prefix(result, "string result")
    if len(body) < STRING_HEAD_HEX_LENGTH:
        raise MalformedResponseError(
            f"string result too short ({len(body)} hex chars)", upstream="rpc"
        )

    payload = body[STRING_HEAD_HEX_LENGTH:]
    declared = int(hex_to_unsigned_integer(body[WORD_HEX_LENGTH:STRING_HEAD_HEX_LENGTH]))
    if 0 < declared * 2 <= len(payload):
        payload = payload[: declared * 2]

    # Ignore a dangling nibble rather than failing on it
    payload = payload[: len(payload) - len(payload) % 2]

    try:
        text = bytes.fromhex(payload).decode("utf-8")
    except (ValueError, UnicodeDecodeError) as e:
        raise MalformedResponseError(f"string result is not UTF-8: {e}", upstream="rpc")

    text = text.strip(_CONTROL_CHARS)
    return text or "Unknown"


def decode_unsigned(result: str, max_value: int = MAX_DECIMALS) -> int:
    """Decode a small uint return value (e.g. ``decimals()``).

    Values above ``max_value`` are rejected; ``decimals()`` is a uint8.
    """
    body = _strip_prefix(result, "uint result")
    if not body:
        raise MalformedResponseError("uint result is empty", upstream="rpc")
    value = int(body, 16)
    if value > max_value:
        raise MalformedResponseError(
            f"uint result {value} exceeds {max_value}", upstream="rpc"
        )
    return value
