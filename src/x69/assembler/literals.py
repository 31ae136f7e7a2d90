"""
Numeric Literal Interpretation
==============================

The lexer hands numbers to the parser as raw text. This module turns that
text into a value of a given bit width (8 for register immediates and
`.db` bytes, 16 for addresses).

Number Formats
--------------
| Format      | Prefix     | Example    |
|-------------|------------|------------|
| Decimal     | (none)     | 123        |
| Hexadecimal | 0x or 0X   | 0x7F       |
| Binary      | 0b or 0B   | 0b1010     |

Width Handling
--------------
Hex and binary literals are sized by their digits. When a literal has more
digits than the target holds (two hex or eight binary digits for 8 bits),
the leading digits are dropped and the result is flagged as truncated so
the caller can warn. `0xDEAD` as an 8-bit value is `0xAD`.

Decimal literals are never truncated: a decimal value that does not fit
the target is an error.

Leading zeros count as digits, so `0x00FF` is truncated (to `0xFF`) when
an 8-bit value is expected.
"""

from dataclasses import dataclass
import string


HEX_PREFIX = "0x"
BINARY_PREFIX = "0b"


@dataclass(frozen=True)
class Literal:
    """
    A parsed numeric literal.

    Attributes:
        value: The value, guaranteed to fit the requested width
        truncated: True if leading digits were dropped to fit
    """
    value: int
    truncated: bool = False


def parse_literal(text: str, width: int) -> Literal:
    """
    Interpret literal text as a value of the given bit width.

    Args:
        text: Raw literal text as written in the source
        width: Target width in bits (8 or 16)

    Returns:
        The parsed Literal

    Raises:
        ValueError: If the text has invalid digits, or a decimal value
            does not fit the target width. The message has the form
            "could not parse <text>: <reason>".
    """
    prefix = text[:2].lower()

    if prefix == HEX_PREFIX:
        return _parse_digits(text, text[2:], 16, width // 4)

    if prefix == BINARY_PREFIX:
        return _parse_digits(text, text[2:], 2, width)

    return _parse_decimal(text, width)


def _parse_digits(text: str, digits: str, base: int, max_digits: int) -> Literal:
    """Parse hex/binary digits, keeping only the trailing max_digits."""
    valid = string.hexdigits if base == 16 else "01"

    if not digits:
        raise ValueError(f"could not parse {text}: cannot parse integer from empty string")
    if any(c not in valid for c in digits):
        raise ValueError(f"could not parse {text}: invalid digit found in string")

    truncated = len(digits) > max_digits
    if truncated:
        digits = digits[-max_digits:]

    return Literal(int(digits, base), truncated)


def _parse_decimal(text: str, width: int) -> Literal:
    if not text:
        raise ValueError(f"could not parse {text}: cannot parse integer from empty string")
    if any(c not in string.digits for c in text):
        raise ValueError(f"could not parse {text}: invalid digit found in string")

    value = int(text)
    if value >= 1 << width:
        raise ValueError(f"could not parse {text}: number too large to fit in target type")

    return Literal(value)


def truncation_warning(text: str, width: int) -> str:
    """Message for a literal that lost leading digits."""
    target = "an 8-bit value" if width == 8 else f"a {width}-bit value"
    return f"immediate {text} will be truncated to {target}"


def encode_string(text: str) -> bytes:
    """
    Encode a decoded string literal into the bytes it assembles to.

    Characters up to U+00FF (including \\xNN escapes) become a single
    byte; any other character is emitted as its UTF-8 sequence.
    """
    out = bytearray()
    for char in text:
        code = ord(char)
        if code < 0x100:
            out.append(code)
        else:
            out.extend(char.encode("utf-8"))
    return bytes(out)
