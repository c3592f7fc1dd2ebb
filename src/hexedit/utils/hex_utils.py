"""
Utility functions for hex document formatting and parsing.
"""

from typing import Final, Optional

HEX_DIGITS: Final[bytes] = b'0123456789ABCDEFabcdef'
ASCII_MARKERS: Final[frozenset] = frozenset((b'<<', b'>>'))
REPLACEMENT_CHAR: Final[str] = '\ufffd'


def format_offset(offset: int, width: int = 8) -> str:
    """
    Format a byte offset as a hex string.

    Offsets that need more than ``width`` digits widen the field rather
    than being truncated.

    Args:
        offset (int): Byte offset to format
        width (int): Minimum number of hex digits to use

    Returns:
        str: Formatted hex string
    """

    return f"{offset:0{width}X}"


def printable_char(value: int) -> str:
    """Render a byte for the ASCII gutter."""

    if 32 <= value <= 126:
        return chr(value)

    return REPLACEMENT_CHAR


def parse_hex_byte(token: bytes) -> Optional[int]:
    """
    Parse a single two-digit hex token.

    Args:
        token (bytes): Token taken from the hex field (e.g. b"A5")

    Returns:
        int: Byte value or None if the token is not exactly two hex digits
    """

    if len(token) != 2:
        return None

    if not all(c in HEX_DIGITS for c in token):
        return None

    return int(token, 16)


def is_ascii_marker(token: bytes) -> bool:
    """Check whether a token delegates to the ASCII gutter."""

    return token in ASCII_MARKERS
