"""
Hex document to binary conversion.

The decoder accepts human-edited documents: lines may be reflowed, hex
values inserted or deleted, and any hex value may be replaced by ``<<`` or
``>>`` to take the byte at the same position from the ASCII column. The
substituted byte is not range-checked, so a non-printable or multi-byte
character typed into the gutter flows through as raw bytes.

Content problems are collected as :class:`Diagnostic` records, at most
:data:`MAX_DIAGNOSTICS` per document. I/O problems are raised as
``OSError`` and are never mixed into the diagnostic list.
"""

import logging
import re
from dataclasses import dataclass
from typing import BinaryIO, Final, Iterator, List, Optional, Tuple

from ..utils.hex_utils import is_ascii_marker, parse_hex_byte

logger = logging.getLogger(__name__)

MAX_DIAGNOSTICS: Final[int] = 10
MAX_LINE_LENGTH: Final[int] = 64 * 1024
SEPARATOR: Final[bytes] = b'|'
TOKEN_PATTERN: Final = re.compile(rb'[^ \t\n\r\v\f]+')


@dataclass
class Diagnostic:
    """A content error at a 1-based line and column of a hex document."""
    line: int
    column: int
    message: str

    def __str__(self) -> str:
        return f"{self.line}:{self.column}: {self.message}"


class DecodeError(ValueError):
    """Raised when a hex document contains content errors."""

    def __init__(self, diagnostics: List[Diagnostic]) -> None:
        super().__init__('\n'.join(str(d) for d in diagnostics))
        self.diagnostics = list(diagnostics)


def _strip_newline(raw: bytes) -> bytes:
    if raw.endswith(b'\n'):
        raw = raw[:-1]
        if raw.endswith(b'\r'):
            raw = raw[:-1]

    return raw


def _read_lines(source: BinaryIO, limit: int) -> Iterator[Tuple[bytes, bool]]:
    """Yield each line, cut at ``limit`` bytes, and whether it was cut."""

    while True:
        raw = source.readline(limit + 1)
        if not raw:
            return

        if len(raw) <= limit or raw.endswith(b'\n'):
            yield raw, False
            continue

        rest = raw
        while rest and not rest.endswith(b'\n'):
            rest = source.readline(limit)
        yield raw[:limit], True


def _display_token(token: bytes) -> str:
    return token.decode('utf-8', errors='backslashreplace')


def parse_line(line: bytes) -> Tuple[bytes, Optional[Tuple[int, str]]]:
    """
    Parse one line of a hex document.

    Args:
        line (bytes): Line with its newline already removed

    Returns:
        Tuple[bytes, Optional[Tuple[int, str]]]: The decoded bytes and, if
        the line is invalid, the 1-based column and message of the error.
        An invalid line decodes to no bytes.
    """

    if not line or line.startswith(b'#'):
        return b'', None

    end_column = len(line)
    segments = line.split(SEPARATOR, 2)
    if len(segments) < 2:
        return b'', (end_column, "missing address/data separator")

    hex_field = segments[1]
    hex_start = len(segments[0]) + len(SEPARATOR)

    ascii_field = segments[2] if len(segments) == 3 else b''
    if ascii_field.startswith(b' '):
        ascii_field = ascii_field[1:]

    out = bytearray()
    for index, match in enumerate(TOKEN_PATTERN.finditer(hex_field)):
        token = match.group()

        value = parse_hex_byte(token)
        if value is not None:
            out.append(value)
            continue

        if is_ascii_marker(token):
            if index >= len(ascii_field):
                return b'', (end_column, f"ASCII byte {index} not present")
            out.append(ascii_field[index])
            continue

        column = hex_start + match.start() + 1
        return b'', (
            column,
            f'invalid hex sequence "{_display_token(token)}", must be 00–FF'
        )

    return bytes(out), None


class HexDecoder:
    """Streams a hex document into a binary sink."""

    def __init__(self, max_diagnostics: int = MAX_DIAGNOSTICS,
                 max_line_length: int = MAX_LINE_LENGTH) -> None:
        self.max_diagnostics = max_diagnostics
        self.max_line_length = max_line_length

    def decode(self, source: BinaryIO, sink: BinaryIO) -> List[Diagnostic]:
        """
        Decode a hex document.

        Valid lines are written to the sink as they are read, so a failed
        decode may already have produced partial output.
        Lines longer than ``max_line_length`` bytes are reported and skipped
        without being held in memory.

        Args:
            source (BinaryIO): Hex document opened in binary mode
            sink (BinaryIO): Destination for decoded bytes

        Returns:
            List[Diagnostic]: Content errors in source order, empty on success
        """

        diagnostics: List[Diagnostic] = []

        try:
            lines = _read_lines(source, self.max_line_length)
            for line_number, (raw, truncated) in enumerate(lines, start=1):
                if truncated:
                    error = (
                        self.max_line_length + 1,
                        f"line longer than {self.max_line_length} bytes"
                    )
                else:
                    data, error = parse_line(_strip_newline(raw))

                if error is not None:
                    column, message = error
                    diagnostics.append(Diagnostic(line_number, column, message))
                    if len(diagnostics) >= self.max_diagnostics:
                        break
                    continue

                if data:
                    sink.write(data)
        finally:
            sink.flush()

        if diagnostics:
            logger.debug("Decode stopped with %d diagnostic(s)", len(diagnostics))

        return diagnostics


def hex_to_bin(source: BinaryIO, sink: BinaryIO) -> None:
    """
    Convert a hex document into binary.

    Raises:
        DecodeError: If the document contains content errors
        OSError: If reading or writing fails
    """

    diagnostics = HexDecoder().decode(source, sink)
    if diagnostics:
        raise DecodeError(diagnostics)
