"""
Binary to hex document conversion.

Each 16-byte chunk of input becomes one line holding the offset, the bytes
as two-digit hex in two groups of eight, and a printable-ASCII gutter.
"""

from typing import BinaryIO, Final, Iterator

from ..utils.hex_utils import format_offset, printable_char

BYTES_PER_LINE: Final[int] = 16
GROUP_SIZE: Final[int] = 8

HELP_MESSAGE: Final[str] = """\
# Rules of conversion from hex to binary:
# * Lines with '#' in column 1 are ignored, as are empty lines.
# * The address is ignored. Hex values start after the first vertical bar.
# * Spacing of hex values is not important and case does not matter, but each
#   byte must be written as exactly two hex digits.
# * Hex values may be added to or removed from a line to insert or delete
#   bytes.
# * A hex value replaced by "<<" or ">>" takes the byte at the same position
#   in the ASCII column instead. Only characters 32-126 appear in the ASCII
#   column as written, but whatever byte is found there is used unchecked.
# * Apart from that, the ASCII column is ignored. It starts after the second
#   vertical bar and only needs to be present when "<<" or ">>" is used.
#
# Convert back with:
#
#   hexedit bin
#
"""


def format_line(offset: int, chunk: bytes) -> str:
    """
    Format up to sixteen bytes as one hex document line.

    Args:
        offset (int): Position of the first byte in the stream
        chunk (bytes): Bytes to render (a short chunk is padded)

    Returns:
        str: Newline-terminated line
    """

    cells = []
    for i in range(BYTES_PER_LINE):
        cells.append(f"{chunk[i]:02X} " if i < len(chunk) else "   ")
        if i == GROUP_SIZE - 1:
            cells.append(" ")

    gutter = ''.join(printable_char(b) for b in chunk)

    return f"{format_offset(offset)} |  {''.join(cells)} | {gutter}\n"


def _read_chunk(source: BinaryIO) -> bytes:
    chunk = source.read(BYTES_PER_LINE)
    while chunk and len(chunk) < BYTES_PER_LINE:
        more = source.read(BYTES_PER_LINE - len(chunk))
        if not more:
            break
        chunk += more

    return chunk


def iter_hex_lines(source: BinaryIO, prologue: bool = True) -> Iterator[str]:
    """Yield the lines of the hex document for a binary stream."""

    if prologue:
        yield from HELP_MESSAGE.splitlines(keepends=True)

    offset = 0
    while True:
        chunk = _read_chunk(source)
        if not chunk:
            return

        yield format_line(offset, chunk)
        offset += len(chunk)

        if len(chunk) < BYTES_PER_LINE:
            return


def bin_to_hex(source: BinaryIO, sink: BinaryIO, prologue: bool = True) -> None:
    """
    Convert a binary stream into a hex document.

    Args:
        source (BinaryIO): Binary input
        sink (BinaryIO): Binary output, receives UTF-8 text
        prologue (bool): Emit the help comment before the data lines
    """

    for line in iter_hex_lines(source, prologue):
        sink.write(line.encode('utf-8'))

    sink.flush()
