"""
Core package for hex document conversion.

This package implements the two directions of the conversion: the encoder
renders bytes as an annotated hex document, and the decoder turns a
possibly hand-edited document back into bytes, collecting diagnostics
with line and column positions.
"""

from .encoder import bin_to_hex, iter_hex_lines, format_line, HELP_MESSAGE
from .decoder import hex_to_bin, HexDecoder, Diagnostic, DecodeError

__all__ = [
    'bin_to_hex',
    'iter_hex_lines',
    'format_line',
    'HELP_MESSAGE',
    'hex_to_bin',
    'HexDecoder',
    'Diagnostic',
    'DecodeError'
]
