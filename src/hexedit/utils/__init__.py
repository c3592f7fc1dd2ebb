"""
Utility package for formatting helpers and file handling.
"""

from .hex_utils import (
    format_offset,
    printable_char,
    parse_hex_byte,
    is_ascii_marker
)
from .atomic import AtomicWriter
from .stdin_prompt import prompt_if_idle

__all__ = [
    'format_offset',
    'printable_char',
    'parse_hex_byte',
    'is_ascii_marker',
    'AtomicWriter',
    'prompt_if_idle'
]
