"""
hexedit - Convert binary files to editable, annotated hex and back.
"""

from .core import bin_to_hex, hex_to_bin, DecodeError, Diagnostic

__version__ = '0.1.0'

__all__ = ['bin_to_hex', 'hex_to_bin', 'DecodeError', 'Diagnostic']
