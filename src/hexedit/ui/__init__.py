"""
UI package for editing hex documents interactively.

This package implements the editor round-trip session, which launches an
external text editor on a hex document and feeds conversion errors back
into it, and the Pygments highlighter used for terminal output.
"""

from .editor import EditSession, EditorError, EditsKeptError, find_editor
from .highlight import HexDocumentLexer, HexHighlighter

__all__ = ['EditSession', 'EditorError', 'EditsKeptError', 'find_editor', 'HexDocumentLexer', 'HexHighlighter']
