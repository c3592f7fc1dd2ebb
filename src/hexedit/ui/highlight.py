"""
Syntax highlighting for hex documents using Pygments.
"""

from typing import Any, Dict, Final, Optional

from pygments import highlight
from pygments.formatter import Formatter
from pygments.formatters import TerminalFormatter
from pygments.lexer import RegexLexer, bygroups
from pygments.token import Comment, Error, Keyword, Name, Number, String, Text, Token, Whitespace

HEX_DOCUMENT_COLORS: Final[Dict[Any, tuple]] = {
    Token: ('', ''),
    Comment: ('gray', 'brightblack'),
    Name.Label: ('cyan', 'brightcyan'),
    Keyword: ('yellow', 'yellow'),
    String: ('green', 'brightgreen'),
    Error: ('red', 'brightred'),
}


class HexDocumentLexer(RegexLexer):
    """Lexer for the annotated hex documents produced by ``hexedit hex``."""

    name = 'Hex document'
    aliases = ['hexdoc']
    filenames = ['*.hexdoc']

    tokens = {
        'root': [
            (r'#.*\n', Comment.Single),
            (r'\n', Whitespace),
            (r'([^|\n]*)(\|)', bygroups(Name.Label, Text), 'hex'),
            (r'[^\n]+', Error),
        ],
        'hex': [
            (r'[ \t]+', Whitespace),
            (r'[0-9A-Fa-f]{2}(?=[\s|])', Number.Hex),
            (r'(<<|>>)(?=[\s|])', Keyword),
            (r'(\|)([^\n]*)', bygroups(Text, String), '#pop'),
            (r'\n', Whitespace, '#pop'),
            (r'[^\s|]+', Error),
        ],
    }


class HexHighlighter:
    """Highlights hex document lines for terminal output."""

    def __init__(self, formatter: Optional[Formatter] = None) -> None:
        self.lexer = HexDocumentLexer()
        self.formatter = formatter or TerminalFormatter(colorscheme=HEX_DOCUMENT_COLORS)

    def highlight_line(self, line: str) -> str:
        """
        Highlight a single line of a hex document.

        Args:
            line: Newline-terminated line

        Returns:
            The line with terminal escape sequences added
        """

        return highlight(line, self.lexer, self.formatter)
