"""
Reminds an interactive user that input is expected on stdin.
"""

import select
import sys
from typing import Final, Optional, TextIO

PROMPT_DELAY: Final[float] = 0.5
PROMPT_MESSAGE: Final[str] = "(reading from stdin; press Ctrl-D to finish)"


def prompt_if_idle(stream, delay: float = PROMPT_DELAY,
                   message: str = PROMPT_MESSAGE,
                   err: Optional[TextIO] = None) -> bool:
    """
    Print a prompt to stderr if a terminal stream stays silent.

    Args:
        stream: Input stream the tool is about to read
        delay (float): Seconds to wait for input before prompting
        message (str): Prompt text
        err (TextIO): Destination for the prompt, stderr by default

    Returns:
        bool: True if the prompt was printed
    """

    if not stream.isatty():
        return False

    readable, _, _ = select.select([stream], [], [], delay)
    if readable:
        return False

    print(message, file=err or sys.stderr)
    return True
