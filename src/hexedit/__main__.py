#!/usr/bin/python3

"""
Entry point script for hexedit.
"""

import argparse
import logging
import os
import sys
from contextlib import ExitStack
from typing import BinaryIO, List, Optional

from .core.decoder import DecodeError, hex_to_bin
from .core.encoder import bin_to_hex, iter_hex_lines
from .ui.editor import EditorError, EditSession
from .ui.highlight import HexHighlighter
from .utils.atomic import AtomicWriter
from .utils.stdin_prompt import prompt_if_idle

logger = logging.getLogger('hexedit')

HEX_EXAMPLES = """\
examples:
  hexedit hex raw.dat hex.txt
      Converts input file 'raw.dat' writing hex into 'hex.txt'.

  hexedit hex raw.dat
      Converts input file 'raw.dat' writing to stdout.

  hexedit hex - hex.txt
      Converts stdin writing to 'hex.txt'.
"""

BIN_EXAMPLES = """\
examples:
  hexedit bin hex.txt raw.dat
      Converts input file 'hex.txt' writing binary into 'raw.dat'.

  hexedit bin hex.txt
      Converts input file 'hex.txt' writing binary to stdout.

  hexedit bin - raw.dat
      Converts hex presented on stdin, writing binary out to 'raw.dat'.
"""

EDIT_EXAMPLES = """\
examples:
  hexedit edit raw.dat
      Edits the file 'raw.dat'.

  hexedit edit --ro raw.dat
      Opens the file 'raw.dat' in a text editor, but does not cause any
      changes to be saved back to the original.
"""


def build_parser() -> argparse.ArgumentParser:
    """Build the command line parser."""
    parser = argparse.ArgumentParser(
        prog='hexedit',
        description="hexedit - Convert binary files to editable hex and back"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="log debugging information to stderr"
    )
    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True

    hex_parser = subparsers.add_parser(
        "hex",
        help="convert a file to hex representation",
        description="Converts an arbitrary binary file to (ASCII) hex "
                    "representation. The hex is marked up with a header "
                    "explaining the format, making it amenable to editing "
                    "and conversion back to binary using the 'bin' command.",
        epilog=HEX_EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    hex_parser.add_argument(
        "--no-help",
        dest="prologue",
        action="store_false",
        help="omit the explanatory comment header"
    )
    hex_parser.add_argument(
        "--color",
        choices=("auto", "always", "never"),
        default="auto",
        help="highlight output written to a terminal (default: auto)"
    )
    hex_parser.add_argument("paths", nargs="*", metavar="IN [OUT]")
    hex_parser.set_defaults(func=run_hex)

    bin_parser = subparsers.add_parser(
        "bin",
        help="convert a hex representation to a binary file",
        description="Converts an (ASCII) hex representation of a file "
                    "back to binary.",
        epilog=BIN_EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    bin_parser.add_argument("paths", nargs="*", metavar="IN [OUT]")
    bin_parser.set_defaults(func=run_bin)

    edit_parser = subparsers.add_parser(
        "edit",
        aliases=["vim"],
        help="edit a binary file in a text editor",
        description="Opens a hex representation of the file in vim (or "
                    "$EDITOR). Upon saving and exiting, the modified hex is "
                    "converted back to binary and the original file "
                    "overwritten.",
        epilog=EDIT_EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    edit_parser.add_argument(
        "-r", "--ro",
        dest="read_only",
        action="store_true",
        help="read-only mode"
    )
    edit_parser.add_argument(
        "-e", "--editor",
        help="editor executable to use"
    )
    edit_parser.add_argument("file", help="file to edit")
    edit_parser.set_defaults(func=run_edit)

    return parser


def _open_streams(stack: ExitStack, paths: List[str],
                  parser: argparse.ArgumentParser):
    """Open the input and output streams named by ``[IN [OUT]]``."""

    if len(paths) > 2:
        parser.error("too many arguments")

    writer: Optional[AtomicWriter] = None

    if paths and paths[0] != "-":
        source: BinaryIO = stack.enter_context(open(paths[0], "rb"))
    else:
        if not paths:
            prompt_if_idle(sys.stdin)
        source = sys.stdin.buffer

    if len(paths) == 2 and paths[1] != "-":
        writer = AtomicWriter(paths[1])
        stack.callback(_abort_unless_committed, writer)
        sink = writer
    else:
        sink = sys.stdout.buffer

    return source, sink, writer


def _abort_unless_committed(writer: AtomicWriter) -> None:
    if writer.file is not None:
        writer.abort()


def _use_color(choice: str, sink) -> bool:
    if choice == "always":
        return True
    if choice == "never":
        return False

    return sink is sys.stdout.buffer and sys.stdout.isatty()


def run_hex(args: argparse.Namespace, parser: argparse.ArgumentParser) -> None:
    """Run the ``hex`` command."""

    with ExitStack() as stack:
        source, sink, writer = _open_streams(stack, args.paths, parser)

        if _use_color(args.color, sink):
            highlighter = HexHighlighter()
            for line in iter_hex_lines(source, args.prologue):
                sink.write(highlighter.highlight_line(line).encode('utf-8'))
            sink.flush()
        else:
            bin_to_hex(source, sink, args.prologue)

        if writer is not None:
            writer.commit()


def run_bin(args: argparse.Namespace, parser: argparse.ArgumentParser) -> None:
    """Run the ``bin`` command."""

    with ExitStack() as stack:
        source, sink, writer = _open_streams(stack, args.paths, parser)

        hex_to_bin(source, sink)

        if writer is not None:
            writer.commit()


def run_edit(args: argparse.Namespace, parser: argparse.ArgumentParser) -> None:
    """Run the ``edit`` command."""

    EditSession(args.file, read_only=args.read_only, editor=args.editor).run()


def _silence_stdout() -> None:
    """Point stdout at the null device so the exit flush cannot fail again."""

    try:
        fd = sys.stdout.fileno()
    except (AttributeError, ValueError):
        return

    devnull = os.open(os.devnull, os.O_WRONLY)
    os.dup2(devnull, fd)
    os.close(devnull)


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for the application."""

    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(name)s: %(levelname)s: %(message)s",
        stream=sys.stderr
    )
    logger.debug("Running command %s", args.command)

    try:
        args.func(args, parser)
    except BrokenPipeError:
        _silence_stdout()
        return 1
    except DecodeError as e:
        for diagnostic in e.diagnostics:
            print(diagnostic, file=sys.stderr)
        return 1
    except (OSError, EditorError) as e:
        print(f"hexedit: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130

    return 0


if __name__ == "__main__":
    sys.exit(main())
