"""
Round-trip editing of a binary file through a text editor.

The session is a small state machine::

    ENCODE -> EDIT -> DECODE -> DONE
               ^        |
               +--------+  (content errors)

Any infrastructure failure moves the session to FATAL, which re-raises
the error from :meth:`EditSession.run`. Once the editor has run, the hex
document is only removed on success, so edits survive a failed write.
"""

import logging
import os
import shlex
import shutil
import subprocess
import sys
import tempfile
from enum import Enum
from typing import Callable, Dict, Final, List, Mapping, Optional, Sequence, TextIO

from ..core.decoder import Diagnostic, HexDecoder
from ..core.encoder import bin_to_hex
from ..utils.atomic import AtomicWriter

logger = logging.getLogger(__name__)

EDITOR_CANDIDATES: Final[Sequence[str]] = ('vim', 'vi', 'nano')
QUICKFIX_EDITORS: Final[frozenset] = frozenset(('vim',))


class EditorError(RuntimeError):
    """Raised when the editor cannot be found or exits unsuccessfully."""


class EditorNotFoundError(EditorError):
    """Raised when no editor can be resolved."""


class EditsKeptError(EditorError):
    """Raised when a session fails after the editor ran; the hex document is kept."""

    def __init__(self, error: BaseException, hexfile: str) -> None:
        super().__init__(f"{error} (edits kept in {hexfile})")
        self.hexfile = hexfile


def _split_command(value: str) -> List[str]:
    try:
        return shlex.split(value)
    except ValueError as exc:
        raise EditorError(f"cannot parse editor command {value!r}: {exc}") from exc


def find_editor(explicit: Optional[str] = None,
                environ: Optional[Mapping[str, str]] = None,
                candidates: Sequence[str] = EDITOR_CANDIDATES,
                which: Callable[[str], Optional[str]] = shutil.which) -> List[str]:
    """
    Resolve the editor command line.

    The first of these wins: the explicit name, the ``EDITOR`` environment
    variable, the first of ``candidates`` found on ``PATH``.

    Args:
        explicit: Editor named on the command line
        environ: Environment to consult, ``os.environ`` by default
        candidates: Fallback editor names, in order of preference
        which: Function locating an executable on ``PATH``

    Returns:
        The editor command as an argument list
    """

    if environ is None:
        environ = os.environ

    if explicit:
        return _split_command(explicit)

    if environ.get('EDITOR'):
        return _split_command(environ['EDITOR'])

    for name in candidates:
        if which(name):
            return [name]

    raise EditorNotFoundError(
        f"no editor found; set EDITOR or install one of: {', '.join(candidates)}"
    )


def supports_quickfix(editor: Sequence[str]) -> bool:
    """Check whether the editor can load a quickfix error file."""

    return os.path.basename(editor[0]) in QUICKFIX_EDITORS


def write_quickfix(diagnostics: Sequence[Diagnostic], hexfile: str) -> str:
    """
    Write diagnostics to a new ``FILE:LINE:COL:MESSAGE`` quickfix file.

    Returns:
        Path of the quickfix file; the caller removes it
    """

    fd, path = tempfile.mkstemp(prefix='hexedit-quickfix')
    try:
        with os.fdopen(fd, 'w', encoding='utf-8') as f:
            for d in diagnostics:
                f.write(f"{hexfile}:{d.line}:{d.column}:{d.message}\n")
    except OSError:
        os.unlink(path)
        raise

    return path


def build_editor_command(editor: Sequence[str], hexfile: str,
                         quickfix: Optional[str] = None) -> List[str]:
    """Build the editor argument list, loading a quickfix file if given."""

    if quickfix is None:
        return [*editor, hexfile]

    return [
        *editor,
        '-c', 'set errorformat=%f:%l:%c:%m',
        '-c', ':copen 10',
        '-c', ':cc1',
        '-q', quickfix,
    ]


def run_editor(command: Sequence[str]) -> int:
    """Run the editor attached to the terminal and wait for it."""

    return subprocess.run(command).returncode


class SessionState(Enum):
    """States of an edit session."""
    ENCODE = 'encode'
    EDIT = 'edit'
    DECODE = 'decode'
    DONE = 'done'
    FATAL = 'fatal'


class EditSession:
    """
    Edits a binary file as a hex document.

    Usage:
        EditSession("firmware.bin").run()
    """

    TERMINAL_STATES: Final = frozenset((SessionState.DONE, SessionState.FATAL))

    def __init__(self, filename: str, read_only: bool = False,
                 editor: Optional[str] = None,
                 environ: Optional[Mapping[str, str]] = None,
                 runner: Callable[[Sequence[str]], int] = run_editor,
                 prompt: Callable[[str], str] = input,
                 out: Optional[TextIO] = None,
                 which: Callable[[str], Optional[str]] = shutil.which) -> None:
        self.filename = filename
        self.read_only = read_only
        self.editor_name = editor
        self.environ = environ
        self.runner = runner
        self.prompt = prompt
        self.out = out if out is not None else sys.stdout
        self.which = which

        self.state = SessionState.ENCODE
        self.hexfile: Optional[str] = None
        self.diagnostics: List[Diagnostic] = []
        self.error: Optional[BaseException] = None
        self.launched = False

        self._handlers: Dict[SessionState, Callable[[], SessionState]] = self._setup_handlers()

    def _setup_handlers(self) -> Dict[SessionState, Callable[[], SessionState]]:
        """Map each non-terminal state to its step."""

        return {
            SessionState.ENCODE: self._encode,
            SessionState.EDIT: self._edit,
            SessionState.DECODE: self._decode,
        }

    def run(self) -> None:
        """
        Run the session until the file is written or an error occurs.

        Raises:
            OSError: On file or process failures
            EditorError: If the editor is missing or exits with an error
            EditsKeptError: If a failure follows an editor launch; the hex
                document is left in place for recovery
        """

        try:
            while self.state not in self.TERMINAL_STATES:
                try:
                    self.state = self._handlers[self.state]()
                except (OSError, EditorError) as exc:
                    self.error = exc
                    self.state = SessionState.FATAL
        finally:
            if self.state is SessionState.DONE or not self._keeps_edits():
                self._cleanup()

        if self.state is not SessionState.FATAL:
            return

        if self._keeps_edits():
            raise EditsKeptError(self.error, self.hexfile) from self.error

        raise self.error

    def _keeps_edits(self) -> bool:
        return self.launched and not self.read_only

    def _encode(self) -> SessionState:
        fd, self.hexfile = tempfile.mkstemp(prefix='hexedit', suffix='.hex')
        logger.debug("Hex document for %s is %s", self.filename, self.hexfile)

        with os.fdopen(fd, 'wb') as sink, open(self.filename, 'rb') as source:
            bin_to_hex(source, sink)

        return SessionState.EDIT

    def _edit(self) -> SessionState:
        editor = find_editor(self.editor_name, self.environ, which=self.which)
        quickfix = None

        if self.diagnostics:
            if supports_quickfix(editor):
                quickfix = write_quickfix(self.diagnostics, self.hexfile)
                logger.debug("Wrote quickfix file %s", quickfix)
            else:
                self._report_diagnostics()

        command = build_editor_command(editor, self.hexfile, quickfix)
        logger.debug("Launching editor: %s", ' '.join(shlex.quote(c) for c in command))

        try:
            status = self.runner(command)
            self.launched = True
        finally:
            if quickfix is not None:
                os.unlink(quickfix)

        if status != 0:
            raise EditorError(f"editor {editor[0]} exited with status {status}")

        if self.read_only:
            return SessionState.DONE

        return SessionState.DECODE

    def _report_diagnostics(self) -> None:
        print("*** Errors in conversion:", file=self.out)
        for d in self.diagnostics:
            print(d, file=self.out)
        print("Press Enter to continue.", file=self.out)
        self.out.flush()

        try:
            self.prompt('')
        except EOFError:
            pass

    def _decode(self) -> SessionState:
        writer = AtomicWriter(self.filename)
        try:
            with open(self.hexfile, 'rb') as source:
                self.diagnostics = HexDecoder().decode(source, writer)
        except BaseException:
            writer.abort()
            raise

        if self.diagnostics:
            writer.abort()
            logger.info("%d error(s) in %s, reopening editor",
                        len(self.diagnostics), self.hexfile)
            return SessionState.EDIT

        writer.commit()
        return SessionState.DONE

    def _cleanup(self) -> None:
        if self.hexfile is None:
            return

        try:
            os.unlink(self.hexfile)
        except FileNotFoundError:
            pass
