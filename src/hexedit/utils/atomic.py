"""
Atomic file replacement for converted output.
"""

import logging
import os
import stat
import tempfile
from typing import BinaryIO, Optional

logger = logging.getLogger(__name__)


def _current_umask() -> int:
    mask = os.umask(0)
    os.umask(mask)
    return mask


class AtomicWriter:
    """
    Writes a file beside its destination and renames it into place.

    The temporary file is named ``NAME.tmp.PID.XXXXXX``. Nothing is visible
    at the destination until :meth:`commit` succeeds; :meth:`abort` removes
    the temporary file and leaves the destination untouched.

    Usage:
        with AtomicWriter("out.bin") as out:
            out.write(data)
    """

    def __init__(self, path: str) -> None:
        self.path = os.path.abspath(path)
        directory, name = os.path.split(self.path)

        fd, self.temp_path = tempfile.mkstemp(
            prefix=f"{name}.tmp.{os.getpid()}.",
            dir=directory
        )
        self.file: Optional[BinaryIO] = os.fdopen(fd, 'wb')
        logger.debug("Writing %s via %s", self.path, self.temp_path)

    def write(self, data: bytes) -> int:
        """Write bytes to the pending file."""

        if self.file is None:
            raise ValueError("write to a finished AtomicWriter")

        return self.file.write(data)

    def flush(self) -> None:
        """Flush buffered bytes to the pending file."""

        if self.file is not None:
            self.file.flush()

    def _target_mode(self) -> int:
        try:
            return stat.S_IMODE(os.stat(self.path).st_mode)
        except FileNotFoundError:
            return 0o666 & ~_current_umask()

    def commit(self) -> None:
        """Flush, sync and rename the pending file over the destination."""

        if self.file is None:
            raise ValueError("AtomicWriter already finished")

        try:
            self.file.flush()
            os.fsync(self.file.fileno())
            os.chmod(self.temp_path, self._target_mode())
            self.file.close()
            self.file = None
            os.replace(self.temp_path, self.path)
        except OSError:
            self.abort()
            raise

        logger.debug("Committed %s", self.path)

    def abort(self) -> None:
        """Discard the pending file."""

        if self.file is not None:
            self.file.close()
            self.file = None

        try:
            os.unlink(self.temp_path)
        except FileNotFoundError:
            pass
        else:
            logger.debug("Discarded %s", self.temp_path)

    def __enter__(self) -> 'AtomicWriter':
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        if exc_type is None:
            self.commit()
        elif self.file is not None:
            self.abort()
