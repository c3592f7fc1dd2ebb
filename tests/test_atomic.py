"""
Atomic Writer Tests - Replace files only when fully written.
"""

import os

import pytest

from hexedit.utils.atomic import AtomicWriter


def leftovers(directory):
    return sorted(p.name for p in directory.iterdir() if '.tmp.' in p.name)


class TestAtomicWriter:

    def test_commit_creates_file(self, tmp_path):
        path = tmp_path / "out.bin"
        writer = AtomicWriter(str(path))
        writer.write(b'abc')
        assert not path.exists()

        writer.commit()
        assert path.read_bytes() == b'abc'
        assert leftovers(tmp_path) == []

    def test_temp_name(self, tmp_path):
        writer = AtomicWriter(str(tmp_path / "out.bin"))
        try:
            name = os.path.basename(writer.temp_path)
            assert name.startswith(f"out.bin.tmp.{os.getpid()}.")
            assert os.path.dirname(writer.temp_path) == str(tmp_path)
        finally:
            writer.abort()

    def test_abort_leaves_destination(self, tmp_path):
        path = tmp_path / "out.bin"
        path.write_bytes(b'original')

        writer = AtomicWriter(str(path))
        writer.write(b'replacement')
        writer.abort()

        assert path.read_bytes() == b'original'
        assert leftovers(tmp_path) == []

    def test_context_manager_commits(self, tmp_path):
        path = tmp_path / "out.bin"
        with AtomicWriter(str(path)) as out:
            out.write(b'data')
        assert path.read_bytes() == b'data'

    def test_context_manager_aborts_on_error(self, tmp_path):
        path = tmp_path / "out.bin"
        path.write_bytes(b'original')

        with pytest.raises(RuntimeError):
            with AtomicWriter(str(path)) as out:
                out.write(b'partial')
                raise RuntimeError("boom")

        assert path.read_bytes() == b'original'
        assert leftovers(tmp_path) == []

    def test_keeps_existing_mode(self, tmp_path):
        path = tmp_path / "out.bin"
        path.write_bytes(b'')
        os.chmod(path, 0o600)

        with AtomicWriter(str(path)) as out:
            out.write(b'x')

        assert os.stat(path).st_mode & 0o777 == 0o600

    def test_new_file_mode_follows_umask(self, tmp_path):
        old = os.umask(0o022)
        try:
            path = tmp_path / "new.bin"
            with AtomicWriter(str(path)) as out:
                out.write(b'x')
        finally:
            os.umask(old)

        assert os.stat(path).st_mode & 0o777 == 0o644

    def test_write_after_commit_fails(self, tmp_path):
        writer = AtomicWriter(str(tmp_path / "out.bin"))
        writer.commit()
        with pytest.raises(ValueError):
            writer.write(b'late')

    def test_missing_directory(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            AtomicWriter(str(tmp_path / "nope" / "out.bin"))
