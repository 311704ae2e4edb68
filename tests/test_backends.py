"""Tests for persistence backends."""

import gzip

import pytest
from pathlib import Path

from keepsake.backends import (
    ENCRYPTED_MAGIC,
    Backend,
    EncryptedFileBackend,
    FileBackend,
    GzipFileBackend,
    MemoryBackend,
    backend_for_path,
)
from keepsake.errors import BackendError, KeepsakeError

KEY = bytes(range(32))
TEXT = '{"K":"Player","D":[{"Vector2":[1.0,2.0]}]}\n{"K":"Door","D":[true]}\n'


def write(backend, text: str) -> None:
    with backend.open_for_write() as sink:
        sink.write(text)


def read(backend) -> str | None:
    with backend.open_for_read() as source:
        return None if source is None else source.read()


class TestMemoryBackend:
    def test_empty(self):
        assert read(MemoryBackend()) is None

    def test_write_then_read(self):
        backend = MemoryBackend()
        write(backend, TEXT)
        assert read(backend) == TEXT

    def test_failed_write_keeps_content(self):
        backend = MemoryBackend("old\n")
        with pytest.raises(RuntimeError):
            with backend.open_for_write() as sink:
                sink.write("new\n")
                raise RuntimeError("boom")
        assert backend.text == "old\n"

    def test_satisfies_protocol(self):
        assert isinstance(MemoryBackend(), Backend)


class TestFileBackend:
    def test_missing_file_reads_none(self, tmp_path: Path):
        assert read(FileBackend(tmp_path / "nope.sav")) is None

    def test_write_then_read(self, tmp_path: Path):
        backend = FileBackend(tmp_path / "save.sav")
        write(backend, TEXT)
        assert (tmp_path / "save.sav").read_text(encoding="utf-8") == TEXT
        assert read(backend) == TEXT

    def test_creates_parent_directories(self, tmp_path: Path):
        backend = FileBackend(tmp_path / "a" / "b" / "save.sav")
        write(backend, TEXT)
        assert backend.path.exists()

    def test_write_replaces_content(self, tmp_path: Path):
        backend = FileBackend(tmp_path / "save.sav")
        write(backend, "first\nsecond\n")
        write(backend, "third\n")
        assert read(backend) == "third\n"

    def test_failed_write_keeps_old_file(self, tmp_path: Path):
        path = tmp_path / "save.sav"
        path.write_text("old\n", encoding="utf-8")
        backend = FileBackend(path)

        with pytest.raises(RuntimeError):
            with backend.open_for_write() as sink:
                sink.write("new\n")
                raise RuntimeError("boom")

        assert path.read_text(encoding="utf-8") == "old\n"
        assert list(tmp_path.iterdir()) == [path]

    def test_no_temp_files_left(self, tmp_path: Path):
        backend = FileBackend(tmp_path / "save.sav")
        write(backend, TEXT)
        assert [p.name for p in tmp_path.iterdir()] == ["save.sav"]

    def test_non_ascii(self, tmp_path: Path):
        backend = FileBackend(tmp_path / "save.sav")
        write(backend, '{"K":"héros","D":["✓"]}\n')
        assert read(backend) == '{"K":"héros","D":["✓"]}\n'

    def test_invalid_utf8_line_dropped(self, tmp_path: Path, caplog):
        path = tmp_path / "save.sav"
        path.write_bytes(b'{"K":"a","D":[1]}\n{"K":"b","D":["\xc3"]}\n{"K":"c","D":[3]}\n')
        with caplog.at_level("WARNING", logger="keepsake.backends"):
            assert read(FileBackend(path)) == '{"K":"a","D":[1]}\n{"K":"c","D":[3]}\n'
        assert "line 2" in caplog.text

    def test_satisfies_protocol(self, tmp_path: Path):
        assert isinstance(FileBackend(tmp_path / "x"), Backend)


class TestGzipFileBackend:
    def test_round_trip(self, tmp_path: Path):
        backend = GzipFileBackend(tmp_path / "save.sav.gz")
        write(backend, TEXT)
        assert backend.path.read_bytes()[:2] == b"\x1f\x8b"
        assert read(backend) == TEXT

    def test_corrupt_file(self, tmp_path: Path):
        path = tmp_path / "save.sav.gz"
        path.write_bytes(b"definitely not gzip")
        with pytest.raises(BackendError):
            read(GzipFileBackend(path))

    def test_invalid_utf8_line_dropped(self, tmp_path: Path):
        path = tmp_path / "save.sav.gz"
        path.write_bytes(gzip.compress(b'\xff\xfe\n{"K":"a","D":[1]}\n'))
        assert read(GzipFileBackend(path)) == '{"K":"a","D":[1]}\n'


class TestEncryptedFileBackend:
    def test_round_trip_with_key(self, tmp_path: Path):
        backend = EncryptedFileBackend(tmp_path / "save.sav", key=KEY)
        write(backend, TEXT)
        raw = backend.path.read_bytes()
        assert raw.startswith(ENCRYPTED_MAGIC)
        assert b"Player" not in raw
        assert read(backend) == TEXT

    def test_round_trip_with_password(self, tmp_path: Path):
        backend = EncryptedFileBackend(tmp_path / "save.sav", password="hunter2")
        write(backend, TEXT)
        assert read(EncryptedFileBackend(backend.path, password="hunter2")) == TEXT

    def test_wrong_password(self, tmp_path: Path):
        write(EncryptedFileBackend(tmp_path / "save.sav", password="right"), TEXT)
        with pytest.raises(BackendError):
            read(EncryptedFileBackend(tmp_path / "save.sav", password="wrong"))

    def test_wrong_key(self, tmp_path: Path):
        write(EncryptedFileBackend(tmp_path / "save.sav", key=KEY), TEXT)
        with pytest.raises(BackendError):
            read(EncryptedFileBackend(tmp_path / "save.sav", key=bytes(32)))

    def test_plain_file_rejected(self, tmp_path: Path):
        path = tmp_path / "save.sav"
        path.write_text(TEXT, encoding="utf-8")
        with pytest.raises(BackendError):
            read(EncryptedFileBackend(path, key=KEY))

    def test_bad_key_length(self, tmp_path: Path):
        with pytest.raises(BackendError):
            EncryptedFileBackend(tmp_path / "save.sav", key=b"short")

    def test_needs_exactly_one_secret(self, tmp_path: Path):
        with pytest.raises(BackendError):
            EncryptedFileBackend(tmp_path / "save.sav")
        with pytest.raises(BackendError):
            EncryptedFileBackend(tmp_path / "save.sav", key=KEY, password="pw")

    def test_backend_error_is_os_error(self, tmp_path: Path):
        with pytest.raises(OSError):
            EncryptedFileBackend(tmp_path / "save.sav")
        assert issubclass(BackendError, KeepsakeError)


class TestBackendForPath:
    def test_plain(self, tmp_path: Path):
        assert type(backend_for_path(tmp_path / "s")) is FileBackend
        assert type(backend_for_path(tmp_path / "s", compression="none")) is FileBackend

    def test_gzip(self, tmp_path: Path):
        backend = backend_for_path(tmp_path / "s", compression="gzip", compresslevel=9)
        assert isinstance(backend, GzipFileBackend)
        assert backend.compresslevel == 9

    def test_encrypted(self, tmp_path: Path):
        assert isinstance(backend_for_path(tmp_path / "s", key=KEY), EncryptedFileBackend)
        assert isinstance(backend_for_path(tmp_path / "s", password="pw"), EncryptedFileBackend)

    def test_empty_password_means_plain(self, tmp_path: Path):
        assert type(backend_for_path(tmp_path / "s", password="")) is FileBackend

    def test_unknown_compression(self, tmp_path: Path):
        with pytest.raises(BackendError):
            backend_for_path(tmp_path / "s", compression="zstd")

    def test_compression_with_encryption(self, tmp_path: Path):
        with pytest.raises(BackendError):
            backend_for_path(tmp_path / "s", compression="gzip", password="pw")
