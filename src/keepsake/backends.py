"""Persistence backends: where a store's text lines are read from and written to.

Every backend hands out text streams through context managers so the
underlying handle is released on every exit path. Compression and encryption
only change the bytes on disk, never the text the codec produces.
"""

from __future__ import annotations

import gzip
import io
import logging
import os
import secrets
import tempfile
import zlib
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import ContextManager, Protocol, TextIO, runtime_checkable

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from keepsake.errors import BackendError

logger = logging.getLogger(__name__)

ENCODING = "utf-8"

COMPRESSION_NONE = "none"
COMPRESSION_GZIP = "gzip"

# Encrypted file layout: magic | salt | nonce | tag | ciphertext
ENCRYPTED_MAGIC = b"KSE1"
_SALT_SIZE = 16
_NONCE_SIZE = 12
_TAG_SIZE = 16
_KEY_SIZE = 32
_KDF_ITERATIONS = 100_000


@runtime_checkable
class Backend(Protocol):
    """Protocol that all persistence backends must implement."""

    def open_for_read(self) -> ContextManager[TextIO | None]:
        """Open the existing content for reading. Yields None when there is none."""
        ...

    def open_for_write(self) -> ContextManager[TextIO]:
        """Open a sink that replaces the entire prior content on success."""
        ...


# ── Memory ────────────────────────────────────────────────────


class MemoryBackend:
    """Keeps the content in a string. Useful for tests and in-process snapshots."""

    def __init__(self, text: str | None = None) -> None:
        self.text = text

    @contextmanager
    def open_for_read(self) -> Iterator[TextIO | None]:
        if self.text is None:
            yield None
            return
        stream = io.StringIO(self.text)
        try:
            yield stream
        finally:
            stream.close()

    @contextmanager
    def open_for_write(self) -> Iterator[TextIO]:
        stream = io.StringIO()
        try:
            yield stream
            self.text = stream.getvalue()
        finally:
            stream.close()


# ── Files ─────────────────────────────────────────────────────


class FileBackend:
    """Plain UTF-8 text file.

    Writes go to a temporary sibling which replaces the target only after the
    caller finishes without error, so a failed commit leaves the old file.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({str(self.path)!r})"

    @contextmanager
    def open_for_read(self) -> Iterator[TextIO | None]:
        try:
            raw = self.path.read_bytes()
        except FileNotFoundError:
            yield None
            return
        stream = io.StringIO(self._decode_lines(self._decode(raw)))
        try:
            yield stream
        finally:
            stream.close()

    @contextmanager
    def open_for_write(self) -> Iterator[TextIO]:
        stream = io.StringIO()
        try:
            yield stream
            self._atomic_write(self._encode(stream.getvalue().encode(ENCODING)))
        finally:
            stream.close()

    # Byte transforms, overridden by compressed/encrypted subclasses

    def _encode(self, data: bytes) -> bytes:
        return data

    def _decode(self, data: bytes) -> bytes:
        return data

    def _decode_lines(self, data: bytes) -> str:
        """Decode line by line, dropping lines that are not valid UTF-8."""
        lines: list[str] = []
        for number, raw_line in enumerate(data.splitlines(keepends=True), start=1):
            try:
                lines.append(raw_line.decode(ENCODING))
            except UnicodeDecodeError:
                logger.warning("Dropping line %d of %s: invalid %s", number, self.path, ENCODING)
        return "".join(lines)

    def _atomic_write(self, data: bytes) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
        )
        tmp = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, self.path)
        except BaseException:
            tmp.unlink(missing_ok=True)
            raise
        logger.debug("Wrote %d bytes to %s", len(data), self.path)


class GzipFileBackend(FileBackend):
    """Gzip-compressed UTF-8 text file."""

    def __init__(self, path: Path | str, compresslevel: int = 6) -> None:
        super().__init__(path)
        self.compresslevel = compresslevel

    def _encode(self, data: bytes) -> bytes:
        return gzip.compress(data, compresslevel=self.compresslevel)

    def _decode(self, data: bytes) -> bytes:
        try:
            return gzip.decompress(data)
        except (OSError, EOFError, zlib.error) as e:
            raise BackendError(f"Cannot decompress {self.path}: {e}") from e


def derive_key(password: str, salt: bytes) -> bytes:
    """Derive a 32-byte key from a password using PBKDF2."""
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=_KEY_SIZE,
        salt=salt,
        iterations=_KDF_ITERATIONS,
    )
    return kdf.derive(password.encode(ENCODING))


class EncryptedFileBackend(FileBackend):
    """AES-256-GCM encrypted text file, keyed by raw bytes or a password.

    Exactly one of ``key`` (32 bytes) or ``password`` must be given.
    """

    def __init__(
        self, path: Path | str, *, key: bytes | None = None, password: str | None = None
    ) -> None:
        super().__init__(path)
        if (key is None) == (password is None):
            raise BackendError("EncryptedFileBackend needs exactly one of key or password")
        if key is not None and len(key) != _KEY_SIZE:
            raise BackendError(f"Encryption key must be {_KEY_SIZE} bytes, got {len(key)}")
        self._key = key
        self._password = password

    def _resolve_key(self, salt: bytes) -> bytes:
        if self._key is not None:
            return self._key
        return derive_key(self._password, salt)

    def _encode(self, data: bytes) -> bytes:
        salt = secrets.token_bytes(_SALT_SIZE)
        nonce = secrets.token_bytes(_NONCE_SIZE)
        cipher = Cipher(algorithms.AES(self._resolve_key(salt)), modes.GCM(nonce))
        encryptor = cipher.encryptor()
        ciphertext = encryptor.update(data) + encryptor.finalize()
        return ENCRYPTED_MAGIC + salt + nonce + encryptor.tag + ciphertext

    def _decode(self, data: bytes) -> bytes:
        header = len(ENCRYPTED_MAGIC) + _SALT_SIZE + _NONCE_SIZE + _TAG_SIZE
        if len(data) < header or not data.startswith(ENCRYPTED_MAGIC):
            raise BackendError(f"{self.path} is not an encrypted save file")

        offset = len(ENCRYPTED_MAGIC)
        salt = data[offset : offset + _SALT_SIZE]
        offset += _SALT_SIZE
        nonce = data[offset : offset + _NONCE_SIZE]
        offset += _NONCE_SIZE
        tag = data[offset : offset + _TAG_SIZE]
        ciphertext = data[offset + _TAG_SIZE :]

        cipher = Cipher(algorithms.AES(self._resolve_key(salt)), modes.GCM(nonce, tag))
        decryptor = cipher.decryptor()
        try:
            return decryptor.update(ciphertext) + decryptor.finalize()
        except InvalidTag as e:
            raise BackendError(f"Cannot decrypt {self.path}: wrong key or corrupt file") from e


def backend_for_path(
    path: Path | str,
    *,
    compression: str | None = None,
    compresslevel: int = 6,
    key: bytes | None = None,
    password: str | None = None,
) -> FileBackend:
    """Pick a file backend for the given transport options."""
    if key is not None or password:
        if compression not in (None, COMPRESSION_NONE):
            raise BackendError("Compression and encryption cannot be combined")
        return EncryptedFileBackend(path, key=key, password=password or None)
    if compression in (None, COMPRESSION_NONE):
        return FileBackend(path)
    if compression == COMPRESSION_GZIP:
        return GzipFileBackend(path, compresslevel=compresslevel)
    raise BackendError(f"Unknown compression: {compression!r}")
