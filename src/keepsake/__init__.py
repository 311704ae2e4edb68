"""keepsake: line-delimited save files for application state.

Layout of a save file (one record per line):
    {"K":"Player","D":[{"Vector2":[1.0,2.0]},100]}
    {"K":"Door/3","D":[true]}

Entities implement Saveable and are collected into a RecordStore, which is
written out by commit().
"""

from keepsake.backends import (
    Backend,
    EncryptedFileBackend,
    FileBackend,
    GzipFileBackend,
    MemoryBackend,
    backend_for_path,
)
from keepsake.codec import decode, dumps, encode, loads
from keepsake.entity import Saveable, SaveableBase, walk_tree
from keepsake.errors import BackendError, KeepsakeError, UnsupportedValueError
from keepsake.record import Record
from keepsake.store import RecordStore
from keepsake.values import (
    Rect2,
    Rect2i,
    Struct,
    Vector2,
    Vector2i,
    Vector3,
    Vector3i,
    Vector4,
    Vector4i,
)

__all__ = [
    "Backend",
    "BackendError",
    "EncryptedFileBackend",
    "FileBackend",
    "GzipFileBackend",
    "KeepsakeError",
    "MemoryBackend",
    "Record",
    "RecordStore",
    "Rect2",
    "Rect2i",
    "Saveable",
    "SaveableBase",
    "Struct",
    "UnsupportedValueError",
    "Vector2",
    "Vector2i",
    "Vector3",
    "Vector3i",
    "Vector4",
    "Vector4i",
    "backend_for_path",
    "decode",
    "dumps",
    "encode",
    "loads",
    "walk_tree",
]
