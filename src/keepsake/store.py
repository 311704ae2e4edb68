"""RecordStore: in-memory keyed index of records for one save file.

The whole file is read and decoded on open and held in memory, even records
that are never used. Prefer one store per save file covering a whole tree of
objects over many small stores, and do not keep stores open longer than
needed.

Nothing touches the backend between open() and commit(). Commit rewrites the
entire content, one line per record; its cost grows with the number of
records, so batch changes and commit sparingly. Discarding a store without
committing drops its changes. A store is meant for a single writer.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import TYPE_CHECKING, Any

from keepsake.backends import Backend, backend_for_path
from keepsake.entity import Saveable, Walker, iter_saveables, walk_tree
from keepsake.record import Record

if TYPE_CHECKING:
    from keepsake.config import KeepsakeConfig

logger = logging.getLogger(__name__)


class RecordStore:
    """At most one Record per key, loaded eagerly and committed by full rewrite."""

    def __init__(self, backend: Backend | None = None) -> None:
        self.backend = backend
        self._records: dict[str, Record] = {}

    # ── Opening ───────────────────────────────────────────────

    @classmethod
    def open(cls, backend: Backend) -> RecordStore:
        """Load every record from backend. No existing content gives an empty store.

        Lines that are blank or not a well-formed record are skipped. When a
        key appears more than once the last line wins.
        """
        store = cls(backend)
        skipped = 0
        with backend.open_for_read() as source:
            if source is None:
                logger.debug("No existing content for %r, starting empty", backend)
                return store
            for line in source:
                if not line.strip():
                    continue
                record = Record.from_text(line)
                if record is None:
                    skipped += 1
                    continue
                store._records[record.key] = record

        logger.info(
            "Opened %r: %d records (%d lines skipped)", backend, len(store._records), skipped
        )
        return store

    @classmethod
    def open_path(
        cls,
        path: Path | str,
        *,
        compression: str | None = None,
        compresslevel: int = 6,
        key: bytes | None = None,
        password: str | None = None,
    ) -> RecordStore:
        """Open a save file, optionally gzip-compressed or encrypted."""
        backend = backend_for_path(
            path,
            compression=compression,
            compresslevel=compresslevel,
            key=key,
            password=password,
        )
        return cls.open(backend)

    @classmethod
    def from_config(cls, config: KeepsakeConfig, name: str) -> RecordStore:
        """Open ``name`` inside the configured save directory."""
        storage = config.storage
        return cls.open_path(
            storage.save_dir / name,
            compression=storage.compression,
            compresslevel=storage.compress_level,
            password=storage.password or None,
        )

    # ── Records ───────────────────────────────────────────────

    def upsert(self, record: Record) -> None:
        """Insert record, replacing any record with the same key."""
        self._records[record.key] = record

    def get(self, key: str) -> Record | None:
        return self._records.get(key)

    def remove(self, key: str) -> bool:
        """Remove the record for key. Returns True if one was removed."""
        return self._records.pop(key, None) is not None

    def clear(self) -> None:
        """Drop every record. The backend is untouched until commit()."""
        self._records.clear()

    def keys(self) -> list[str]:
        return list(self._records)

    def records(self) -> list[Record]:
        return list(self._records.values())

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[Record]:
        return iter(list(self._records.values()))

    def __contains__(self, item: object) -> bool:
        if isinstance(item, Record):
            item = item.key
        return item in self._records

    # ── Committing ────────────────────────────────────────────

    def commit(self, backend: Backend | None = None) -> None:
        """Replace the backend's content with one line per record.

        Uses the backend the store was opened with unless another is given.
        """
        target = backend if backend is not None else self.backend
        if target is None:
            raise ValueError("RecordStore has no backend to commit to")

        with target.open_for_write() as sink:
            for record in self._records.values():
                sink.write(record.to_text())
                sink.write("\n")

        logger.info("Committed %d records to %r", len(self._records), target)

    # ── Entities ──────────────────────────────────────────────

    def save_object(self, entity: Saveable, context: Any = None) -> None:
        """Queue an entity's Record to be written on the next commit."""
        record = entity.save(context)
        if record is None:
            logger.debug("%r saved no record, skipping", entity)
            return
        self.upsert(record)

    def load_object(self, entity: Saveable, context: Any = None) -> None:
        """Hand an entity its stored Record, or None if it has none."""
        entity.load(self.get(entity.get_key(context)), context)

    def save_tree(self, root: Any, context: Any = None, walker: Walker = walk_tree) -> None:
        """Queue every Saveable under root to be written on the next commit."""
        for entity in iter_saveables(root, walker):
            self.save_object(entity, context)

    def load_tree(self, root: Any, context: Any = None, walker: Walker = walk_tree) -> None:
        """Load every Saveable under root from this store."""
        for entity in iter_saveables(root, walker):
            self.load_object(entity, context)

    @staticmethod
    def save_tree_to_records(
        root: Any, context: Any = None, walker: Walker = walk_tree
    ) -> dict[str, Record]:
        """Save a tree into a key -> Record mapping instead of a store."""
        records: dict[str, Record] = {}
        for entity in iter_saveables(root, walker):
            record = entity.save(context)
            if record is not None:
                records[record.key] = record
        return records

    @staticmethod
    def load_tree_from_records(
        root: Any,
        records: dict[str, Record] | Iterable[Record],
        context: Any = None,
        walker: Walker = walk_tree,
    ) -> None:
        """Load a tree from records produced by save_tree_to_records()."""
        if not isinstance(records, dict):
            records = {record.key: record for record in records}
        for entity in iter_saveables(root, walker):
            entity.load(records.get(entity.get_key(context)), context)
