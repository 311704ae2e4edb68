"""Record: an ordered tuple of values identified by a string key.

Two records with the same key are the same record as far as equality,
hashing and storage are concerned, whatever their payloads.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Iterator
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from keepsake.values import Value

logger = logging.getLogger(__name__)


class Record:
    """Identity-bearing payload stored by RecordStore.

    Records can be nested inside other records' payloads, including inside
    lists and dicts. The payload is fixed at construction.
    """

    __slots__ = ("key", "_values")

    def __init__(self, key: str, values: Iterable[Value] = ()) -> None:
        self.key = key
        self._values: tuple[Value, ...] = tuple(values)

    @property
    def values(self) -> tuple[Value, ...]:
        return self._values

    def __len__(self) -> int:
        return len(self._values)

    def __getitem__(self, index: int) -> Value:
        return self._values[index]

    def __iter__(self) -> Iterator[Value]:
        return iter(self._values)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Record):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    def __repr__(self) -> str:
        return f"Record({self.key!r}, {list(self._values)!r})"

    def same_payload(self, other: Record) -> bool:
        """Compare key and payload, recursing into nested records."""
        return self.key == other.key and _payload_equal(self._values, other._values)

    def is_empty(self) -> bool:
        """True when every value reachable through this record is None.

        Lists, tuples, dict values and nested records are searched
        recursively; any other non-None leaf makes the record non-empty.
        """
        return _all_empty(self._values)

    # ── Text form ─────────────────────────────────────────────

    def to_text(self) -> str:
        """Serialize to one line of JSON (no trailing newline)."""
        from keepsake import codec

        return codec.dumps(self)

    @classmethod
    def from_text(cls, line: str) -> Record | None:
        """Parse one line of JSON. Returns None unless it is a two-marker record."""
        from keepsake import codec

        try:
            wire = json.loads(line)
        except ValueError:
            logger.debug("Skipping malformed line: %.80s", line)
            return None

        if not isinstance(wire, dict):
            return None
        return codec.decode_record(wire)


def _all_empty(values: Iterable[Any]) -> bool:
    for value in values:
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            if not _all_empty(value):
                return False
        elif isinstance(value, dict):
            if not _all_empty(value.values()):
                return False
        elif isinstance(value, Record):
            if not value.is_empty():
                return False
        else:
            return False
    return True


def _payload_equal(a: Any, b: Any) -> bool:
    if isinstance(a, Record) or isinstance(b, Record):
        return isinstance(a, Record) and isinstance(b, Record) and a.same_payload(b)
    if isinstance(a, (list, tuple)) and isinstance(b, (list, tuple)):
        return len(a) == len(b) and all(_payload_equal(x, y) for x, y in zip(a, b))
    if isinstance(a, dict) and isinstance(b, dict):
        if a.keys() != b.keys():
            return False
        return all(_payload_equal(a[k], b[k]) for k in a)
    return type(a) is type(b) and a == b
