"""Value model: the closed set of kinds the codec can persist.

A Value is one of:
    None, bool, int, float, str, list (List), dict (Map), Struct, Record

Structs are small fixed-arity numeric tuples (vectors and rectangles). They
are frozen so they can be used as map keys. The reserved tokens below show up
in save files and must stay stable across versions.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar, Sequence, Union

if TYPE_CHECKING:
    from keepsake.record import Record

# ── Reserved tokens (wire format) ─────────────────────────────

KEY_MARKER = "K"
DATA_MARKER = "D"
ESCAPE_MARKER = "$"


# ── Structs ───────────────────────────────────────────────────


class Struct(ABC):
    """Base for fixed-arity numeric values with a reserved wire tag."""

    TAG: ClassVar[str]
    ARITY: ClassVar[int]

    @abstractmethod
    def components(self) -> list[Any]:
        """Numeric components in wire order."""

    @classmethod
    @abstractmethod
    def from_components(cls, values: Sequence[Any]) -> Struct:
        """Build an instance from components in wire order."""


def _coerce(obj: Struct, names: tuple[str, ...], kind: type) -> None:
    for name in names:
        object.__setattr__(obj, name, kind(getattr(obj, name)))


@dataclass(frozen=True)
class Vector2(Struct):
    TAG: ClassVar[str] = "Vector2"
    ARITY: ClassVar[int] = 2

    x: float = 0.0
    y: float = 0.0

    def __post_init__(self) -> None:
        _coerce(self, ("x", "y"), float)

    def components(self) -> list[Any]:
        return [self.x, self.y]

    @classmethod
    def from_components(cls, values: Sequence[Any]) -> Vector2:
        return cls(*values)


@dataclass(frozen=True)
class Vector2i(Struct):
    TAG: ClassVar[str] = "Vector2I"
    ARITY: ClassVar[int] = 2

    x: int = 0
    y: int = 0

    def __post_init__(self) -> None:
        _coerce(self, ("x", "y"), int)

    def components(self) -> list[Any]:
        return [self.x, self.y]

    @classmethod
    def from_components(cls, values: Sequence[Any]) -> Vector2i:
        return cls(*values)


@dataclass(frozen=True)
class Vector3(Struct):
    TAG: ClassVar[str] = "Vector3"
    ARITY: ClassVar[int] = 3

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    def __post_init__(self) -> None:
        _coerce(self, ("x", "y", "z"), float)

    def components(self) -> list[Any]:
        return [self.x, self.y, self.z]

    @classmethod
    def from_components(cls, values: Sequence[Any]) -> Vector3:
        return cls(*values)


@dataclass(frozen=True)
class Vector3i(Struct):
    TAG: ClassVar[str] = "Vector3I"
    ARITY: ClassVar[int] = 3

    x: int = 0
    y: int = 0
    z: int = 0

    def __post_init__(self) -> None:
        _coerce(self, ("x", "y", "z"), int)

    def components(self) -> list[Any]:
        return [self.x, self.y, self.z]

    @classmethod
    def from_components(cls, values: Sequence[Any]) -> Vector3i:
        return cls(*values)


@dataclass(frozen=True)
class Vector4(Struct):
    TAG: ClassVar[str] = "Vector4"
    ARITY: ClassVar[int] = 4

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    w: float = 0.0

    def __post_init__(self) -> None:
        _coerce(self, ("x", "y", "z", "w"), float)

    def components(self) -> list[Any]:
        return [self.x, self.y, self.z, self.w]

    @classmethod
    def from_components(cls, values: Sequence[Any]) -> Vector4:
        return cls(*values)


@dataclass(frozen=True)
class Vector4i(Struct):
    TAG: ClassVar[str] = "Vector4I"
    ARITY: ClassVar[int] = 4

    x: int = 0
    y: int = 0
    z: int = 0
    w: int = 0

    def __post_init__(self) -> None:
        _coerce(self, ("x", "y", "z", "w"), int)

    def components(self) -> list[Any]:
        return [self.x, self.y, self.z, self.w]

    @classmethod
    def from_components(cls, values: Sequence[Any]) -> Vector4i:
        return cls(*values)


@dataclass(frozen=True)
class Rect2(Struct):
    """Axis-aligned rectangle: position (top-left) and size."""

    TAG: ClassVar[str] = "Rect2"
    ARITY: ClassVar[int] = 4

    position: Vector2 = field(default_factory=Vector2)
    size: Vector2 = field(default_factory=Vector2)

    @property
    def end(self) -> Vector2:
        return Vector2(self.position.x + self.size.x, self.position.y + self.size.y)

    def components(self) -> list[Any]:
        return [self.position.x, self.position.y, self.size.x, self.size.y]

    @classmethod
    def from_components(cls, values: Sequence[Any]) -> Rect2:
        x, y, w, h = values
        return cls(Vector2(x, y), Vector2(w, h))


@dataclass(frozen=True)
class Rect2i(Struct):
    """Integer rectangle: position (top-left) and size."""

    TAG: ClassVar[str] = "Rect2I"
    ARITY: ClassVar[int] = 4

    position: Vector2i = field(default_factory=Vector2i)
    size: Vector2i = field(default_factory=Vector2i)

    @property
    def end(self) -> Vector2i:
        return Vector2i(self.position.x + self.size.x, self.position.y + self.size.y)

    def components(self) -> list[Any]:
        return [self.position.x, self.position.y, self.size.x, self.size.y]

    @classmethod
    def from_components(cls, values: Sequence[Any]) -> Rect2i:
        x, y, w, h = values
        return cls(Vector2i(x, y), Vector2i(w, h))


STRUCT_TYPES: dict[str, type[Struct]] = {
    cls.TAG: cls
    for cls in (Vector2, Vector2i, Vector3, Vector3i, Vector4, Vector4i, Rect2, Rect2i)
}

STRUCT_TAGS = frozenset(STRUCT_TYPES)

RESERVED_TOKENS = frozenset({KEY_MARKER, DATA_MARKER}) | STRUCT_TAGS

Value = Union[None, bool, int, float, str, list, dict, Struct, "Record"]
