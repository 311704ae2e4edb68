"""Value codec: Value <-> JSON-compatible wire form (no I/O).

Wire shapes:
- Record -> {"K": key, "D": [...]}
- Struct -> {"Vector2": [x, y]} (one entry, tag -> components)
- list/tuple -> list, dict -> object, other primitives unchanged

Strings that collide with a reserved token, or that already start with the
escape marker, are written with one leading "$". Map keys that are not plain
strings are written as compact JSON text; plain string keys whose text would
parse as JSON are escaped too, so the two never mix on decode.

Decoding is lenient and never raises. At each object a struct match wins
over a record match, which wins over a generic map. This means a raw wire
object such as {"Vector2": [1, 2]} always decodes to a Vector2; maps built in
Python never hit this because their string keys are escaped on encode.
"""

from __future__ import annotations

import json
from typing import Any

from keepsake.errors import UnsupportedValueError
from keepsake.record import Record
from keepsake.values import (
    DATA_MARKER,
    ESCAPE_MARKER,
    KEY_MARKER,
    RESERVED_TOKENS,
    STRUCT_TYPES,
    Struct,
    Value,
)

_SEPARATORS = (",", ":")


# ── Escaping ──────────────────────────────────────────────────


def escape(text: str) -> str:
    """Prefix the escape marker when text could be mistaken for a marker."""
    if text in RESERVED_TOKENS or text.startswith(ESCAPE_MARKER):
        return ESCAPE_MARKER + text
    return text


def unescape(text: str) -> str:
    """Strip one leading escape marker, if present."""
    if text.startswith(ESCAPE_MARKER):
        return text[len(ESCAPE_MARKER) :]
    return text


def _parses_as_json(text: str) -> bool:
    try:
        json.loads(text)
    except ValueError:
        return False
    return True


# ── Encoding (Value -> wire) ──────────────────────────────────


def encode(value: Value) -> Any:
    """Encode a value into its wire form.

    Raises UnsupportedValueError for objects outside the value model.
    """
    if isinstance(value, Record):
        return {
            KEY_MARKER: value.key,
            DATA_MARKER: [encode(v) for v in value.values],
        }

    if isinstance(value, Struct):
        return {value.TAG: value.components()}

    if isinstance(value, str):
        return escape(value)

    if value is None or isinstance(value, (bool, int, float)):
        return value

    if isinstance(value, (list, tuple)):
        return [encode(v) for v in value]

    if isinstance(value, dict):
        return {_encode_key(k): encode(v) for k, v in value.items()}

    raise UnsupportedValueError(
        f"Cannot encode {type(value).__name__!r}; convert it to a supported value first"
    )


def _encode_key(key: Value) -> str:
    wire = encode(key)
    if isinstance(wire, str):
        if not wire.startswith(ESCAPE_MARKER) and _parses_as_json(wire):
            return ESCAPE_MARKER + wire
        return wire
    return json.dumps(wire, ensure_ascii=False, separators=_SEPARATORS)


# ── Decoding (wire -> Value) ──────────────────────────────────


def decode(wire: Any) -> Value:
    """Decode a wire value. Unrecognized shapes pass through as maps/lists/primitives."""
    if isinstance(wire, dict):
        return _decode_object(wire)

    if isinstance(wire, list):
        return [decode(v) for v in wire]

    if isinstance(wire, str):
        return unescape(wire)

    return wire


def _decode_object(obj: dict) -> Value:
    struct = decode_struct(obj)
    if struct is not None:
        return struct

    record = decode_record(obj)
    if record is not None:
        return record

    return {
        (_decode_key(k) if isinstance(k, str) else k): decode(v) for k, v in obj.items()
    }


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def decode_struct(obj: dict) -> Struct | None:
    """Return the Struct for a one-entry {tag: [components]} object, else None."""
    if len(obj) != 1:
        return None

    tag, components = next(iter(obj.items()))
    struct_type = STRUCT_TYPES.get(tag)
    if struct_type is None or not isinstance(components, list):
        return None
    if len(components) != struct_type.ARITY or not all(_is_number(c) for c in components):
        return None

    try:
        return struct_type.from_components(components)
    except (ValueError, OverflowError):
        # inf/nan cannot become integer components
        return None


def decode_record(obj: dict) -> Record | None:
    """Return the Record for a two-marker {"K": key, "D": [...]} object, else None."""
    if len(obj) != 2 or KEY_MARKER not in obj or DATA_MARKER not in obj:
        return None

    key, data = obj[KEY_MARKER], obj[DATA_MARKER]
    if not isinstance(key, str) or not isinstance(data, list):
        return None

    return Record(key, [decode(v) for v in data])


def _freeze(value: Value) -> Value:
    """Turn decoded lists into tuples so they can be used as dict keys."""
    if isinstance(value, list):
        return tuple(_freeze(v) for v in value)
    return value


def _decode_key(text: str) -> Value:
    if text.startswith(ESCAPE_MARKER):
        return unescape(text)

    try:
        parsed = json.loads(text)
    except ValueError:
        return text

    key = _freeze(decode(parsed))
    try:
        hash(key)
    except TypeError:
        return text
    return key


# ── Text helpers ──────────────────────────────────────────────


def dumps(value: Value) -> str:
    """Encode a value as compact single-line JSON text."""
    return json.dumps(encode(value), ensure_ascii=False, separators=_SEPARATORS)


def loads(text: str) -> Value:
    """Parse JSON text and decode it. Raises json.JSONDecodeError on bad JSON."""
    return decode(json.loads(text))
