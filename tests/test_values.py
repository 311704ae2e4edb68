"""Tests for the struct value types and reserved tokens."""

import pytest

from keepsake.values import (
    DATA_MARKER,
    ESCAPE_MARKER,
    KEY_MARKER,
    RESERVED_TOKENS,
    STRUCT_TYPES,
    Struct,
    Rect2,
    Rect2i,
    Vector2,
    Vector2i,
    Vector3i,
    Vector4,
    Vector4i,
)


class TestReservedTokens:
    def test_markers(self):
        assert KEY_MARKER == "K"
        assert DATA_MARKER == "D"
        assert ESCAPE_MARKER == "$"

    def test_struct_tags(self):
        assert set(STRUCT_TYPES) == {
            "Vector2",
            "Vector2I",
            "Vector3",
            "Vector3I",
            "Vector4",
            "Vector4I",
            "Rect2",
            "Rect2I",
        }

    def test_reserved_set(self):
        assert len(RESERVED_TOKENS) == 10
        assert ESCAPE_MARKER not in RESERVED_TOKENS


class TestStructs:
    def test_float_components_coerced(self):
        v = Vector2(1, 2)
        assert v == Vector2(1.0, 2.0)
        assert isinstance(v.x, float)

    def test_int_components_coerced(self):
        v = Vector3i(1.0, 2.0, 3.0)
        assert v.components() == [1, 2, 3]
        assert all(isinstance(c, int) for c in v.components())

    def test_float_and_int_kinds_differ(self):
        assert Vector2(1, 2) != Vector2i(1, 2)

    def test_frozen_and_hashable(self):
        v = Vector4(1, 2, 3, 4)
        with pytest.raises(AttributeError):
            v.x = 5
        assert {v: "ok"}[Vector4(1, 2, 3, 4)] == "ok"

    def test_rect_component_order(self):
        rect = Rect2(Vector2(1, 2), Vector2(3, 4))
        assert rect.components() == [1.0, 2.0, 3.0, 4.0]
        assert Rect2.from_components([1, 2, 3, 4]) == rect
        assert rect.end == Vector2(4, 6)

    def test_rect2i(self):
        rect = Rect2i.from_components([0, 0, 16, 9])
        assert rect.position == Vector2i(0, 0)
        assert rect.size == Vector2i(16, 9)

    @pytest.mark.parametrize("tag", sorted(STRUCT_TYPES))
    def test_arity_matches_components(self, tag):
        cls = STRUCT_TYPES[tag]
        instance = cls.from_components(range(cls.ARITY))
        assert cls.TAG == tag
        assert len(instance.components()) == cls.ARITY

    def test_defaults(self):
        assert Vector4i().components() == [0, 0, 0, 0]
        assert Rect2().components() == [0.0, 0.0, 0.0, 0.0]


class TestStructBase:
    def test_base_cannot_be_instantiated(self):
        with pytest.raises(TypeError):
            Struct()

    def test_subclass_must_define_components(self):
        class Point(Struct):
            TAG = "Point"
            ARITY = 2

        with pytest.raises(TypeError):
            Point()

    def test_every_kind_is_a_struct(self):
        assert all(issubclass(cls, Struct) for cls in STRUCT_TYPES.values())
