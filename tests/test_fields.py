# tests/test_fields.py
"""
Tests for schema declaration.

Covers:
    - @schema and field() metadata
    - Embed classification of annotations
    - fields_of() for schemas and plain callables
"""

from typing import Optional, Sequence

import pytest

from strata.fields import (
    EMBED_MANY,
    EMBED_NONE,
    EMBED_ONE,
    MISSING,
    field,
    fields_of,
    is_schema,
    is_schema_instance,
    schema,
    type_repr,
)

from sample_schemas import Block, Model, Optimizer, Paths, Trainer, build_pair


@schema
class Shapes:
    plain: int = 0
    one: Model = field(default_factory=Model)
    maybe: Optional[Model] = None
    many: list[Block] = field(default_factory=list)
    seq: Sequence[Block] = ()
    fixed: tuple[Block, Block] = ()
    names: list[str] = field(default_factory=list)


def _by_name(target):
    return {f.name: f for f in fields_of(target)}


class TestSchema:
    """@schema and field()."""

    def test_marker(self):
        assert is_schema(Model)
        assert not is_schema(Model())
        assert is_schema_instance(Model())
        assert not is_schema(int)

    def test_keyword_only(self):
        with pytest.raises(TypeError):
            Model(1, 2)

    def test_frozen(self):
        @schema(frozen=True)
        class Point:
            x: int = 0

        with pytest.raises(AttributeError):
            Point().x = 1

    def test_field_metadata(self):
        f = _by_name(Trainer)["optimizer"]
        assert f.polymorphic
        assert f.namespace == "sample_optimizer"
        assert f.doc == "Optimizer to use"
        assert f.default is MISSING
        assert f.required

    def test_default_and_factory_conflict(self):
        with pytest.raises(ValueError):
            field(default=1, default_factory=list)

    def test_munger_placeholder(self):
        cache = _by_name(Paths)["cache"]
        assert not cache.has_default()
        assert not cache.required
        assert Paths().cache is None

    def test_default_factory(self):
        one = _by_name(Shapes)["one"]
        assert one.has_default()
        assert one.get_default() == Model()
        assert one.get_default() is not one.get_default()


class TestClassification:
    """Embed detection from annotations."""

    def test_kinds(self):
        fields = _by_name(Shapes)
        assert (fields["plain"].embed_kind, fields["plain"].type) == (EMBED_NONE, int)
        assert (fields["one"].embed_kind, fields["one"].type) == (EMBED_ONE, Model)
        assert (fields["maybe"].embed_kind, fields["maybe"].type) == (EMBED_ONE, Model)
        assert (fields["many"].embed_kind, fields["many"].type) == (EMBED_MANY, Block)
        assert (fields["seq"].embed_kind, fields["seq"].type) == (EMBED_MANY, Block)
        assert fields["fixed"].embed_kind == EMBED_NONE
        assert fields["names"].embed_kind == EMBED_NONE

    def test_raw_type_kept(self):
        assert _by_name(Shapes)["maybe"].raw_type == Optional[Model]

    def test_polymorphic_base(self):
        f = _by_name(Trainer)["optimizer"]
        assert (f.embed_kind, f.type) == (EMBED_ONE, Optimizer)


class TestFieldsOf:
    """fields_of() for schemas and callables."""

    def test_order(self):
        assert [f.name for f in fields_of(Model)] == ["hidden", "layers"]

    def test_callable(self):
        fields = fields_of(build_pair)
        assert [f.name for f in fields] == ["a", "b"]
        assert fields[0].required
        assert fields[1].default == 2
        assert fields[0].type is int

    def test_not_callable(self):
        with pytest.raises(TypeError):
            fields_of(5)

    def test_type_repr(self):
        assert type_repr(int) == "int"
        assert type_repr(Model) == "Model"
        assert type_repr(list[int]) == "list[int]"
        assert type_repr(Optional[int]) == "Optional[int]"
