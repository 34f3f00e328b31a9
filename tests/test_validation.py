# tests/test_validation.py
"""
Tests for validators and mungers.

Covers:
    - Field validator helpers
    - Class validators (@validates)
    - Validation paths for embedded objects
    - Mungers, including munged fields that are never missing
"""

import pytest

from strata import Blueprint, field, schema
from strata.exceptions import ValidationError
from strata.mungers import apply_mungers, attr_if_none, compose, default, transform
from strata.validation import gt, instance_of, le, lt, one_of, valid_regex, validate_tree

from sample_schemas import Bounded, Paths


@schema
class Checked:
    count: int = field(default=1, validator=[gt(0), lt(100)])
    ratio: float = field(default=0.5, validator=le(1.0))
    kind: str = field(default="a", validator=one_of("a", "b"))
    pattern: str = field(default=".*", validator=valid_regex)
    label: object = field(default="x", validator=instance_of(str))


@schema
class Container:
    bounded: Bounded
    name: str = "c"


@schema
class Munged:
    name: str = "Run"
    slug: str = field(munger=compose(attr_if_none("name"), transform(str.lower)))
    retries: int = field(default=None, munger=default(3))


@schema
class Wrapper:
    inner: Munged
    label: str = field(munger=lambda value, obj: value or obj.inner.slug)


# ---------------------------------------------------------------------------
# Validators
# ---------------------------------------------------------------------------


class TestFieldValidators:
    """Per-field validators."""

    def test_defaults_pass(self):
        assert Blueprint(Checked).make() == Checked()

    @pytest.mark.parametrize(
        "args, path",
        [
            ({"count": 0}, "count"),
            ({"count": 100}, "count"),
            ({"ratio": 1.5}, "ratio"),
            ({"kind": "c"}, "kind"),
            ({"pattern": "("}, "pattern"),
            ({"label": 5}, "label"),
        ],
    )
    def test_failures(self, args, path):
        with pytest.raises(ValidationError) as exc_info:
            Blueprint(Checked).apply(args).make()
        assert exc_info.value.path == path
        assert exc_info.value.kind == "validation_error"

    def test_validate_tree_ignores_plain_values(self):
        validate_tree(5)
        validate_tree([1, 2])


class TestClassValidators:
    """@validates methods and nested paths."""

    def test_class_validator(self):
        with pytest.raises(ValidationError) as exc_info:
            Blueprint(Bounded).apply({"low": 5, "high": 1}).make()
        assert "must not exceed" in str(exc_info.value)

    def test_field_validator_runs_first(self):
        with pytest.raises(ValidationError) as exc_info:
            Blueprint(Bounded).apply({"low": -1}).make()
        assert exc_info.value.path == "low"

    def test_nested_path(self):
        with pytest.raises(ValidationError) as exc_info:
            Blueprint(Container).apply({"bounded.low": -1}).make()
        assert exc_info.value.path == "bounded.low"

    def test_nested_class_validator_path(self):
        with pytest.raises(ValidationError) as exc_info:
            Blueprint(Container).apply({"bounded.low": 20}).make()
        assert exc_info.value.path == "bounded"


# ---------------------------------------------------------------------------
# Mungers
# ---------------------------------------------------------------------------


class TestMungers:
    """Post-construction mungers."""

    def test_munger_fills_none(self):
        assert Blueprint(Paths).make().cache == "/data/cache"

    def test_munger_sees_final_values(self):
        assert Blueprint(Paths).apply({"root": "/srv"}).make().cache == "/srv/cache"

    def test_explicit_value_kept(self):
        assert Blueprint(Paths).apply({"cache": "/tmp"}).make().cache == "/tmp"

    def test_compose_and_default(self):
        obj = Blueprint(Munged).make()
        assert obj.slug == "run"
        assert obj.retries == 3

    def test_nested_munged_first(self):
        obj = Blueprint(Wrapper).apply({"inner.name": "ABC"}).make()
        assert obj.inner.slug == "abc"
        assert obj.label == "abc"

    def test_munged_field_not_reported_missing(self):
        report = Blueprint(Paths).dry_run()
        assert report.missing == []

    def test_apply_mungers_returns_same_object_when_unchanged(self):
        obj = Paths(root="/a", cache="/b")
        assert apply_mungers(obj) is obj
