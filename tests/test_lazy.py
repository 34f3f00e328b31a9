# tests/test_lazy.py
"""
Tests for the lazy evaluator.

Covers:
    - Values, reference chains and thunks
    - Shared dependencies computed once
    - Cycle detection and dangling references
    - check_reference_targets() aggregation and suggestions
"""

import pytest

from strata.exceptions import ConstructionError, CycleError, InvalidReferenceError, StrataError
from strata.lazy import ParamRef, Thunk, Value, check_reference_targets, evaluate

# ---------------------------------------------------------------------------
# evaluate()
# ---------------------------------------------------------------------------


class TestEvaluate:
    """Tests for evaluate()."""

    def test_root_value(self):
        assert evaluate({"": Value(5)}) == 5

    def test_reference_chain(self):
        mapping = {"": ParamRef("a"), "a": ParamRef("b"), "b": Value(5)}
        assert evaluate(mapping) == 5

    def test_thunk(self):
        mapping = {
            "": Thunk(lambda x, y: x + y, {"x": ParamRef("x"), "y": ParamRef("y")}),
            "x": Value(2),
            "y": Value(3),
        }
        assert evaluate(mapping) == 5

    def test_shared_dependency_runs_once(self):
        """A thunk referenced from two places is computed once per evaluate."""
        calls = []

        def counted():
            calls.append(1)
            return 10

        mapping = {
            "": Thunk(lambda a, b: (a, b), {"a": ParamRef("left"), "b": ParamRef("right")}),
            "left": ParamRef("shared"),
            "right": ParamRef("shared"),
            "shared": Thunk(counted, {}),
        }
        assert evaluate(mapping) == (10, 10)
        assert len(calls) == 1

        evaluate(mapping)
        assert len(calls) == 2

    def test_missing_root(self):
        with pytest.raises(ValueError):
            evaluate({"a": Value(1)})

    def test_cycle(self):
        mapping = {
            "": Thunk(lambda a, b: (a, b), {"a": ParamRef("a"), "b": ParamRef("b")}),
            "a": ParamRef("b"),
            "b": ParamRef("a"),
        }
        with pytest.raises(CycleError) as exc_info:
            evaluate(mapping)
        assert "'a'" in str(exc_info.value)
        assert "'b'" in str(exc_info.value)

    def test_self_cycle(self):
        with pytest.raises(CycleError):
            evaluate({"": ParamRef("a"), "a": ParamRef("a")})

    def test_dangling_reference(self):
        with pytest.raises(InvalidReferenceError) as exc_info:
            evaluate({"": ParamRef("nowhere")})
        assert "nowhere" in str(exc_info.value)

    def test_thunk_error_wrapped(self):
        def boom():
            raise RuntimeError("kaput")

        with pytest.raises(ConstructionError) as exc_info:
            evaluate({"": Thunk(boom, {})})
        assert isinstance(exc_info.value.cause, RuntimeError)
        assert "kaput" in str(exc_info.value)

    def test_strata_error_passes_through(self):
        def fail():
            raise StrataError("inner")

        with pytest.raises(StrataError) as exc_info:
            evaluate({"": Thunk(fail, {})})
        assert not isinstance(exc_info.value, ConstructionError)

    def test_deep_chain(self):
        """Evaluation is iterative; long chains do not hit the recursion limit."""
        depth = 5000
        mapping = {"": ParamRef("p0")}
        for i in range(depth):
            mapping[f"p{i}"] = ParamRef(f"p{i + 1}")
        mapping[f"p{depth}"] = Value("bottom")
        assert evaluate(mapping) == "bottom"


# ---------------------------------------------------------------------------
# check_reference_targets()
# ---------------------------------------------------------------------------


class TestCheckReferenceTargets:
    """Tests for check_reference_targets()."""

    def test_valid(self):
        mapping = {"": ParamRef("a"), "a": Value(1)}
        check_reference_targets(mapping, mapping)

    def test_aggregates_referrers(self):
        mapping = {
            "": Thunk(dict, {"x": ParamRef("x"), "y": ParamRef("y")}),
            "x": ParamRef("model.hiden"),
            "y": ParamRef("model.hiden"),
            "model.hidden": Value(1),
        }
        with pytest.raises(InvalidReferenceError) as exc_info:
            check_reference_targets(mapping, mapping)
        err = exc_info.value
        assert err.targets == {"model.hiden": ["x", "y"]}
        assert "Did you mean 'model.hidden'?" in str(err)

    def test_sorted_targets(self):
        mapping = {"": Thunk(dict, {"a": ParamRef("zz"), "b": ParamRef("aa")})}
        with pytest.raises(InvalidReferenceError) as exc_info:
            check_reference_targets(mapping, mapping)
        assert list(exc_info.value.targets) == ["aa", "zz"]
