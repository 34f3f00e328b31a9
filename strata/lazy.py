# strata/lazy.py
"""
strata.lazy
-----------

Lazy evaluation of a construction graph.

A value mapping maps dot-notation paths to one of three evaluatables:

- ``Value(v)``: a concrete value.
- ``ParamRef(path)``: whatever ``path`` evaluates to.
- ``Thunk(fn, kwargs)``: ``fn(**{name: <value at ref.ref>})``.

``evaluate`` resolves the root ``""``. Every path is evaluated at most once
per call (results are cached), and a path that is requested again while it
is still being resolved is reported as a cycle.

Thunks are plain data, so the whole graph can be inspected (see
``check_reference_targets``) before any constructor runs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping, Union

from .exceptions import ConstructionError, CycleError, InvalidReferenceError, StrataError
from .wildcard import approximate

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Value:
    value: Any


@dataclass(frozen=True)
class ParamRef:
    ref: str


@dataclass(frozen=True)
class Thunk:
    """A deferred call: ``fn`` receives each kwarg's resolved target."""

    fn: Callable[..., Any] = field(compare=False)
    kwargs: Mapping[str, ParamRef] = field(default_factory=dict)


Evaluatable = Union[Value, ParamRef, Thunk]


def _dependencies(node: Evaluatable) -> list[str]:
    if isinstance(node, ParamRef):
        return [node.ref]
    if isinstance(node, Thunk):
        return [ref.ref for ref in node.kwargs.values()]
    return []


def evaluate(value_mapping: Mapping[str, Evaluatable]) -> Any:
    """Resolve the root entry of ``value_mapping``.

    Args:
        value_mapping: Path -> evaluatable. Must contain ``""``.

    Returns:
        The fully evaluated root value.

    Raises:
        ValueError: If the mapping has no root entry.
        InvalidReferenceError: If a referenced path is absent from the mapping.
        CycleError: If a path depends on itself.
        ConstructionError: If a thunk's function raises.
    """
    if "" not in value_mapping:
        raise ValueError("value_mapping must contain root entry ''")

    cache: dict[str, Any] = {}
    # insertion-ordered, so the keys are exactly the chain from the root
    in_progress: dict[str, None] = {}
    stack: list[str] = [""]
    referrer: dict[str, str] = {}

    while stack:
        path = stack[-1]
        if path in cache:
            stack.pop()
            continue

        node = value_mapping.get(path)
        if node is None:
            source = referrer.get(path, "")
            raise InvalidReferenceError({path: [source]})

        pending = [dep for dep in _dependencies(node) if dep not in cache]
        if pending and path not in in_progress:
            in_progress[path] = None
            for dep in reversed(pending):
                if dep in in_progress:
                    chain = list(in_progress)
                    raise CycleError(chain[chain.index(dep):] + [dep])
                referrer.setdefault(dep, path)
                stack.append(dep)
            continue
        if pending:
            # a dependency was pushed but resolved through another branch
            for dep in pending:
                if dep in in_progress:
                    chain = list(in_progress)
                    raise CycleError(chain[chain.index(dep):] + [dep])
                stack.append(dep)
            continue

        cache[path] = _compute(path, node, cache)
        in_progress.pop(path, None)
        stack.pop()

    log.debug(f"DEBUG [strata.evaluate]: evaluated {len(cache)} paths")
    return cache[""]


def _compute(path: str, node: Evaluatable, cache: Mapping[str, Any]) -> Any:
    if isinstance(node, Value):
        return node.value
    if isinstance(node, ParamRef):
        return cache[node.ref]
    kwargs = {name: cache[ref.ref] for name, ref in node.kwargs.items()}
    try:
        return node.fn(**kwargs)
    except StrataError:
        raise
    except Exception as e:
        raise ConstructionError(path, e) from e


def check_reference_targets(value_mapping: Mapping[str, Evaluatable], known_paths: Iterable[str]) -> None:
    """
    Check that every reference in the mapping points at a known path.

    Collects all dangling targets in one pass, independent of mapping order,
    and reports them together with every path referring to them and a
    best-guess replacement.

    Raises:
        InvalidReferenceError: If any reference target is unknown.
    """
    known = list(dict.fromkeys(known_paths))
    known_set = set(known)

    invalid: dict[str, list[str]] = {}
    for param_path, node in value_mapping.items():
        for target in _dependencies(node):
            if target not in known_set:
                referrers = invalid.setdefault(target, [])
                if param_path not in referrers:
                    referrers.append(param_path)

    if not invalid:
        return

    invalid = {target: sorted(invalid[target]) for target in sorted(invalid)}
    suggestions = {target: _best_guess(target, known) for target in invalid}
    log.debug(f"DEBUG [strata.check_reference_targets]: dangling references {invalid}")
    raise InvalidReferenceError(invalid, suggestions)


def _best_guess(target: str, known: list[str]):
    best_score, best = 0.0, None
    for candidate in known:
        if not candidate:
            continue
        score, suggestion = approximate(target, candidate)
        if score > best_score:
            best_score, best = score, suggestion
    return best
