# strata/utils.py
"""
strata.utils
------------

Shared helpers: filesystem paths for preset files, dot-notation parameter
paths, and walking or rendering a constructed tree (``to_plain``,
``traverse``, ``pretty``).
"""

from __future__ import annotations

import dataclasses
import enum
import os
from pathlib import Path
from typing import Any, Iterator, Optional

import click

from .fields import fields_of, is_schema_instance


def expand_path(path: Optional[str]) -> Optional[str]:
    """Expand ~ and environment variables in a path string.

    Args:
        path: Path string to expand, or None.

    Returns:
        Expanded path string, or None if input was None.

    Examples:
        >>> expand_path("$HOME/.config/app.toml")
        '/home/user/.config/app.toml'
    """
    if path is None:
        return None
    return os.path.expandvars(os.path.expanduser(str(path)))


def join_path(parent: str, child: str) -> str:
    """Join two dot-notation paths.

    The root path ``""`` joins to the child unchanged, and a child that starts
    with ``.`` (such as a ``...`` wildcard) is appended without an extra dot.

    Examples:
        >>> join_path("", "model")
        'model'
        >>> join_path("model", "layers.0")
        'model.layers.0'
        >>> join_path("model", "...lr")
        'model...lr'
    """
    if not parent:
        return child
    if not child or child.startswith("."):
        return parent + child
    return f"{parent}.{child}"


def flatten(d: dict, prefix: str = "") -> dict:
    """Flatten nested dict into { 'a.b.c': value, … }."""
    items = {}
    for k, v in d.items():
        key = join_path(prefix, str(k))
        if isinstance(v, dict) and v:
            items.update(flatten(v, key))
        else:
            items[key] = v
    return items


def to_plain(value: Any) -> Any:
    """
    Convert a constructed tree into plain JSON/TOML-friendly data.

    Dataclass instances become dicts, tuples and sets become lists, enums
    become their values and paths become strings. Other objects are returned
    unchanged.
    """
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_plain(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, dict):
        return {str(k): to_plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_plain(v) for v in value]
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, Path):
        return str(value)
    return value


def _children(value: Any, path: str) -> list[tuple[str, Any]]:
    if is_schema_instance(value):
        return [(join_path(path, f.name), getattr(value, f.name)) for f in fields_of(type(value))]
    if isinstance(value, dict):
        return [(join_path(path, str(k)), v) for k, v in value.items()]
    if isinstance(value, (list, tuple)):
        return [(join_path(path, str(i)), v) for i, v in enumerate(value)]
    return []


def traverse(obj: Any, path: str = "") -> Iterator[tuple[str, Any]]:
    """Yield ``(path, value)`` for ``obj`` and everything nested in it, depth first.

    Schema instances yield their fields, dicts their items and lists and
    tuples their elements by index. The root comes first.

    Examples:
        >>> [p for p, _ in traverse(Experiment(name="x", model=Model()))]
        ['', 'name', 'model', 'model.hidden', 'model.layers']
    """
    pending = [(path, obj)]
    while pending:
        current_path, value = pending.pop()
        yield current_path, value
        pending.extend(reversed(_children(value, current_path)))


_INDENT = "    "


def _indent(text: str) -> str:
    return text.replace("\n", "\n" + _INDENT)


def _block(opening: str, items: list[str], closing: str) -> str:
    return opening + "\n" + "".join(f"{_INDENT}{_indent(item)},\n" for item in items) + closing


def pretty(obj: Any, colored: bool = False) -> str:
    """
    Multi-line, human-readable rendering of a constructed tree.

    Fields are listed by name; those whose value equals their default are
    grouped last under a ``# Fields where value matches default:`` line.
    Fields declared with ``field(repr=False)`` show as ``...``. Containers
    are expanded only when they hold schema instances; anything else is
    ``repr``'d.

    Args:
        obj: The object to render.
        colored: Style names and brackets with ANSI codes (``click.style``).
    """
    return _pretty(obj, colored, frozenset())


def _pretty(obj: Any, colored: bool, seen: frozenset) -> str:
    if is_schema_instance(obj):
        return _pretty_schema(obj, colored, seen)
    if isinstance(obj, (list, tuple)) and any(is_schema_instance(v) for v in obj):
        opening, closing = ("[", "]") if isinstance(obj, list) else ("(", ")")
        return _block(opening, [_pretty(v, colored, seen) for v in obj], closing)
    if isinstance(obj, dict) and any(is_schema_instance(v) for v in obj.values()):
        return _block("{", [f"{k!r}: {_pretty(v, colored, seen)}" for k, v in obj.items()], "}")
    return repr(obj)


def _pretty_schema(obj: Any, colored: bool, seen: frozenset) -> str:
    name = type(obj).__name__
    if id(obj) in seen:
        return f"<cycle {name}>"
    seen = seen | {id(obj)}

    def style(text: str, **styles) -> str:
        return click.style(text, **styles) if colored else text

    shown = {f.name: f.repr for f in dataclasses.fields(obj)}
    changed, defaulted = [], []
    for f in sorted(fields_of(type(obj)), key=lambda f: f.name):
        value = getattr(obj, f.name)
        text = _pretty(value, colored, seen) if shown.get(f.name, True) else "..."
        line = f"{_INDENT}{style(f.name + '=', fg='blue')}{_indent(text)},\n"
        if f.has_default() and f.get_default() == value:
            defaulted.append(line)
        else:
            changed.append(line)

    out = [style(name + "(", bold=True), "\n", *changed]
    if defaulted:
        out += [_INDENT, style("# Fields where value matches default:", bold=True), "\n", *defaulted]
    out.append(style(")", bold=True))
    return "".join(out)
