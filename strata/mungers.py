# strata/mungers.py
"""
strata.mungers
--------------

Post-construction field transforms.

A munger is ``fn(value, obj) -> new_value``. It runs after the whole tree has
been built, embedded objects first, and sees the object with all earlier
fields already munged. A field with a munger is never reported as missing:
the munger receives ``None`` and is expected to fill it in.
"""

from __future__ import annotations

import dataclasses
from typing import Any, Callable

from .fields import fields_of, is_schema_instance

Munger = Callable[[Any, Any], Any]


def if_none(replacement: Callable[[Any], Any]) -> Munger:
    """If the value is None, replace it with ``replacement(obj)``."""

    def munge(value, obj):
        return replacement(obj) if value is None else value

    return munge


def attr_if_none(attr: str) -> Munger:
    """If the value is None, copy another attribute of the same object."""

    def munge(value, obj):
        return getattr(obj, attr) if value is None else value

    return munge


def default(default_value: Any) -> Munger:
    def munge(value, obj):
        return default_value if value is None else value

    return munge


def transform(fn: Callable[[Any], Any]) -> Munger:
    def munge(value, obj):
        return fn(value)

    return munge


def compose(*mungers: Munger) -> Munger:
    """Apply ``mungers`` left to right."""

    def munge(value, obj):
        for m in mungers:
            value = m(value, obj)
        return value

    return munge


def apply_mungers(obj: Any) -> Any:
    """Return ``obj`` with every munger in its tree applied.

    Schema instances are rebuilt with ``dataclasses.replace`` rather than
    mutated.
    """
    if isinstance(obj, (list, tuple)):
        items = [apply_mungers(item) for item in obj]
        if all(new is old for new, old in zip(items, obj)):
            return obj
        return type(obj)(items)
    if not is_schema_instance(obj):
        return obj

    descriptors = fields_of(type(obj))
    changes = {}
    for f in descriptors:
        value = getattr(obj, f.name)
        munged = apply_mungers(value)
        if munged is not value:
            changes[f.name] = munged
    if changes:
        obj = dataclasses.replace(obj, **changes)

    for f in descriptors:
        if f.munger is None:
            continue
        value = getattr(obj, f.name)
        munged = f.munger(value, obj)
        if munged is not value:
            obj = dataclasses.replace(obj, **{f.name: munged})
    return obj
