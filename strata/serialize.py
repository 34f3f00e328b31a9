# strata/serialize.py
"""
strata.serialize
----------------

Turning configuration back into arguments.

- ``to_blueprint_values(obj)`` flattens a constructed tree into dotted keys
  that ``Blueprint.apply`` accepts.
- ``to_argv(bp)`` collapses a blueprint's layers into ``key=value`` strings
  that ``Blueprint.apply_from_argv`` accepts.

Example::

    argv = bp.to_argv()
    assert Blueprint(Experiment).make_from_argv(argv) == bp.make()
"""

from __future__ import annotations

import enum
import json
import logging
from pathlib import PurePath
from typing import Any, Optional

from .factories import Registry, meta_factory_for_field, qualified_name
from .fields import EMBED_MANY, EMBED_ONE, Field, fields_of, is_schema, is_schema_instance
from .utils import join_path
from .values import Castable, Computed, Reference
from .wildcard import is_wildcard

log = logging.getLogger(__name__)


def to_blueprint_values(obj: Any, *, skip_defaults: bool = False, registry: Optional[Registry] = None) -> dict[str, Any]:
    """
    Flatten a constructed tree into blueprint arguments.

    Schema instances are walked field by field and embedded lists by index;
    any other value is kept whole at its path. A polymorphic field also gets
    its concrete class at its own path whenever that class is not what the
    field would build by itself.

    Args:
        obj: The constructed object.
        skip_defaults: Omit fields whose value equals their declared default.
            Items of embedded lists are always written out in full so their
            indices survive.
        registry: Registry behind polymorphic fields (``default_registry`` if
            omitted).

    Returns:
        Dotted key -> value, ready for ``Blueprint.apply``.

    Example::

        >>> to_blueprint_values(Experiment(name="x", model=Model(hidden=8)), skip_defaults=True)
        {'name': 'x', 'model.hidden': 8}
    """
    values: dict[str, Any] = {}
    _flatten_into(values, obj, "", skip_defaults, registry)
    return values


def _flatten_into(values: dict, obj: Any, path: str, skip_defaults: bool, registry: Optional[Registry]) -> None:
    if not is_schema_instance(obj):
        values[path] = obj
        return
    for f in fields_of(type(obj)):
        value = getattr(obj, f.name)
        if skip_defaults and f.has_default() and f.get_default() == value:
            continue
        _flatten_field(values, f, value, join_path(path, f.name), skip_defaults, registry)


def _flatten_field(values: dict, f: Field, value: Any, path: str, skip_defaults: bool, registry: Optional[Registry]) -> None:
    if f.embed_kind == EMBED_ONE and is_schema_instance(value):
        if f.polymorphic:
            if _records_factory(f, value, registry):
                values[path] = type(value)
        elif type(value) is not f.type:
            # a subclass instance cannot be rebuilt from the declared type
            values[path] = value
            return
        _flatten_into(values, value, path, skip_defaults, registry)
    elif (
        f.embed_kind == EMBED_MANY
        and isinstance(value, (list, tuple))
        and value
        and all(is_schema_instance(item) for item in value)
    ):
        for index, item in enumerate(value):
            item_path = join_path(path, str(index))
            if f.polymorphic and _records_factory(f, item, registry):
                values[item_path] = type(item)
            _flatten_into(values, item, item_path, False, registry)
    else:
        values[path] = value


def _records_factory(f: Optional[Field], value: Any, registry: Optional[Registry]) -> bool:
    """Whether rebuilding ``value`` at a field needs its class named explicitly."""
    if f is None or not f.polymorphic:
        return False
    if f.has_default():
        return True
    return type(value) is not meta_factory_for_field(f, registry).unspecified_factory()


def to_argv(bp: Any) -> list[str]:
    """
    Serialize a blueprint's layers into ``key=value`` command-line arguments.

    Layers are collapsed oldest first: a later exact key drops the same key
    from earlier layers, and a later wildcard drops every earlier key it
    matches, so the result replayed as a single layer resolves to the same
    values. Keys within a layer are written in sorted order.

    Classes and functions are written as their registered short name where
    the field's meta-factory knows one, else as ``module:qualname``. Lists
    of plain strings are comma-joined; other lists and dicts are written as
    JSON. A complete schema instance is expanded into its nested keys.

    Raises:
        ValueError: For values with no command-line form, such as
            ``Computed`` values, lambdas or arbitrary objects.
    """
    argv: list[str] = []
    for key, value in _collapse(bp.arg_map.layers).items():
        argv.extend(_arg_strings(key, value, _field_for_key(bp.target, key), bp.registry))
    log.debug(f"DEBUG [strata.to_argv]: {len(bp.arg_map.layers)} layers -> {len(argv)} arguments")
    return argv


def _collapse(layers) -> dict[str, Any]:
    collapsed: dict[str, Any] = {}
    for layer in layers:
        entries = sorted(layer.entries.items())
        for key, _value in entries:
            if key in layer.patterns:
                pattern = layer.patterns[key]
                for earlier in [k for k in collapsed if pattern.fullmatch(k)]:
                    del collapsed[earlier]
            collapsed.pop(key, None)
        collapsed.update(entries)
    return collapsed


def _arg_strings(key: str, value: Any, f: Optional[Field], registry: Optional[Registry]) -> list[str]:
    if isinstance(value, Castable):
        return [f"{key}={value.value}"]
    if isinstance(value, Reference):
        return [f"{key}@={value.ref}"]
    if isinstance(value, Computed):
        raise ValueError(f"Cannot serialize the computed value of {key} to argv")
    if is_schema_instance(value):
        strings = _arg_strings(key, type(value), f, registry) if _records_factory(f, value, registry) else []
        for sub_key, sub_value in to_blueprint_values(value, registry=registry).items():
            strings.extend(_arg_strings(join_path(key, sub_key), sub_value, _field_for_key(type(value), sub_key), registry))
        return strings
    if isinstance(value, enum.Enum):
        return [f"{key}={value.name}"]
    if value is None or isinstance(value, (bool, int, float, str)):
        return [f"{key}={value}"]
    if isinstance(value, PurePath):
        return [f"{key}={value}"]
    if isinstance(value, (list, tuple, set, frozenset)):
        return [f"{key}={_sequence_text(key, value)}"]
    if isinstance(value, dict):
        return [f"{key}={_json_text(key, value)}"]
    if callable(value):
        return [f"{key}={_factory_name(value, f, registry)}"]
    raise ValueError(f"Cannot serialize {value!r} for {key} to argv")


def _factory_name(target: Any, f: Optional[Field], registry: Optional[Registry]) -> str:
    if f is not None and f.polymorphic:
        name = meta_factory_for_field(f, registry).serialize(target)
        if name is not None:
            return name
    return qualified_name(target)


def _plain_item(item: Any) -> bool:
    return isinstance(item, str) and item != "" and item == item.strip() and "," not in item and not item.startswith("[")


def _sequence_text(key: str, value: Any) -> str:
    items = [item.name if isinstance(item, enum.Enum) else item for item in value]
    items = [str(item) if isinstance(item, PurePath) else item for item in items]
    if all(_plain_item(item) for item in items):
        return ",".join(items)
    return _json_text(key, items)


def _json_text(key: str, value: Any) -> str:
    try:
        return json.dumps(value)
    except TypeError as e:
        raise ValueError(f"Cannot serialize {value!r} for {key} to argv: {e}") from e


def _field_for_key(target: Any, key: str) -> Optional[Field]:
    """The descriptor a (non-wildcard) key addresses, following embedded schemas."""
    if is_wildcard(key) or not is_schema(target):
        return None
    current = target
    found: Optional[Field] = None
    parts = key.split(".")
    for position, part in enumerate(parts):
        if part.isdigit():
            if found is None or found.embed_kind != EMBED_MANY:
                return None
            if position == len(parts) - 1:
                # a list item is governed by the list's own descriptor
                return found
            continue
        if not is_schema(current):
            return None
        found = next((f for f in fields_of(current) if f.name == part), None)
        if found is None:
            return None
        current = found.type if found.embed_kind in (EMBED_ONE, EMBED_MANY) else None
    return found
