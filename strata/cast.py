# strata/cast.py
"""
strata.cast
-----------

Type-aware casting of raw strings (command-line and environment values)
into the declared field types.

``try_cast(raw, type)`` returns the typed value or raises ``CastError``. The
construction engine attaches the parameter path to the error.
"""

from __future__ import annotations

import enum
import json
import logging
import pathlib
import typing
from typing import Any, Literal

from .exceptions import CastError
from .fields import is_union

log = logging.getLogger(__name__)

_TRUE = {"true", "t", "1", "yes", "y", "on"}
_FALSE = {"false", "f", "0", "no", "n", "off"}
_NONE = {"none", "null", "nil"}
_JSON_SCALARS = (str, int, float, bool)


def parse_value(raw_value: Any) -> Any:
    """
    Attempts to parse a string value into Python types (bool, int, float, JSON list/dict).

    Handles common string representations like 'true', 'false', 'null', numbers.
    Attempts JSON decoding for strings that look like JSON objects, arrays or
    quoted strings. Falls back to the original string if no rule applies.

    Args:
        raw_value: The value to parse. If not a string, it's returned directly.

    Returns:
        The parsed value (bool, int, float, list, dict, None) or the original value.
    """
    if not isinstance(raw_value, str):
        return raw_value

    stripped_val = raw_value.strip()
    lower_val = stripped_val.lower()
    if lower_val == "true":
        return True
    if lower_val == "false":
        return False
    if lower_val in ("null", "none"):
        return None

    try:
        return int(stripped_val)
    except ValueError:
        try:
            return float(stripped_val)
        except ValueError:
            pass

    if _looks_like_json(stripped_val):
        try:
            return json.loads(stripped_val)
        except json.JSONDecodeError:
            # likely just a plain string
            pass

    return raw_value


def _looks_like_json(text: str) -> bool:
    if len(text) < 2:
        return False
    return (
        (text.startswith("{") and text.endswith("}"))
        or (text.startswith("[") and text.endswith("]"))
        or (text.startswith('"') and text.endswith('"'))
    )


def accepts_str(tp: Any) -> bool:
    """True if a plain ``str`` is already a valid value for ``tp``.

    Used to tell typed string literals apart from strings that still need
    casting (``"50"`` for an ``int`` field).
    """
    if tp in (str, Any, object) or isinstance(tp, typing.TypeVar):
        return True
    if is_union(tp):
        return any(accepts_str(arg) for arg in typing.get_args(tp))
    return False


def try_cast(value: str, tp: Any) -> Any:
    """Cast a raw string to ``tp``.

    Args:
        value: The raw string.
        tp: Target annotation.

    Returns:
        The typed value.

    Raises:
        CastError: If no interpretation of ``value`` fits ``tp``.
    """
    if not isinstance(value, str):
        raise CastError(f"Expected a string to cast, got {type(value).__name__}")
    result = _cast(value, tp)
    log.debug(f"DEBUG [strata.try_cast]: {value!r} as {tp!r} -> {result!r}")
    return result


def _fail(value: str, tp: Any) -> CastError:
    name = getattr(tp, "__name__", None) or repr(tp).replace("typing.", "")
    return CastError(f"Cannot cast {value!r} to {name}")


def _cast(value: str, tp: Any) -> Any:
    if tp in (Any, object) or isinstance(tp, typing.TypeVar):
        return parse_value(value)
    if tp is str:
        return value
    if tp is type(None) or tp is None:
        if value.strip().lower() in _NONE:
            return None
        raise _fail(value, type(None))
    if tp is bool:
        lowered = value.strip().lower()
        if lowered in _TRUE:
            return True
        if lowered in _FALSE:
            return False
        raise _fail(value, bool)
    if tp is int:
        try:
            return int(value.strip())
        except ValueError:
            raise _fail(value, int) from None
    if tp is float:
        try:
            return float(value.strip())
        except ValueError:
            raise _fail(value, float) from None
    if isinstance(tp, type) and hasattr(tp, "__strata_cast__"):
        try:
            return tp.__strata_cast__(value)
        except (ValueError, TypeError) as e:
            raise CastError(f"Cannot cast {value!r} to {tp.__name__}: {e}") from e
    if isinstance(tp, type) and issubclass(tp, enum.Enum):
        return _cast_enum(value, tp)
    if isinstance(tp, type) and issubclass(tp, pathlib.PurePath):
        return tp(value)

    origin = typing.get_origin(tp)
    args = typing.get_args(tp)

    if is_union(tp):
        if type(None) in args and value.strip().lower() in _NONE:
            return None
        for arg in args:
            if arg is type(None):
                continue
            try:
                return _cast(value, arg)
            except CastError:
                continue
        raise _fail(value, tp)

    if origin is Literal:
        for choice in args:
            if isinstance(choice, str) and choice == value:
                return choice
            if not isinstance(choice, str):
                try:
                    if _cast(value, type(choice)) == choice:
                        return choice
                except CastError:
                    continue
        raise CastError(f"Cannot cast {value!r} to one of {list(args)!r}")

    if origin in (list, tuple, set, frozenset) or tp in (list, tuple, set, frozenset):
        return _cast_collection(value, tp, origin or tp, args)

    if origin is dict or tp is dict:
        return _cast_mapping(value, tp, args)

    if isinstance(tp, type) and tp.__module__ != "builtins":
        # plain classes with a single-string constructor (e.g. Decimal)
        try:
            return tp(value)
        except (ValueError, TypeError, ArithmeticError) as e:
            raise CastError(f"Cannot cast {value!r} to {tp.__name__}: {e}") from e

    raise _fail(value, tp)


def _cast_enum(value: str, tp: type) -> Any:
    if value in tp.__members__:
        return tp[value]
    for member in tp:
        if str(member.value) == value:
            return member
    raise CastError(f"Cannot cast {value!r} to {tp.__name__}; expected one of {list(tp.__members__)}")


def _split_items(value: str) -> list:
    stripped = value.strip()
    if stripped.startswith("[") and stripped.endswith("]"):
        try:
            items = json.loads(stripped)
        except json.JSONDecodeError:
            items = None
        if isinstance(items, list):
            return items
    if not stripped:
        return []
    return [item.strip() for item in stripped.split(",")]


def _cast_item(item: Any, tp: Any, whole: str) -> Any:
    if tp is None:
        return parse_value(item)
    if isinstance(item, str):
        try:
            return _cast(item, tp)
        except CastError:
            raise CastError(f"Cannot cast {whole!r}: element {item!r} is not a valid {tp!r}") from None
    if tp is float and isinstance(item, int) and not isinstance(item, bool):
        return float(item)
    if tp in _JSON_SCALARS:
        # bool is an int subclass but not an int here
        if not isinstance(item, tp) or (isinstance(item, bool) and tp is not bool):
            raise CastError(f"Cannot cast {whole!r}: element {item!r} is not a valid {tp.__name__}")
    return item


def _cast_collection(value: str, tp: Any, container: type, args: tuple) -> Any:
    items = _split_items(value)
    if container is tuple and args and not (len(args) == 2 and args[1] is Ellipsis):
        if len(items) != len(args):
            raise CastError(f"Cannot cast {value!r} to a tuple of {len(args)} elements")
        return tuple(_cast_item(item, arg, value) for item, arg in zip(items, args))
    element = args[0] if args else None
    return container(_cast_item(item, element, value) for item in items)


def _cast_mapping(value: str, tp: Any, args: tuple) -> dict:
    key_type, value_type = args if len(args) == 2 else (None, None)
    stripped = value.strip()
    if stripped.startswith("{") and stripped.endswith("}"):
        try:
            loaded = json.loads(stripped)
        except json.JSONDecodeError:
            raise _fail(value, tp) from None
        pairs = [(str(k), v) for k, v in loaded.items()]
    elif not stripped:
        pairs = []
    else:
        pairs = []
        for pair in stripped.split(","):
            if ":" not in pair:
                raise CastError(f"Cannot cast {value!r} to a mapping; expected key:value pairs")
            k, v = pair.split(":", 1)
            pairs.append((k.strip(), v.strip()))
    return {_cast_item(k, key_type, value): _cast_item(v, value_type, value) for k, v in pairs}
