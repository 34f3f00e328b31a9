# strata/validation.py
"""
strata.validation
-----------------

Post-construction validation.

Field validators are callables ``fn(obj, attr)`` that raise ``ValueError``
(or ``TypeError``) on failure; class validators are schema methods marked
with ``@validates``. ``validate_tree`` runs both over a constructed object
and everything embedded in it, reporting the first failure as a
``ValidationError`` with the parameter path.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Callable

from .exceptions import ValidationError
from .fields import class_validators, fields_of, is_schema_instance
from .utils import join_path

log = logging.getLogger(__name__)

Validator = Callable[[Any, str], None]


def gt(base) -> Validator:
    def check(obj, attr):
        value = getattr(obj, attr)
        if not value > base:
            raise ValueError(f"Expected {attr} to be greater than {base}, got {value!r}")

    return check


def ge(base) -> Validator:
    def check(obj, attr):
        value = getattr(obj, attr)
        if not value >= base:
            raise ValueError(f"Expected {attr} to be >= {base}, got {value!r}")

    return check


def lt(base) -> Validator:
    def check(obj, attr):
        value = getattr(obj, attr)
        if not value < base:
            raise ValueError(f"Expected {attr} to be less than {base}, got {value!r}")

    return check


def le(base) -> Validator:
    def check(obj, attr):
        value = getattr(obj, attr)
        if not value <= base:
            raise ValueError(f"Expected {attr} to be <= {base}, got {value!r}")

    return check


def one_of(*choices) -> Validator:
    def check(obj, attr):
        value = getattr(obj, attr)
        if value not in choices:
            raise ValueError(f"Expected {attr} to be one of {list(choices)!r}, got {value!r}")

    return check


def instance_of(*types) -> Validator:
    def check(obj, attr):
        value = getattr(obj, attr)
        if not isinstance(value, types):
            names = ", ".join(t.__name__ for t in types)
            raise TypeError(f"Expected {attr} to be an instance of {names}, got {type(value).__name__}")

    return check


def valid_regex(obj, attr) -> None:
    try:
        re.compile(getattr(obj, attr))
    except (re.error, TypeError) as e:
        raise ValueError(f"Invalid regex in {attr}: {e}") from e


def validate_tree(obj: Any, path: str = "") -> None:
    """Run field and class validators on ``obj`` and its embedded objects.

    Children are checked before their parent.

    Raises:
        ValidationError: On the first failing validator.
    """
    if isinstance(obj, (list, tuple)):
        for index, item in enumerate(obj):
            validate_tree(item, join_path(path, str(index)))
        return
    if not is_schema_instance(obj):
        return

    descriptors = fields_of(type(obj))
    for f in descriptors:
        validate_tree(getattr(obj, f.name), join_path(path, f.name))

    for f in descriptors:
        for validator in f.validators:
            try:
                validator(obj, f.name)
            except (ValueError, TypeError) as e:
                raise ValidationError(join_path(path, f.name), str(e)) from e

    for method in class_validators(type(obj)):
        try:
            method(obj)
        except (ValueError, TypeError) as e:
            raise ValidationError(path or type(obj).__name__, str(e)) from e
    log.debug(f"DEBUG [strata.validate_tree]: validated {path or '<root>'}")
