# strata/fields.py
"""
strata.fields
-------------

Schema declaration.

A schema is a class decorated with ``@schema``; it becomes a keyword-only
dataclass whose annotated attributes are its parameters::

    @schema
    class Model:
        hidden: int = 768
        layers: int = field(default=12, doc="number of blocks", validator=ge(1))

    @schema
    class Experiment:
        name: str
        model: Model
        optimizer: Optimizer = field(namespace="optimizers", unspecified=Adam)

``fields_of`` turns a schema class (or any other callable, via its signature)
into ordered ``Field`` descriptors for the construction engine.
"""

from __future__ import annotations

import collections.abc
import dataclasses
import functools
import inspect
import types
import typing
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence, Union

_META_KEY = "strata"
_SCHEMA_MARKER = "__strata_schema__"
_VALIDATES_MARKER = "__strata_validates__"


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()

EMBED_NONE = "none"
EMBED_ONE = "one"
EMBED_MANY = "many"


@dataclass(frozen=True)
class Field:
    """Immutable description of one schema parameter.

    Attributes:
        name: Attribute / keyword name.
        type: Target type. For embedded fields this is the schema class (with
            ``Optional`` and sequence wrappers removed).
        raw_type: The annotation exactly as declared.
        default: Static default or ``MISSING``.
        default_factory: Zero-argument callable or ``MISSING``.
        embed_kind: ``"none"``, ``"one"`` or ``"many"``.
        polymorphic: Whether a factory picks the concrete type.
        namespace: Registry namespace consulted for short factory names.
        unspecified: Factory used when no factory name is given.
        meta_factory: Explicit ``MetaFactory`` overriding the standard one.
        blueprint_cast: ``fn(str) -> value`` overriding type-based casting.
        munger: ``fn(value, obj) -> value`` applied after construction.
        validators: ``fn(obj, attr)`` callables raising ``ValueError``.
        doc: Help text.
    """

    name: str
    type: Any
    raw_type: Any = None
    default: Any = MISSING
    default_factory: Any = MISSING
    embed_kind: str = EMBED_NONE
    polymorphic: bool = False
    namespace: Optional[str] = None
    unspecified: Any = None
    meta_factory: Any = None
    blueprint_cast: Optional[Callable[[str], Any]] = None
    munger: Optional[Callable[[Any, Any], Any]] = None
    validators: tuple = ()
    doc: str = ""

    def has_default(self) -> bool:
        return self.default is not MISSING or self.default_factory is not MISSING

    def get_default(self) -> Any:
        if self.default is not MISSING:
            return self.default
        if self.default_factory is not MISSING:
            return self.default_factory()
        raise LookupError(f"Field {self.name!r} has no default")

    @property
    def required(self) -> bool:
        return not self.has_default() and self.munger is None


@dataclass(frozen=True)
class _FieldOptions:
    doc: str = ""
    munger: Optional[Callable] = None
    validators: tuple = ()
    polymorphic: Optional[bool] = None
    namespace: Optional[str] = None
    unspecified: Any = None
    meta_factory: Any = None
    blueprint_cast: Optional[Callable[[str], Any]] = None
    placeholder: bool = False


def field(
    *,
    default: Any = dataclasses.MISSING,
    default_factory: Any = dataclasses.MISSING,
    doc: str = "",
    munger: Optional[Callable[[Any, Any], Any]] = None,
    validator: Union[Callable, Sequence[Callable], None] = None,
    polymorphic: Optional[bool] = None,
    namespace: Optional[str] = None,
    unspecified: Any = None,
    meta_factory: Any = None,
    blueprint_cast: Optional[Callable[[str], Any]] = None,
    repr: bool = True,
) -> Any:
    """Declare a schema parameter with strata metadata.

    Accepts the same ``default`` / ``default_factory`` and ``repr`` as
    ``dataclasses.field``; ``repr=False`` also hides the value from
    ``strata.utils.pretty``.

    Raises:
        ValueError: If both ``default`` and ``default_factory`` are given.
    """
    if default is not dataclasses.MISSING and default_factory is not dataclasses.MISSING:
        raise ValueError("cannot specify both default and default_factory")

    if validator is None:
        validators: tuple = ()
    elif callable(validator):
        validators = (validator,)
    else:
        validators = tuple(validator)

    kwargs: dict[str, Any] = {}
    if default is not dataclasses.MISSING:
        kwargs["default"] = default
    elif default_factory is not dataclasses.MISSING:
        kwargs["default_factory"] = default_factory

    options = _FieldOptions(
        doc=doc,
        munger=munger,
        validators=validators,
        polymorphic=polymorphic,
        namespace=namespace,
        unspecified=unspecified,
        meta_factory=meta_factory,
        blueprint_cast=blueprint_cast,
        placeholder=not kwargs and munger is not None,
    )
    if options.placeholder:
        # mungers fill the value in after construction
        kwargs["default"] = None
    return dataclasses.field(repr=repr, metadata={_META_KEY: options}, **kwargs)


def schema(cls=None, *, frozen: bool = False):
    """Class decorator turning ``cls`` into a strata schema.

    The class becomes a keyword-only dataclass, so required and defaulted
    parameters may be declared in any order.
    """

    def wrap(klass):
        klass = dataclass(klass, kw_only=True, frozen=frozen)
        setattr(klass, _SCHEMA_MARKER, True)
        return klass

    if cls is None:
        return wrap
    return wrap(cls)


def validates(method):
    """Mark a schema method as a class-level validator.

    The method takes only ``self`` and raises ``ValueError`` on failure.
    """
    setattr(method, _VALIDATES_MARKER, True)
    return method


def class_validators(cls) -> list[Callable]:
    return [
        member
        for _name, member in inspect.getmembers(cls, inspect.isfunction)
        if getattr(member, _VALIDATES_MARKER, False)
    ]


def is_schema(obj: Any) -> bool:
    """True for schema classes (not instances)."""
    return isinstance(obj, type) and getattr(obj, _SCHEMA_MARKER, False) is True


def is_schema_instance(obj: Any) -> bool:
    return not isinstance(obj, type) and getattr(type(obj), _SCHEMA_MARKER, False) is True


# --- annotation helpers ---


def is_union(tp: Any) -> bool:
    return typing.get_origin(tp) is Union or isinstance(tp, types.UnionType)


def strip_optional(tp: Any) -> Any:
    if is_union(tp):
        args = [a for a in typing.get_args(tp) if a is not type(None)]
        if len(args) == 1:
            return args[0]
    return tp


_SEQUENCE_ORIGINS = (list, tuple, collections.abc.Sequence)


def sequence_element(tp: Any) -> Any:
    """Element type of ``list[X]``, ``tuple[X, ...]`` or ``Sequence[X]``, else None."""
    tp = strip_optional(tp)
    origin = typing.get_origin(tp)
    args = typing.get_args(tp)
    if origin not in _SEQUENCE_ORIGINS or not args:
        return None
    if origin is tuple and not (len(args) == 2 and args[1] is Ellipsis):
        return None
    return strip_optional(args[0])


def _classify(annotation: Any, polymorphic: bool) -> tuple[str, Any]:
    """Return ``(embed_kind, target_type)`` for an annotation."""

    def embeddable(tp):
        # a polymorphic base need not be a schema itself (e.g. an ABC)
        return is_schema(tp) or (polymorphic and isinstance(tp, type) and typing.get_origin(tp) is None)

    inner = strip_optional(annotation)
    if embeddable(inner):
        return EMBED_ONE, inner
    element = sequence_element(annotation)
    if element is not None and embeddable(element):
        return EMBED_MANY, element
    if polymorphic:
        return EMBED_ONE, inner
    return EMBED_NONE, annotation


def _make_field(name: str, annotation: Any, default: Any, default_factory: Any, options: _FieldOptions) -> Field:
    polymorphic = options.polymorphic
    if polymorphic is None:
        polymorphic = bool(options.namespace or options.meta_factory or options.unspecified)
    embed_kind, target = _classify(annotation, polymorphic)
    return Field(
        name=name,
        type=target,
        raw_type=annotation,
        default=default,
        default_factory=default_factory,
        embed_kind=embed_kind,
        polymorphic=polymorphic,
        namespace=options.namespace,
        unspecified=options.unspecified,
        meta_factory=options.meta_factory,
        blueprint_cast=options.blueprint_cast,
        munger=options.munger,
        validators=options.validators,
        doc=options.doc,
    )


@functools.lru_cache(maxsize=None)
def _schema_fields(cls) -> tuple[Field, ...]:
    hints = typing.get_type_hints(cls)
    result = []
    for f in dataclasses.fields(cls):
        if not f.init:
            continue
        options = f.metadata.get(_META_KEY, _FieldOptions())
        default = MISSING if f.default is dataclasses.MISSING else f.default
        factory = MISSING if f.default_factory is dataclasses.MISSING else f.default_factory
        if options.placeholder:
            default = MISSING
        result.append(_make_field(f.name, hints.get(f.name, Any), default, factory, options))
    return tuple(result)


def _signature_fields(fn: Callable) -> tuple[Field, ...]:
    try:
        hints = typing.get_type_hints(fn)
    except (NameError, TypeError):
        # unresolvable forward references fall back to the raw annotations
        hints = {}
    try:
        signature = inspect.signature(fn)
    except ValueError as e:
        raise TypeError(f"Cannot inspect parameters of {fn!r}: {e}") from e
    result = []
    for param in signature.parameters.values():
        if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD, param.POSITIONAL_ONLY):
            continue
        default = MISSING if param.default is param.empty else param.default
        annotation = hints.get(param.name, Any if param.annotation is param.empty else param.annotation)
        result.append(_make_field(param.name, annotation, default, MISSING, _FieldOptions()))
    return tuple(result)


def fields_of(target: Any) -> tuple[Field, ...]:
    """Return the ordered parameter descriptors of ``target``.

    Args:
        target: A schema class, or any callable whose signature describes its
            parameters.

    Raises:
        TypeError: If ``target`` is neither.
    """
    if is_schema(target):
        return _schema_fields(target)
    if callable(target):
        return _signature_fields(target)
    raise TypeError(f"{target!r} is not a schema or callable")


def type_repr(tp: Any) -> str:
    """Short human-readable rendering of a type annotation."""
    if tp is Any:
        return "Any"
    if tp is type(None):
        return "None"
    if isinstance(tp, type) and not typing.get_args(tp):
        return tp.__name__
    if isinstance(tp, str):
        return tp
    return repr(tp).replace("typing.", "")
