# strata/blueprint.py
"""
strata.blueprint
----------------

Blueprints: lazy, layered construction of a configuration tree.

A ``Blueprint`` wraps a target (a schema class or any callable) and a stack of
argument layers. ``make()`` walks the target's parameters, looks each path up
in the argument map, and builds a value mapping for ``strata.lazy`` in which
every parameter is a ``Value``, a ``ParamRef`` to another path, or a
``Thunk`` that instantiates a nested object from its children.

Before anything is instantiated the walk's bookkeeping is checked, in this
order:

1. every supplied key was consumed by some parameter (``extraneous``),
2. every reference points at a real path (``invalid_reference``),
3. every required parameter received a value (``missing_required``).

Evaluation then resolves the graph (``cycle`` errors surface here), mungers
run, and validators check the finished tree.

Example::

    bp = Blueprint(Experiment).apply({"name": "run1", "...lr": 0.1}, layer_name="preset")
    bp.apply_from_argv(["model.hidden=512"])
    experiment = bp.make()
"""

from __future__ import annotations

import functools
import logging
import sys
import typing
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional, Sequence

from .argument_map import ArgumentMap, FoundArg
from .cast import accepts_str, try_cast
from .exceptions import (
    CastError,
    ConstructionError,
    ExtraneousArgumentError,
    HelpRequested,
    InvalidValueError,
    MissingRequiredError,
    StrataError,
)
from .factories import MetaFactory, Registry, default_registry, meta_factory_for_field
from .fields import EMBED_MANY, EMBED_ONE, Field, fields_of, is_schema, strip_optional, type_repr
from .lazy import Evaluatable, ParamRef, Thunk, Value, check_reference_targets, evaluate
from .loader import collect_env_args, load_preset_file
from .mungers import apply_mungers
from .parser import parse_argv
from .provenance import (
    COMPUTED,
    CONSTRUCTED,
    DEFAULT,
    MISSING,
    REFERENCE,
    SET,
    DryRunReport,
    ParamStatus,
)
from .serialize import to_argv
from .utils import join_path
from .validation import validate_tree
from .values import Castable, Computed, Reference
from .wildcard import suggest

log = logging.getLogger(__name__)

_NONE_NAMES = ("none", "null")


def _gather(indices: Sequence[str], container: type, **values: Any) -> Any:
    return container(values[index] for index in indices)


def _describe(target: Any) -> str:
    module = getattr(target, "__module__", None)
    name = getattr(target, "__qualname__", None) or repr(target)
    return f"{module}:{name}" if module else name


@dataclass
class _MakeState:
    """Working state of one construction pass. Never shared between passes."""

    arg_map: ArgumentMap
    registry: Registry
    all_params: dict[str, Field] = field(default_factory=dict)
    used_args: set[tuple[str, int]] = field(default_factory=set)
    missing_params: list[str] = field(default_factory=list)
    value_mapping: dict[str, Evaluatable] = field(default_factory=dict)
    statuses: dict[str, ParamStatus] = field(default_factory=dict)


class _Construction:
    """The recursive walk that turns a target plus an argument map into a value mapping."""

    def __init__(self, arg_map: ArgumentMap, registry: Registry):
        self.state = _MakeState(arg_map=arg_map.consolidate(), registry=registry)

    # --- bookkeeping ---

    def _put(self, path: str, node: Evaluatable) -> None:
        if path in self.state.value_mapping:
            raise RuntimeError(f"path {path!r} constructed twice")
        self.state.value_mapping[path] = node

    def _use(self, found: FoundArg) -> None:
        self.state.used_args.add((found.key, found.layer_index))

    def _missing(self, path: str, f: Field) -> None:
        self.state.missing_params.append(path)
        self._status(path, f, MISSING)
        self._put(path, Value(None))

    def _status(self, path: str, f: Field, status: str, value: Any = None, source: Optional[str] = None) -> None:
        self.state.statuses[path] = ParamStatus(
            path=path,
            type_repr=type_repr(f.raw_type),
            status=status,
            value=value,
            source=source,
            doc=f.doc,
        )

    def _found_status(self, path: str, f: Field, found: FoundArg) -> None:
        value = found.value
        if isinstance(value, Reference):
            status = REFERENCE
        elif isinstance(value, Computed):
            status = COMPUTED
        else:
            status = SET
        self._status(path, f, status, value, found.layer_name or f"layer {found.layer_index}")

    def _default_or_missing(self, f: Field, path: str) -> None:
        if f.has_default():
            default = f.get_default()
            self._status(path, f, DEFAULT, default, "default")
            self._put(path, Value(default))
        elif f.munger is not None:
            self._status(path, f, DEFAULT, None, "munger")
            self._put(path, Value(None))
        else:
            self._missing(path, f)

    # --- resolving supplied values ---

    def _cast(self, f: Field, path: str, raw: str) -> Any:
        if f.blueprint_cast is not None:
            try:
                return f.blueprint_cast(raw)
            except (ValueError, TypeError) as e:
                raise CastError(str(e), path=path) from e
        try:
            return try_cast(raw, f.raw_type)
        except CastError as e:
            raise e.at(path) from None

    def _resolve_found(self, f: Field, path: str, value: Any) -> Optional[Evaluatable]:
        """Evaluatable for a supplied value, or None for a self-reference."""
        if isinstance(value, Reference):
            if value.ref == path:
                return None
            return ParamRef(value.ref)
        if isinstance(value, Computed):
            return Thunk(value.compute, {name: ParamRef(ref.ref) for name, ref in value.sources.items()})
        if isinstance(value, Castable):
            return Value(self._cast(f, path, value.value))
        if isinstance(value, str) and not accepts_str(f.raw_type):
            return Value(self._cast(f, path, value))
        return Value(value)

    def _use_found(self, f: Field, path: str, found: FoundArg) -> bool:
        """Consume ``found`` as the complete value of ``path``; False on self-reference."""
        node = self._resolve_found(f, path, found.value)
        self._use(found)
        if node is None:
            return False
        self._found_status(path, f, found)
        self._put(path, node)
        return True

    # --- the walk ---

    def construct_schema(self, target: Any, path: str) -> None:
        try:
            descriptors = fields_of(target)
        except TypeError as e:
            raise InvalidValueError(path or "<root>", str(e)) from e

        kwargs = {}
        for f in descriptors:
            child = join_path(path, f.name)
            self.construct_field(f, child)
            kwargs[f.name] = ParamRef(child)
        self._put(path, Thunk(target, kwargs))

    def construct_field(self, f: Field, path: str) -> None:
        self.state.all_params[path] = f
        arg_map = self.state.arg_map
        found = arg_map.get_kv(path)
        subpaths = arg_map.subpaths(path, strict=True)

        if f.embed_kind == EMBED_ONE:
            if f.polymorphic:
                self._construct_polymorphic(f, path, found, subpaths, allow_default=True)
            else:
                self._construct_embed_one(f, path, found, subpaths)
        elif f.embed_kind == EMBED_MANY:
            self._construct_embed_many(f, path, found, subpaths)
        else:
            self._construct_scalar(f, path, found)

    def _construct_scalar(self, f: Field, path: str, found: Optional[FoundArg]) -> None:
        if found is not None and self._use_found(f, path, found):
            return
        self._default_or_missing(f, path)

    def _construct_embed_one(self, f: Field, path: str, found: Optional[FoundArg], subpaths: list[str]) -> None:
        if found is not None and not subpaths and self._use_found(f, path, found):
            return

        if subpaths or self._nested_args_present(f.type, path) or self._all_defaults(f.type):
            self._status(path, f, CONSTRUCTED, f.type)
            self.construct_schema(f.type, path)
        else:
            self._default_or_missing(f, path)

    def _construct_polymorphic(
        self,
        f: Field,
        path: str,
        found: Optional[FoundArg],
        subpaths: list[str],
        allow_default: bool,
    ) -> None:
        nested = bool(subpaths) or self._nested_args_present(f.type, path)
        factory = self._meta_factory(f, path)
        target = None
        source = None

        if found is not None:
            value = found.value
            if isinstance(value, (Castable, str)):
                name = value.value if isinstance(value, Castable) else value
                self._use(found)
                if name.strip().lower() in _NONE_NAMES and not nested and _accepts_none(f.raw_type):
                    self._found_status(path, f, found)
                    self._put(path, Value(None))
                    return
                target = self._from_string(factory, path, name)
                source = found.layer_name or f"layer {found.layer_index}"
            elif isinstance(value, (Reference, Computed)):
                if not subpaths and self._use_found(f, path, found):
                    return
            elif callable(value):
                self._use(found)
                target = value
                source = found.layer_name or f"layer {found.layer_index}"
            elif not subpaths:
                self._use(found)
                self._found_status(path, f, found)
                self._put(path, Value(value))
                return

        if target is None:
            if allow_default and not nested and f.has_default():
                self._default_or_missing(f, path)
                return
            target = factory.unspecified_factory()
            if target is None:
                if nested:
                    raise InvalidValueError(path, f"No default factory for {path} and no factory was specified")
                if allow_default:
                    self._default_or_missing(f, path)
                else:
                    self._missing(path, f)
                return

        if not callable(target):
            # a qualified name may point at a ready-made instance
            self._status(path, f, SET, target, source)
            self._put(path, Value(target))
            return

        log.debug(f"DEBUG [strata.construct]: {path or '<root>'} -> {_describe(target)}")
        self._status(path, f, CONSTRUCTED, target, source)
        self.construct_schema(target, path)

    def _construct_embed_many(self, f: Field, path: str, found: Optional[FoundArg], subpaths: list[str]) -> None:
        if found is not None and not subpaths and self._use_found(f, path, found):
            return

        indices = self._indices(subpaths)
        if not indices:
            self._default_or_missing(f, path)
            return

        arg_map = self.state.arg_map
        kwargs = {}
        for index in indices:
            item_path = join_path(path, index)
            if f.polymorphic:
                self._construct_polymorphic(
                    f,
                    item_path,
                    arg_map.get_kv(item_path),
                    arg_map.subpaths(item_path, strict=True),
                    allow_default=False,
                )
            else:
                self.construct_schema(f.type, item_path)
            kwargs[index] = ParamRef(item_path)

        container = tuple if typing.get_origin(strip_optional(f.raw_type)) is tuple else list
        self._status(path, f, CONSTRUCTED, f.raw_type)
        self._put(path, Thunk(functools.partial(_gather, tuple(indices), container), kwargs))

    # --- helpers ---

    def _meta_factory(self, f: Field, path: str) -> MetaFactory:
        try:
            return meta_factory_for_field(f, self.state.registry)
        except TypeError as e:
            raise InvalidValueError(path, str(e)) from e

    @staticmethod
    def _from_string(factory: MetaFactory, path: str, name: str) -> Any:
        try:
            return factory.from_string(name)
        except LookupError as e:
            raise InvalidValueError(path, f"Could not resolve {name!r}: {e}", attempted=name) from e

    @staticmethod
    def _indices(subpaths: list[str]) -> list[str]:
        firsts = {sp.split(".", 1)[0] for sp in subpaths}
        return sorted((first for first in firsts if first.isdigit()), key=int)

    @staticmethod
    def _all_defaults(target: Any) -> bool:
        return is_schema(target) and all(not f.required for f in fields_of(target))

    def _nested_args_present(self, target: Any, path: str) -> bool:
        arg_map = self.state.arg_map
        return any(arg_map.get_kv(p) is not None for p in _param_paths(target, path, ()))


def _accepts_none(tp: Any) -> bool:
    return tp is None or tp is type(None) or type(None) in typing.get_args(tp)


def _param_paths(target: Any, prefix: str, seen: tuple) -> list[str]:
    """Every parameter path of ``target`` beneath ``prefix``, following embedded schemas."""
    if not is_schema(target) or target in seen:
        return []
    paths = []
    for f in fields_of(target):
        path = join_path(prefix, f.name)
        paths.append(path)
        if f.embed_kind == EMBED_ONE:
            paths.extend(_param_paths(f.type, path, seen + (target,)))
    return paths


class Blueprint:
    """
    Layered arguments for constructing ``target``.

    Args:
        target: A schema class or any callable.
        registry: Registry for polymorphic short names (``default_registry``
            if omitted).

    ``apply*`` methods append a layer and return the blueprint, so calls can
    be chained. The argument map itself is copy-on-append, which makes
    ``clone()`` cheap.
    """

    def __init__(self, target: Any, *, registry: Optional[Registry] = None):
        if not callable(target):
            raise TypeError(f"{target!r} is not a schema or callable")
        self.target = target
        self.registry = registry if registry is not None else default_registry
        self.entrypoint_repr = _describe(target)
        self._arg_map = ArgumentMap()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.entrypoint_repr}, layers={len(self._arg_map)})"

    @property
    def arg_map(self) -> ArgumentMap:
        return self._arg_map

    def clone(self) -> "Blueprint":
        bp = Blueprint(self.target, registry=self.registry)
        bp._arg_map = self._arg_map
        return bp

    # --- adding layers ---

    def apply(
        self,
        args: Mapping[str, Any],
        *,
        layer_name: Optional[str] = None,
        subpath: Optional[str] = None,
        strict: bool = False,
    ) -> "Blueprint":
        """Add a layer of arguments.

        Args:
            args: Key (dot path, possibly with ``...``) -> value, ``Castable``,
                ``Reference`` or ``Computed``.
            layer_name: Label shown in help output.
            subpath: Place every key beneath this path.
            strict: Check for extraneous keys right away instead of in
                ``make()``.

        Raises:
            WildcardError: If a wildcard key is malformed.
            ExtraneousArgumentError: In strict mode, for unknown keys.
        """
        self._arg_map = self._arg_map.add_layer(args, layer_name, subpath=subpath)
        if strict:
            construction = self._construct()
            self._check_extraneous(construction.state)
        return self

    def apply_file(self, file_path: str, *, layer_name: Optional[str] = None, subpath: Optional[str] = None, strict: bool = False) -> "Blueprint":
        """Add a layer loaded from a JSON or TOML preset file."""
        args = load_preset_file(file_path)
        return self.apply(args, layer_name=layer_name or f"file:{file_path}", subpath=subpath, strict=strict)

    def apply_env(
        self,
        prefix: str,
        *,
        load_dotenv_file: bool = True,
        dotenv_path: Optional[str] = None,
        strict: bool = False,
    ) -> "Blueprint":
        """Add a layer from ``PREFIX_...`` environment variables (and ``.env``)."""
        args = collect_env_args(prefix, load_dotenv_file=load_dotenv_file, dotenv_path=dotenv_path)
        return self.apply(args, layer_name=f"env:{prefix}", strict=strict)

    def apply_from_argv(
        self,
        argv: Sequence[str],
        *,
        allow_hyphens: bool = False,
        layer_name: str = "command line",
        strict: bool = False,
    ) -> "Blueprint":
        """Add a layer from ``key=value`` command-line arguments.

        Raises:
            HelpRequested: If a help flag was given; carries the help text.
        """
        args, want_help = parse_argv(argv, allow_hyphens=allow_hyphens)
        self.apply(args, layer_name=layer_name, strict=strict and not want_help)
        if want_help:
            raise HelpRequested(self.get_help())
        return self

    # --- construction ---

    def _construct(self) -> _Construction:
        construction = _Construction(self._arg_map, self.registry)
        construction.construct_schema(self.target, "")
        log.debug(
            f"DEBUG [strata.make]: {self.entrypoint_repr}: {len(construction.state.all_params)} params, "
            f"{len(construction.state.missing_params)} missing"
        )
        return construction

    def _check_extraneous(self, state: _MakeState) -> None:
        param_paths = list(state.all_params)
        for layer in state.arg_map.layers:
            for key in layer.entries:
                if (key, layer.ordinal) in state.used_args:
                    continue
                if key in layer.patterns:
                    if any(layer.patterns[key].fullmatch(p) for p in param_paths):
                        continue
                elif key in state.all_params:
                    continue
                raise ExtraneousArgumentError(key, suggest(key, param_paths), _extraneous_hints(key, state.all_params))

    def make(self) -> Any:
        """Construct the target.

        Raises:
            ExtraneousArgumentError: A supplied key matches no parameter.
            InvalidReferenceError: A reference points at an unknown path.
            MissingRequiredError: A required parameter has no value.
            CycleError: References form a cycle.
            CastError: A string could not be cast to its field's type.
            InvalidValueError: A polymorphic factory name did not resolve.
            ValidationError: A validator rejected the constructed value.
            ConstructionError: A constructor or munger raised.
        """
        state = self._construct().state
        self._check_extraneous(state)
        check_reference_targets(state.value_mapping, [*state.all_params, *state.value_mapping])
        if state.missing_params:
            raise MissingRequiredError(state.missing_params)

        value = evaluate(state.value_mapping)
        try:
            value = apply_mungers(value)
        except StrataError:
            raise
        except Exception as e:
            raise ConstructionError("", e) from e
        validate_tree(value)
        return value

    def make_from_argv(self, argv: Optional[Sequence[str]] = None, *, allow_hyphens: bool = False) -> Any:
        if argv is None:
            argv = sys.argv[1:]
        return self.apply_from_argv(argv, allow_hyphens=allow_hyphens).make()

    # --- introspection ---

    def dry_run(self) -> DryRunReport:
        """Walk the target without requiring completeness; report every parameter."""
        state = self._construct().state
        report = DryRunReport(entrypoint=self.entrypoint_repr)
        for path in state.all_params:
            if path in state.statuses:
                report.record(state.statuses[path])
        return report

    def get_help(self) -> str:
        return self.dry_run().render()

    def to_argv(self) -> list[str]:
        """``key=value`` arguments that reproduce every layer as a single one.

        See ``strata.serialize.to_argv``.
        """
        return to_argv(self)


def _extraneous_hints(key: str, all_params: Mapping[str, Field]) -> list[str]:
    hints = []
    parts = [p for p in key.split(".") if p]
    if "..." not in key and len(parts) > 1:
        for idx in range(len(parts) - 1, 0, -1):
            parent = ".".join(parts[:idx])
            if parent in all_params:
                hints.append(f"Closest valid ancestor: {parent}")
                break
    if key.startswith("-"):
        hints.append("Did you mean to use allow_hyphens=True?")
    return hints


def make(target: Any, args: Optional[Mapping[str, Any]] = None, *, registry: Optional[Registry] = None) -> Any:
    """Construct ``target`` from one layer of arguments."""
    return Blueprint(target, registry=registry).apply(args or {}).make()


def entrypoint(
    target: Any,
    argv: Optional[Sequence[str]] = None,
    *,
    allow_hyphens: bool = False,
    registry: Optional[Registry] = None,
) -> Any:
    """Construct ``target`` from the command line.

    Prints help and exits when a help flag is given.
    """
    try:
        return Blueprint(target, registry=registry).make_from_argv(argv, allow_hyphens=allow_hyphens)
    except HelpRequested as e:
        print(e.help_text)
        raise SystemExit(0)


def nested_entrypoint(main: Callable[[Any], Any], target: Any, argv: Optional[Sequence[str]] = None, **kwargs: Any) -> Any:
    """Construct ``target`` from the command line and pass it to ``main``."""
    return main(entrypoint(target, argv, **kwargs))
