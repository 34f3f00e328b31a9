# strata/factories.py
"""
strata.factories
----------------

Polymorphic construction: the registry of named implementations and the
meta-factories that turn a name into something constructible.

A *meta-factory* answers two questions for a polymorphic field:

- ``unspecified_factory()``: what to build when no name was given;
- ``from_string(name)``: what ``name`` refers to.

``serialize(target)`` goes the other way, for writing argv back out.

Names are either short registered aliases (``adam``) or fully qualified
``module:attr`` paths (``mypkg.optim:Adam`` or ``mypkg.optim:presets.fast``).

Three variants are provided:

- ``StandardFactory``: registry namespace plus qualified paths.
- ``SubclassFactory``: any registered or defined subclass of the annotation,
  matched by class name.
- ``FunctionFactory``: callables whose signature becomes the parameters.
  Kept separate from the class-based factories so "constructible type" and
  "plain callable" are never confused.
"""

from __future__ import annotations

import importlib
import inspect
import logging
from typing import Any, Callable, Iterable, Optional

from .fields import Field, is_schema

log = logging.getLogger(__name__)


class FactoryLookupError(LookupError):
    """Raised by meta-factories for names that resolve to nothing."""


class Registry:
    """
    Explicit namespace -> name -> target table.

    Build one, register implementations, and hand it to ``Blueprint``. The
    module-level ``default_registry`` is what blueprints use when none is
    passed. Registration is not synchronized; finish it before sharing.
    """

    def __init__(self):
        self._namespaces: dict[str, dict[str, Any]] = {}

    def register(self, namespace: str, name: str, target: Any = None, *, aliases: Iterable[str] = ()):
        """Register ``target`` as ``name`` (and any ``aliases``) in ``namespace``.

        Can be used as a decorator when ``target`` is omitted::

            @registry.register("optimizers", "adam")
            @schema
            class Adam: ...
        """
        if target is None:
            def decorator(obj):
                self.register(namespace, name, obj, aliases=aliases)
                return obj

            return decorator

        table = self._namespaces.setdefault(namespace, {})
        for key in (name, *aliases):
            if key in table and table[key] is not target:
                log.warning(f"Warning: overriding {namespace}:{key} ({table[key]!r} -> {target!r})")
            table[key] = target
        return target

    def lookup(self, namespace: str, name: str) -> Optional[Any]:
        return self._namespaces.get(namespace, {}).get(name)

    def all_in_namespace(self, namespace: str) -> dict[str, Any]:
        return dict(self._namespaces.get(namespace, {}))

    def namespaces(self) -> list[str]:
        return sorted(self._namespaces)

    def targets(self) -> list[Any]:
        seen: list[Any] = []
        for table in self._namespaces.values():
            for target in table.values():
                if target not in seen:
                    seen.append(target)
        return seen


default_registry = Registry()


def import_qualified(qualified: str) -> Any:
    """Resolve ``"package.module:attr.attr"`` to the named object.

    Raises:
        FactoryLookupError: If the module cannot be imported or an attribute
            is missing.
    """
    module_name, _, attr_path = qualified.partition(":")
    try:
        obj = importlib.import_module(module_name)
    except ImportError as e:
        raise FactoryLookupError(f"Could not import module {module_name!r}: {e}") from e
    for attr in filter(None, attr_path.split(".")):
        try:
            obj = getattr(obj, attr)
        except AttributeError:
            raise FactoryLookupError(f"No attribute {attr!r} on {obj!r}") from None
    return obj


def qualified_name(obj: Any) -> str:
    """Inverse of ``import_qualified``: ``"package.module:Outer.attr"``.

    Raises:
        ValueError: If ``obj`` has no importable name (lambdas, local classes).
    """
    module = getattr(obj, "__module__", None)
    qualname = getattr(obj, "__qualname__", None)
    if not module or not qualname or "<" in qualname:
        raise ValueError(f"{obj!r} cannot be referred to by a qualified name")
    return f"{module}:{qualname}"


class MetaFactory:
    """Interface for polymorphism resolution."""

    def unspecified_factory(self) -> Optional[Any]:
        raise NotImplementedError

    def from_string(self, name: str) -> Any:
        raise NotImplementedError

    def registered_factories(self) -> dict[str, Any]:
        """Names this factory knows about, for help output."""
        return {}

    def serialize(self, target: Any) -> Optional[str]:
        """Short name that ``from_string`` maps back to ``target``, or None.

        The alphabetically first registered name wins.
        """
        names = sorted(name for name, registered in self.registered_factories().items() if registered is target)
        return names[0] if names else None


class StandardFactory(MetaFactory):
    """Resolve names through a registry namespace or ``module:attr`` paths.

    Args:
        annotation: The field's declared type; used as the unspecified factory
            when it is itself a schema.
        unspecified: Explicit factory for when no name is given.
        namespace: Registry namespace for short names.
        registry: Registry to consult (``default_registry`` if omitted).
        aliases: Extra short name -> registered name mappings.
        default_module: Module (or its import path) searched for bare names
            when there is no namespace.
    """

    def __init__(
        self,
        annotation: Any = None,
        unspecified: Any = None,
        namespace: Optional[str] = None,
        registry: Optional[Registry] = None,
        aliases: Optional[dict[str, str]] = None,
        default_module: Any = None,
    ):
        self.annotation = annotation
        self.unspecified = unspecified
        self.namespace = namespace
        self.registry = registry if registry is not None else default_registry
        self.aliases = dict(aliases or {})
        self.default_module = default_module

    def unspecified_factory(self) -> Optional[Any]:
        if self.unspecified is not None:
            return self.unspecified
        if is_schema(self.annotation):
            return self.annotation
        return None

    def from_string(self, name: str) -> Any:
        if ":" in name:
            return import_qualified(name)

        lookup_name = self.aliases.get(name, name)
        if self.namespace is not None:
            target = self.registry.lookup(self.namespace, lookup_name)
            if target is None:
                raise FactoryLookupError(f"Unknown factory {name!r} in namespace {self.namespace!r}")
            return target

        if self.default_module is not None:
            module = self.default_module
            if isinstance(module, str):
                module = import_qualified(module)
            try:
                return getattr(module, lookup_name)
            except AttributeError:
                raise FactoryLookupError(f"No attribute {lookup_name!r} on {module!r}") from None

        raise FactoryLookupError(f"Unknown factory {name!r}")

    def registered_factories(self) -> dict[str, Any]:
        if self.namespace is None:
            return {}
        table = self.registry.all_in_namespace(self.namespace)
        for alias, target_name in self.aliases.items():
            if target_name in table:
                table[alias] = table[target_name]
        return table


def _all_subclasses(cls: type) -> list[type]:
    result: list[type] = []
    pending = list(cls.__subclasses__())
    while pending:
        sub = pending.pop(0)
        if sub not in result:
            result.append(sub)
            pending.extend(sub.__subclasses__())
    return result


class SubclassFactory(MetaFactory):
    """
    Pick a subclass of the annotation by name.

    Candidates are the classes registered under ``namespace`` (when given) plus
    every subclass of ``annotation`` currently defined. A candidate matches when
    its ``discriminator`` attribute (class name by default) equals the name.
    """

    def __init__(
        self,
        annotation: Any = None,
        default: Any = None,
        namespace: Optional[str] = None,
        registry: Optional[Registry] = None,
        discriminator: str = "__name__",
    ):
        self.annotation = annotation
        self.default = default
        self.namespace = namespace
        self.registry = registry if registry is not None else default_registry
        self.discriminator = discriminator

    def unspecified_factory(self) -> Optional[Any]:
        return self.default

    def candidates(self) -> list[type]:
        found: list[type] = []
        if self.namespace is not None:
            found.extend(t for t in self.registry.all_in_namespace(self.namespace).values() if isinstance(t, type))
        if isinstance(self.annotation, type):
            found.extend(_all_subclasses(self.annotation))
            found.append(self.annotation)
        unique = list(dict.fromkeys(found))
        if isinstance(self.annotation, type):
            unique = [c for c in unique if issubclass(c, self.annotation)]
        return unique

    def _name_of(self, cls: type) -> str:
        return str(getattr(cls, self.discriminator, cls.__name__))

    def from_string(self, name: str) -> Any:
        if ":" in name:
            target = import_qualified(name)
        else:
            matched = [c for c in self.candidates() if self._name_of(c) == name]
            if not matched:
                raise FactoryLookupError(f"Unknown subtype {name!r}")
            if len(matched) > 1:
                raise FactoryLookupError(f"Multiple subtypes matched {name!r}: {matched!r}")
            target = matched[0]
        if isinstance(self.annotation, type) and not (isinstance(target, type) and issubclass(target, self.annotation)):
            raise FactoryLookupError(f"{target!r} is not a subclass of {self.annotation.__name__}")
        return target

    def registered_factories(self) -> dict[str, Any]:
        return {self._name_of(c): c for c in self.candidates()}


class FunctionFactory(MetaFactory):
    """Select a function (or other non-class callable) as the factory.

    Bare names are looked up on ``default_module``; ``module:func`` names are
    imported.
    """

    def __init__(self, default_module: Any = None, unspecified: Optional[Callable] = None):
        self.default_module = default_module
        self.unspecified = unspecified

    def unspecified_factory(self) -> Optional[Any]:
        return self.unspecified

    def from_string(self, name: str) -> Any:
        if ":" in name:
            target = import_qualified(name)
        elif self.default_module is not None:
            module = self.default_module
            if isinstance(module, str):
                module = importlib.import_module(module)
            target = getattr(module, name, None)
            if target is None:
                raise FactoryLookupError(f"No function {name!r} on {module.__name__}")
        else:
            raise FactoryLookupError(f"No default module configured to find {name!r}")

        if not callable(target) or inspect.isclass(target):
            raise FactoryLookupError(f"{name!r} does not name a function")
        return target

    def serialize(self, target: Any) -> Optional[str]:
        if not callable(target) or inspect.isclass(target):
            return None
        if self.default_module is not None:
            module = self.default_module
            if isinstance(module, str):
                module = importlib.import_module(module)
            name = getattr(target, "__name__", None)
            if name and getattr(module, name, None) is target:
                return name
        return None


def meta_factory_for_field(f: Field, registry: Optional[Registry] = None) -> MetaFactory:
    """Return the meta-factory governing a polymorphic field."""
    if isinstance(f.meta_factory, MetaFactory):
        return f.meta_factory
    if f.meta_factory is not None:
        raise TypeError(f"Invalid meta_factory for {f.name!r}: {f.meta_factory!r}")
    return StandardFactory(
        annotation=f.type,
        unspecified=f.unspecified,
        namespace=f.namespace,
        registry=registry,
    )
