# strata/argument_map.py
"""
strata.argument_map
-------------------

Layered argument storage with wildcard support.

An ``ArgumentMap`` is an ordered stack of ``Layer`` objects. Later layers take
precedence over earlier ones, with one twist for wildcards: a wildcard key
only overrides an exact key when it was supplied in a strictly later layer.
So ``...lr=1`` followed by ``model.lr=2`` gives ``model.lr == 2``, while
``model.lr=2`` followed by ``...lr=1`` gives ``1``.

Maps are copy-on-append: ``add_layer`` returns a new map and never touches
the layers already held by the original, so a built map can be shared by any
number of constructions.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, NamedTuple, Optional, Pattern

from .utils import join_path
from .wildcard import compile_pattern, is_wildcard

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Layer:
    """One immutable batch of key -> input-value assignments.

    Attributes:
        ordinal: Position in the owning map (append index).
        name: Optional label shown in help and error output
            (e.g. ``"command line"``, ``"file:presets.toml"``).
        entries: All raw keys in insertion order.
        qualified: The subset of ``entries`` without ``...``.
        wildcard: The subset of ``entries`` containing ``...``.
        patterns: Compiled matcher for every wildcard key.
    """

    ordinal: int
    name: Optional[str]
    entries: Mapping[str, Any]
    qualified: Mapping[str, Any] = field(repr=False)
    wildcard: Mapping[str, Any] = field(repr=False)
    patterns: Mapping[str, Pattern[str]] = field(repr=False)

    @classmethod
    def build(cls, entries: Mapping[str, Any], name: Optional[str] = None, ordinal: int = 0) -> "Layer":
        """Partition ``entries`` and pre-compile every wildcard key.

        Raises:
            WildcardError: If any wildcard key is malformed.
        """
        entries = dict(entries)
        qualified = {k: v for k, v in entries.items() if not is_wildcard(k)}
        wildcard = {k: v for k, v in entries.items() if is_wildcard(k)}
        patterns = {k: compile_pattern(k) for k in wildcard}
        return cls(
            ordinal=ordinal,
            name=name,
            entries=MappingProxyType(entries),
            qualified=MappingProxyType(qualified),
            wildcard=MappingProxyType(wildcard),
            patterns=MappingProxyType(patterns),
        )

    def nested(self, subpath: str) -> "Layer":
        """Return a copy with every key moved beneath ``subpath``."""
        if not subpath:
            return self
        entries = {join_path(subpath, k): v for k, v in self.entries.items()}
        return Layer.build(entries, self.name, self.ordinal)


class FoundArg(NamedTuple):
    """Result of an argument lookup."""

    key: str
    value: Any
    layer_index: int
    layer_name: Optional[str]


class ArgumentMap:
    """
    Ordered layers of argument assignments plus a consolidated lookup cache.

    The cache is a derived view rebuilt on demand; it holds, for every exact
    key, the value and ordinal of its latest definer, and all wildcard entries
    newest-first.
    """

    def __init__(self, layers: tuple[Layer, ...] = ()):
        self._layers = tuple(layers)
        self._qualified: Optional[dict[str, tuple[Any, int]]] = None
        self._qualified_sorted: list[str] = []
        self._wildcard: list[tuple[str, Pattern[str], Any, int]] = []

    @property
    def layers(self) -> tuple[Layer, ...]:
        return self._layers

    def __len__(self) -> int:
        return len(self._layers)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({list(self._layers)!r})"

    def add_layer(
        self,
        entries: Mapping[str, Any],
        name: Optional[str] = None,
        *,
        subpath: Optional[str] = None,
    ) -> "ArgumentMap":
        """Append a layer and return the new map.

        Args:
            entries: Raw key -> input value.
            name: Optional layer label.
            subpath: If given, every key is placed beneath this path.

        Returns:
            A new ``ArgumentMap``; ``self`` is left unchanged.

        Raises:
            WildcardError: If a wildcard key is malformed.
        """
        layer = Layer.build(entries, name, ordinal=len(self._layers))
        if subpath:
            layer = layer.nested(subpath)
        log.debug(
            f"DEBUG [strata.add_layer]: layer {layer.ordinal} ({name or 'unnamed'}) "
            f"with {len(layer.qualified)} qualified / {len(layer.wildcard)} wildcard keys"
        )
        return ArgumentMap(self._layers + (layer,))

    def consolidate(self) -> "ArgumentMap":
        """Build the lookup tables if they are stale. Idempotent."""
        if self._qualified is not None:
            return self

        qualified: dict[str, tuple[Any, int]] = {}
        wildcard: list[tuple[str, Pattern[str], Any, int]] = []
        for layer in self._layers:
            for key, value in layer.qualified.items():
                qualified[key] = (value, layer.ordinal)
            for key, value in layer.wildcard.items():
                wildcard.append((key, layer.patterns[key], value, layer.ordinal))
        wildcard.reverse()

        self._qualified = qualified
        self._qualified_sorted = sorted(qualified)
        self._wildcard = wildcard
        return self

    def _found(self, key: str, value: Any, ordinal: int) -> FoundArg:
        return FoundArg(key, value, ordinal, self._layers[ordinal].name)

    def get_kv(self, path: str, ignore_wildcards: bool = False) -> Optional[FoundArg]:
        """Return the effective assignment for ``path``, or None.

        The latest exact key wins unless a wildcard from a strictly later layer
        also matches ``path``.
        """
        self.consolidate()
        lookup = self._qualified.get(path)
        if ignore_wildcards:
            return self._found(path, *lookup) if lookup is not None else None

        lookup_ordinal = lookup[1] if lookup is not None else -1
        for key, pattern, value, ordinal in self._wildcard:
            if ordinal <= lookup_ordinal:
                # newest-first, nothing later can beat the exact key
                break
            if pattern.fullmatch(path):
                return self._found(key, value, ordinal)

        if lookup is not None:
            return self._found(path, *lookup)
        return None

    def subpaths(self, path: str, strict: bool = False) -> list[str]:
        """
        List the keys known beneath ``path``, relative to it.

        Exact keys contribute their suffix after ``path.`` (or ``""`` for
        ``path`` itself unless ``strict``); at the root every key is returned
        whole. Wildcards contribute the part of the pattern that would still
        have to match below ``path``, e.g. ``...layers.0.size`` under
        ``model.layers`` yields ``0.size``.

        Args:
            path: Dot-notation prefix (``""`` for the root).
            strict: Exclude ``path`` itself.

        Returns:
            Deduplicated list in deterministic order.
        """
        self.consolidate()
        found: dict[str, None] = {}
        path_dot = path + "."

        for key in self._qualified_sorted:
            if key == path:
                if not strict:
                    found[""] = None
            elif path == "":
                found[key] = None
            elif key.startswith(path_dot):
                found[key[len(path_dot):]] = None

        for key, pattern, _value, _ordinal in self._wildcard:
            if path == "":
                found[key] = None
            elif not strict and pattern.fullmatch(path):
                found[""] = None
            else:
                suffix = _wildcard_suffix(key, path)
                if suffix:
                    found[suffix] = None

        return list(found)


def _wildcard_suffix(key: str, path: str) -> Optional[str]:
    """Return what remains of wildcard ``key`` once it has matched up to ``path``."""
    literal = path.rsplit(".", 1)[-1]
    start = key.find(literal)
    while start != -1:
        end = start + len(literal)
        before_ok = start == 0 or key[start - 1] == "."
        after_ok = end == len(key) or key[end] == "."
        if before_ok and after_ok:
            prefix, suffix = key[:end], key[end:]
            if compile_pattern(prefix).fullmatch(path):
                if suffix.startswith("..."):
                    return suffix
                return suffix[1:] if suffix.startswith(".") else suffix
        start = key.find(literal, start + 1)
    return None
