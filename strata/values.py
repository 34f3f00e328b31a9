# strata/values.py
"""
strata.values
-------------

Input values that can be stored in an argument layer besides plain Python
objects.

- ``Castable``: a raw string that still has to be cast to the field's type
  (what the command-line tokenizer and environment layers produce).
- ``Reference``: "use whatever ends up at this other path".
- ``Computed``: "call this function with the values found at these paths".
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from .wildcard import is_wildcard


@dataclass(frozen=True)
class Castable:
    """A string waiting to be cast against the declared field type."""

    value: str

    def __repr__(self) -> str:
        return f"Castable({self.value!r})"


@dataclass(frozen=True)
class Reference:
    """A reference to the value resolved at another path."""

    ref: str

    def __post_init__(self):
        if is_wildcard(self.ref):
            raise ValueError(f"Reference target cannot contain wildcards: {self.ref!r}")

    def __repr__(self) -> str:
        return f"Reference({self.ref!r})"


@dataclass(frozen=True)
class Computed:
    """A value computed from other parameters.

    Attributes:
        sources: Keyword name -> ``Reference`` (a bare string is accepted and
            wrapped).
        compute: Called as ``compute(**resolved_sources)``.
    """

    sources: Mapping[str, Reference]
    compute: Callable[..., Any] = field(compare=False)

    def __post_init__(self):
        normalized = {
            name: src if isinstance(src, Reference) else Reference(src)
            for name, src in self.sources.items()
        }
        object.__setattr__(self, "sources", normalized)
