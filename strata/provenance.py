# strata/provenance.py
"""
strata.provenance
-----------------

Dry-run reporting: where each parameter's value would come from.

``Blueprint.dry_run()`` walks the schema exactly as ``make()`` would but does
not require the configuration to be complete. The result records, for every
parameter path, whether it was set by a layer, taken from a default,
referenced, computed, constructed from nested arguments, or is still
missing. ``Blueprint.get_help()`` renders it.

Thread-safety:
    - ``DryRunReport`` is written only while the report is being built.
    - ``ParamStatus`` is a frozen dataclass, so reads are safe afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from .values import Castable, Computed, Reference

SET = "set"
DEFAULT = "default"
MISSING = "missing"
REFERENCE = "reference"
COMPUTED = "computed"
CONSTRUCTED = "constructed"


@dataclass(frozen=True)
class ParamStatus:
    """Records the origin of a single parameter.

    Attributes:
        path: Full dot-notation path (e.g., ``"model.hidden"``).
        type_repr: Rendered type annotation.
        status: One of ``set``, ``default``, ``missing``, ``reference``,
            ``computed``, ``constructed``.
        value: The supplied or default value (a ``Reference`` / ``Castable``
            for those statuses), ``None`` when missing.
        source: Where it came from. Format examples:
            ``"command line"``
            ``"file:/home/user/presets.toml"``
            ``"env:APP"``
            ``"default"``
        doc: Field help text.
    """

    path: str
    type_repr: str
    status: str
    value: Any = None
    source: Optional[str] = None
    doc: str = ""

    def __repr__(self) -> str:
        return f"{self.path} = {self.value!r}  ← {self.source or self.status}"

    def render_value(self) -> str:
        if self.status == MISSING:
            return "-"
        if self.status == CONSTRUCTED:
            return "<constructed>"
        if isinstance(self.value, Reference):
            return "@=" + self.value.ref
        if isinstance(self.value, Computed):
            return "f(...)"
        if isinstance(self.value, Castable):
            return self.value.value
        if isinstance(self.value, type):
            return self.value.__name__
        return repr(self.value)


@dataclass
class DryRunReport:
    """Status of every parameter of a blueprint.

    Attributes:
        entrypoint: Rendered name of the blueprint target.
        _entries: Path -> ``ParamStatus``, in construction order.
    """

    entrypoint: str
    _entries: dict[str, ParamStatus] = field(default_factory=dict)

    def record(self, status: ParamStatus) -> None:
        self._entries[status.path] = status

    def get(self, path: str) -> Optional[ParamStatus]:
        """Get the status for a path, or ``None`` if it is not a parameter."""
        return self._entries.get(path)

    def entries(self) -> dict[str, ParamStatus]:
        """Shallow copy of all entries."""
        return dict(self._entries)

    @property
    def missing(self) -> list[str]:
        return [p for p, s in self._entries.items() if s.status == MISSING]

    def sources_summary(self) -> dict[str, int]:
        """Count how many parameters came from each source category.

        Groups by the prefix before the first ``:``. For example,
        ``"file:/path/to/presets.toml"`` groups under ``"file"``; parameters
        without a layer are grouped by status.
        """
        counts: dict[str, int] = {}
        for entry in self._entries.values():
            base_source = (entry.source or entry.status).split(":")[0]
            counts[base_source] = counts.get(base_source, 0) + 1
        return counts

    def render(self) -> str:
        """Help text: missing-params warning, entry point, one line per parameter."""
        lines = []
        if self.missing:
            lines.append(f"WARNING: Missing required arguments for parameter(s): {', '.join(self.missing)}")
            lines.append("")
        lines.append(f"Entry point: {self.entrypoint}")
        lines.append("")
        lines.append("Arguments:")

        rows = [
            (entry.path, entry.type_repr, entry.render_value(), entry.doc)
            for entry in self._entries.values()
        ]
        if rows:
            widths = [max(len(row[i]) for row in rows) for i in range(3)]
            for row in rows:
                line = "  ".join(col.ljust(width) for col, width in zip(row[:3], widths))
                lines.append(f"  {line}  {row[3]}".rstrip())
        return "\n".join(lines)
