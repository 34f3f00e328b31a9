# strata/exceptions.py
"""
strata.exceptions
-----------------

Custom exceptions for strata.

Every error raised while building a blueprint derives from ``StrataError``
and carries a ``kind`` tag so callers can branch on the category without
matching message text.
"""

from __future__ import annotations

from typing import Iterable, Optional, Sequence


class StrataError(Exception):
    """Base class for construction errors.

    Attributes:
        kind: Short category tag (``"missing_required"``, ``"cycle"``, ...).
        path: Dot-notation path the error is about, if any.
    """

    kind = "error"

    def __init__(self, message: str, *, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class WildcardError(StrataError, ValueError):
    """Raised for a malformed wildcard pattern (e.g. one ending in ``...``)."""

    kind = "invalid_wildcard"

    def __init__(self, pattern: str):
        super().__init__(f"Wildcard not allowed at end of key: {pattern!r}", path=pattern)
        self.pattern = pattern


class MissingRequiredError(StrataError):
    """
    Raised when one or more required parameters received no value.
    """

    kind = "missing_required"

    def __init__(self, paths: Sequence[str]):
        super().__init__(f"Missing required argument: {paths[0]}", path=paths[0])
        self.missing_paths = list(paths)


class ExtraneousArgumentError(StrataError):
    """Raised when a supplied key was never consumed by any parameter."""

    kind = "extraneous"

    def __init__(self, key: str, suggestions: Sequence[str] = (), hints: Sequence[str] = ()):
        lines = [f"Unknown argument: {key}"]
        if suggestions:
            lines.append(f"Did you mean: {', '.join(suggestions)}?")
        lines.extend(hints)
        super().__init__("\n".join(lines), path=key)
        self.suggestions = list(suggestions)
        self.hints = list(hints)


class InvalidValueError(StrataError):
    """Raised when a polymorphic factory name cannot be resolved."""

    kind = "invalid_value"

    def __init__(self, path: str, reason: str, attempted: Optional[str] = None):
        super().__init__(f"Invalid value for {path}: {reason}", path=path)
        self.reason = reason
        self.attempted = attempted


class ArgvFormatError(StrataError, ValueError):
    """Raised by the tokenizer for arguments that are not ``key=value``."""

    kind = "invalid_value"

    def __init__(self, argument: str):
        super().__init__(
            f"Invalid argument {argument!r}. Arguments must be in key=value format."
        )
        self.argument = argument


class CastError(StrataError):
    """Raised when a string cannot be cast to the declared field type."""

    kind = "cast_error"

    def __init__(self, reason: str, *, path: Optional[str] = None):
        message = f"Could not cast {path}: {reason}" if path else reason
        super().__init__(message, path=path)
        self.reason = reason

    def at(self, path: str) -> "CastError":
        """Return a copy of this error attributed to ``path``."""
        return CastError(self.reason, path=path)


class InvalidReferenceError(StrataError):
    """Raised for references whose target path does not exist.

    Attributes:
        targets: Mapping of each dangling target to the paths referring to it.
        suggestions: Mapping of each dangling target to a best-guess path (or None).
    """

    kind = "invalid_reference"

    def __init__(self, targets: dict[str, list[str]], suggestions: Optional[dict[str, Optional[str]]] = None):
        suggestions = suggestions or {}
        paragraphs = []
        for target, referrers in targets.items():
            text = f"Invalid reference target {target!r} from {referrers!r}"
            if suggestions.get(target):
                text += f"\nDid you mean {suggestions[target]!r}?"
            paragraphs.append(text)
        super().__init__("\n\n".join(paragraphs), path=next(iter(targets), None))
        self.targets = targets
        self.suggestions = suggestions


class CycleError(StrataError):
    """Raised when a reference chain loops back on itself."""

    kind = "cycle"

    def __init__(self, chain: Iterable[str]):
        self.chain = list(chain)
        super().__init__(
            "Detected cyclic reference: " + " -> ".join(repr(p) for p in self.chain),
            path=self.chain[0] if self.chain else None,
        )


class ValidationError(StrataError):
    """Raised by field or class validators after construction."""

    kind = "validation_error"

    def __init__(self, path: str, message: str):
        super().__init__(f"Validation error for {path}: {message}", path=path)
        self.reason = message


class ConstructionError(StrataError):
    """Wraps an exception raised while instantiating a value."""

    kind = "construction_error"

    def __init__(self, path: str, cause: BaseException):
        where = repr(path) if path else "root"
        super().__init__(f"Construction error when evaluating {where}: {cause}", path=path)
        self.cause = cause


class HelpRequested(Exception):
    """
    Raised when a help flag is present on the command line.

    Carries the rendered help text so entry points can print it and exit.
    """

    def __init__(self, help_text: str):
        super().__init__(help_text)
        self.help_text = help_text
