# strata/wildcard.py
"""
strata.wildcard
---------------

Wildcard keys and fuzzy matching for argument paths.

A ``...`` inside a key stands for zero or more whole path segments, so
``...lr`` matches ``lr``, ``model.lr`` and ``model.optimizer.lr``, and
``model...size`` matches ``model.size`` and ``model.layers.0.size``. A key may
not end in ``...``.

``approximate`` scores how close a (possibly wildcard) key comes to a real
path; it only feeds the "did you mean" suggestions in error messages.
"""

from __future__ import annotations

import functools
import logging
import re
from difflib import SequenceMatcher
from typing import Iterable, Pattern

from .exceptions import WildcardError

log = logging.getLogger(__name__)

WILDCARD = "..."
FUZZY_SIMILARITY = 0.6

_TOKEN_RE = re.compile(r"\.\.\.|[^.]+")


def is_wildcard(key: str) -> bool:
    return WILDCARD in key


@functools.lru_cache(maxsize=4096)
def compile_pattern(key: str) -> Pattern[str]:
    """Compile a wildcard key into an anchored regular expression.

    Args:
        key: Dot-notation key, possibly containing ``...``.

    Returns:
        A compiled pattern; use ``fullmatch`` against candidate paths.

    Raises:
        WildcardError: If the key ends in ``...``.
    """
    if key.endswith(WILDCARD):
        raise WildcardError(key)

    prefix = ""
    if key.startswith(WILDCARD):
        key = key[len(WILDCARD):]
        prefix = r"(.*\.)?"
    parts = [re.escape(part) for part in key.split(WILDCARD)]
    return re.compile(prefix + r"\.(.*\.)?".join(parts))


def matches(key: str, path: str) -> bool:
    """Return True if ``path`` is matched by the (wildcard) ``key``."""
    return compile_pattern(key).fullmatch(path) is not None


def similarity(a: str, b: str) -> float:
    return SequenceMatcher(None, a, b).ratio()


def approximate(key: str, path: str) -> tuple[float, str]:
    """
    Score how well ``key`` approximately matches ``path``.

    Walks the key's tokens (literal segments and ``...`` markers) against the
    path's segments. A literal must be at least ``FUZZY_SIMILARITY`` similar to
    the segment it lines up with; each segment swallowed by a ``...`` costs a
    factor of ``FUZZY_SIMILARITY``.

    Args:
        key: The key the user supplied (may contain ``...``).
        path: A real parameter path.

    Returns:
        ``(score, suggestion)`` where score is in ``[0, 1]`` (1.0 for an exact
        non-wildcard match) and suggestion is the key rewritten with the
        path's spelling.

    Raises:
        WildcardError: If the key ends in ``...``.
    """
    if key.endswith(WILDCARD):
        raise WildcardError(key)

    tokens = _TOKEN_RE.findall(key)
    segments = [s for s in path.split(".") if s]
    memo: dict[tuple[int, int], tuple[float, list[str]]] = {}

    def _match(i: int, j: int) -> tuple[float, list[str]]:
        if (i, j) in memo:
            return memo[(i, j)]

        if i == len(tokens):
            result = (1.0 if j == len(segments) else 0.0, [])
        elif j == len(segments):
            result = (0.0, [])
        elif tokens[i] == WILDCARD:
            with_wild = _match(i, j + 1)
            without_wild = _match(i + 1, j)
            if with_wild[0] * FUZZY_SIMILARITY > without_wild[0]:
                score, value = with_wild[0] * FUZZY_SIMILARITY, with_wild[1]
            else:
                score, value = without_wild
            if value and value[0] != WILDCARD:
                value = [WILDCARD, *value]
            result = (score, value)
        else:
            ratio = similarity(tokens[i], segments[j])
            if ratio >= FUZZY_SIMILARITY:
                score, value = _match(i + 1, j + 1)
                if not value:
                    value = [segments[j]]
                elif value[0] == WILDCARD:
                    value = [segments[j], *value]
                else:
                    value = [segments[j] + ".", *value]
                result = (score * ratio, value)
            else:
                result = (0.0, [])

        memo[(i, j)] = result
        return result

    score, value = _match(0, 0)
    return score, "".join(value)


def suggest(key: str, candidates: Iterable[str], limit: int = 3, cutoff: float = 0.1) -> list[str]:
    """Return up to ``limit`` suggestions for ``key`` drawn from ``candidates``.

    Candidates scoring at or below ``cutoff`` are dropped; the sort is stable so
    ties keep candidate order.
    """
    scored = []
    for candidate in candidates:
        score, suggestion = approximate(key, candidate)
        if score > cutoff:
            scored.append((score, suggestion))
    scored.sort(key=lambda item: -item[0])

    suggestions: list[str] = []
    for _score, suggestion in scored:
        if suggestion not in suggestions:
            suggestions.append(suggestion)
        if len(suggestions) == limit:
            break
    log.debug(f"DEBUG [strata.suggest]: {key!r} -> {suggestions}")
    return suggestions
