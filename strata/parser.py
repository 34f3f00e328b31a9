# strata/parser.py
"""
strata.parser
-------------

Tokenize command-line arguments into an argument layer.

    name=run1            -> {"name": Castable("run1")}
    ...lr=0.1            -> {"...lr": Castable("0.1")}
    eval.lr@=train.lr    -> {"eval.lr": Reference("train.lr")}

``--`` is ignored and ``--help`` / ``-h`` / ``help`` request help.
"""

from __future__ import annotations

from typing import Iterable, Optional

from .exceptions import ArgvFormatError
from .values import Castable, Reference

HELP_FLAGS = ("--help", "-h", "help")


def parse_arg(arg: str, allow_hyphens: bool = False):
    """Parse one ``key=value`` or ``key@=target`` argument.

    Args:
        arg: The raw argument.
        allow_hyphens: Accept (and strip) leading ``-``/``--`` on the key.

    Returns:
        ``(key, Castable | Reference)``.

    Raises:
        ArgvFormatError: If there is no ``=``.
    """
    key, sep, value = arg.partition("=")
    if not sep or not key:
        raise ArgvFormatError(arg)
    if allow_hyphens:
        key = key.lstrip("-")
    if key.endswith("@"):
        return key[:-1], Reference(value)
    return key, Castable(value)


def parse_argv(argv: Iterable[str], allow_hyphens: bool = False) -> tuple[dict, bool]:
    """Tokenize ``argv``.

    Later assignments to the same key replace earlier ones.

    Returns:
        ``(args, help_requested)``.
    """
    args: dict = {}
    help_requested = False
    for arg in argv:
        if arg == "--":
            continue
        if arg in HELP_FLAGS:
            help_requested = True
            continue
        key, value = parse_arg(arg, allow_hyphens=allow_hyphens)
        args[key] = value
    return args, help_requested


def help_requested(argv: Optional[Iterable[str]]) -> bool:
    return any(arg in HELP_FLAGS for arg in argv or ())
