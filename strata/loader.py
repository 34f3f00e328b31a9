# strata/loader.py
"""
strata.loader
-------------

Argument layers from outside sources: preset files and environment variables.

Supports:
    - JSON and TOML preset files (nested tables become dotted keys),
    - ``.env`` files via python-dotenv,
    - ``PREFIX_...`` environment variables.
"""

import os
import json
import logging
from typing import Any, Dict, Optional

import tomli
from dotenv import load_dotenv, find_dotenv

from .utils import expand_path, flatten
from .values import Castable, Reference

log = logging.getLogger(__name__)

ENV_SEPARATOR = "__"


def load_preset_file(file_path: str) -> Dict[str, Any]:
    """
    Load a JSON or TOML preset file as one argument layer.

    Nested tables are flattened to dotted keys (``{"model": {"hidden": 5}}``
    becomes ``{"model.hidden": 5}``). A key ending in ``@`` is a reference:
    ``"eval.lr@" = "train.lr"`` becomes ``{"eval.lr": Reference("train.lr")}``.
    Values keep the types the file gives them.

    Args:
        file_path: Path to the file; ``~`` and ``$VARS`` are expanded.

    Returns:
        Flat dict of dotted key -> value.

    Raises:
        FileNotFoundError: If the file does not exist.
        RuntimeError: If the file cannot be parsed or its type is unsupported.
    """
    path = expand_path(file_path)
    if not path or not os.path.exists(path):
        raise FileNotFoundError(f"Preset file not found: {file_path}")

    ext = os.path.splitext(path)[1].lower()
    try:
        if ext == ".toml":
            with open(path, mode="rb") as f:
                content = tomli.load(f)
        elif ext == ".json":
            with open(path, mode="r", encoding="utf-8") as f:
                content = json.load(f)
        else:
            raise ValueError(f"Unsupported preset file type: {ext}")
    except Exception as e:
        raise RuntimeError(f"Error loading/parsing file {file_path}: {e}") from e

    if not isinstance(content, dict):
        raise RuntimeError(f"Error loading/parsing file {file_path}: top level must be a table/object")

    args: Dict[str, Any] = {}
    for key, value in flatten(content).items():
        if key.endswith("@"):
            args[key[:-1]] = Reference(str(value))
        else:
            args[key] = value
    log.debug(f"DEBUG [strata.load_preset_file]: Loaded {len(args)} keys from {path}")
    return args


def load_env_file(dotenv_path: Optional[str] = None) -> bool:
    """Load a ``.env`` file into ``os.environ`` without overriding existing variables.

    Without an explicit path, ``find_dotenv`` searches the working directory
    and its parents. Returns whether anything was loaded.
    """
    actual_dotenv_path = expand_path(dotenv_path) if dotenv_path else find_dotenv(usecwd=True)
    if not actual_dotenv_path or not os.path.exists(actual_dotenv_path):
        return False
    try:
        loaded = load_dotenv(dotenv_path=actual_dotenv_path, override=False)
    except (OSError, UnicodeDecodeError) as e:
        log.warning(f"Warning: Failed during .env file loading (path: {actual_dotenv_path}): {e}")
        return False
    if loaded:
        log.debug(f"DEBUG [strata.load_env_file]: Loaded .env file from: {actual_dotenv_path}.")
    else:
        log.debug(f"DEBUG [strata.load_env_file]: .env file found at {actual_dotenv_path} but nothing new was loaded.")
    return loaded


def collect_env_args(
    prefix: str,
    *,
    load_dotenv_file: bool = True,
    dotenv_path: Optional[str] = None,
) -> Dict[str, Castable]:
    """
    Collect ``PREFIX_...`` environment variables as an argument layer.

    The part after the prefix is lower-cased and ``__`` becomes ``.``, so
    ``APP_MODEL__HIDDEN_SIZE=512`` maps to
    ``{"model.hidden_size": Castable("512")}``. Values stay castable strings
    and are typed by the schema.

    Args:
        prefix: Variable prefix; a trailing ``_`` is optional.
        load_dotenv_file: Load a ``.env`` file first.
        dotenv_path: Explicit ``.env`` path (searched for if omitted).
    """
    if load_dotenv_file:
        load_env_file(dotenv_path)

    prefix_match = prefix.strip().rstrip("_").upper() + "_"
    plen = len(prefix_match)

    args: Dict[str, Castable] = {}
    log.debug(f"DEBUG [strata.collect_env_args]: Checking {len(os.environ)} env vars with prefix '{prefix_match}'")
    for var, raw_value in os.environ.items():
        if not var.upper().startswith(prefix_match):
            continue
        parts = var[plen:].lower().split(ENV_SEPARATOR)
        if not all(parts):
            log.warning(f"Warning: Ignoring environment variable '{var}': it maps to an empty key")
            continue
        dot_key = ".".join(parts)
        log.debug(f"DEBUG [strata.collect_env_args]: Processing env var '{var}' -> dot_key '{dot_key}'")
        args[dot_key] = Castable(raw_value)
    return args
