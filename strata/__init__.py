# strata/__init__.py
"""
strata – Layered, lazily evaluated configuration for Python objects.

Declare a schema with ``@schema`` / ``field()``, stack argument layers on a
``Blueprint`` (dicts, preset files, environment variables, ``key=value``
command-line arguments), then ``make()`` the object:

    bp = Blueprint(Experiment)
    bp.apply({"...lr": 0.1}, layer_name="preset")
    bp.apply_from_argv(["model=transformer", "model.layers=12"])
    experiment = bp.make()

Keys are dot paths; ``...`` matches any run of intermediate segments.
Later layers win, and a wildcard only beats an exact key from an earlier
layer.
"""

__version__ = "0.1.0"

from .blueprint import Blueprint, entrypoint, make, nested_entrypoint
from .exceptions import (
    ArgvFormatError,
    CastError,
    ConstructionError,
    CycleError,
    ExtraneousArgumentError,
    HelpRequested,
    InvalidReferenceError,
    InvalidValueError,
    MissingRequiredError,
    StrataError,
    ValidationError,
    WildcardError,
)
from .factories import (
    FunctionFactory,
    MetaFactory,
    Registry,
    StandardFactory,
    SubclassFactory,
    default_registry,
)
from .fields import field, fields_of, is_schema, schema, validates
from .provenance import DryRunReport, ParamStatus
from .serialize import to_argv, to_blueprint_values
from .utils import pretty, traverse
from .values import Castable, Computed, Reference

__all__ = [
    "ArgvFormatError",
    "Blueprint",
    "CastError",
    "Castable",
    "Computed",
    "ConstructionError",
    "CycleError",
    "DryRunReport",
    "ExtraneousArgumentError",
    "FunctionFactory",
    "HelpRequested",
    "InvalidReferenceError",
    "InvalidValueError",
    "MetaFactory",
    "MissingRequiredError",
    "ParamStatus",
    "Reference",
    "Registry",
    "StandardFactory",
    "StrataError",
    "SubclassFactory",
    "ValidationError",
    "WildcardError",
    "default_registry",
    "entrypoint",
    "field",
    "fields_of",
    "is_schema",
    "make",
    "nested_entrypoint",
    "pretty",
    "schema",
    "to_argv",
    "to_blueprint_values",
    "traverse",
    "validates",
]
