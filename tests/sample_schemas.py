# tests/sample_schemas.py
"""
Schemas shared by the test suite.

Importable as ``sample_schemas`` (``tests/`` is on ``pythonpath``), so the CLI
tests can name them as ``sample_schemas:Experiment``.
"""

import enum
from typing import Optional

from strata import FunctionFactory, default_registry, field, schema, validates
from strata.mungers import if_none
from strata.validation import ge


@schema
class Model:
    hidden: int = 64
    layers: int = 2


@schema
class Experiment:
    name: str = field(doc="Run name")
    model: Model


@schema
class Optimizer:
    lr: float = 0.01


@schema
class Adam(Optimizer):
    beta1: float = 0.9


@schema
class SGD(Optimizer):
    momentum: float = 0.0


default_registry.register("sample_optimizer", "adam", Adam)
default_registry.register("sample_optimizer", "sgd", SGD, aliases=("plain",))


@schema
class Trainer:
    optimizer: Optimizer = field(namespace="sample_optimizer", doc="Optimizer to use")
    steps: int = 100


@schema
class Block:
    size: int
    activation: str = "relu"


@schema
class Network:
    blocks: list[Block] = field(default_factory=list)
    frozen: tuple[Block, ...] = ()


@schema
class Schedule:
    train_lr: float
    eval_lr: float = 0.0


class Mode(enum.Enum):
    FAST = "fast"
    SLOW = "slow"


@schema
class Settings:
    mode: Mode = Mode.FAST
    debug: bool = False
    tags: list[str] = field(default_factory=list)
    limit: Optional[int] = None


@schema
class Bounded:
    low: int = field(default=0, validator=ge(0))
    high: int = 10

    @validates
    def _ordered(self):
        if self.low > self.high:
            raise ValueError(f"low ({self.low}) must not exceed high ({self.high})")


@schema
class Paths:
    root: str = "/data"
    cache: str = field(munger=if_none(lambda self: self.root + "/cache"))


def build_pair(a: int, b: int = 2):
    return (a, b)


def relu_layer(width: int = 4):
    return ("relu", width)


def tanh_layer(width: int = 8):
    return ("tanh", width)


@schema
class Head:
    layer: object = field(meta_factory=FunctionFactory(default_module="sample_schemas", unspecified=relu_layer))
