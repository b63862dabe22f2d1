"""
Sensor data-generating functions.

This module provides the five function families used to synthesize sensor
values and the loader for the static function catalog:
- Constant: a fixed value
- Line: a ramp from min to max that restarts every cycle
- Sine: a sine wave between min and max
- Square: max for the first half of each cycle, min for the second
- Random: uniform values between min and max

Every function is evaluated at an integer millisecond timestamp.
"""

import logging
import math
import random
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from tsbench.exceptions import ConfigurationError, WorkloadError

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_PATH = Path(__file__).resolve().parent / "function_catalog.yaml"


class FunctionFamily(str, Enum):
    """Function families, in ratio-interval order."""

    CONSTANT = "constant"
    LINE = "line"
    RANDOM = "random"
    SINE = "sine"
    SQUARE = "square"


class SensorFunction(ABC):
    """A data-generating function bound to a sensor for the whole run."""

    family: FunctionFamily
    name: str

    @abstractmethod
    def value_at(self, timestamp: int, rng: Optional[random.Random] = None) -> float:
        """
        Evaluate the function.

        Args:
            timestamp: Millisecond timestamp
            rng: Generator for stochastic families; ignored by the others

        Returns:
            The sensor value at ``timestamp``
        """
        ...


@dataclass(frozen=True)
class ConstantFunction(SensorFunction):
    name: str
    value: float
    family: FunctionFamily = FunctionFamily.CONSTANT

    def value_at(self, timestamp: int, rng: Optional[random.Random] = None) -> float:
        return float(self.value)


@dataclass(frozen=True)
class LineFunction(SensorFunction):
    name: str
    min: float
    max: float
    cycle: int
    family: FunctionFamily = FunctionFamily.LINE

    @property
    def k(self) -> float:
        """Slope in value units per millisecond."""
        return (self.max - self.min) / self.cycle

    def value_at(self, timestamp: int, rng: Optional[random.Random] = None) -> float:
        return self.min + self.k * (timestamp % self.cycle)


@dataclass(frozen=True)
class SineFunction(SensorFunction):
    name: str
    min: float
    max: float
    cycle: int
    family: FunctionFamily = FunctionFamily.SINE

    def value_at(self, timestamp: int, rng: Optional[random.Random] = None) -> float:
        amplitude = (self.max - self.min) / 2
        phase = 2 * math.pi * (timestamp % self.cycle) / self.cycle
        return self.min + amplitude + amplitude * math.sin(phase)


@dataclass(frozen=True)
class SquareFunction(SensorFunction):
    name: str
    min: float
    max: float
    cycle: int
    family: FunctionFamily = FunctionFamily.SQUARE

    def value_at(self, timestamp: int, rng: Optional[random.Random] = None) -> float:
        if timestamp % self.cycle < self.cycle / 2:
            return float(self.max)
        return float(self.min)


@dataclass(frozen=True)
class RandomFunction(SensorFunction):
    name: str
    min: float
    max: float
    family: FunctionFamily = FunctionFamily.RANDOM

    def value_at(self, timestamp: int, rng: Optional[random.Random] = None) -> float:
        if rng is None:
            raise WorkloadError(f"Random function {self.name!r} needs a seeded generator")
        return self.min + rng.random() * (self.max - self.min)


FunctionCatalog = Dict[FunctionFamily, List[SensorFunction]]


def _build_function(family: FunctionFamily, entry: Dict[str, Any]) -> SensorFunction:
    name = str(entry.get("name") or f"{family.value}-{id(entry)}")
    try:
        if family == FunctionFamily.CONSTANT:
            return ConstantFunction(name=name, value=float(entry["value"]))
        if family == FunctionFamily.RANDOM:
            return RandomFunction(
                name=name, min=float(entry["min"]), max=float(entry["max"])
            )

        cycle = int(entry["cycle"])
        if cycle <= 0:
            raise ConfigurationError(f"Function {name}: cycle must be > 0")
        lo, hi = float(entry["min"]), float(entry["max"])
        if family == FunctionFamily.LINE:
            return LineFunction(name=name, min=lo, max=hi, cycle=cycle)
        if family == FunctionFamily.SINE:
            return SineFunction(name=name, min=lo, max=hi, cycle=cycle)
        return SquareFunction(name=name, min=lo, max=hi, cycle=cycle)
    except KeyError as e:
        raise ConfigurationError(f"Function {name} is missing parameter {e}") from e


def parse_function_catalog(data: Any) -> FunctionCatalog:
    """
    Build a catalog from parsed YAML.

    Families missing from ``data`` get an empty candidate list; the assigner
    rejects an empty family only if it is actually selected.
    """
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError("Function catalog must be a mapping of family -> list")

    catalog: FunctionCatalog = {family: [] for family in FunctionFamily}
    for key, entries in data.items():
        try:
            family = FunctionFamily(str(key).strip().lower())
        except ValueError as e:
            raise ConfigurationError(f"Unknown function family: {key}") from e
        for entry in entries or []:
            catalog[family].append(_build_function(family, entry))
    return catalog


@lru_cache(maxsize=8)
def _load_catalog_cached(path: str) -> FunctionCatalog:
    with open(path, "r") as f:
        data = yaml.safe_load(f)
    catalog = parse_function_catalog(data)
    logger.info(
        "Loaded function catalog %s: %s",
        path,
        {family.value: len(fns) for family, fns in catalog.items()},
    )
    return catalog


def load_function_catalog(path: Optional[Union[str, Path]] = None) -> FunctionCatalog:
    """
    Load the static function catalog (once per path).

    Args:
        path: YAML catalog; defaults to the bundled catalog

    Returns:
        Mapping of family to its candidate functions, in file order
    """
    resolved = Path(path) if path else DEFAULT_CATALOG_PATH
    if not resolved.exists():
        raise ConfigurationError(f"Function catalog not found: {resolved}")
    catalog = _load_catalog_cached(str(resolved))
    # Callers get fresh lists so the cached catalog can't be mutated.
    return {family: list(fns) for family, fns in catalog.items()}
