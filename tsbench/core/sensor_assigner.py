"""
Sensor Function Assigner

Deterministically binds every sensor to one data-generating function.

Two independent random streams are used:
- a single shared ``random.Random(seed)`` stream picks the function family,
  drawn once per sensor in strict index order
- a per-sensor ``random.Random(seed + 1 + i)`` stream picks the concrete
  function inside the family, so that pick does not depend on draw order
"""

import logging
import random
from bisect import bisect_right
from typing import Dict, List, Mapping, Optional

from tsbench.core.functions import (
    FunctionCatalog,
    FunctionFamily,
    SensorFunction,
    load_function_catalog,
)
from tsbench.exceptions import ConfigurationError
from tsbench.models.schema import sensor_names

logger = logging.getLogger(__name__)

FAMILY_ORDER = (
    FunctionFamily.CONSTANT,
    FunctionFamily.LINE,
    FunctionFamily.RANDOM,
    FunctionFamily.SINE,
    FunctionFamily.SQUARE,
)


def family_boundaries(ratios: Mapping[str, float]) -> List[float]:
    """
    Normalize the five family ratios into cumulative interval upper bounds.

    Family ``FAMILY_ORDER[i]`` owns ``[bounds[i-1], bounds[i])`` with an
    implicit lower bound of 0.

    Raises:
        ConfigurationError: a ratio is negative or missing, or they sum to <= 0
    """
    values = []
    for family in FAMILY_ORDER:
        try:
            value = float(ratios[family.value])
        except KeyError as e:
            raise ConfigurationError(f"Missing function ratio: {family.value}") from e
        if value < 0:
            raise ConfigurationError(
                f"Function ratio {family.value} must be >= 0, got {value}"
            )
        values.append(value)

    total = sum(values)
    if total <= 0:
        raise ConfigurationError("Function ratios must sum to a positive value")

    bounds: List[float] = []
    running = 0.0
    for value in values:
        running += value / total
        bounds.append(running)
    # Floating point may leave the last bound just under 1.0.
    bounds[-1] = 1.0
    return bounds


def _family_for(draw: float, bounds: List[float]) -> FunctionFamily:
    index = bisect_right(bounds, draw)
    # Zero-width intervals share their upper bound with the previous family;
    # bisect_right skips them so an empty family is never selected.
    return FAMILY_ORDER[min(index, len(FAMILY_ORDER) - 1)]


def assign_sensor_functions(
    sensor_number: int,
    ratios: Mapping[str, float],
    seed: int,
    catalog: Optional[FunctionCatalog] = None,
) -> Dict[str, SensorFunction]:
    """
    Bind each of ``sensor_number`` sensors to a generating function.

    Args:
        sensor_number: Sensors per device (all devices share the mapping)
        ratios: Family ratios keyed by family name
        seed: Data seed
        catalog: Candidate functions per family; defaults to the bundled catalog

    Returns:
        Mapping of sensor name to its function, in sensor index order

    Raises:
        ConfigurationError: invalid ratios, or a selected family with no candidates
    """
    if sensor_number < 0:
        raise ConfigurationError(f"sensor_number must be >= 0, got {sensor_number}")

    bounds = family_boundaries(ratios)
    if catalog is None:
        catalog = load_function_catalog()

    property_rng = random.Random(seed)
    assignment: Dict[str, SensorFunction] = {}

    # Index order matters: property draws advance one shared stream.
    for i, name in enumerate(sensor_names(sensor_number)):
        family = _family_for(property_rng.random(), bounds)
        candidates = catalog.get(family) or []
        if not candidates:
            raise ConfigurationError(
                f"Function family '{family.value}' was selected for sensor {name} "
                "but the catalog has no candidates for it"
            )
        selector = random.Random(seed + 1 + i).random()
        assignment[name] = candidates[int(selector * len(candidates))]

    logger.info(
        "Assigned %d sensor functions (seed=%s): %s",
        len(assignment),
        seed,
        _family_histogram(assignment),
    )
    return assignment


def _family_histogram(assignment: Mapping[str, SensorFunction]) -> Dict[str, int]:
    histogram = {family.value: 0 for family in FAMILY_ORDER}
    for fn in assignment.values():
        histogram[fn.family.value] += 1
    return histogram
