"""
Static helper functions for the benchmark clients.
"""

import random
from typing import Any, Mapping, Optional, Union

from tsbench.models.operation import OPERATION_ORDER, OperationKind

BACKEND_REPORTED_FAILURE = "BACKEND_REPORTED_FAILURE"


def classify_error(exc: Optional[BaseException]) -> str:
    """
    Return a stable, low-cardinality category for a failed operation.

    Failures are expected under load, so they are aggregated by category
    rather than logged one by one.
    """
    if exc is None:
        return BACKEND_REPORTED_FAILURE
    msg = str(exc).lower()
    if isinstance(exc, TimeoutError) or "timed out" in msg or "timeout" in msg:
        return "TIMEOUT"
    return type(exc).__name__


def truncate_str_for_log(value: Any, *, max_chars: int = 800) -> str:
    """Truncate a string value for logging."""
    text = str(value if value is not None else "")
    if len(text) > max_chars:
        return text[:max_chars] + "…[truncated]"
    return text


class OperationSampler:
    """
    Draws one operation kind per loop iteration from the configured weights.

    Args:
        weights: OperationKind -> non-negative weight
        seed: Seed (int or str) for this sampler's own generator
    """

    def __init__(self, weights: Mapping[OperationKind, float], seed: Union[int, str]):
        self.kinds = [k for k in OPERATION_ORDER if weights.get(k, 0) > 0]
        self.weights = [weights[k] for k in self.kinds]
        if not self.kinds:
            raise ValueError("At least one operation weight must be positive")
        self.random = random.Random(seed)

    def next_kind(self) -> OperationKind:
        return self.random.choices(self.kinds, weights=self.weights)[0]


def operation_seed(query_seed: int, client_id: int) -> str:
    """Seed for a client's operation sampler, kept apart from its query stream."""
    return f"operations-{query_seed}-{client_id}"
