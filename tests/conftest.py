"""
Shared pytest fixtures for tsbench tests.

This module provides:
- A factory for small, fast BenchmarkConfig instances
- An in-memory recording persistence sink
- The bundled function catalog
"""

from typing import Any, Callable, Mapping

import pytest

from tsbench.core.functions import load_function_catalog
from tsbench.core.persistence.base import TestDataPersistence
from tsbench.models import BenchmarkConfig

# Small-run defaults: no settling wait, no progress logging, short loop.
FAST_DEFAULTS: dict[str, Any] = {
    "init_wait_time_ms": 0,
    "log_print_interval_s": 0,
    "loop": 10,
    "is_regular_frequency": True,
}


class RecordingSink(TestDataPersistence):
    """Keeps everything it is given, for assertions."""

    def __init__(self) -> None:
        self.operations: list[tuple[str, int, int, float, str]] = []
        self.configs: list[BenchmarkConfig] = []
        self.system_metrics: list[dict[str, float]] = []
        self.results: list[tuple[str, str, Any]] = []
        self.close_calls = 0

    def save_operation_result(
        self,
        operation: str,
        ok_points: int,
        fail_points: int,
        latency_ms: float,
        remark: str = "",
    ) -> None:
        self.operations.append((operation, ok_points, fail_points, latency_ms, remark))

    def save_test_config(self, config: BenchmarkConfig) -> None:
        self.configs.append(config)

    def insert_system_metrics(self, metrics: Mapping[str, float]) -> None:
        self.system_metrics.append(dict(metrics))

    def save_result(self, operation: str, key: str, value: Any) -> None:
        self.results.append((operation, key, value))

    def close(self) -> None:
        self.close_calls += 1


@pytest.fixture
def make_config() -> Callable[..., BenchmarkConfig]:
    def _make(**overrides: Any) -> BenchmarkConfig:
        values = dict(FAST_DEFAULTS)
        values.update(overrides)
        return BenchmarkConfig(**values)

    return _make


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def catalog():
    return load_function_catalog()
