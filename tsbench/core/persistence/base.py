"""
Result persistence contract.

The measurement decorator forwards every operation result to a sink before
the client issues its next operation.
"""

from abc import ABC, abstractmethod
from datetime import UTC, datetime
from typing import Any, Dict, Mapping

from tsbench.models.bench_config import BenchmarkConfig


def config_rows(config: BenchmarkConfig) -> Dict[str, str]:
    """Flatten a config into parameter -> text pairs for persistence."""
    return {key: _as_text(value) for key, value in config.model_dump(mode="json").items()}


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def run_stamp() -> str:
    """Directory / file stamp identifying one run."""
    return datetime.now(UTC).strftime("%Y%m%d_%H%M%S")


class TestDataPersistence(ABC):
    """Sink for operation results, run configuration and system metrics."""

    # Not a pytest test class despite the name.
    __test__ = False

    @abstractmethod
    def save_operation_result(
        self,
        operation: str,
        ok_points: int,
        fail_points: int,
        latency_ms: float,
        remark: str = "",
    ) -> None:
        """Persist the outcome of one operation."""

    @abstractmethod
    def save_test_config(self, config: BenchmarkConfig) -> None:
        """Persist the run configuration (called once, before clients start)."""

    @abstractmethod
    def insert_system_metrics(self, metrics: Mapping[str, float]) -> None:
        """Persist one sample of host metrics."""

    @abstractmethod
    def save_result(self, operation: str, key: str, value: Any) -> None:
        """Persist one entry of the final summary."""

    @abstractmethod
    def close(self) -> None:
        """Flush and release resources. Safe to call more than once."""
