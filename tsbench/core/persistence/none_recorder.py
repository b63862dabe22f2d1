"""No-op result sink."""

from typing import Any, Mapping

from tsbench.core.persistence.base import TestDataPersistence
from tsbench.models.bench_config import BenchmarkConfig


class NoneRecorder(TestDataPersistence):
    """Discards everything."""

    def save_operation_result(
        self,
        operation: str,
        ok_points: int,
        fail_points: int,
        latency_ms: float,
        remark: str = "",
    ) -> None:
        pass

    def save_test_config(self, config: BenchmarkConfig) -> None:
        pass

    def insert_system_metrics(self, metrics: Mapping[str, float]) -> None:
        pass

    def save_result(self, operation: str, key: str, value: Any) -> None:
        pass

    def close(self) -> None:
        pass
