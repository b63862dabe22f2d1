"""
Measurement Models

Pydantic models for the per-operation-kind benchmark summary.
"""

from typing import Any, Dict, Optional
from datetime import UTC, datetime

from pydantic import BaseModel, Field


class LatencyPercentiles(BaseModel):
    """Latency percentile metrics (in milliseconds)."""

    p50: float = Field(0.0, description="50th percentile (median)")
    p75: float = Field(0.0, description="75th percentile")
    p90: float = Field(0.0, description="90th percentile")
    p95: float = Field(0.0, description="95th percentile")
    p99: float = Field(0.0, description="99th percentile")
    p999: float = Field(0.0, description="99.9th percentile")
    min: float = Field(0.0, description="Minimum latency")
    max: float = Field(0.0, description="Maximum latency")
    avg: float = Field(0.0, description="Average latency")

    def to_dict(self) -> Dict[str, float]:
        """Convert to dictionary."""
        return self.model_dump()


class OperationMetrics(BaseModel):
    """Aggregated metrics for one operation kind."""

    ok_operations: int = Field(0, description="Successful operations")
    fail_operations: int = Field(0, description="Failed operations")
    ok_points: int = Field(0, description="Points written / returned by ok operations")
    fail_points: int = Field(0, description="Points of failed writes")
    total_latency_ms: float = Field(0.0, description="Sum of ok latencies (ms)")
    latency: LatencyPercentiles = Field(
        default_factory=LatencyPercentiles, description="Latency percentiles"
    )

    @property
    def total_operations(self) -> int:
        return self.ok_operations + self.fail_operations

    @property
    def success_rate(self) -> float:
        """Calculate success rate (0.0-1.0)."""
        if self.total_operations == 0:
            return 0.0
        return self.ok_operations / self.total_operations

    @property
    def avg_latency_ms(self) -> float:
        if self.ok_operations == 0:
            return 0.0
        return self.total_latency_ms / self.ok_operations


class MeasurementSummary(BaseModel):
    """
    End-of-run summary, read once at shutdown.

    ``operations`` is keyed by OperationKind value and only lists kinds that
    were issued at least once.
    """

    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(UTC), description="Summary timestamp (UTC)"
    )
    elapsed_seconds: float = Field(0.0, description="Wall time of the client phase")
    create_schema_seconds: float = Field(0.0, description="Schema registration time")

    ok_operations: int = Field(0)
    fail_operations: int = Field(0)
    ok_points: int = Field(0)
    fail_points: int = Field(0)

    operations: Dict[str, OperationMetrics] = Field(default_factory=dict)
    aborted: bool = Field(False, description="Run stopped on a connection failure")
    error: Optional[str] = Field(None)

    def throughput(self, kind: str) -> float:
        """Ok points per second for one operation kind."""
        metrics = self.operations.get(kind)
        if metrics is None or self.elapsed_seconds <= 0:
            return 0.0
        return metrics.ok_points / self.elapsed_seconds

    def to_payload(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "elapsed_seconds": self.elapsed_seconds,
            "create_schema_seconds": self.create_schema_seconds,
            "ok_operations": self.ok_operations,
            "fail_operations": self.fail_operations,
            "ok_points": self.ok_points,
            "fail_points": self.fail_points,
            "aborted": self.aborted,
            "error": self.error,
            "operations": {
                kind: {
                    "ok_operations": m.ok_operations,
                    "fail_operations": m.fail_operations,
                    "ok_points": m.ok_points,
                    "fail_points": m.fail_points,
                    "throughput_points_per_s": self.throughput(kind),
                    "latency": m.latency.to_dict(),
                }
                for kind, m in self.operations.items()
            },
        }
