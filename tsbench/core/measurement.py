"""
Measurement

Process-wide aggregation of operation results, keyed by operation kind:
- ok / failed operation counts
- ok / failed point counts
- latency samples of successful operations, with percentile calculation
"""

import asyncio
import logging
import time
from collections import deque
from typing import Deque, Dict, List, Optional

from tsbench.models.metrics import LatencyPercentiles, MeasurementSummary, OperationMetrics
from tsbench.models.operation import OPERATION_ORDER, OperationKind

logger = logging.getLogger(__name__)


def calculate_percentiles(latencies: List[float]) -> LatencyPercentiles:
    """
    Calculate latency percentiles by linear interpolation.

    Args:
        latencies: Latency values in milliseconds

    Returns:
        LatencyPercentiles with calculated values
    """
    if not latencies:
        return LatencyPercentiles()

    sorted_latencies = sorted(latencies)
    n = len(sorted_latencies)

    def percentile(p: float) -> float:
        k = (n - 1) * p
        f = int(k)
        c = k - f
        if f + 1 < n:
            return sorted_latencies[f] * (1 - c) + sorted_latencies[f + 1] * c
        return sorted_latencies[f]

    return LatencyPercentiles(
        p50=percentile(0.50),
        p75=percentile(0.75),
        p90=percentile(0.90),
        p95=percentile(0.95),
        p99=percentile(0.99),
        p999=percentile(0.999),
        min=sorted_latencies[0],
        max=sorted_latencies[-1],
        avg=sum(sorted_latencies) / n,
    )


class Measurement:
    """
    Concurrent-safe aggregator shared by every client.

    Updates are serialized by an ``asyncio.Lock``; all clients run on the
    same event loop.
    """

    def __init__(self, window_size: Optional[int] = None):
        """
        Args:
            window_size: Max latency samples kept per kind (None keeps all)
        """
        self.window_size = window_size
        self._lock = asyncio.Lock()

        self._metrics: Dict[OperationKind, OperationMetrics] = {
            kind: OperationMetrics() for kind in OPERATION_ORDER
        }
        self._latencies: Dict[OperationKind, Deque[float]] = {
            kind: deque(maxlen=window_size) for kind in OPERATION_ORDER
        }

        self.create_schema_seconds = 0.0
        self._started_at: Optional[float] = None
        self._stopped_at: Optional[float] = None

    def start(self) -> None:
        """Mark the beginning of the client phase."""
        self._started_at = time.perf_counter()
        self._stopped_at = None

    def stop(self) -> None:
        self._stopped_at = time.perf_counter()

    @property
    def elapsed_seconds(self) -> float:
        if self._started_at is None:
            return 0.0
        end = self._stopped_at if self._stopped_at is not None else time.perf_counter()
        return max(0.0, end - self._started_at)

    def set_create_schema_time(self, seconds: float) -> None:
        self.create_schema_seconds = max(0.0, seconds)

    async def record_ok(self, kind: OperationKind, points: int, latency_ms: float) -> None:
        """Record a successful operation."""
        async with self._lock:
            metrics = self._metrics[kind]
            metrics.ok_operations += 1
            metrics.ok_points += points
            metrics.total_latency_ms += latency_ms
            self._latencies[kind].append(latency_ms)

    async def record_fail(self, kind: OperationKind, points: int) -> None:
        """Record a failed operation; ``points`` are the points it failed to write."""
        async with self._lock:
            metrics = self._metrics[kind]
            metrics.fail_operations += 1
            metrics.fail_points += points

    async def totals(self) -> Dict[str, int]:
        """Current cross-kind totals (used for progress logging)."""
        async with self._lock:
            return {
                "ok_operations": sum(m.ok_operations for m in self._metrics.values()),
                "fail_operations": sum(m.fail_operations for m in self._metrics.values()),
                "ok_points": sum(m.ok_points for m in self._metrics.values()),
                "fail_points": sum(m.fail_points for m in self._metrics.values()),
            }

    async def summary(
        self, aborted: bool = False, error: Optional[str] = None
    ) -> MeasurementSummary:
        """
        Build the end-of-run summary.

        Only operation kinds issued at least once are listed.
        """
        async with self._lock:
            operations: Dict[str, OperationMetrics] = {}
            for kind in OPERATION_ORDER:
                metrics = self._metrics[kind]
                if metrics.total_operations == 0:
                    continue
                operations[kind.value] = metrics.model_copy(
                    update={"latency": calculate_percentiles(list(self._latencies[kind]))}
                )

            return MeasurementSummary(
                elapsed_seconds=self.elapsed_seconds,
                create_schema_seconds=self.create_schema_seconds,
                ok_operations=sum(m.ok_operations for m in operations.values()),
                fail_operations=sum(m.fail_operations for m in operations.values()),
                ok_points=sum(m.ok_points for m in operations.values()),
                fail_points=sum(m.fail_points for m in operations.values()),
                operations=operations,
                aborted=aborted,
                error=error,
            )


def format_summary(summary: MeasurementSummary) -> str:
    """Render the summary as the plain-text tables printed at shutdown."""
    lines = [
        "Test elapsed time (not include schema creation): %.2f second"
        % summary.elapsed_seconds,
        "Create schema cost %.2f second" % summary.create_schema_seconds,
        "",
        "%-40s%-15s%-15s%-15s%-15s%-20s"
        % ("Operation", "okOperation", "okPoint", "failOperation", "failPoint", "throughput(point/s)"),
    ]
    for kind, m in summary.operations.items():
        lines.append(
            "%-40s%-15d%-15d%-15d%-15d%-20.2f"
            % (kind, m.ok_operations, m.ok_points, m.fail_operations, m.fail_points, summary.throughput(kind))
        )

    lines.append("")
    lines.append(
        "%-40s%-10s%-10s%-10s%-10s%-10s%-10s%-10s%-10s%-10s"
        % ("Latency (ms)", "AVG", "MIN", "P50", "P75", "P90", "P95", "P99", "P999", "MAX")
    )
    for kind, m in summary.operations.items():
        lat = m.latency
        lines.append(
            "%-40s%-10.2f%-10.2f%-10.2f%-10.2f%-10.2f%-10.2f%-10.2f%-10.2f%-10.2f"
            % (kind, lat.avg, lat.min, lat.p50, lat.p75, lat.p90, lat.p95, lat.p99, lat.p999, lat.max)
        )
    if summary.aborted:
        lines.append("")
        lines.append("Run aborted: %s" % (summary.error or "connection failure"))
    return "\n".join(lines)
