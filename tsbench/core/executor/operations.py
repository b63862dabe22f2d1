"""
Measured operation execution.

MeasuredBackend wraps a Backend and, for every call:
1. captures a start time
2. delegates to the adapter
3. computes the elapsed time (negative values are clamped to 0)
4. classifies the outcome
5. updates the shared Measurement
6. forwards the result to the persistence sink

ConnectionFailure propagates to the caller. Every other exception, and every
non-ok Status, is recorded as one failed operation and never retried.
"""

import logging
import time
from typing import Awaitable, Callable, Dict, Optional

from tsbench.connectors.base import Backend
from tsbench.core.executor.helpers import classify_error, truncate_str_for_log
from tsbench.core.measurement import Measurement
from tsbench.core.persistence.base import TestDataPersistence
from tsbench.exceptions import ConnectionFailure
from tsbench.models.operation import OperationKind
from tsbench.models.status import Status
from tsbench.models.workload import Batch, Query

logger = logging.getLogger(__name__)

QUERY_METHODS: Dict[OperationKind, str] = {
    OperationKind.PRECISE_QUERY: "precise_query",
    OperationKind.RANGE_QUERY: "range_query",
    OperationKind.VALUE_RANGE_QUERY: "value_range_query",
    OperationKind.AGG_RANGE_QUERY: "agg_range_query",
    OperationKind.AGG_VALUE_QUERY: "agg_value_query",
    OperationKind.AGG_RANGE_VALUE_QUERY: "agg_range_value_query",
    OperationKind.GROUP_BY_QUERY: "group_by_query",
    OperationKind.LATEST_POINT_QUERY: "latest_point_query",
    OperationKind.RANGE_QUERY_ORDER_BY_TIME_DESC: "range_query_order_by_desc",
    OperationKind.VALUE_RANGE_QUERY_ORDER_BY_TIME_DESC: "value_range_query_order_by_desc",
}


class MeasuredBackend:
    """
    Measurement decorator around a backend adapter.

    Args:
        backend: Adapter doing the real work
        measurement: Shared aggregator
        sink: Persistence sink receiving one record per operation
        quiet: Suppress the per-operation log line
        clock: Monotonic clock in seconds (injectable for tests)
    """

    def __init__(
        self,
        backend: Backend,
        measurement: Measurement,
        sink: TestDataPersistence,
        *,
        quiet: bool = True,
        clock: Callable[[], float] = time.perf_counter,
    ):
        self.backend = backend
        self.measurement = measurement
        self.sink = sink
        self.quiet = quiet
        self._clock = clock

        self.error_categories: Dict[str, int] = {}
        self.clamped_latencies = 0

    async def insert_one_batch(self, batch: Batch) -> Status:
        return await self._measure(
            OperationKind.INGESTION,
            lambda: self.backend.insert_one_batch(batch),
            fail_points=batch.point_count,
            ok_points=batch.point_count,
            batch=batch,
        )

    async def insert_one_sensor_batch(self, batch: Batch) -> Status:
        return await self._measure(
            OperationKind.INGESTION,
            lambda: self.backend.insert_one_sensor_batch(batch),
            fail_points=batch.point_count,
            ok_points=batch.point_count,
            batch=batch,
        )

    async def query(self, kind: OperationKind, query: Query) -> Status:
        """Run a read operation of ``kind``."""
        method = getattr(self.backend, QUERY_METHODS[kind])
        return await self._measure(kind, lambda: method(query), fail_points=0)

    async def _measure(
        self,
        kind: OperationKind,
        call: Callable[[], Awaitable[Status]],
        *,
        fail_points: int,
        ok_points: Optional[int] = None,
        batch: Optional[Batch] = None,
    ) -> Status:
        start = self._clock()
        try:
            status = await call()
        except ConnectionFailure:
            raise
        except Exception as e:
            status = Status.failure(e)
        elapsed_ms = (self._clock() - start) * 1000.0

        if elapsed_ms < 0:
            logger.warning(
                "Negative latency %.3fms measured for %s; recording 0", elapsed_ms, kind.value
            )
            self.clamped_latencies += 1
            elapsed_ms = 0.0

        if not isinstance(status, Status):
            status = Status.failure(message=f"Backend returned {type(status).__name__}, not Status")
        status.elapsed_ms = elapsed_ms

        if status.ok:
            # Writes are credited with the batch size, reads with the returned points.
            if ok_points is not None:
                status.point_count = ok_points
            await self.measurement.record_ok(kind, status.point_count, elapsed_ms)
            self.sink.save_operation_result(kind.value, status.point_count, 0, elapsed_ms, "")
            if not self.quiet:
                self._log_success(kind, status, batch)
        else:
            category = classify_error(status.error)
            self.error_categories[category] = self.error_categories.get(category, 0) + 1
            await self.measurement.record_fail(kind, fail_points)
            self.sink.save_operation_result(kind.value, 0, fail_points, elapsed_ms, status.remark)
            logger.debug(
                "%s failed (%s): %s",
                kind.value,
                category,
                truncate_str_for_log(status.remark),
            )
        return status

    def _log_success(self, kind: OperationKind, status: Status, batch: Optional[Batch]) -> None:
        if batch is not None:
            throughput = (
                status.point_count * 1000.0 / status.elapsed_ms if status.elapsed_ms > 0 else 0.0
            )
            logger.info(
                "%s %s: %d points in %.2fms (%.2f points/s)",
                kind.value,
                batch.device_schema.device,
                status.point_count,
                status.elapsed_ms,
                throughput,
            )
        else:
            logger.info(
                "%s: %d points returned in %.2fms", kind.value, status.point_count, status.elapsed_ms
            )
