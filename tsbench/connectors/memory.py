"""
In-memory reference backend.

Stores every written point in process memory and answers all query shapes
against it. Useful for smoke runs of the harness itself and for tests; it
measures the harness overhead, not a database.
"""

import asyncio
import logging
from collections import defaultdict
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from tsbench.connectors.base import Backend
from tsbench.exceptions import BackendError, ConnectionFailure
from tsbench.models.bench_config import BenchmarkConfig
from tsbench.models.schema import DeviceSchema
from tsbench.models.status import Status
from tsbench.models.workload import (
    AggRangeQuery,
    AggRangeValueQuery,
    AggValueQuery,
    Batch,
    GroupByQuery,
    LatestPointQuery,
    PreciseQuery,
    Query,
    RangeQuery,
    ValueRangeQuery,
)

logger = logging.getLogger(__name__)

SeriesKey = Tuple[str, str]
Points = List[Tuple[int, float]]

AGGREGATIONS: Dict[str, Callable[[List[float]], float]] = {
    "count": lambda values: float(len(values)),
    "sum": lambda values: float(sum(values)),
    "avg": lambda values: sum(values) / len(values),
    "max": max,
    "min": min,
    "first": lambda values: values[0],
    "last": lambda values: values[-1],
}


class InMemoryBackend(Backend):
    """Dictionary-backed store keyed by (device, sensor)."""

    name = "memory"

    def __init__(self, config: BenchmarkConfig):
        super().__init__(config)
        self._series: Dict[SeriesKey, Dict[int, float]] = defaultdict(dict)
        self._schemas: Dict[str, DeviceSchema] = {}
        self._open = False

    async def init(self) -> None:
        self._open = True
        logger.info("In-memory backend ready")

    async def cleanup(self) -> None:
        self._ensure_open()
        self._series.clear()
        self._schemas.clear()
        logger.info("In-memory backend cleared")

    async def close(self) -> None:
        self._open = False

    async def register_schema(self, schemas: Sequence[DeviceSchema]) -> Status:
        self._ensure_open()
        for schema in schemas:
            self._schemas[schema.device] = schema
        logger.info("Registered %d devices", len(schemas))
        return Status.success()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def insert_one_batch(self, batch: Batch) -> Status:
        return await self._write(self._insert(batch))

    async def insert_one_sensor_batch(self, batch: Batch) -> Status:
        if batch.sensor_index is None:
            return Status.failure(message="insert_one_sensor_batch needs a single-sensor batch")
        return await self._write(self._insert(batch))

    async def _insert(self, batch: Batch) -> Status:
        await self._yield()
        device = batch.device_schema.device
        if self.config.create_schema and device not in self._schemas:
            return Status.failure(BackendError(f"Device {device} is not registered"))

        sensors = batch.sensors
        for record in batch.records:
            for sensor, value in zip(sensors, record.values):
                self._series[(device, sensor)][record.timestamp] = value
        return Status.success(batch.point_count)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def precise_query(self, query: PreciseQuery) -> Status:
        return await self._read(self._precise(query))

    async def _precise(self, query: PreciseQuery) -> Status:
        await self._yield()
        found = sum(
            1 for key in self._selected(query) if query.timestamp in self._series.get(key, {})
        )
        return Status.success(found)

    async def range_query(self, query: RangeQuery) -> Status:
        return await self._read(self._range(query, value_filter=None))

    async def range_query_order_by_desc(self, query: RangeQuery) -> Status:
        return await self._read(self._range(query, value_filter=None))

    async def value_range_query(self, query: ValueRangeQuery) -> Status:
        return await self._read(self._range(query, value_filter=query.value_threshold))

    async def value_range_query_order_by_desc(self, query: ValueRangeQuery) -> Status:
        return await self._read(self._range(query, value_filter=query.value_threshold))

    async def agg_range_query(self, query: AggRangeQuery) -> Status:
        return await self._read(self._aggregate(query, query.agg_fun, value_filter=None))

    async def agg_value_query(self, query: AggValueQuery) -> Status:
        return await self._read(self._aggregate(query, query.agg_fun, value_filter=query.value_threshold))

    async def agg_range_value_query(self, query: AggRangeValueQuery) -> Status:
        return await self._read(self._aggregate(query, query.agg_fun, value_filter=query.value_threshold))

    async def latest_point_query(self, query: LatestPointQuery) -> Status:
        return await self._read(self._aggregate(query, query.agg_fun, value_filter=None))

    async def group_by_query(self, query: GroupByQuery) -> Status:
        return await self._read(self._group_by(query))

    async def _group_by(self, query: GroupByQuery) -> Status:
        await self._yield()
        aggregate = self._aggregation(query.agg_fun)
        if aggregate is None:
            return Status.failure(BackendError(f"Unknown aggregation: {query.agg_fun}"))
        if query.granularity <= 0:
            return Status.failure(message="group-by granularity must be > 0")

        buckets = 0
        for key in self._selected(query):
            grouped: Dict[int, List[float]] = defaultdict(list)
            for ts, value in self._window(key, query.start_timestamp, query.end_timestamp):
                grouped[(ts - query.start_timestamp) // query.granularity].append(value)
            for values in grouped.values():
                aggregate(values)
            buckets += len(grouped)
        return Status.success(buckets)

    async def _range(self, query: RangeQuery, value_filter: Optional[float]) -> Status:
        await self._yield()
        total = 0
        for key in self._selected(query):
            points = self._window(key, query.start_timestamp, query.end_timestamp)
            if value_filter is not None:
                points = [p for p in points if p[1] > value_filter]
            if query.desc:
                points.reverse()
            points = points[query.offset :]
            if query.limit is not None:
                points = points[: query.limit]
            total += len(points)
        return Status.success(total)

    async def _aggregate(
        self, query: AggRangeQuery | AggValueQuery, agg_fun: str, value_filter: Optional[float]
    ) -> Status:
        await self._yield()
        aggregate = self._aggregation(agg_fun)
        if aggregate is None:
            return Status.failure(BackendError(f"Unknown aggregation: {agg_fun}"))

        results = 0
        for key in self._selected(query):
            values = [
                v
                for _, v in self._window(key, query.start_timestamp, query.end_timestamp)
                if value_filter is None or v > value_filter
            ]
            if values:
                aggregate(values)
                results += 1
        return Status.success(results)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _aggregation(name: str) -> Optional[Callable[[List[float]], float]]:
        return AGGREGATIONS.get(str(name).strip().lower())

    def _selected(self, query: Query) -> Iterable[SeriesKey]:
        for schema in query.device_schemas:
            for sensor in schema.sensors:
                yield (schema.device, sensor)

    def _window(self, key: SeriesKey, start: int, end: int) -> Points:
        series = self._series.get(key)
        if not series:
            return []
        return sorted((ts, v) for ts, v in series.items() if start <= ts < end)

    def point_count(self) -> int:
        """Total stored points (tests and debugging)."""
        return sum(len(s) for s in self._series.values())

    async def _write(self, operation: Awaitable[Status]) -> Status:
        return await self._bounded(operation, self.config.write_operation_timeout_ms, "write")

    async def _read(self, operation: Awaitable[Status]) -> Status:
        return await self._bounded(operation, self.config.read_operation_timeout_ms, "read")

    @staticmethod
    async def _bounded(operation: Awaitable[Status], timeout_ms: int, what: str) -> Status:
        try:
            return await asyncio.wait_for(operation, timeout=timeout_ms / 1000)
        except asyncio.TimeoutError:
            return Status.failure(TimeoutError(f"{what} exceeded {timeout_ms}ms"))

    def _ensure_open(self) -> None:
        if not self._open:
            raise ConnectionFailure("In-memory backend is not initialized")

    async def _yield(self) -> None:
        self._ensure_open()
        # Let other clients run between operations.
        await asyncio.sleep(0)
