"""
Workload Generator

Produces the write batches and read queries issued by one benchmark client:
- Batches: BATCH_SIZE_PER_WRITE records per device, evaluated from the
  sensor functions bound at startup
- Queries: the eight query shapes, each sampling devices, sensors, a time
  window and (where relevant) a value threshold

Every client owns one generator. Data draws (timestamp jitter, random-family
values) and query draws use separate seeded generators so both sequences are
reproducible across runs with the same configuration.
"""

import logging
import random
from typing import Dict, List, Mapping, Optional, Sequence

from tsbench.core.functions import SensorFunction
from tsbench.exceptions import WorkloadError
from tsbench.models.bench_config import BenchmarkConfig
from tsbench.models.operation import OperationKind
from tsbench.models.schema import DeviceSchema
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
    Record,
    ValueRangeQuery,
)

logger = logging.getLogger(__name__)

LATEST_POINT_AGGREGATION = "last"


class WorkloadGenerator:
    """
    Batch and query factory for one client.

    Args:
        config: Benchmark configuration
        schemas: Every device of the run (queries sample from all of them)
        functions: Sensor name -> bound function, from the assigner
        client_id: Client index, folded into the seeds
    """

    def __init__(
        self,
        config: BenchmarkConfig,
        schemas: Sequence[DeviceSchema],
        functions: Optional[Mapping[str, SensorFunction]],
        client_id: int = 0,
    ):
        self.config = config
        self.schemas: List[DeviceSchema] = list(schemas)
        self.functions: Dict[str, SensorFunction] = dict(functions or {})
        self.client_id = client_id

        self.data_random = random.Random(config.data_seed + client_id)
        self.query_random = random.Random(config.query_seed + client_id)

        self._start = config.start_timestamp_ms
        self._data_end = config.data_end_timestamp_ms

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def get_one_batch(
        self,
        schema: DeviceSchema,
        loop_index: int,
        sensor_index: Optional[int] = None,
    ) -> Batch:
        """
        Build the batch for ``schema`` at ``loop_index``.

        Record j gets ``start + (loop_index * batch_size + j) * point_step``,
        plus a jitter in ``[0, point_step)`` when frequency is irregular.

        Args:
            schema: Device to write
            loop_index: Per-device batch counter (0-based)
            sensor_index: Write only this sensor (single-sensor mode)
        """
        if not self.functions:
            raise WorkloadError("No sensor functions are bound; run the assigner first")
        if sensor_index is not None and not 0 <= sensor_index < len(schema.sensors):
            raise WorkloadError(
                f"Sensor index {sensor_index} out of range for {schema.device}"
            )

        sensors = (
            schema.sensors if sensor_index is None else (schema.sensors[sensor_index],)
        )
        try:
            functions = [self.functions[s] for s in sensors]
        except KeyError as e:
            raise WorkloadError(f"No function bound to sensor {e}") from e

        batch_size = self.config.batch_size_per_write
        step = self.config.point_step
        base = loop_index * batch_size

        records = []
        for j in range(batch_size):
            timestamp = self._start + (base + j) * step
            if not self.config.is_regular_frequency:
                timestamp += self.data_random.randrange(step)
            values = tuple(fn.value_at(timestamp, self.data_random) for fn in functions)
            records.append(Record(timestamp=timestamp, values=values))

        return Batch(device_schema=schema, records=tuple(records), sensor_index=sensor_index)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_query(self, kind: OperationKind) -> Query:
        """Build the query for a read operation kind."""
        builders = {
            OperationKind.PRECISE_QUERY: self.get_precise_query,
            OperationKind.RANGE_QUERY: self.get_range_query,
            OperationKind.VALUE_RANGE_QUERY: self.get_value_range_query,
            OperationKind.AGG_RANGE_QUERY: self.get_agg_range_query,
            OperationKind.AGG_VALUE_QUERY: self.get_agg_value_query,
            OperationKind.AGG_RANGE_VALUE_QUERY: self.get_agg_range_value_query,
            OperationKind.GROUP_BY_QUERY: self.get_group_by_query,
            OperationKind.LATEST_POINT_QUERY: self.get_latest_point_query,
            OperationKind.RANGE_QUERY_ORDER_BY_TIME_DESC: lambda: self.get_range_query(
                desc=True
            ),
            OperationKind.VALUE_RANGE_QUERY_ORDER_BY_TIME_DESC: lambda: (
                self.get_value_range_query(desc=True)
            ),
        }
        try:
            builder = builders[kind]
        except KeyError as e:
            raise WorkloadError(f"{kind} is not a query operation") from e
        return builder()

    def get_precise_query(self) -> PreciseQuery:
        selection = self._select_devices()
        timestamp = self._window_start(self.config.point_step)
        return PreciseQuery(device_schemas=selection, timestamp=timestamp)

    def get_range_query(self, desc: bool = False) -> RangeQuery:
        selection = self._select_devices()
        start = self._window_start(self.config.query_interval)
        return RangeQuery(
            device_schemas=selection,
            start_timestamp=start,
            end_timestamp=start + self.config.query_interval,
            limit=self.config.query_limit_n or None,
            offset=self.config.query_limit_offset,
            desc=desc,
        )

    def get_value_range_query(self, desc: bool = False) -> ValueRangeQuery:
        selection = self._select_devices()
        start = self._window_start(self.config.query_interval)
        return ValueRangeQuery(
            device_schemas=selection,
            start_timestamp=start,
            end_timestamp=start + self.config.query_interval,
            limit=self.config.query_limit_n or None,
            offset=self.config.query_limit_offset,
            desc=desc,
            value_threshold=self._value_threshold(),
        )

    def get_agg_range_query(self) -> AggRangeQuery:
        selection = self._select_devices()
        start = self._window_start(self.config.query_interval)
        return AggRangeQuery(
            device_schemas=selection,
            start_timestamp=start,
            end_timestamp=start + self.config.query_interval,
            agg_fun=self.config.query_aggregate_fun,
        )

    def get_agg_value_query(self) -> AggValueQuery:
        # Value-filtered aggregation over the whole written range.
        selection = self._select_devices()
        return AggValueQuery(
            device_schemas=selection,
            start_timestamp=self._start,
            end_timestamp=self._data_end,
            agg_fun=self.config.query_aggregate_fun,
            value_threshold=self._value_threshold(),
        )

    def get_agg_range_value_query(self) -> AggRangeValueQuery:
        selection = self._select_devices()
        start = self._window_start(self.config.query_interval)
        return AggRangeValueQuery(
            device_schemas=selection,
            start_timestamp=start,
            end_timestamp=start + self.config.query_interval,
            agg_fun=self.config.query_aggregate_fun,
            value_threshold=self._value_threshold(),
        )

    def get_group_by_query(self) -> GroupByQuery:
        selection = self._select_devices()
        start = self._window_start(self.config.query_interval)
        return GroupByQuery(
            device_schemas=selection,
            start_timestamp=start,
            end_timestamp=start + self.config.query_interval,
            agg_fun=self.config.query_aggregate_fun,
            granularity=self.config.group_by_time_unit,
        )

    def get_latest_point_query(self) -> LatestPointQuery:
        selection = self._select_devices()
        return LatestPointQuery(
            device_schemas=selection,
            start_timestamp=self._start,
            end_timestamp=self._data_end,
            agg_fun=LATEST_POINT_AGGREGATION,
        )

    # ------------------------------------------------------------------
    # Sampling helpers
    # ------------------------------------------------------------------

    def _select_devices(self) -> tuple[DeviceSchema, ...]:
        """
        Pick QUERY_DEVICE_NUM devices and QUERY_SENSOR_NUM sensors without
        replacement. The same sensors are queried on every selected device.
        """
        if not self.functions:
            raise WorkloadError("No sensor functions are bound; run the assigner first")

        device_num = self.config.query_device_num
        sensor_num = self.config.query_sensor_num
        if device_num > len(self.schemas):
            raise WorkloadError(
                f"query_device_num={device_num} exceeds the {len(self.schemas)} devices"
            )
        sensors = self.schemas[0].sensors
        if sensor_num > len(sensors):
            raise WorkloadError(
                f"query_sensor_num={sensor_num} exceeds the {len(sensors)} sensors"
            )

        devices = sorted(
            self.query_random.sample(self.schemas, device_num), key=lambda d: d.device_id
        )
        sensor_indexes = sorted(self.query_random.sample(range(len(sensors)), sensor_num))
        chosen = [sensors[i] for i in sensor_indexes]
        return tuple(d.with_sensors(chosen) for d in devices)

    def _window_start(self, width: int) -> int:
        """Aligned start so that ``[start, start + width)`` stays inside the data range."""
        step = self.config.point_step
        room = self._data_end - self._start - width
        slots = max(0, room // step)
        return self._start + self.query_random.randrange(slots + 1) * step

    def _value_threshold(self) -> float:
        return (
            self.config.query_lower_value
            + self.query_random.random() * self.config.query_value_spread
        )
