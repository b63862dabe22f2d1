"""
Workload data: records, batches and the query variants.

All of these are ephemeral; they are built per operation, handed to a
backend adapter and discarded.
"""

from dataclasses import dataclass
from typing import Optional

from tsbench.models.schema import DeviceSchema


@dataclass(frozen=True)
class Record:
    """One timestamp and one value per written sensor."""

    timestamp: int
    values: tuple[float, ...]


@dataclass(frozen=True)
class Batch:
    """
    Payload of one write request for a single device.

    In single-sensor mode ``sensor_index`` names the only sensor carried by
    every record; otherwise each record carries all sensors of the device.
    """

    device_schema: DeviceSchema
    records: tuple[Record, ...]
    sensor_index: Optional[int] = None

    @property
    def sensors(self) -> tuple[str, ...]:
        if self.sensor_index is None:
            return self.device_schema.sensors
        return (self.device_schema.sensors[self.sensor_index],)

    @property
    def point_count(self) -> int:
        return len(self.records) * len(self.sensors)

    @property
    def timestamps(self) -> list[int]:
        return [r.timestamp for r in self.records]


@dataclass(frozen=True)
class Query:
    """Common query shape: the selected devices, each narrowed to its sensors."""

    device_schemas: tuple[DeviceSchema, ...]


@dataclass(frozen=True)
class PreciseQuery(Query):
    timestamp: int


@dataclass(frozen=True)
class RangeQuery(Query):
    start_timestamp: int
    end_timestamp: int
    limit: Optional[int] = None
    offset: int = 0
    desc: bool = False


@dataclass(frozen=True)
class ValueRangeQuery(RangeQuery):
    value_threshold: float = 0.0


@dataclass(frozen=True)
class AggRangeQuery(Query):
    start_timestamp: int
    end_timestamp: int
    agg_fun: str


@dataclass(frozen=True)
class AggValueQuery(Query):
    start_timestamp: int
    end_timestamp: int
    agg_fun: str
    value_threshold: float


@dataclass(frozen=True)
class AggRangeValueQuery(AggValueQuery):
    pass


@dataclass(frozen=True)
class GroupByQuery(AggRangeQuery):
    granularity: int = 0


@dataclass(frozen=True)
class LatestPointQuery(AggRangeQuery):
    pass
