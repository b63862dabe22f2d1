"""
Backend capability contract.

Every storage adapter implements this interface. Methods return a Status
for operation-level outcomes and raise ConnectionFailure when the backend is
unreachable; adapters enforce their own operation timeouts.
"""

from abc import ABC, abstractmethod
from typing import Sequence

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
    RangeQuery,
    ValueRangeQuery,
)


class Backend(ABC):
    """Async adapter between the benchmark core and one storage system."""

    name: str = "base"

    def __init__(self, config: BenchmarkConfig):
        self.config = config

    # Lifecycle

    @abstractmethod
    async def init(self) -> None:
        """Open connections / sessions."""

    @abstractmethod
    async def cleanup(self) -> None:
        """Delete data left by previous runs."""

    @abstractmethod
    async def close(self) -> None:
        """Release connections. Must be safe to call more than once."""

    @abstractmethod
    async def register_schema(self, schemas: Sequence[DeviceSchema]) -> Status:
        """Create storage groups and time series."""

    # Writes

    @abstractmethod
    async def insert_one_batch(self, batch: Batch) -> Status: ...

    @abstractmethod
    async def insert_one_sensor_batch(self, batch: Batch) -> Status: ...

    # Reads

    @abstractmethod
    async def precise_query(self, query: PreciseQuery) -> Status: ...

    @abstractmethod
    async def range_query(self, query: RangeQuery) -> Status: ...

    @abstractmethod
    async def value_range_query(self, query: ValueRangeQuery) -> Status: ...

    @abstractmethod
    async def agg_range_query(self, query: AggRangeQuery) -> Status: ...

    @abstractmethod
    async def agg_value_query(self, query: AggValueQuery) -> Status: ...

    @abstractmethod
    async def agg_range_value_query(self, query: AggRangeValueQuery) -> Status: ...

    @abstractmethod
    async def group_by_query(self, query: GroupByQuery) -> Status: ...

    @abstractmethod
    async def latest_point_query(self, query: LatestPointQuery) -> Status: ...

    @abstractmethod
    async def range_query_order_by_desc(self, query: RangeQuery) -> Status: ...

    @abstractmethod
    async def value_range_query_order_by_desc(self, query: ValueRangeQuery) -> Status: ...
