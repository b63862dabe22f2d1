"""
Data models for tsbench.

This package contains:
- Benchmark configuration (pydantic, immutable)
- Device schema, records, batches and query variants
- Operation status and measurement summaries
"""

from tsbench.models.bench_config import (
    BenchmarkConfig,
    OutOfOrderMode,
    PersistenceType,
    StorageGroupStrategy,
    parse_operation_proportion,
)

from tsbench.models.operation import OPERATION_ORDER, OperationKind

from tsbench.models.schema import DeviceSchema, sensor_names

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

from tsbench.models.status import Status

from tsbench.models.metrics import (
    LatencyPercentiles,
    MeasurementSummary,
    OperationMetrics,
)

__all__ = [
    # bench_config
    "BenchmarkConfig",
    "OutOfOrderMode",
    "PersistenceType",
    "StorageGroupStrategy",
    "parse_operation_proportion",
    # operation
    "OPERATION_ORDER",
    "OperationKind",
    # schema
    "DeviceSchema",
    "sensor_names",
    # workload
    "AggRangeQuery",
    "AggRangeValueQuery",
    "AggValueQuery",
    "Batch",
    "GroupByQuery",
    "LatestPointQuery",
    "PreciseQuery",
    "Query",
    "RangeQuery",
    "Record",
    "ValueRangeQuery",
    # status
    "Status",
    # metrics
    "LatencyPercentiles",
    "MeasurementSummary",
    "OperationMetrics",
]
