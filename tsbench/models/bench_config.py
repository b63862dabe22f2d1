"""
Benchmark Configuration Model

Defines the immutable parameter set shared by every benchmark client:
- Schema shape (devices, sensors, storage groups)
- Client layout (count, device binding, loop count, pacing)
- Write shape (batch size, timestamps, out-of-order behaviour)
- Data functions (family ratios, seed)
- Query shape (mix, selection sizes, windows, thresholds, seed)
- Result persistence
"""

from datetime import datetime
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from tsbench.models.operation import OPERATION_ORDER, OperationKind


class OutOfOrderMode(str, Enum):
    """Out-of-order write policies."""

    POISSON = "POISSON"
    BATCH = "BATCH"


class StorageGroupStrategy(str, Enum):
    """How a device id is mapped onto a storage group."""

    HASH = "hash"
    MOD = "mod"
    DIV = "div"


class PersistenceType(str, Enum):
    """Result sinks."""

    NONE = "None"
    CSV = "CSV"
    PARQUET = "Parquet"


def parse_operation_proportion(raw: str) -> Dict[OperationKind, float]:
    """
    Parse an INGESTION:Q1:...:Q10 proportion string.

    Raises:
        ValueError: wrong arity, non-numeric, negative, or all-zero weights
    """
    parts = [p.strip() for p in str(raw).split(":")]
    if len(parts) != len(OPERATION_ORDER):
        raise ValueError(
            f"operation_proportion needs {len(OPERATION_ORDER)} weights, got {len(parts)}"
        )
    try:
        weights = [float(p) for p in parts]
    except ValueError as e:
        raise ValueError(f"operation_proportion is not numeric: {raw!r}") from e
    if any(w < 0 for w in weights):
        raise ValueError("operation_proportion weights must be >= 0")
    if sum(weights) <= 0:
        raise ValueError("operation_proportion weights must sum to a positive value")
    return dict(zip(OPERATION_ORDER, weights))


class BenchmarkConfig(BaseModel):
    """
    Immutable benchmark parameter set.

    Built once at startup, validated, and shared read-only by all clients.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    # Backend / lifecycle
    db_switch: str = Field("memory", description="Backend adapter name")
    is_delete_data: bool = Field(False, description="Clean old data before the run")
    init_wait_time_ms: int = Field(
        5000, ge=0, description="Settling wait after cleanup (ms)"
    )
    create_schema: bool = Field(True, description="Register schema before writing")
    session_pool_size: int = Field(
        50, ge=1, description="Adapter session pool size (passed through)"
    )

    # Schema
    device_number: int = Field(2, ge=1, description="Number of devices")
    sensor_number: int = Field(5, ge=1, description="Sensors per device")
    group_number: int = Field(1, ge=1, description="Number of storage groups")
    sg_strategy: StorageGroupStrategy = Field(
        StorageGroupStrategy.HASH, description="Storage group allocation strategy"
    )
    benchmark_cluster: bool = Field(
        False, description="Several benchmark processes share one backend"
    )
    benchmark_index: int = Field(
        0, ge=0, description="Index of this process in cluster mode"
    )

    # Clients
    client_number: int = Field(2, ge=1, description="Number of parallel clients")
    is_client_bind: bool = Field(
        True, description="Partition devices disjointly across clients"
    )
    loop: int = Field(10000, ge=0, description="Operations issued by each client")
    op_interval_ms: int = Field(
        0, ge=0, description="Minimum wall time per operation (0=unpaced)"
    )
    write_operation_timeout_ms: int = Field(120000, ge=1)
    read_operation_timeout_ms: int = Field(300000, ge=1)

    # Writes
    batch_size_per_write: int = Field(1, ge=1, description="Records per batch")
    start_time: datetime = Field(
        datetime.fromisoformat("2018-08-30T00:00:00+08:00"),
        description="Timestamp of the first written record",
    )
    point_step: int = Field(7000, ge=1, description="Step between records (ms)")
    is_regular_frequency: bool = Field(
        False, description="False adds bounded jitter to in-order timestamps"
    )
    is_sensor_ts_alignment: bool = Field(
        True, description="False writes one sensor per batch"
    )
    is_out_of_order: bool = Field(False, description="Enable out-of-order writes")
    out_of_order_mode: OutOfOrderMode = Field(OutOfOrderMode.POISSON)
    out_of_order_ratio: float = Field(1.0, ge=0.0, le=1.0)
    poisson_lambda: float = Field(3.0, gt=0.0, description="Poisson mean")
    max_k: int = Field(10, ge=0, description="Cap on the Poisson delay (steps)")

    # Sensor functions
    constant_ratio: float = Field(0.352)
    line_ratio: float = Field(0.054)
    random_ratio: float = Field(0.512)
    sine_ratio: float = Field(0.036)
    square_ratio: float = Field(0.054)
    data_seed: int = Field(666)
    function_catalog_path: Optional[str] = Field(
        None, description="Override the bundled function catalog"
    )

    # Queries
    operation_proportion: str = Field(
        "1:0:0:0:0:0:0:0:0:0:0", description="INGESTION:Q1:...:Q10 weights"
    )
    query_seed: int = Field(1516580959202)
    query_device_num: int = Field(1, ge=1)
    query_sensor_num: int = Field(1, ge=1)
    query_aggregate_fun: str = Field("count")
    query_interval: int = Field(10000, ge=1, description="Query window (ms)")
    query_lower_value: float = Field(0.0)
    query_value_spread: float = Field(
        0.0, ge=0.0, description="Threshold drawn in [lower, lower+spread)"
    )
    group_by_time_unit: int = Field(5000, ge=1, description="Group-by bucket (ms)")
    query_limit_n: int = Field(
        0, ge=0, description="Row limit for range queries (0=no limit)"
    )
    query_limit_offset: int = Field(0, ge=0)

    # Output
    is_quiet_mode: bool = Field(True, description="Suppress per-operation logs")
    log_print_interval_s: float = Field(5.0, ge=0.0)
    monitor_interval_s: float = Field(
        0.0, ge=0.0, description="System metrics sampling interval (0=off)"
    )
    test_data_persistence: PersistenceType = Field(PersistenceType.NONE)
    csv_output_dir: str = Field("results")
    csv_max_line: int = Field(10_000_000, ge=1)
    csv_file_split: bool = Field(True)
    remark: str = Field("")

    @field_validator("operation_proportion")
    @classmethod
    def validate_operation_proportion(cls, v: str) -> str:
        parse_operation_proportion(v)
        return v

    @field_validator("sg_strategy", mode="before")
    @classmethod
    def normalize_sg_strategy(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @model_validator(mode="after")
    def validate_consistency(self):
        """Cross-field invariants."""
        ratios = self.function_ratios
        if any(r < 0 for r in ratios.values()):
            raise ValueError("function ratios must be >= 0")
        if sum(ratios.values()) <= 0:
            raise ValueError("function ratios must sum to a positive value")

        if self.is_client_bind and self.client_number > self.device_number:
            raise ValueError(
                "client_number must be <= device_number when is_client_bind is set"
            )

        if self.group_number > self.device_number:
            raise ValueError("group_number must be <= device_number")

        issues_queries = any(
            weight > 0 for kind, weight in self.operation_weights.items() if not kind.is_write
        )
        if issues_queries:
            if self.query_device_num > self.device_number:
                raise ValueError(
                    f"query_device_num ({self.query_device_num}) must be <= "
                    f"device_number ({self.device_number})"
                )
            if self.query_sensor_num > self.sensor_number:
                raise ValueError(
                    f"query_sensor_num ({self.query_sensor_num}) must be <= "
                    f"sensor_number ({self.sensor_number})"
                )

        return self

    @property
    def function_ratios(self) -> Dict[str, float]:
        """Family ratios in assignment order."""
        return {
            "constant": self.constant_ratio,
            "line": self.line_ratio,
            "random": self.random_ratio,
            "sine": self.sine_ratio,
            "square": self.square_ratio,
        }

    @property
    def operation_weights(self) -> Dict[OperationKind, float]:
        return parse_operation_proportion(self.operation_proportion)

    @property
    def first_device_index(self) -> int:
        if self.benchmark_cluster:
            return self.benchmark_index * self.device_number
        return 0

    @property
    def start_timestamp_ms(self) -> int:
        return int(self.start_time.timestamp() * 1000)

    @property
    def batch_interval_ms(self) -> int:
        """Time covered by one full batch."""
        return self.batch_size_per_write * self.point_step

    @property
    def data_end_timestamp_ms(self) -> int:
        """Exclusive upper bound of in-order timestamps a bound client can write."""
        return self.start_timestamp_ms + self.loop * self.batch_interval_ms
