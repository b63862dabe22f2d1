"""
Tests for the pydantic / dataclass data models.

Validates config defaults, cross-field invariants, immutability and the
derived properties used by the generators.
"""

from datetime import datetime

import pytest
from pydantic import ValidationError

from tsbench.models import (
    OPERATION_ORDER,
    Batch,
    BenchmarkConfig,
    DeviceSchema,
    OperationKind,
    OutOfOrderMode,
    Record,
    Status,
    StorageGroupStrategy,
    parse_operation_proportion,
    sensor_names,
)


def test_defaults_are_valid() -> None:
    config = BenchmarkConfig()

    assert config.loop == 10000
    assert config.point_step == 7000
    assert config.data_seed == 666
    assert config.out_of_order_mode == OutOfOrderMode.POISSON
    assert config.operation_weights[OperationKind.INGESTION] == 1.0
    assert sum(config.operation_weights.values()) == 1.0


def test_config_is_frozen() -> None:
    config = BenchmarkConfig()
    with pytest.raises(ValidationError):
        config.loop = 5


def test_unknown_field_rejected() -> None:
    with pytest.raises(ValidationError):
        BenchmarkConfig(no_such_setting=1)


@pytest.mark.parametrize(
    "overrides",
    [
        {"constant_ratio": -0.1},
        {
            "constant_ratio": 0,
            "line_ratio": 0,
            "random_ratio": 0,
            "sine_ratio": 0,
            "square_ratio": 0,
        },
        {"is_client_bind": True, "client_number": 3, "device_number": 2},
        {"group_number": 5, "device_number": 2},
        {"operation_proportion": "1:0:0"},
        {"operation_proportion": "0:0:0:0:0:0:0:0:0:0:0"},
        {"operation_proportion": "1:x:0:0:0:0:0:0:0:0:0"},
        {"operation_proportion": "1:-1:0:0:0:0:0:0:0:0:0"},
        {"out_of_order_ratio": 1.5},
        {"batch_size_per_write": 0},
        {"device_number": 2, "query_device_num": 3, "operation_proportion": "1:1:0:0:0:0:0:0:0:0:0"},
        {"sensor_number": 2, "query_sensor_num": 3, "operation_proportion": "0:0:0:0:0:0:0:1:0:0:0"},
    ],
)
def test_invalid_configs_rejected(overrides) -> None:
    with pytest.raises(ValidationError):
        BenchmarkConfig(**overrides)


def test_query_counts_ignored_without_queries() -> None:
    config = BenchmarkConfig(device_number=2, query_device_num=3, sensor_number=1, query_sensor_num=4)
    assert config.query_device_num == 3


def test_unbound_clients_may_exceed_devices() -> None:
    config = BenchmarkConfig(is_client_bind=False, client_number=8, device_number=2)
    assert config.client_number == 8


def test_sg_strategy_is_case_insensitive() -> None:
    config = BenchmarkConfig(sg_strategy="MOD")
    assert config.sg_strategy == StorageGroupStrategy.MOD


def test_first_device_index_in_cluster_mode() -> None:
    assert BenchmarkConfig(benchmark_index=3).first_device_index == 0

    config = BenchmarkConfig(benchmark_cluster=True, benchmark_index=3, device_number=20)
    assert config.first_device_index == 60


def test_time_properties() -> None:
    config = BenchmarkConfig(
        start_time=datetime.fromisoformat("2018-08-30T00:00:00+08:00"),
        batch_size_per_write=10,
        point_step=1000,
        loop=5,
    )

    assert config.start_timestamp_ms == 1535558400000
    assert config.batch_interval_ms == 10_000
    assert config.data_end_timestamp_ms == 1535558400000 + 5 * 10_000


def test_parse_operation_proportion_order() -> None:
    weights = parse_operation_proportion("1:2:3:4:5:6:7:8:9:10:11")

    assert list(weights) == list(OPERATION_ORDER)
    assert weights[OperationKind.INGESTION] == 1
    assert weights[OperationKind.RANGE_QUERY_ORDER_BY_TIME_DESC] == 10
    assert weights[OperationKind.VALUE_RANGE_QUERY_ORDER_BY_TIME_DESC] == 11


def test_function_ratios_order() -> None:
    config = BenchmarkConfig()
    assert list(config.function_ratios) == ["constant", "line", "random", "sine", "square"]


def test_device_schema_names() -> None:
    schema = DeviceSchema(device_id=7, group_id=2, sensors=tuple(sensor_names(3)))

    assert schema.device == "d_7"
    assert schema.group == "g_2"
    assert schema.sensors == ("s_0", "s_1", "s_2")
    assert schema.with_sensors(["s_1"]).sensors == ("s_1",)
    # Original is untouched.
    assert schema.sensors == ("s_0", "s_1", "s_2")


def test_batch_point_count() -> None:
    schema = DeviceSchema(device_id=0, group_id=0, sensors=tuple(sensor_names(5)))
    records = tuple(Record(timestamp=i, values=(1.0,) * 5) for i in range(4))

    assert Batch(device_schema=schema, records=records).point_count == 20

    single = tuple(Record(timestamp=i, values=(1.0,)) for i in range(4))
    batch = Batch(device_schema=schema, records=single, sensor_index=2)
    assert batch.sensors == ("s_2",)
    assert batch.point_count == 4


def test_status_helpers() -> None:
    ok = Status.success(12)
    assert ok.ok and ok.point_count == 12

    err = RuntimeError("boom")
    failed = Status.failure(err)
    assert not failed.ok
    assert failed.error_message == "boom"
    assert "boom" in failed.remark

    reported = Status.failure(message="rejected")
    assert reported.remark == "rejected"
