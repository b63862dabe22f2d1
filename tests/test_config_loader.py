"""
Tests for YAML configuration loading and validation.
"""

from pathlib import Path

import pytest
import yaml

from tsbench.core.config_loader import build_config, load_config, normalize_keys
from tsbench.exceptions import ConfigurationError
from tsbench.models import OperationKind, OutOfOrderMode, StorageGroupStrategy

EXAMPLE_CONFIG = Path(__file__).resolve().parent.parent / "config" / "benchmark.yaml"


def _write(tmp_path, data, name="bench.yaml") -> Path:
    path = tmp_path / name
    path.write_text(yaml.safe_dump(data))
    return path


def test_bundled_example_loads() -> None:
    config = load_config(EXAMPLE_CONFIG)

    assert config.device_number == 20
    assert config.operation_weights[OperationKind.INGESTION] == 5
    assert config.sg_strategy == StorageGroupStrategy.HASH


def test_upper_case_keys_and_aliases(tmp_path) -> None:
    path = _write(
        tmp_path,
        {
            "DEVICE_NUMBER": 8,
            "CLIENT_NUMBER": 4,
            "LAMBDA": 2.5,
            "INIT_WAIT_TIME": 0,
            "IS_OUT_OF_ORDER_MODE": "BATCH",
            "SG_STRATEGY": "MOD",
        },
    )

    config = load_config(path)

    assert config.device_number == 8
    assert config.client_number == 4
    assert config.poisson_lambda == 2.5
    assert config.init_wait_time_ms == 0
    assert config.out_of_order_mode == OutOfOrderMode.BATCH
    assert config.sg_strategy == StorageGroupStrategy.MOD


def test_nested_benchmark_section(tmp_path) -> None:
    path = _write(tmp_path, {"benchmark": {"loop": 7, "sensor_number": 3}})

    config = load_config(path)

    assert (config.loop, config.sensor_number) == (7, 3)


def test_precedence(tmp_path) -> None:
    path = _write(tmp_path, {"loop": 7, "csv_output_dir": "from-file"})

    config = load_config(
        path,
        overrides={"loop": 3, "device_number": None},
        defaults={"csv_output_dir": "from-defaults", "sensor_number": 9},
    )

    assert config.loop == 3
    assert config.csv_output_dir == "from-file"
    assert config.sensor_number == 9
    assert config.device_number == 2


def test_no_path_uses_defaults() -> None:
    config = load_config(None, overrides={"loop": 1})
    assert config.loop == 1
    assert config.db_switch == "memory"


def test_missing_file(tmp_path) -> None:
    with pytest.raises(ConfigurationError, match="not found"):
        load_config(tmp_path / "missing.yaml")


def test_non_mapping_file(tmp_path) -> None:
    path = tmp_path / "list.yaml"
    path.write_text("- 1\n- 2\n")
    with pytest.raises(ConfigurationError):
        load_config(path)


def test_unquoted_operation_proportion(tmp_path) -> None:
    path = tmp_path / "unquoted.yaml"
    path.write_text("operation_proportion: 1:0:0:0:0:0:0:0:0:0:0\n")

    with pytest.raises(ConfigurationError, match="quoted"):
        load_config(path)


@pytest.mark.parametrize(
    "data",
    [
        {"device_number": 0},
        {"operation_proportion": "1:0:0"},
        {"operation_proportion": "0:0:0:0:0:0:0:0:0:0:0"},
        {"client_number": 5, "device_number": 2, "is_client_bind": True},
        {"group_number": 3, "device_number": 2, "client_number": 1},
        {"constant_ratio": 0, "line_ratio": 0, "random_ratio": 0, "sine_ratio": 0, "square_ratio": 0},
        {"unknown_setting": 1},
        {"device_number": 2, "query_device_num": 3, "operation_proportion": "1:1:0:0:0:0:0:0:0:0:0"},
    ],
)
def test_invalid_settings(data) -> None:
    with pytest.raises(ConfigurationError):
        build_config(data)


def test_unbound_clients_may_outnumber_devices() -> None:
    config = build_config({"client_number": 5, "device_number": 2, "is_client_bind": False})
    assert config.client_number == 5


def test_duplicate_keys_after_normalization() -> None:
    with pytest.raises(ConfigurationError, match="twice"):
        normalize_keys({"loop": 1, "LOOP": 2})
