"""
Tests for device schema construction and client binding.
"""

import zlib

import pytest

from tsbench.core.schema_builder import (
    bind_devices_to_clients,
    build_device_schemas,
    storage_group_for,
)
from tsbench.models import StorageGroupStrategy


def test_schemas_share_sensors(make_config) -> None:
    schemas = build_device_schemas(make_config(device_number=4, sensor_number=3))

    assert [s.device for s in schemas] == ["d_0", "d_1", "d_2", "d_3"]
    assert schemas[0].group == "g_0"
    assert all(s.sensors == ("s_0", "s_1", "s_2") for s in schemas)


def test_cluster_offset(make_config) -> None:
    config = make_config(device_number=5, benchmark_cluster=True, benchmark_index=2)
    schemas = build_device_schemas(config)

    assert [s.device_id for s in schemas] == [10, 11, 12, 13, 14]


def test_mod_strategy(make_config) -> None:
    schemas = build_device_schemas(make_config(device_number=6, group_number=3, sg_strategy="mod"))

    assert [s.group_id for s in schemas] == [0, 1, 2, 0, 1, 2]


def test_div_strategy(make_config) -> None:
    schemas = build_device_schemas(make_config(device_number=6, group_number=3, sg_strategy="div"))

    assert [s.group_id for s in schemas] == [0, 0, 1, 1, 2, 2]


def test_hash_strategy_is_stable() -> None:
    expected = zlib.crc32(b"d_42") % 7
    assert storage_group_for(42, 0, 7, 100, StorageGroupStrategy.HASH) == expected


def test_groups_within_range(make_config) -> None:
    for strategy in StorageGroupStrategy:
        config = make_config(device_number=50, group_number=7, sg_strategy=strategy)
        assert all(0 <= s.group_id < 7 for s in build_device_schemas(config))


def test_bound_blocks_are_contiguous_and_balanced(make_config) -> None:
    schemas = build_device_schemas(make_config(device_number=10))
    blocks = bind_devices_to_clients(schemas, 3, bind=True)

    assert [len(b) for b in blocks] == [4, 3, 3]
    flattened = [s for block in blocks for s in block]
    assert flattened == schemas


def test_unbound_clients_see_every_device(make_config) -> None:
    schemas = build_device_schemas(make_config(device_number=3))
    blocks = bind_devices_to_clients(schemas, 5, bind=False)

    assert len(blocks) == 5
    assert all(block == schemas for block in blocks)


def test_too_many_bound_clients(make_config) -> None:
    schemas = build_device_schemas(make_config(device_number=2))
    with pytest.raises(ValueError):
        bind_devices_to_clients(schemas, 3, bind=True)
