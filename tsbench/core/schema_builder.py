"""
Device schema construction.

Builds the immutable DeviceSchema list for a run and partitions it across
benchmark clients.
"""

import logging
import zlib
from typing import List, Sequence

from tsbench.models.bench_config import BenchmarkConfig, StorageGroupStrategy
from tsbench.models.schema import DEVICE_NAME_PREFIX, DeviceSchema, sensor_names

logger = logging.getLogger(__name__)


def storage_group_for(
    device_id: int,
    index: int,
    group_number: int,
    device_number: int,
    strategy: StorageGroupStrategy,
) -> int:
    """
    Map a device onto a storage group.

    Args:
        device_id: Global device id (already offset by the cluster base index)
        index: Position of the device within this process (0-based)
        group_number: Number of storage groups
        device_number: Devices handled by this process
        strategy: hash, mod or div
    """
    if strategy == StorageGroupStrategy.HASH:
        # crc32 is stable across processes, unlike hash() on str.
        name = f"{DEVICE_NAME_PREFIX}{device_id}".encode("utf-8")
        return zlib.crc32(name) % group_number
    if strategy == StorageGroupStrategy.MOD:
        return device_id % group_number
    return index * group_number // device_number


def build_device_schemas(config: BenchmarkConfig) -> List[DeviceSchema]:
    """Create one DeviceSchema per device, sharing the same ordered sensors."""
    sensors = tuple(sensor_names(config.sensor_number))
    base = config.first_device_index
    schemas = [
        DeviceSchema(
            device_id=base + i,
            group_id=storage_group_for(
                base + i,
                i,
                config.group_number,
                config.device_number,
                config.sg_strategy,
            ),
            sensors=sensors,
        )
        for i in range(config.device_number)
    ]
    logger.info(
        "Built %d device schemas (first id=%d, %d sensors, %d groups, strategy=%s)",
        len(schemas),
        base,
        len(sensors),
        config.group_number,
        config.sg_strategy.value,
    )
    return schemas


def bind_devices_to_clients(
    schemas: Sequence[DeviceSchema], client_number: int, bind: bool = True
) -> List[List[DeviceSchema]]:
    """
    Split devices across clients.

    Bound mode gives every client a contiguous, disjoint block; block sizes
    differ by at most one and the earlier clients take the remainder.
    Unbound mode gives every client the full device list.
    """
    if client_number < 1:
        raise ValueError("client_number must be >= 1")
    if not bind:
        return [list(schemas) for _ in range(client_number)]
    if client_number > len(schemas):
        raise ValueError(
            f"Cannot bind {client_number} clients to {len(schemas)} devices"
        )

    per_client, remainder = divmod(len(schemas), client_number)
    blocks: List[List[DeviceSchema]] = []
    start = 0
    for client_id in range(client_number):
        size = per_client + (1 if client_id < remainder else 0)
        blocks.append(list(schemas[start : start + size]))
        start += size
    return blocks
