"""
Benchmark client loop.
"""

import asyncio
import logging
import random
import time
from typing import Optional, Sequence

from tsbench.core.executor.helpers import OperationSampler
from tsbench.core.executor.operations import MeasuredBackend
from tsbench.core.executor.types import ClientState
from tsbench.core.out_of_order import OutOfOrderScheduler
from tsbench.core.workload_generators import WorkloadGenerator
from tsbench.models.bench_config import BenchmarkConfig
from tsbench.models.operation import OperationKind
from tsbench.models.schema import DeviceSchema

logger = logging.getLogger(__name__)


class BenchmarkClient:
    """
    One client: issues exactly ``loop`` operations unless the run is stopped.

    Args:
        client_id: Client index
        config: Benchmark configuration
        devices: Devices this client writes to (its block in bound mode,
            every device in unbound mode)
        generator: This client's workload generator
        backend: Measured backend shared by all clients
        stop_event: Set by any client on a fatal error
        sampler: Draws the operation kind per iteration
        scheduler: Out-of-order scheduler, or None for in-order writes
    """

    def __init__(
        self,
        client_id: int,
        config: BenchmarkConfig,
        devices: Sequence[DeviceSchema],
        generator: WorkloadGenerator,
        backend: MeasuredBackend,
        stop_event: asyncio.Event,
        sampler: OperationSampler,
        scheduler: Optional[OutOfOrderScheduler] = None,
    ):
        if not devices:
            raise ValueError(f"Client {client_id} has no devices")
        self.client_id = client_id
        self.config = config
        self.devices = list(devices)
        self.generator = generator
        self.backend = backend
        self.stop_event = stop_event
        self.sampler = sampler
        self.scheduler = scheduler
        self.state = ClientState(client_id=client_id)
        self.device_random = random.Random(config.data_seed * 31 + client_id)

    async def run(self) -> ClientState:
        """
        Run the loop.

        Any exception (ConnectionFailure in particular) sets the stop event
        before propagating, so the other clients stop issuing operations.
        """
        logger.debug("Client %d started with %d devices", self.client_id, len(self.devices))
        interval_s = self.config.op_interval_ms / 1000.0

        try:
            for _ in range(self.config.loop):
                if self.stop_event.is_set():
                    self.state.stopped_early = True
                    break

                op_start = time.perf_counter()
                kind = self.sampler.next_kind()
                if kind.is_write:
                    await self._write()
                else:
                    await self._read(kind)
                self.state.count(kind)

                if interval_s > 0:
                    await self._pace(interval_s - (time.perf_counter() - op_start))
        except Exception as e:
            self.state.error = repr(e)
            self.stop_event.set()
            logger.error("Client %d stopped after %d operations: %s", self.client_id, self.state.completed, e)
            raise

        logger.debug("Client %d finished %d operations", self.client_id, self.state.completed)
        return self.state

    async def _write(self) -> None:
        device = self._next_device()
        loop_index = self.state.next_loop_index(device.device_id)

        if self.config.is_sensor_ts_alignment:
            batch = self.generator.get_one_batch(device, loop_index)
        else:
            sensor_index = loop_index % len(device.sensors)
            batch = self.generator.get_one_batch(device, loop_index, sensor_index=sensor_index)

        if self.scheduler is not None:
            batch = self.scheduler.apply(batch)

        if batch.sensor_index is None:
            await self.backend.insert_one_batch(batch)
        else:
            await self.backend.insert_one_sensor_batch(batch)

    async def _read(self, kind: OperationKind) -> None:
        query = self.generator.get_query(kind)
        await self.backend.query(kind, query)

    def _next_device(self) -> DeviceSchema:
        if self.config.is_client_bind:
            return self.devices[self.state.writes % len(self.devices)]
        return self.device_random.choice(self.devices)

    async def _pace(self, remaining_s: float) -> None:
        """Sleep out the rest of the operation interval, waking early on stop."""
        if remaining_s <= 0:
            return
        try:
            await asyncio.wait_for(self.stop_event.wait(), timeout=remaining_s)
        except asyncio.TimeoutError:
            pass
