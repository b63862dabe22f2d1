"""
Benchmark Orchestrator

Runs one benchmark end to end:
1. assign sensor functions and build device schemas
2. initialize the backend (optional cleanup followed by a settling wait)
3. register the schema (timed)
4. spawn CLIENT_NUMBER clients as asyncio tasks and join them
5. close the backend and the sink, then produce the summary

A ConnectionFailure in any client stops the others from issuing new
operations; the orchestrator still joins every client, closes resources,
logs the partial summary and then re-raises the failure.
"""

import asyncio
import logging
import time
from typing import List, Optional

from tsbench.connectors import create_backend
from tsbench.connectors.base import Backend
from tsbench.core.executor import BenchmarkClient, ClientState, MeasuredBackend, OperationSampler
from tsbench.core.executor.helpers import operation_seed
from tsbench.core.functions import load_function_catalog
from tsbench.core.measurement import Measurement, format_summary
from tsbench.core.out_of_order import OutOfOrderScheduler
from tsbench.core.persistence import create_persistence
from tsbench.core.persistence.base import TestDataPersistence
from tsbench.core.schema_builder import bind_devices_to_clients, build_device_schemas
from tsbench.core.sensor_assigner import assign_sensor_functions
from tsbench.core.system_monitor import SystemMonitor
from tsbench.core.workload_generators import WorkloadGenerator
from tsbench.exceptions import BackendError, ConnectionFailure
from tsbench.models.bench_config import BenchmarkConfig
from tsbench.models.metrics import MeasurementSummary

logger = logging.getLogger(__name__)


class BenchmarkOrchestrator:
    """
    Drives one run against one backend.

    Args:
        config: Validated benchmark configuration
        backend: Adapter to use; defaults to the one named by ``db_switch``
        sink: Result sink; defaults to the one named by ``test_data_persistence``
    """

    def __init__(
        self,
        config: BenchmarkConfig,
        backend: Optional[Backend] = None,
        sink: Optional[TestDataPersistence] = None,
    ):
        self.config = config
        self.backend = backend if backend is not None else create_backend(config.db_switch, config)
        self.sink = sink if sink is not None else create_persistence(config)
        self.measurement = Measurement()
        self.stop_event = asyncio.Event()

        catalog = load_function_catalog(config.function_catalog_path)
        self.functions = assign_sensor_functions(
            config.sensor_number, config.function_ratios, config.data_seed, catalog
        )
        self.schemas = build_device_schemas(config)
        self.measured = MeasuredBackend(
            self.backend, self.measurement, self.sink, quiet=config.is_quiet_mode
        )

        self.clients: List[BenchmarkClient] = []
        self.client_states: List[ClientState] = []
        self.summary: Optional[MeasurementSummary] = None

    async def run(self) -> MeasurementSummary:
        """
        Execute the benchmark.

        Returns:
            The end-of-run summary

        Raises:
            ConnectionFailure: a client (or backend setup) lost the backend
        """
        failure: Optional[BaseException] = None
        try:
            await self._prepare_backend()
            self.sink.save_test_config(self.config)
            await self._run_clients()
        except BaseException as e:
            failure = e
            raise
        finally:
            await self._shutdown(failure)

        assert self.summary is not None
        return self.summary

    async def _prepare_backend(self) -> None:
        await self.backend.init()

        if self.config.is_delete_data:
            logger.info("Cleaning old data")
            await self.backend.cleanup()
            wait_s = self.config.init_wait_time_ms / 1000.0
            if wait_s > 0:
                logger.info("Waiting %.1fs for the backend to settle", wait_s)
                await asyncio.sleep(wait_s)

        if self.config.create_schema:
            start = time.perf_counter()
            status = await self.backend.register_schema(self.schemas)
            self.measurement.set_create_schema_time(time.perf_counter() - start)
            if not status.ok:
                raise BackendError(f"Schema registration failed: {status.remark}")
            logger.info(
                "Registered schema for %d devices in %.2fs",
                len(self.schemas),
                self.measurement.create_schema_seconds,
            )

    def _build_clients(self) -> List[BenchmarkClient]:
        config = self.config
        blocks = bind_devices_to_clients(self.schemas, config.client_number, config.is_client_bind)
        weights = config.operation_weights

        clients = []
        for client_id, devices in enumerate(blocks):
            scheduler = None
            if config.is_out_of_order:
                scheduler = OutOfOrderScheduler(config, seed=config.data_seed + 7919 * (client_id + 1))
            clients.append(
                BenchmarkClient(
                    client_id=client_id,
                    config=config,
                    devices=devices,
                    generator=WorkloadGenerator(config, self.schemas, self.functions, client_id),
                    backend=self.measured,
                    stop_event=self.stop_event,
                    sampler=OperationSampler(weights, operation_seed(config.query_seed, client_id)),
                    scheduler=scheduler,
                )
            )
        return clients

    async def _run_clients(self) -> None:
        self.clients = self._build_clients()
        monitor = (
            SystemMonitor(self.sink, self.config.monitor_interval_s)
            if self.config.monitor_interval_s > 0
            else None
        )
        progress_task = None

        logger.info(
            "Starting %d clients (loop=%d, bind=%s)",
            len(self.clients),
            self.config.loop,
            self.config.is_client_bind,
        )
        self.measurement.start()
        if monitor is not None:
            monitor.start()
        if self.config.log_print_interval_s > 0:
            progress_task = asyncio.create_task(self._log_progress())

        try:
            results = await asyncio.gather(
                *(client.run() for client in self.clients), return_exceptions=True
            )
        finally:
            self.measurement.stop()
            self.stop_event.set()
            if progress_task is not None:
                progress_task.cancel()
                try:
                    await progress_task
                except asyncio.CancelledError:
                    pass
            if monitor is not None:
                await monitor.stop()

        self.client_states = [client.state for client in self.clients]
        errors = [r for r in results if isinstance(r, BaseException)]
        if errors:
            # A connection failure outranks whatever it caused in other clients.
            connection_errors = [e for e in errors if isinstance(e, ConnectionFailure)]
            raise (connection_errors or errors)[0]

    async def _log_progress(self) -> None:
        interval = self.config.log_print_interval_s
        expected = self.config.loop * self.config.client_number
        while True:
            await asyncio.sleep(interval)
            totals = await self.measurement.totals()
            done = totals["ok_operations"] + totals["fail_operations"]
            logger.info(
                "Progress: %d/%d operations (%.1f%%), %d failed, %.1fs elapsed",
                done,
                expected,
                100.0 * done / expected if expected else 100.0,
                totals["fail_operations"],
                self.measurement.elapsed_seconds,
            )

    async def _shutdown(self, failure: Optional[BaseException]) -> None:
        aborted = failure is not None
        try:
            await self.backend.close()
        except ConnectionFailure as e:
            logger.warning("Backend close failed: %s", e)

        self.summary = await self.measurement.summary(
            aborted=aborted, error=repr(failure) if failure is not None else None
        )
        self._save_summary(self.summary)
        self.sink.close()

        if aborted:
            logger.error("Benchmark aborted: %s", failure)
        logger.info("Benchmark summary:\n%s", format_summary(self.summary))

    def _save_summary(self, summary: MeasurementSummary) -> None:
        for kind, metrics in summary.operations.items():
            self.sink.save_result(kind, "ok_operation", metrics.ok_operations)
            self.sink.save_result(kind, "ok_point", metrics.ok_points)
            self.sink.save_result(kind, "fail_operation", metrics.fail_operations)
            self.sink.save_result(kind, "fail_point", metrics.fail_points)
            self.sink.save_result(kind, "throughput", summary.throughput(kind))
            for name, value in metrics.latency.to_dict().items():
                self.sink.save_result(kind, f"latency_{name}", value)
        self.sink.save_result("ALL", "elapsed_seconds", summary.elapsed_seconds)
        self.sink.save_result("ALL", "create_schema_seconds", summary.create_schema_seconds)


async def run_benchmark(config: BenchmarkConfig) -> MeasurementSummary:
    """Convenience wrapper used by the CLI."""
    return await BenchmarkOrchestrator(config).run()
