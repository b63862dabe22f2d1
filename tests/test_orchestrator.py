"""
End-to-end runs of the orchestrator against the in-memory backend.
"""

import asyncio
from collections import Counter
from unittest.mock import patch

import psutil
import pytest

from tsbench.connectors.memory import InMemoryBackend
from tsbench.core.executor.helpers import OperationSampler, operation_seed
from tsbench.core.orchestrator import BenchmarkOrchestrator, run_benchmark
from tsbench.core.system_monitor import SystemMonitor
from tsbench.exceptions import BackendError, ConnectionFailure
from tsbench.models import Batch, OperationKind, Record, Status

ALL_KINDS = ":".join(["1"] * 11)


class FlakyBackend(InMemoryBackend):
    """Loses the connection after ``fail_after`` writes to one device."""

    def __init__(self, config, device: str, fail_after: int):
        super().__init__(config)
        self.device = device
        self.fail_after = fail_after
        self.writes = 0

    async def insert_one_batch(self, batch: Batch) -> Status:
        if batch.device_schema.device == self.device:
            if self.writes >= self.fail_after:
                raise ConnectionFailure(f"lost connection writing {self.device}")
            self.writes += 1
        return await super().insert_one_batch(batch)


class AckOnlyBackend(InMemoryBackend):
    """Acknowledges writes without reporting a point count."""

    async def insert_one_batch(self, batch: Batch) -> Status:
        await super().insert_one_batch(batch)
        return Status.success()


class RejectingSchemaBackend(InMemoryBackend):
    async def register_schema(self, schemas) -> Status:
        return Status.failure(message="schema rejected")


@pytest.mark.asyncio
async def test_write_only_run(make_config, sink) -> None:
    config = make_config(
        device_number=2, sensor_number=5, client_number=2, is_client_bind=True,
        loop=10, batch_size_per_write=1,
    )
    backend = InMemoryBackend(config)

    summary = await BenchmarkOrchestrator(config, backend=backend, sink=sink).run()

    ingestion = summary.operations["INGESTION"]
    assert ingestion.ok_operations == 20
    assert ingestion.ok_points == 100
    assert ingestion.fail_operations == 0
    assert list(summary.operations) == ["INGESTION"]
    assert backend.point_count() == 100

    assert len(sink.operations) == 20
    assert sink.configs == [config]
    assert sink.close_calls == 1
    assert ("INGESTION", "ok_point", 100) in sink.results
    assert summary.aborted is False


@pytest.mark.asyncio
async def test_mixed_run_issues_exactly_loop_per_client(make_config, sink) -> None:
    config = make_config(
        device_number=3, sensor_number=4, client_number=3, loop=50,
        operation_proportion=ALL_KINDS, query_device_num=2, query_sensor_num=2,
    )
    orchestrator = BenchmarkOrchestrator(config, sink=sink)

    summary = await orchestrator.run()

    assert summary.ok_operations + summary.fail_operations == 150
    assert summary.fail_operations == 0
    assert all(state.completed == 50 for state in orchestrator.client_states)
    assert len(summary.operations) > 1
    issued = Counter()
    for state in orchestrator.client_states:
        issued.update(state.issued_by_kind)
    for kind, metrics in summary.operations.items():
        assert metrics.total_operations == issued[kind]


@pytest.mark.asyncio
async def test_connection_failure_stops_every_client(make_config, sink) -> None:
    config = make_config(device_number=5, client_number=5, loop=1000)
    backend = FlakyBackend(config, device="d_2", fail_after=3)
    orchestrator = BenchmarkOrchestrator(config, backend=backend, sink=sink)

    with pytest.raises(ConnectionFailure):
        await orchestrator.run()

    states = orchestrator.client_states
    assert len(states) == 5
    assert states[2].error is not None
    assert all(state.completed < 1000 for state in states)
    assert all(state.stopped_early for i, state in enumerate(states) if i != 2)

    assert sink.close_calls == 1
    assert orchestrator.summary is not None
    assert orchestrator.summary.aborted is True
    assert "ConnectionFailure" in orchestrator.summary.error


@pytest.mark.asyncio
async def test_schema_rejection_aborts(make_config, sink) -> None:
    config = make_config()
    orchestrator = BenchmarkOrchestrator(config, backend=RejectingSchemaBackend(config), sink=sink)

    with pytest.raises(BackendError, match="schema rejected"):
        await orchestrator.run()

    assert sink.close_calls == 1
    assert sink.operations == []


@pytest.mark.asyncio
async def test_cleanup_and_schema_time(make_config, sink) -> None:
    config = make_config(is_delete_data=True, create_schema=True, device_number=2, client_number=2)
    backend = InMemoryBackend(config)
    orchestrator = BenchmarkOrchestrator(config, backend=backend, sink=sink)

    # Leftovers from an earlier run.
    await backend.init()
    await backend.register_schema(orchestrator.schemas)
    stale = Batch(
        device_schema=orchestrator.schemas[0],
        records=(Record(timestamp=1, values=(0.0,) * config.sensor_number),),
    )
    await backend.insert_one_batch(stale)

    summary = await orchestrator.run()

    assert summary.create_schema_seconds >= 0.0
    assert backend.point_count() == 2 * 10 * config.sensor_number


@pytest.mark.asyncio
async def test_out_of_order_run_keeps_point_counts(make_config, sink) -> None:
    config = make_config(
        is_out_of_order=True, out_of_order_mode="POISSON", out_of_order_ratio=0.5,
        batch_size_per_write=10, loop=20,
    )

    summary = await BenchmarkOrchestrator(config, sink=sink).run()

    assert summary.operations["INGESTION"].ok_points == 2 * 20 * 10 * config.sensor_number


@pytest.mark.asyncio
async def test_unbound_and_single_sensor_modes(make_config, sink) -> None:
    config = make_config(
        device_number=2, client_number=3, is_client_bind=False,
        is_sensor_ts_alignment=False, batch_size_per_write=4, loop=12,
    )

    summary = await BenchmarkOrchestrator(config, sink=sink).run()

    ingestion = summary.operations["INGESTION"]
    assert ingestion.ok_operations == 36
    assert ingestion.ok_points == 36 * 4


@pytest.mark.asyncio
async def test_run_benchmark_with_default_sink(make_config) -> None:
    summary = await run_benchmark(make_config(loop=5))
    assert summary.ok_operations == 10


@pytest.mark.asyncio
async def test_system_monitor_samples(sink) -> None:
    monitor = SystemMonitor(sink, interval_s=0.01)
    monitor.start()
    await asyncio.sleep(0.1)
    await monitor.stop()

    assert monitor.samples == len(sink.system_metrics) >= 1
    assert "host_memory_percent" in sink.system_metrics[0]


def test_sampler_matches_weights() -> None:
    weights = {OperationKind.INGESTION: 2, OperationKind.RANGE_QUERY: 1, OperationKind.GROUP_BY_QUERY: 1}
    sampler = OperationSampler(weights, operation_seed(1516580959202, 0))

    n = 40_000
    counts = Counter(sampler.next_kind() for _ in range(n))

    expected = {kind: n * w / 4 for kind, w in weights.items()}
    chi_square = sum((counts[k] - e) ** 2 / e for k, e in expected.items())
    # 2 degrees of freedom, p = 0.001
    assert chi_square < 13.82
    assert set(counts) == set(weights)


def test_sampler_needs_a_positive_weight() -> None:
    with pytest.raises(ValueError):
        OperationSampler({OperationKind.INGESTION: 0}, seed=1)


@pytest.mark.asyncio
async def test_system_monitor_survives_psutil_errors(sink) -> None:
    monitor = SystemMonitor(sink, interval_s=0.01)
    with patch.object(SystemMonitor, "sample", side_effect=psutil.AccessDenied()):
        monitor.start()
        await asyncio.sleep(0.05)
        await monitor.stop()

    assert monitor.samples == 0
    assert sink.system_metrics == []


@pytest.mark.asyncio
async def test_op_interval_paces_clients(make_config, sink) -> None:
    config = make_config(device_number=1, client_number=1, loop=3, op_interval_ms=30)

    summary = await BenchmarkOrchestrator(config, sink=sink).run()

    assert summary.ok_operations == 3
    assert summary.elapsed_seconds >= 0.06


@pytest.mark.asyncio
async def test_write_points_come_from_the_batch(make_config, sink) -> None:
    config = make_config(device_number=2, sensor_number=5, client_number=2, loop=10)

    summary = await BenchmarkOrchestrator(config, backend=AckOnlyBackend(config), sink=sink).run()

    assert summary.operations["INGESTION"].ok_operations == 20
    assert summary.operations["INGESTION"].ok_points == 100
    assert summary.throughput("INGESTION") > 0
