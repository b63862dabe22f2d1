"""
Tests for Measurement.

These are async unit tests (pytest-asyncio) validating per-kind aggregation,
percentile calculation, concurrent updates and the summary.
"""

import asyncio
import random

import pytest

from tsbench.core.measurement import Measurement, calculate_percentiles, format_summary
from tsbench.models import OperationKind

pytestmark = pytest.mark.asyncio


async def test_empty_summary() -> None:
    measurement = Measurement()
    summary = await measurement.summary()

    assert summary.operations == {}
    assert summary.ok_operations == 0
    assert summary.aborted is False


async def test_ok_and_fail_counts() -> None:
    measurement = Measurement()
    measurement.start()

    await measurement.record_ok(OperationKind.INGESTION, 50, 12.0)
    await measurement.record_ok(OperationKind.INGESTION, 50, 8.0)
    await measurement.record_fail(OperationKind.INGESTION, 50)
    await measurement.record_ok(OperationKind.RANGE_QUERY, 7, 3.0)
    await measurement.record_fail(OperationKind.RANGE_QUERY, 0)
    measurement.stop()

    summary = await measurement.summary()
    ingestion = summary.operations["INGESTION"]
    assert ingestion.ok_operations == 2
    assert ingestion.fail_operations == 1
    assert ingestion.ok_points == 100
    assert ingestion.fail_points == 50
    assert ingestion.latency.avg == pytest.approx(10.0)
    assert ingestion.avg_latency_ms == pytest.approx(10.0)
    assert ingestion.success_rate == pytest.approx(2 / 3)

    range_query = summary.operations["TIME_RANGE"]
    assert range_query.ok_points == 7
    assert range_query.fail_points == 0

    assert summary.ok_operations == 3
    assert summary.fail_operations == 2
    assert "PRECISE_POINT" not in summary.operations


async def test_percentile_calculation() -> None:
    latencies = [float(i) for i in range(1, 101)]
    random.shuffle(latencies)

    percentiles = calculate_percentiles(latencies)

    assert percentiles.min == 1.0
    assert percentiles.max == 100.0
    assert percentiles.p50 == pytest.approx(50.5)
    assert percentiles.p90 == pytest.approx(90.1)
    assert percentiles.avg == pytest.approx(50.5)


async def test_percentiles_single_sample() -> None:
    percentiles = calculate_percentiles([4.2])
    assert percentiles.p50 == percentiles.p999 == percentiles.max == 4.2


async def test_concurrent_updates() -> None:
    measurement = Measurement()

    async def worker() -> None:
        for _ in range(200):
            await measurement.record_ok(OperationKind.INGESTION, 1, 1.0)
            await asyncio.sleep(0)

    await asyncio.gather(*(worker() for _ in range(10)))

    totals = await measurement.totals()
    assert totals["ok_operations"] == 2000
    assert totals["ok_points"] == 2000


async def test_throughput_and_format() -> None:
    measurement = Measurement()
    measurement.start()
    await measurement.record_ok(OperationKind.INGESTION, 1000, 5.0)
    measurement.set_create_schema_time(0.25)
    measurement.stop()

    summary = await measurement.summary(aborted=True, error="ConnectionFailure('gone')")

    assert summary.create_schema_seconds == 0.25
    assert summary.throughput("INGESTION") > 0
    assert summary.throughput("GROUP_BY") == 0.0

    text = format_summary(summary)
    assert "INGESTION" in text
    assert "Run aborted" in text

    payload = summary.to_payload()
    assert payload["operations"]["INGESTION"]["ok_points"] == 1000
    assert payload["aborted"] is True
