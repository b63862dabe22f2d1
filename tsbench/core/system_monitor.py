"""
Host resource sampling.

Periodically samples process and host CPU / memory / disk / network counters
with psutil and forwards them to the persistence sink.
"""

import asyncio
import logging
import math
from typing import Dict, Optional

import psutil

from tsbench.core.persistence.base import TestDataPersistence

logger = logging.getLogger(__name__)

_MB = 1024 * 1024


class SystemMonitor:
    """
    Background sampler.

    Args:
        sink: Receives one ``insert_system_metrics`` call per sample
        interval_s: Seconds between samples
    """

    def __init__(self, sink: TestDataPersistence, interval_s: float):
        self.sink = sink
        self.interval_s = interval_s
        self.samples = 0
        self._process = psutil.Process()
        self._task: Optional[asyncio.Task] = None
        self._stop = asyncio.Event()
        self._last_disk = None
        self._last_net = None

        # Prime cpu_percent so subsequent calls return a delta.
        self._process.cpu_percent(interval=None)
        psutil.cpu_percent(interval=None)

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._run())
            logger.info("System monitor started (interval=%.1fs)", self.interval_s)

    async def stop(self) -> None:
        self._stop.set()
        if self._task is not None:
            await self._task
            self._task = None

    def sample(self) -> Dict[str, float]:
        """Take one sample of process and host counters."""
        metrics: Dict[str, float] = {}

        cpu_pct = self._process.cpu_percent(interval=None)
        if cpu_pct is not None and math.isfinite(cpu_pct):
            metrics["process_cpu_percent"] = float(cpu_pct)
        metrics["process_memory_mb"] = self._process.memory_info().rss / _MB

        host_cpu = psutil.cpu_percent(interval=None)
        if host_cpu is not None and math.isfinite(host_cpu):
            metrics["host_cpu_percent"] = float(host_cpu)
        vm = psutil.virtual_memory()
        metrics["host_memory_percent"] = float(vm.percent)
        metrics["host_memory_available_mb"] = vm.available / _MB

        disk = psutil.disk_io_counters()
        if disk is not None:
            if self._last_disk is not None:
                metrics["disk_read_mb"] = (disk.read_bytes - self._last_disk.read_bytes) / _MB
                metrics["disk_write_mb"] = (disk.write_bytes - self._last_disk.write_bytes) / _MB
            self._last_disk = disk

        net = psutil.net_io_counters()
        if net is not None:
            if self._last_net is not None:
                metrics["net_sent_mb"] = (net.bytes_sent - self._last_net.bytes_sent) / _MB
                metrics["net_recv_mb"] = (net.bytes_recv - self._last_net.bytes_recv) / _MB
            self._last_net = net

        return metrics

    async def _run(self) -> None:
        while not self._stop.is_set():
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self.interval_s)
                break
            except asyncio.TimeoutError:
                pass
            try:
                metrics = self.sample()
            except psutil.Error as e:
                logger.debug("System metrics collection error: %s", e)
                continue
            self.sink.insert_system_metrics(metrics)
            self.samples += 1
