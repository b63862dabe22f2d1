"""
Out-of-Order Scheduler

Pure transforms that pull write timestamps backwards before submission:
- POISSON: each record is delayed by k point steps, k ~ min(Poisson(lambda), max_k)
- BATCH: the whole batch is shifted back by one batch interval

The scheduler never touches the workload generator, so batch cadence and
point counts are unchanged.
"""

import logging
import math
import random
from dataclasses import replace
from typing import Optional

from tsbench.models.bench_config import BenchmarkConfig, OutOfOrderMode
from tsbench.models.workload import Batch

logger = logging.getLogger(__name__)


def poisson_sample(rng: random.Random, lam: float) -> int:
    """Knuth's multiplication method; fine for the small means used here."""
    threshold = math.exp(-lam)
    k = 0
    p = rng.random()
    while p > threshold:
        k += 1
        p *= rng.random()
    return k


class OutOfOrderScheduler:
    """
    Applies the configured out-of-order policy to write batches.

    Args:
        config: Benchmark configuration (mode, ratio, lambda, max_k)
        seed: Seed for the scheduler's own generator
    """

    def __init__(self, config: BenchmarkConfig, seed: Optional[int] = None):
        self.mode = config.out_of_order_mode
        self.ratio = config.out_of_order_ratio
        self.lam = config.poisson_lambda
        self.max_k = config.max_k
        self.point_step = config.point_step
        self.batch_interval = config.batch_interval_ms
        self.random = random.Random(config.data_seed if seed is None else seed)

        self.shifted_batches = 0
        self.shifted_records = 0

    def apply(self, batch: Batch) -> Batch:
        """Return a (possibly) time-shifted copy of ``batch``."""
        if self.mode == OutOfOrderMode.BATCH:
            return self._apply_batch(batch)
        return self._apply_poisson(batch)

    def _apply_batch(self, batch: Batch) -> Batch:
        if self.random.random() >= self.ratio:
            return batch
        self.shifted_batches += 1
        records = tuple(
            replace(r, timestamp=r.timestamp - self.batch_interval) for r in batch.records
        )
        return replace(batch, records=records)

    def _apply_poisson(self, batch: Batch) -> Batch:
        records = []
        for record in batch.records:
            if self.random.random() < self.ratio:
                k = min(poisson_sample(self.random, self.lam), self.max_k)
                if k:
                    self.shifted_records += 1
                    record = replace(record, timestamp=record.timestamp - k * self.point_step)
            records.append(record)
        return replace(batch, records=tuple(records))
