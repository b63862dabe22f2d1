"""
Result persistence sinks.

Selected by ``test_data_persistence``:
- None: discard everything
- CSV: line-oriented files with a shared line counter
- Parquet: buffered columnar files written in the background
"""

import logging
from pathlib import Path
from typing import Optional

from tsbench.core.persistence.base import TestDataPersistence
from tsbench.core.persistence.csv_recorder import CsvRecorder
from tsbench.core.persistence.none_recorder import NoneRecorder
from tsbench.core.persistence.parquet_recorder import ParquetRecorder
from tsbench.models.bench_config import BenchmarkConfig, PersistenceType

logger = logging.getLogger(__name__)


def create_persistence(
    config: BenchmarkConfig, output_dir: Optional[Path] = None
) -> TestDataPersistence:
    """Build the sink configured for this run."""
    kind = config.test_data_persistence
    if kind == PersistenceType.CSV:
        return CsvRecorder(config, output_dir=output_dir)
    if kind == PersistenceType.PARQUET:
        return ParquetRecorder(config, output_dir=output_dir)
    return NoneRecorder()


__all__ = [
    "CsvRecorder",
    "NoneRecorder",
    "ParquetRecorder",
    "TestDataPersistence",
    "create_persistence",
]
