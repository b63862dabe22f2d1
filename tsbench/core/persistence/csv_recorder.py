"""
CSV result sink.

Writes one directory per run:
- operation_results_<n>.csv: one line per operation, split into a new file
  every ``csv_max_line`` lines when ``csv_file_split`` is set
- test_config.csv, system_metrics.csv, final_results.csv
"""

import csv
import logging
import threading
import time
from itertools import count
from pathlib import Path
from typing import Any, Iterator, List, Mapping, Optional, TextIO

from tsbench.core.persistence.base import TestDataPersistence, config_rows, run_stamp
from tsbench.models.bench_config import BenchmarkConfig

logger = logging.getLogger(__name__)

OPERATION_HEADER = ["line", "time_ms", "operation", "ok_point", "fail_point", "latency_ms", "remark"]


class LineCounter:
    """Monotonic line number shared by every writer of one run."""

    def __init__(self, start: int = 1):
        self._lock = threading.Lock()
        self._counter: Iterator[int] = count(start)

    def next(self) -> int:
        with self._lock:
            return next(self._counter)


class CsvRecorder(TestDataPersistence):
    """
    Line-oriented sink.

    Args:
        config: Run configuration (output dir, split size, remark)
        output_dir: Override the run directory (tests)
    """

    def __init__(self, config: BenchmarkConfig, output_dir: Optional[Path] = None):
        self.config = config
        self.max_lines = config.csv_max_line
        self.split = config.csv_file_split
        self.run_dir = Path(output_dir) if output_dir else Path(config.csv_output_dir) / run_stamp()
        self.run_dir.mkdir(parents=True, exist_ok=True)

        self.line_counter = LineCounter()
        self._file_index = 0
        self._lines_in_file = 0
        self._files_written: List[Path] = []
        self._ops_file: Optional[TextIO] = None
        self._ops_writer: Any = None
        self._metrics_file: Optional[TextIO] = None
        self._metrics_writer: Any = None
        self._metrics_columns: List[str] = []
        self._closed = False

        logger.info("CSV results directory: %s", self.run_dir)

    @property
    def files_written(self) -> List[Path]:
        return list(self._files_written)

    def save_operation_result(
        self,
        operation: str,
        ok_points: int,
        fail_points: int,
        latency_ms: float,
        remark: str = "",
    ) -> None:
        if self._ops_writer is None or (self.split and self._lines_in_file >= self.max_lines):
            self._start_operation_file()
        line = self.line_counter.next()
        self._ops_writer.writerow(
            [line, int(time.time() * 1000), operation, ok_points, fail_points, f"{latency_ms:.3f}", remark]
        )
        # Keep the file readable while the run is still going.
        self._ops_file.flush()
        self._lines_in_file += 1

    def save_test_config(self, config: BenchmarkConfig) -> None:
        path = self.run_dir / "test_config.csv"
        with open(path, "w", newline="") as f:
            writer = csv.writer(f)
            writer.writerow(["parameter", "value"])
            for key, value in config_rows(config).items():
                writer.writerow([key, value])
        self._files_written.append(path)

    def insert_system_metrics(self, metrics: Mapping[str, float]) -> None:
        if self._metrics_writer is None:
            path = self.run_dir / "system_metrics.csv"
            self._metrics_file = open(path, "w", newline="")
            self._metrics_writer = csv.writer(self._metrics_file)
            self._metrics_columns = sorted(metrics)
            self._metrics_writer.writerow(["time_ms", *self._metrics_columns])
            self._files_written.append(path)
        self._metrics_writer.writerow(
            [int(time.time() * 1000), *(metrics.get(c, "") for c in self._metrics_columns)]
        )
        self._metrics_file.flush()

    def save_result(self, operation: str, key: str, value: Any) -> None:
        path = self.run_dir / "final_results.csv"
        is_new = not path.exists()
        with open(path, "a", newline="") as f:
            writer = csv.writer(f)
            if is_new:
                writer.writerow(["operation", "result_key", "result_value"])
                self._files_written.append(path)
            writer.writerow([operation, key, value])

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        for handle in (self._ops_file, self._metrics_file):
            if handle is not None:
                handle.close()
        self._ops_file = None
        self._metrics_file = None
        logger.info("CSV recorder closed (%d files)", len(self._files_written))

    def _start_operation_file(self) -> None:
        if self._ops_file is not None:
            self._ops_file.close()
            self._file_index += 1
        path = self.run_dir / f"operation_results_{self._file_index}.csv"
        self._ops_file = open(path, "w", newline="")
        self._ops_writer = csv.writer(self._ops_file)
        self._ops_writer.writerow(OPERATION_HEADER)
        self._lines_in_file = 0
        self._files_written.append(path)
        if self._file_index:
            logger.info("Starting new CSV file: %s", path.name)
