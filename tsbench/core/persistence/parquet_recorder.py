"""
Parquet result sink.

Operation results are buffered in memory and written to local Parquet files
by a single background thread, so the event loop never blocks on disk I/O
except when a previous flush is still in flight:
- In-memory buffer (plain list, appended from the event loop only)
- Background flushes through ``pq.ParquetWriter`` row-group appends
- File rotation every ``csv_max_line`` rows when ``csv_file_split`` is set

Configuration, system metrics and final results are small and written once
at ``close()``.
"""

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import pyarrow as pa
import pyarrow.parquet as pq

from tsbench.core.persistence.base import TestDataPersistence, config_rows, run_stamp
from tsbench.models.bench_config import BenchmarkConfig

logger = logging.getLogger(__name__)

OPERATION_SCHEMA = pa.schema(
    [
        ("time_ms", pa.int64()),
        ("operation", pa.string()),
        ("ok_point", pa.int64()),
        ("fail_point", pa.int64()),
        ("latency_ms", pa.float64()),
        ("remark", pa.string()),
    ]
)


class ParquetRecorder(TestDataPersistence):
    """
    Buffered Parquet sink.

    Args:
        config: Run configuration (output dir, rotation size)
        output_dir: Override the run directory (tests)
        buffer_size: Rows buffered before a background flush
    """

    DEFAULT_BUFFER_SIZE = 10_000

    def __init__(
        self,
        config: BenchmarkConfig,
        output_dir: Optional[Path] = None,
        buffer_size: Optional[int] = None,
    ):
        self.config = config
        self.run_dir = Path(output_dir) if output_dir else Path(config.csv_output_dir) / run_stamp()
        self.run_dir.mkdir(parents=True, exist_ok=True)

        self._buffer_size = buffer_size or self.DEFAULT_BUFFER_SIZE
        self._max_rows_per_file = config.csv_max_line if config.csv_file_split else None

        self._buffer: List[Dict[str, Any]] = []
        self._file_index = 0
        self._rows_in_current_file = 0
        self._total_rows = 0
        self._files_written: List[Path] = []
        self._current_writer: Optional[pq.ParquetWriter] = None

        self._write_executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="parquet_writer")
        self._pending_write: Optional[Future] = None
        self._write_lock = threading.Lock()

        self._config_rows: Dict[str, str] = {}
        self._system_metrics: List[Dict[str, Any]] = []
        self._results: List[Dict[str, Any]] = []
        self._closed = False

        logger.info("ParquetRecorder initialized: dir=%s", self.run_dir)

    @property
    def stats(self) -> Dict[str, Any]:
        return {
            "total_rows": self._total_rows,
            "buffered_rows": len(self._buffer),
            "files_written": len(self._files_written),
            "current_file_rows": self._rows_in_current_file,
        }

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
        self._buffer.append(
            {
                "time_ms": int(time.time() * 1000),
                "operation": operation,
                "ok_point": int(ok_points),
                "fail_point": int(fail_points),
                "latency_ms": float(latency_ms),
                "remark": remark or "",
            }
        )
        self._total_rows += 1

        if len(self._buffer) >= self._buffer_size:
            self._flush_buffer_to_disk()

    def save_test_config(self, config: BenchmarkConfig) -> None:
        self._config_rows = config_rows(config)

    def insert_system_metrics(self, metrics: Mapping[str, float]) -> None:
        self._system_metrics.append({"time_ms": int(time.time() * 1000), **metrics})

    def save_result(self, operation: str, key: str, value: Any) -> None:
        self._results.append({"operation": operation, "result_key": key, "result_value": str(value)})

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True

        self._flush_buffer_to_disk()
        self.wait_for_pending_writes()
        self._write_executor.shutdown(wait=True)

        with self._write_lock:
            if self._current_writer is not None:
                self._current_writer.close()
                self._current_writer = None

        if self._config_rows:
            self._write_small_table(
                "test_config.parquet",
                {
                    "parameter": list(self._config_rows.keys()),
                    "value": list(self._config_rows.values()),
                },
            )
        if self._system_metrics:
            self._write_small_table(
                "system_metrics.parquet", pa.Table.from_pylist(self._system_metrics)
            )
        if self._results:
            self._write_small_table("final_results.parquet", pa.Table.from_pylist(self._results))

        logger.info(
            "ParquetRecorder closed: %d operation rows in %d files",
            self._total_rows,
            len(self._files_written),
        )

    def wait_for_pending_writes(self) -> None:
        if self._pending_write is not None:
            self._pending_write.result()
            self._pending_write = None

    def _flush_buffer_to_disk(self) -> None:
        """Hand the buffered rows to the background writer."""
        # Loops only when rows spill over into the next file.
        while self._buffer:
            self.wait_for_pending_writes()

            if self._max_rows_per_file and self._rows_in_current_file >= self._max_rows_per_file:
                self._start_new_file()

            if self._max_rows_per_file:
                room = self._max_rows_per_file - self._rows_in_current_file
                rows, self._buffer = self._buffer[:room], self._buffer[room:]
            else:
                rows, self._buffer = self._buffer, []

            table = pa.Table.from_pylist(rows, schema=OPERATION_SCHEMA)
            self._rows_in_current_file += len(rows)
            self._pending_write = self._write_executor.submit(self._write_table_to_disk, table)

    def _write_table_to_disk(self, table: pa.Table) -> None:
        """Runs in the background thread."""
        start_time = time.perf_counter()
        with self._write_lock:
            if self._current_writer is None:
                file_path = self._current_file_path()
                self._current_writer = pq.ParquetWriter(file_path, OPERATION_SCHEMA, compression="snappy")
                self._files_written.append(file_path)
            self._current_writer.write_table(table)

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        logger.debug("Background flush: %d rows in %.2fms", table.num_rows, elapsed_ms)

    def _start_new_file(self) -> None:
        self.wait_for_pending_writes()
        with self._write_lock:
            if self._current_writer is not None:
                self._current_writer.close()
                self._current_writer = None
        self._file_index += 1
        self._rows_in_current_file = 0
        logger.info("Starting new Parquet file: index=%d", self._file_index)

    def _current_file_path(self) -> Path:
        return self.run_dir / f"operation_results_{self._file_index:04d}.parquet"

    def _write_small_table(self, name: str, data: Any) -> None:
        table = data if isinstance(data, pa.Table) else pa.table(data)
        path = self.run_dir / name
        pq.write_table(table, path)
        self._files_written.append(path)
