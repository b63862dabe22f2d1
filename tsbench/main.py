"""
tsbench command line entry point.

Loads the benchmark configuration, runs it and exits with:
- 0 when the run completed (operation failures included)
- 1 on a configuration error or a lost backend connection
- 130 when interrupted
"""

import argparse
import asyncio
import logging
import sys
from typing import Any, Dict, List, Optional

from tsbench.config import settings
from tsbench.core.config_loader import load_config
from tsbench.core.orchestrator import run_benchmark
from tsbench.exceptions import ConfigurationError, ConnectionFailure, TsBenchError

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if settings.LOG_FILE:
        handlers.append(logging.FileHandler(settings.LOG_FILE))
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format=settings.LOG_FORMAT,
        handlers=handlers,
        force=True,
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Benchmark a time-series backend with a synthetic device/sensor workload."
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Benchmark YAML file (defaults to TSBENCH_BENCHMARK_CONFIG).",
    )
    parser.add_argument("--db-switch", default=None, help="Backend adapter name.")
    parser.add_argument("--clients", type=int, default=None, help="Override client_number.")
    parser.add_argument("--devices", type=int, default=None, help="Override device_number.")
    parser.add_argument("--sensors", type=int, default=None, help="Override sensor_number.")
    parser.add_argument("--loop", type=int, default=None, help="Operations per client.")
    parser.add_argument(
        "--batch-size", type=int, default=None, help="Override batch_size_per_write."
    )
    parser.add_argument(
        "--operation-proportion",
        default=None,
        help="INGESTION:Q1:...:Q10 weights, e.g. 1:1:0:0:0:0:0:0:0:0:0.",
    )
    parser.add_argument(
        "--persistence",
        choices=["None", "CSV", "Parquet"],
        default=None,
        help="Result sink.",
    )
    parser.add_argument(
        "--output-dir", default=None, help="Directory for CSV / Parquet results."
    )
    parser.add_argument(
        "--quiet",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Suppress per-operation log lines.",
    )
    return parser


def _overrides(args: argparse.Namespace) -> Dict[str, Any]:
    return {
        "db_switch": args.db_switch,
        "client_number": args.clients,
        "device_number": args.devices,
        "sensor_number": args.sensors,
        "loop": args.loop,
        "batch_size_per_write": args.batch_size,
        "operation_proportion": args.operation_proportion,
        "test_data_persistence": args.persistence,
        "csv_output_dir": args.output_dir,
        "is_quiet_mode": args.quiet,
    }


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    configure_logging()

    try:
        config = load_config(
            args.config or settings.BENCHMARK_CONFIG,
            overrides=_overrides(args),
            defaults={"csv_output_dir": settings.RESULTS_DIR},
        )
        summary = asyncio.run(run_benchmark(config))
    except ConfigurationError as e:
        logger.error("Configuration error: %s", e)
        return 1
    except ConnectionFailure as e:
        logger.error("Benchmark aborted by a connection failure: %s", e)
        return 1
    except TsBenchError as e:
        logger.error("Benchmark failed: %s", e)
        return 1
    except KeyboardInterrupt:
        print("[tsbench] interrupted", file=sys.stderr)
        return 130

    logger.info(
        "Completed: %d ok / %d failed operations in %.2fs",
        summary.ok_operations,
        summary.fail_operations,
        summary.elapsed_seconds,
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
