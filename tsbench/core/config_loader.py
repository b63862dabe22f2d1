"""
Benchmark Configuration Loader

Loads a YAML benchmark file and converts it into a validated, immutable
BenchmarkConfig. Keys may be written in lowercase (``device_number``) or in
the upper-case style of classic benchmark property files (``DEVICE_NUMBER``).
A handful of legacy aliases are mapped onto their current field names.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml
from pydantic import ValidationError

from tsbench.exceptions import ConfigurationError
from tsbench.models.bench_config import BenchmarkConfig

logger = logging.getLogger(__name__)

KEY_ALIASES = {
    "lambda": "poisson_lambda",
    "init_wait_time": "init_wait_time_ms",
    "op_interval": "op_interval_ms",
    "write_operation_timeout": "write_operation_timeout_ms",
    "read_operation_timeout": "read_operation_timeout_ms",
    "benchmark_work_mode_remark": "remark",
    "monitor_interval": "monitor_interval_s",
    "log_print_interval": "log_print_interval_s",
    "is_out_of_order_mode": "out_of_order_mode",
}


def normalize_keys(data: Mapping[str, Any]) -> Dict[str, Any]:
    """Lowercase keys and resolve legacy aliases."""
    normalized: Dict[str, Any] = {}
    for raw_key, value in data.items():
        key = str(raw_key).strip().lower()
        key = KEY_ALIASES.get(key, key)
        if key in normalized:
            raise ConfigurationError(f"Configuration key given twice: {raw_key}")
        normalized[key] = value
    return normalized


def build_config(
    data: Optional[Mapping[str, Any]] = None,
    overrides: Optional[Mapping[str, Any]] = None,
    defaults: Optional[Mapping[str, Any]] = None,
) -> BenchmarkConfig:
    """
    Validate raw settings into a BenchmarkConfig.

    Args:
        data: Parsed file contents
        defaults: Values used only where ``data`` is silent
        overrides: Values taking precedence over ``data`` (CLI flags); None
            values are ignored

    Raises:
        ConfigurationError: the settings fail validation
    """
    merged = normalize_keys(defaults or {})
    merged.update(normalize_keys(data or {}))
    if overrides:
        merged.update({k: v for k, v in normalize_keys(overrides).items() if v is not None})

    # YAML 1.1 reads an unquoted 1:0:0 as a base-60 integer.
    if isinstance(merged.get("operation_proportion"), (int, float)):
        raise ConfigurationError(
            "operation_proportion must be a quoted string such as \"1:0:0:0:0:0:0:0:0:0:0\""
        )

    try:
        return BenchmarkConfig(**merged)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid benchmark configuration:\n{e}") from e


def load_config(
    path: Optional[Union[str, Path]] = None,
    overrides: Optional[Mapping[str, Any]] = None,
    defaults: Optional[Mapping[str, Any]] = None,
) -> BenchmarkConfig:
    """
    Load a YAML benchmark file.

    With no path, defaults are used (plus ``overrides``).
    """
    data: Dict[str, Any] = {}
    if path:
        config_path = Path(path)
        if not config_path.exists():
            raise ConfigurationError(f"Benchmark configuration not found: {config_path}")
        with open(config_path, "r") as f:
            loaded = yaml.safe_load(f)
        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ConfigurationError(f"{config_path} must contain a mapping of settings")
        # Allow nesting everything under a top-level "benchmark:" key.
        nested = loaded.get("benchmark")
        data = nested if isinstance(nested, dict) else loaded
        logger.info("Loaded benchmark configuration from %s", config_path)

    return build_config(data, overrides, defaults)
