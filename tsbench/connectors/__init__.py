"""
Backend adapters and the registry used to select one by name.
"""

import logging
from typing import Dict, Type

from tsbench.connectors.base import Backend
from tsbench.connectors.memory import InMemoryBackend
from tsbench.exceptions import ConfigurationError
from tsbench.models.bench_config import BenchmarkConfig

logger = logging.getLogger(__name__)

_BACKENDS: Dict[str, Type[Backend]] = {
    InMemoryBackend.name: InMemoryBackend,
}


def register_backend(name: str, backend_cls: Type[Backend]) -> None:
    """Make an adapter selectable through ``db_switch``."""
    key = name.strip().lower()
    if key in _BACKENDS and _BACKENDS[key] is not backend_cls:
        logger.warning("Replacing backend %s (%s -> %s)", key, _BACKENDS[key], backend_cls)
    _BACKENDS[key] = backend_cls


def available_backends() -> list[str]:
    return sorted(_BACKENDS)


def create_backend(name: str, config: BenchmarkConfig) -> Backend:
    """
    Instantiate the adapter registered under ``name``.

    Raises:
        ConfigurationError: no adapter is registered under that name
    """
    key = str(name or "").strip().lower()
    try:
        backend_cls = _BACKENDS[key]
    except KeyError as e:
        raise ConfigurationError(
            f"Unknown backend '{name}'. Available: {', '.join(available_backends())}"
        ) from e
    return backend_cls(config)


__all__ = [
    "Backend",
    "InMemoryBackend",
    "available_backends",
    "create_backend",
    "register_backend",
]
