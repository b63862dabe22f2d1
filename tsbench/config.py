"""
Process-level settings for tsbench.

Benchmark parameters live in BenchmarkConfig (see tsbench.models); this module
only carries what the bootstrap needs before a benchmark config is loaded.
"""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-driven settings (prefix TSBENCH_, optional .env file)."""

    model_config = SettingsConfigDict(
        env_prefix="TSBENCH_",
        env_file=".env",
        extra="ignore",
    )

    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    LOG_FILE: Optional[str] = None

    # Default benchmark YAML, used when the CLI gets no --config
    BENCHMARK_CONFIG: Optional[str] = None

    # Where CSV / Parquet sinks place their output
    RESULTS_DIR: str = "results"


settings = Settings()
