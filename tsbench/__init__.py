"""tsbench - benchmark harness for time-series databases."""

__version__ = "0.1.0"
