"""
Benchmark client execution: the measured backend decorator and the client loop.
"""

from tsbench.core.executor.helpers import OperationSampler, classify_error
from tsbench.core.executor.operations import MeasuredBackend
from tsbench.core.executor.types import ClientState
from tsbench.core.executor.workers import BenchmarkClient

__all__ = [
    "BenchmarkClient",
    "ClientState",
    "MeasuredBackend",
    "OperationSampler",
    "classify_error",
]
