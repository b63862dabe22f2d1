"""
Error taxonomy for tsbench.

- ConnectionFailure: backend unreachable / protocol-level fatal. Aborts the run.
- BackendError: adapter lifecycle failure (init, cleanup, schema registration).
- ConfigurationError: invalid parameters; fatal before any client runs.
- WorkloadError: the workload generator cannot satisfy a request.

Individual operation failures are not exceptions at this level; they are
recorded by the measurement decorator and never abort a run.
"""


class TsBenchError(Exception):
    """Base class for all tsbench errors."""


class ConnectionFailure(TsBenchError):
    """The backend is unreachable or returned a fatal protocol error."""


class BackendError(TsBenchError):
    """A backend lifecycle call (init/cleanup/close/register_schema) failed."""


class ConfigurationError(TsBenchError, ValueError):
    """Benchmark parameters are invalid or inconsistent."""


class WorkloadError(TsBenchError):
    """The workload generator was asked for something the schema can't provide."""
