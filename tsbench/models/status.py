"""
Outcome of a single backend operation.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class Status:
    """
    Result returned by every backend operation.

    ``point_count`` is the number of accepted points for writes and the
    number of returned points for queries. ``elapsed_ms`` is filled in by the
    measurement decorator, not by the adapter.
    """

    ok: bool
    point_count: int = 0
    error: Optional[BaseException] = None
    error_message: Optional[str] = None
    elapsed_ms: float = 0.0

    @classmethod
    def success(cls, point_count: int = 0) -> "Status":
        return cls(ok=True, point_count=point_count)

    @classmethod
    def failure(
        cls, error: Optional[BaseException] = None, message: Optional[str] = None
    ) -> "Status":
        return cls(
            ok=False,
            error=error,
            error_message=message if message is not None else (str(error) if error else None),
        )

    @property
    def remark(self) -> str:
        """Text persisted alongside a failed operation."""
        if self.error is not None:
            return repr(self.error)
        return self.error_message or "operation reported failure"
