"""
Type definitions and dataclasses for the benchmark clients.
"""

from dataclasses import dataclass, field
from typing import Optional

from tsbench.models.operation import OperationKind


@dataclass
class ClientState:
    """Runtime state of one client."""

    client_id: int
    completed: int = 0
    writes: int = 0
    # device_id -> number of batches already generated for that device
    device_loop_index: dict[int, int] = field(default_factory=dict)
    issued_by_kind: dict[str, int] = field(default_factory=dict)
    stopped_early: bool = False
    error: Optional[str] = None

    def next_loop_index(self, device_id: int) -> int:
        index = self.device_loop_index.get(device_id, 0)
        self.device_loop_index[device_id] = index + 1
        return index

    def count(self, kind: OperationKind) -> None:
        self.completed += 1
        self.issued_by_kind[kind.value] = self.issued_by_kind.get(kind.value, 0) + 1
        if kind.is_write:
            self.writes += 1
