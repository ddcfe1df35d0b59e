"""
Process model for the Resource Allocation Graph Deadlock Engine.

Processes are passive accounting records: the ledger holds their
allocation and request rows, this module only tracks where each one is
in the request state machine.
"""

from dataclasses import dataclass
from enum import Enum


class ProcessState(Enum):
    """Process states in the allocation engine."""
    IDLE = "IDLE"
    REQUESTING = "REQUESTING"
    GRANTED = "GRANTED"
    DENIED = "DENIED"
    TERMINATED = "TERMINATED"


@dataclass
class Process:
    """
    State-machine record for one process.

    Attributes:
        pid: Process index in [0, P)
        state: Outcome of the most recent request, or TERMINATED once killed
    """
    pid: int
    state: ProcessState = ProcessState.IDLE

    def begin_request(self) -> None:
        self.state = ProcessState.REQUESTING

    def finish_request(self, granted: bool) -> None:
        self.state = ProcessState.GRANTED if granted else ProcessState.DENIED

    def terminate(self) -> None:
        """Kill the process; it never leaves this state."""
        self.state = ProcessState.TERMINATED

    def is_terminated(self) -> bool:
        return self.state == ProcessState.TERMINATED

    def __repr__(self) -> str:
        return f"Process(pid={self.pid}, state={self.state.value})"
