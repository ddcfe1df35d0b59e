"""
Logger utility for the Resource Allocation Graph Deadlock Engine.

Provides per-operation logging with verbosity levels.
"""

from typing import List, Optional
from datetime import datetime


class EngineLogger:
    """
    Logger for engine operations and decisions.

    Format: "P0 requests R1[2] - GRANTED/DENIED (reason)"
    """

    def __init__(self, verbose: bool = False, log_file: Optional[str] = None, echo: bool = True):
        """
        Initialize logger.

        Args:
            verbose: Enable debug output
            log_file: Optional file path for logging
            echo: Print messages to the console
        """
        self.verbose = verbose
        self.log_file = log_file
        self.echo = echo
        self.file_handle = None

        if self.log_file:
            self.file_handle = open(self.log_file, 'w', encoding='utf-8')
            self._write_header()

    def _write_header(self) -> None:
        """Write log file header."""
        if self.file_handle:
            timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
            self.file_handle.write(f"Deadlock Engine Log - {timestamp}\n")
            self.file_handle.write("="*60 + "\n\n")

    def log(self, message: str, level: str = "info") -> None:
        """
        Log a message.

        Args:
            message: Message to log
            level: Log level (info, debug, warning, error)
        """
        if level == "debug" and not self.verbose:
            return

        formatted = self._format_message(message, level)

        if self.echo:
            print(formatted)

        if self.file_handle:
            self.file_handle.write(formatted + "\n")
            self.file_handle.flush()

    def _format_message(self, message: str, level: str) -> str:
        """Format message with level prefix."""
        if level == "error":
            return f"[ERROR] {message}"
        elif level == "warning":
            return f"[WARNING] {message}"
        elif level == "debug":
            return f"[DEBUG] {message}"
        else:
            return message

    def log_request(
        self,
        pid: int,
        resource_type: int,
        amount: int,
        status: str,
        reason: str
    ) -> None:
        """
        Log a resource request decision.

        Args:
            pid: Process ID
            resource_type: Resource type index
            amount: Amount requested
            status: GRANTED, DENIED or ORDER VIOLATION
            reason: Reason for decision
        """
        self.log(f"P{pid} requests R{resource_type}[{amount}] - {status} ({reason})")

    def log_release(self, pid: int, resource_type: int, amount: int, released: bool, reason: str = "") -> None:
        if released:
            self.log(f"P{pid} releases R{resource_type}[{amount}]")
        else:
            self.log(f"P{pid} cannot release R{resource_type}[{amount}] - {reason}", "error")

    def log_deadlock(self, cycle_str: str) -> None:
        """
        Log deadlock detection.

        Args:
            cycle_str: Formatted cycle path
        """
        self.log(f"DEADLOCK DETECTED - Deadlock Cycle: {cycle_str}")

    def log_recovery(self, victim_pid: int, resources_released: str) -> None:
        """
        Log recovery action.

        Args:
            victim_pid: PID of terminated process
            resources_released: String describing resources released
        """
        self.log(f"RECOVERY - Terminated P{victim_pid} (released {resources_released})")

    def log_order(self, order: List[int], accepted: bool, warning: str = "") -> None:
        if accepted:
            self.log(f"Resource order set: {' < '.join(f'R{r}' for r in order)}")
        else:
            self.log(f"Invalid resource order - {warning}", "warning")

    def close(self) -> None:
        """Close log file if open."""
        if self.file_handle:
            self.file_handle.close()
            self.file_handle = None

    def __del__(self):
        """Cleanup on destruction."""
        self.close()
