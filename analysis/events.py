"""
Event Model for the Resource Allocation Graph Deadlock Engine.

Defines event types for tracking engine decisions.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional


class EventType(Enum):
    """Types of events recorded by the engine."""
    ALLOCATION = "allocation"
    DENIAL = "denial"
    ORDER_VIOLATION = "order_violation"
    RELEASE = "release"
    DEADLOCK = "deadlock"
    RECOVERY = "recovery"
    EDGE_ADDED = "edge_added"
    EDGE_REJECTED = "edge_rejected"
    ORDER_RESET = "order_reset"


@dataclass
class EngineEvent:
    """
    Represents a single engine decision.

    Attributes:
        sequence: Position of the event in the log
        event_type: Type of event
        process_id: Process involved (-1 for system-wide events)
        resource_type: Resource type involved (if applicable)
        amount: Resource amount involved (if applicable)
        message: Human-readable description
        reason: Reason for denial/recovery action (if applicable)
    """
    sequence: int
    event_type: EventType
    process_id: int
    resource_type: Optional[int] = None
    amount: Optional[int] = None
    message: str = ""
    reason: str = ""

    def __str__(self) -> str:
        """Format event for logging."""
        base = f"#{self.sequence}: P{self.process_id}"

        if self.event_type == EventType.ALLOCATION:
            return f"{base} requests R{self.resource_type}[{self.amount}] - GRANTED ({self.reason})"
        elif self.event_type == EventType.DENIAL:
            return f"{base} requests R{self.resource_type}[{self.amount}] - DENIED ({self.reason})"
        elif self.event_type == EventType.ORDER_VIOLATION:
            return f"{base} requests R{self.resource_type}[{self.amount}] - ORDER VIOLATION ({self.reason})"
        elif self.event_type == EventType.RELEASE:
            return f"{base} releases R{self.resource_type}[{self.amount}]"
        elif self.event_type == EventType.DEADLOCK:
            return f"#{self.sequence}: DEADLOCK DETECTED ({self.message})"
        elif self.event_type == EventType.RECOVERY:
            return f"{base} - RECOVERY ({self.message})"
        elif self.event_type == EventType.ORDER_RESET:
            return f"#{self.sequence}: ORDER RESET ({self.reason})"
        else:
            return f"{base} - {self.event_type.value}: {self.message}"


@dataclass
class EventLog:
    """Collection of engine events."""
    events: list = None

    def __post_init__(self):
        if self.events is None:
            self.events = []

    def record(self, event_type: EventType, process_id: int = -1, **details) -> EngineEvent:
        """Append a new event numbered after the last one."""
        event = EngineEvent(
            sequence=len(self.events),
            event_type=event_type,
            process_id=process_id,
            **details
        )
        self.events.append(event)
        return event

    def get_events_by_type(self, event_type: EventType) -> List[EngineEvent]:
        """Get all events of a specific type."""
        return [e for e in self.events if e.event_type == event_type]

    def get_events_for_process(self, process_id: int) -> List[EngineEvent]:
        """Get all events involving a specific process."""
        return [e for e in self.events if e.process_id == process_id]

    def display(self) -> str:
        """Format all events for display."""
        return "\n".join(str(event) for event in self.events)
