"""
Typed results returned by the allocation engine.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from models.errors import InsufficientResources, InvalidOperation, OrderViolation


class RequestOutcome(Enum):
    GRANTED = "GRANTED"
    DENIED = "DENIED"
    ORDER_VIOLATION = "ORDER VIOLATION"


class ReleaseOutcome(Enum):
    RELEASED = "RELEASED"
    INVALID_OPERATION = "INVALID_OPERATION"


@dataclass
class RequestResult:
    """
    Outcome of a resource request.

    Attributes:
        outcome: GRANTED, DENIED or ORDER_VIOLATION
        process: Requesting process
        resource: Requested resource type
        units: Units requested
        reason: Human-readable reason for the decision
        violation: Held/requested pair for ORDER_VIOLATION
        shortfall: InsufficientResources details when denied for lack of units
    """
    outcome: RequestOutcome
    process: int
    resource: int
    units: int
    reason: str
    violation: Optional[OrderViolation] = None
    shortfall: Optional[InsufficientResources] = None

    @property
    def granted(self) -> bool:
        return self.outcome == RequestOutcome.GRANTED

    def raise_for_outcome(self) -> None:
        """Raise the matching exception unless the request was granted."""
        if self.violation is not None:
            raise self.violation
        if self.shortfall is not None:
            raise self.shortfall
        if not self.granted:
            raise InvalidOperation(self.reason)


@dataclass
class ReleaseResult:
    """Outcome of a resource release."""
    outcome: ReleaseOutcome
    process: int
    resource: int
    units: int
    reason: str = ""

    @property
    def released(self) -> bool:
        return self.outcome == ReleaseOutcome.RELEASED
