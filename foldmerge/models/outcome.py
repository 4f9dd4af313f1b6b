"""
Result variant for operations that can be paused.

Every suspendable call (hashing, signature building, indexing, tree merges and
both engines) returns an Outcome instead of raising on cancellation, so a pause
is never mistaken for a generic failure.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class OutcomeStatus(Enum):
    """Status of a suspendable operation."""
    OK = "ok"
    CANCELLED = "cancelled"
    FAILED = "failed"


class StructuralError(OSError):
    """Destination unwritable or source subtree unreadable.

    Aborts the affected folder group, member or file, never the whole run.
    """


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Ok, Cancelled or Failed result of a suspendable operation."""
    status: OutcomeStatus
    value: Optional[T] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, value: Optional[T] = None) -> "Outcome[T]":
        return cls(OutcomeStatus.OK, value=value)

    @classmethod
    def cancelled(cls) -> "Outcome[T]":
        return cls(OutcomeStatus.CANCELLED)

    @classmethod
    def failed(cls, error: str) -> "Outcome[T]":
        return cls(OutcomeStatus.FAILED, error=error)

    @property
    def is_ok(self) -> bool:
        return self.status is OutcomeStatus.OK

    @property
    def is_cancelled(self) -> bool:
        return self.status is OutcomeStatus.CANCELLED

    @property
    def is_failed(self) -> bool:
        return self.status is OutcomeStatus.FAILED
