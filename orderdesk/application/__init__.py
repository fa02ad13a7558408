"""Application services."""

from .assignments import AssignmentManager, FailureKind, TransitionOutcome, utc_now

__all__ = [
    "AssignmentManager",
    "FailureKind",
    "TransitionOutcome",
    "utc_now",
]
