"""
Error taxonomy for coachtrack.

Matching and scoring functions never raise; absence of a match is a normal
result. These exceptions are raised by operations that touch the store:

- ValidationError: request rejected before any work was attempted
- NotFoundError: a merge target no longer exists (usually already merged)
- ConstraintError: the store refused a write on an integrity constraint
- StoreError: any other store read/write failure

Multi-step operations set ``step`` so the operator can tell how far a
failed merge got before deciding whether manual cleanup is needed.
"""

from typing import Optional


class CoachTrackError(Exception):
    """Base class for all coachtrack errors."""

    def __init__(self, message: str, step: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.step = step

    def __str__(self) -> str:
        if self.step:
            return f"{self.message} (step: {self.step})"
        return self.message


class ValidationError(CoachTrackError, ValueError):
    """Invalid input, e.g. a blank first or last name."""


class NotFoundError(CoachTrackError, LookupError):
    """Record is missing. For merges this means the pair was already resolved."""


class ConstraintError(CoachTrackError):
    """A write violated a store constraint (e.g. unique game/coach attendance)."""


class StoreError(CoachTrackError):
    """Underlying store failure, message surfaced as-is."""
