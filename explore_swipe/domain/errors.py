"""
Exceptions raised across the explore boundaries.
"""
from typing import Optional


class ExploreError(Exception):
    """Base error for the explore subsystem."""


class ConfirmationError(ExploreError):
    """A swipe/undo confirmation failed (network or server error)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class UpstreamDataError(ExploreError):
    """Candidate, itinerary or session data could not be loaded."""


class SwipeValidationError(ExploreError):
    """A swipe request is malformed (missing or invalid fields)."""
