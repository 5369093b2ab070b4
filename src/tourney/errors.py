"""
Exceptions raised by the scheduling helpers.

The pure aggregation functions never raise; only the dispatch and pipeline
helpers that sit between the web layer and the generators do.
"""


class TourneyError(ValueError):
    """Base class for tournament engine errors."""


class UnsupportedFormatError(TourneyError):
    """Raised when a bracket format has no generator."""

    def __init__(self, bracket_type):
        self.bracket_type = bracket_type
        super().__init__(f"This bracket type is not yet implemented: {bracket_type}")


class ScheduleValidationError(TourneyError):
    """Raised when a schedule cannot be built from the supplied inputs."""
