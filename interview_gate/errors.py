"""
Exception types for the interview progression engine.
"""


class InterviewGateError(Exception):
    """Base class for all engine errors."""


class ConfigurationError(InterviewGateError, ValueError):
    """A required configuration value is missing or invalid.

    Raised at the call site that would otherwise fall back to an unbounded or
    incorrect default (no candidate name, no timebox, bad limits).
    """


class InvalidInputError(InterviewGateError, ValueError):
    """Scorer input is NaN or undefined."""

    def __init__(self, message: str = "Invalid input to trait scorer"):
        super().__init__(message)
