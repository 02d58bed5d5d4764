"""Validation errors raised by the face engine."""

from __future__ import annotations


class FaceDataError(ValueError):
    """Raised when submitted or stored face data cannot be used.

    Always caller-recoverable: the message says what was wrong and the caller
    may resubmit corrected input (HTTP callers map it to 400).
    """


class EmptyInputError(FaceDataError):
    """Raised when a centroid is requested over no vectors."""
