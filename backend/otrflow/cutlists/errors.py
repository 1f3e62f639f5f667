"""
Cut list error types.

All errors inherit from CutlistError for easy catching.
NoCutlistFound is an outcome rather than a failure: the asset stays
where it is and is looked at again on the next run.
"""

from typing import Optional


class CutlistError(Exception):
    """Base exception for all cut list failures."""
    pass


class NetworkError(CutlistError):
    """Raised when the cut list provider cannot be reached or does not know a list."""

    def __init__(self, reason: str, url: Optional[str] = None):
        self.reason = reason
        self.url = url
        message = f"Cut list provider request failed: {reason}"
        if url:
            message += f" ({url})"
        super().__init__(message)


class ParseError(CutlistError):
    """Raised when a cut list document or interval string cannot be parsed."""

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Cut list {source} is invalid: {reason}")


class NoCutlistFound(CutlistError):
    """Raised when no acceptable cut list exists for a video (yet)."""

    def __init__(self, file_name: str, min_rating: Optional[float] = None):
        self.file_name = file_name
        self.min_rating = min_rating
        message = f"No cut list available for {file_name}"
        if min_rating is not None:
            message += f" with rating >= {min_rating}"
        super().__init__(message)


class SubmissionError(CutlistError):
    """Raised when a self-authored cut list cannot be submitted to the provider."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Cut list submission failed: {reason}")
