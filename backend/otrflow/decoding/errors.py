"""
Decoding-specific error types.

All errors inherit from DecodingError for easy catching.
Every error is scoped to a single container: the pipeline records it
against the asset and continues with the next one.
"""

from typing import Optional


class DecodingError(Exception):
    """Base exception for all decoding failures."""
    pass


class FormatError(DecodingError):
    """Raised when a file is not a valid container (bad magic, truncated header or payload)."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"{path} is not a valid encrypted container: {reason}")


class ChecksumMismatchPre(DecodingError):
    """Raised when the encrypted payload does not match the checksum declared in its header."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(
            f"Checksum of encrypted payload of {path} is not correct: "
            f"download is corrupt or incomplete"
        )


class ChecksumMismatchPost(DecodingError):
    """Raised when the decoded payload does not match the reference checksum."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(
            f"Checksum of decoded payload of {path} is not correct: "
            f"wrong decoding key or corrupted decode"
        )


class CredentialsMissing(DecodingError):
    """Raised when user name or password for the recording service are not configured."""

    def __init__(self, missing: str):
        self.missing = missing
        super().__init__(f"Cannot decode videos: {missing} is not configured")


class KeyRequestError(DecodingError):
    """Raised when the key service does not hand out a decoding key."""

    def __init__(self, reason: str, service_message: Optional[str] = None):
        self.reason = reason
        self.service_message = service_message
        message = f"Could not retrieve decoding key: {reason}"
        if service_message:
            message += f" ('{service_message}')"
        super().__init__(message)
