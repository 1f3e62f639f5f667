"""
Working directory error types.

Filesystem errors on the working directory itself are fatal to a whole
run; errors moving a single file are recorded against that asset.
"""


class LibraryError(Exception):
    """Base exception for all working directory failures."""
    pass


class FilesystemError(LibraryError):
    """Raised when a directory of the working directory cannot be used."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Working directory problem at {path}: {reason}")
