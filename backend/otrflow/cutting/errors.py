"""
Cutting-specific error types.

All errors inherit from CuttingError for easy catching.
"""

from typing import Optional


class CuttingError(Exception):
    """Base exception for all cutting failures."""
    pass


class CutterNotAvailableError(CuttingError):
    """Raised when the configured cutter or one of its binaries is not installed."""

    def __init__(self, cutter: str, binary: Optional[str] = None):
        self.cutter = cutter
        self.binary = binary
        if binary:
            message = f"Cutter '{cutter}' is not available: '{binary}' not found in PATH"
        else:
            message = f"Unknown cutter '{cutter}'"
        super().__init__(message)


class ToolInvocationError(CuttingError):
    """Raised when an external tool cannot be started or exits with an error."""

    def __init__(self, tool: str, reason: str, returncode: Optional[int] = None):
        self.tool = tool
        self.reason = reason
        self.returncode = returncode
        message = f"{tool} failed"
        if returncode is not None:
            message += f" with exit code {returncode}"
        super().__init__(f"{message}: {reason}")


class ProbeError(CuttingError):
    """Raised when the probe output of a video cannot be interpreted."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot probe {path}: {reason}")
