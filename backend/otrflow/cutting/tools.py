"""
Locating and running external tools.
"""

import logging
import os
import shutil
import subprocess
from typing import List, Optional, Sequence

from .errors import ToolInvocationError

logger = logging.getLogger(__name__)

# Checked when a tool is not in PATH
COMMON_PATHS = ["/usr/local/bin", "/usr/bin", "/opt/homebrew/bin"]

# Lines of stderr kept in error messages
STDERR_TAIL_LINES = 5


def find_tool(name: str) -> Optional[str]:
    """Find a binary in PATH or in the common install locations."""
    path = shutil.which(name)
    if path:
        return path
    for directory in COMMON_PATHS:
        candidate = os.path.join(directory, name)
        if os.path.isfile(candidate) and os.access(candidate, os.X_OK):
            return candidate
    return None


def _tail(text: str) -> str:
    lines = [line for line in text.strip().splitlines() if line.strip()]
    return "\n".join(lines[-STDERR_TAIL_LINES:]) or "no error output"


def run_tool(cmd: Sequence[str], tool: Optional[str] = None) -> subprocess.CompletedProcess:
    """
    Run an external tool to completion and capture its output.

    Raises:
        ToolInvocationError: Tool cannot be started or exits non-zero
    """
    tool = tool or os.path.basename(cmd[0])
    args: List[str] = [str(arg) for arg in cmd]
    logger.debug(f"[Tools] Running: {' '.join(args)}")
    try:
        result = subprocess.run(args, capture_output=True, text=True)
    except OSError as e:
        raise ToolInvocationError(tool, f"cannot be started: {e}")

    if result.returncode != 0:
        raise ToolInvocationError(
            tool, _tail(result.stderr or result.stdout), returncode=result.returncode
        )
    return result
