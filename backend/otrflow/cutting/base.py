"""
Cutter capability.

A cutter turns a decoded video plus its keep timeline into the cut video.
Implementations are plain classes with the same three members; the one to
use is picked by name from the registry (see registry.py).
"""

from pathlib import Path
from typing import Protocol, Sequence

from ..intervals import Interval


class Cutter(Protocol):
    name: str

    def is_available(self) -> bool:
        """True if every binary the cutter needs is installed."""
        ...

    def cut(self, source: Path, keep: Sequence[Interval], target: Path) -> None:
        """
        Write the keep segments of source, in order, to target.

        Raises:
            ToolInvocationError: The external tool failed
        """
        ...
