"""
Keyframe-accurate cutting with mkvmerge.

Fast (no re-encoding) but segment boundaries snap to keyframes.
"""

import logging
from pathlib import Path
from typing import Optional, Sequence

from ..intervals import Interval, format_timecode
from .errors import CutterNotAvailableError
from .tools import find_tool, run_tool

logger = logging.getLogger(__name__)


def split_argument(keep: Sequence[Interval]) -> str:
    """
    mkvmerge --split value that appends the keep segments.

    Example:
        split_argument([Interval(10, 20), Interval(30, 40.5)])
        -> "parts:00:00:10.000000-00:00:20.000000,+00:00:30.000000-00:00:40.500000"
    """
    if not keep:
        raise ValueError("Nothing to keep")
    return "parts:" + ",+".join(
        f"{format_timecode(start)}-{format_timecode(end)}" for start, end in keep
    )


class MkvmergeCutter:
    name = "mkvmerge"

    def __init__(self, mkvmerge_path: Optional[str] = None):
        self._mkvmerge_path = mkvmerge_path

    def _find_mkvmerge(self) -> Optional[str]:
        if not self._mkvmerge_path:
            self._mkvmerge_path = find_tool("mkvmerge")
        return self._mkvmerge_path

    def is_available(self) -> bool:
        return self._find_mkvmerge() is not None

    def cut(self, source: Path, keep: Sequence[Interval], target: Path) -> None:
        mkvmerge = self._find_mkvmerge()
        if mkvmerge is None:
            raise CutterNotAvailableError(self.name, "mkvmerge")

        run_tool(
            [mkvmerge, "-o", str(target), "--split", split_argument(keep), str(source)],
            "mkvmerge",
        )
        logger.info(f"[Mkvmerge] Cut {Path(source).name} into {len(keep)} part(s)")
