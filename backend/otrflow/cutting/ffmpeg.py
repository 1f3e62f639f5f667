"""
Frame-accurate cutting with ffmpeg.

Every keep segment is split at its first and last keyframe:

    start      first keyframe             last keyframe       end
      |  re-encode  |        stream copy        |  re-encode   |

Only the partial groups of pictures at the boundaries are re-encoded,
with the codecs of the source streams. Segments without a complete group
of pictures are re-encoded as a whole. The parts are joined with the
concat demuxer. Parts live in a temporary directory that is removed when
the cut finishes, successfully or not.
"""

import logging
import tempfile
from pathlib import Path
from typing import List, NamedTuple, Optional, Sequence

from ..intervals import Interval
from .errors import CutterNotAvailableError
from .probe import Prober, VideoInfo
from .tools import find_tool, run_tool

logger = logging.getLogger(__name__)

CUTTING_DIR_PREFIX = "cutting-"
CONCAT_LIST_NAME = "parts.txt"


class Segment(NamedTuple):
    """Part of a keep segment and whether it must be re-encoded."""

    start: float
    end: float
    reencode: bool


def plan_segments(interval: Interval, keyframes: Sequence[float]) -> List[Segment]:
    """
    Split a keep segment into re-encoded and stream-copied parts.

    Args:
        interval: Keep segment (seconds)
        keyframes: Ascending keyframe timestamps of the video

    Returns:
        Parts covering the segment without gaps, in order
    """
    start, end = interval
    if not keyframes:
        # no keyframe information: keyframe-accurate copy is the best we can do
        return [Segment(start, end, False)]

    inside = [k for k in keyframes if start <= k <= end]
    if len(inside) < 2:
        return [Segment(start, end, True)]

    first, last = inside[0], inside[-1]
    segments: List[Segment] = []
    if start < first:
        segments.append(Segment(start, first, True))
    segments.append(Segment(first, last, False))
    if last < end:
        segments.append(Segment(last, end, True))
    return segments


def _concat_line(path: Path) -> str:
    escaped = str(path).replace("'", "'\\''")
    return f"file '{escaped}'\n"


class FFmpegCutter:
    """
    Cutter based on ffmpeg and ffprobe.

    Usage:
        cutter = FFmpegCutter()
        cutter.cut(Path("in.avi"), [Interval(10.0, 1500.0)], Path("out.avi"))
    """

    name = "ffmpeg"

    def __init__(
        self,
        ffmpeg_path: Optional[str] = None,
        prober: Optional[Prober] = None,
        temp_dir: Optional[Path] = None,
    ):
        self._ffmpeg_path = ffmpeg_path
        self.prober = prober or Prober()
        self.temp_dir = temp_dir

    def _find_ffmpeg(self) -> Optional[str]:
        if not self._ffmpeg_path:
            self._ffmpeg_path = find_tool("ffmpeg")
        return self._ffmpeg_path

    def is_available(self) -> bool:
        return self._find_ffmpeg() is not None and self.prober.is_available()

    def _require_binaries(self) -> str:
        ffmpeg = self._find_ffmpeg()
        if ffmpeg is None:
            raise CutterNotAvailableError(self.name, "ffmpeg")
        if not self.prober.is_available():
            raise CutterNotAvailableError(self.name, "ffprobe")
        return ffmpeg

    def cut(self, source: Path, keep: Sequence[Interval], target: Path) -> None:
        """
        Cut source into target, keeping the given segments.

        Raises:
            CutterNotAvailableError: ffmpeg or ffprobe missing
            ToolInvocationError: An ffmpeg or ffprobe call failed
        """
        ffmpeg = self._require_binaries()
        source = Path(source)
        info = self.prober.video_info(source)
        keyframes = self.prober.keyframes(source)
        logger.debug(f"[FFmpeg] {source.name}: {len(keyframes)} keyframes")

        with tempfile.TemporaryDirectory(
            prefix=f"{CUTTING_DIR_PREFIX}{source.stem}-", dir=self.temp_dir
        ) as work_dir:
            work = Path(work_dir)
            parts: List[Path] = []
            for n, interval in enumerate(keep, start=1):
                for m, segment in enumerate(plan_segments(interval, keyframes), start=1):
                    part = work / f"part-{n:03d}-{m}{source.suffix}"
                    self._extract(ffmpeg, source, segment, part, info)
                    parts.append(part)

            concat_list = work / CONCAT_LIST_NAME
            concat_list.write_text("".join(_concat_line(p) for p in parts), encoding="utf-8")
            run_tool(
                [
                    ffmpeg, "-v", "error", "-y",
                    "-f", "concat", "-safe", "0", "-i", str(concat_list),
                    "-map", "0", "-c", "copy", str(target),
                ],
                "ffmpeg",
            )

        logger.info(f"[FFmpeg] Cut {source.name} into {len(parts)} part(s)")

    def _extract(
        self,
        ffmpeg: str,
        source: Path,
        segment: Segment,
        part: Path,
        info: VideoInfo,
    ) -> None:
        cmd = [
            ffmpeg, "-v", "error", "-y",
            "-ss", f"{segment.start:.6f}",
            "-t", f"{segment.end - segment.start:.6f}",
            "-i", str(source),
            "-map", "0",
        ]
        if segment.reencode:
            for stream in info.streams:
                cmd += [f"-c:{stream.index}", stream.codec_name or "copy"]
        else:
            cmd += ["-c", "copy"]
        cmd.append(str(part))

        action = "Re-encoding" if segment.reencode else "Copying"
        logger.debug(f"[FFmpeg] {action} {segment.start:.3f}-{segment.end:.3f} of {source.name}")
        run_tool(cmd, "ffmpeg")
