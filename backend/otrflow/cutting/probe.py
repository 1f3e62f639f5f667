"""
Video probing with ffprobe.

Cutting needs three facts about a decoded video: its duration, the frame
rate of the primary video stream (to turn frame based cut lists into
time) and the keyframe timestamps (to know where stream copy is possible).
"""

import json
from dataclasses import dataclass, field
from fractions import Fraction
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..intervals import parse_frame_rate
from .errors import ProbeError, ToolInvocationError
from .tools import find_tool, run_tool


@dataclass(frozen=True)
class StreamInfo:
    index: int
    codec_type: str
    codec_name: Optional[str]


@dataclass(frozen=True)
class VideoInfo:
    """Duration (seconds), primary frame rate and streams of a video."""

    duration: float
    fps: Optional[Fraction]
    streams: List[StreamInfo] = field(default_factory=list)


def _run_ffprobe(ffprobe: str, args: List[str], path: Path) -> Dict[str, Any]:
    result = run_tool([ffprobe, "-v", "error", "-print_format", "json", *args, str(path)])
    try:
        return json.loads(result.stdout or "{}")
    except json.JSONDecodeError as e:
        raise ProbeError(str(path), f"ffprobe output is not JSON: {e}")


def parse_video_info(probe_data: Dict[str, Any], path: str = "video") -> VideoInfo:
    """
    Interpret `ffprobe -show_format -show_streams` output.

    The duration is taken from the container, falling back to the primary
    video stream.

    Raises:
        ProbeError: No duration can be determined
    """
    streams = [
        StreamInfo(
            index=int(s.get("index", i)),
            codec_type=s.get("codec_type", "unknown"),
            codec_name=s.get("codec_name"),
        )
        for i, s in enumerate(probe_data.get("streams", []))
    ]
    video = next(
        (s for s in probe_data.get("streams", []) if s.get("codec_type") == "video"), None
    )

    fps: Optional[Fraction] = None
    if video is not None:
        for key in ("r_frame_rate", "avg_frame_rate"):
            try:
                fps = parse_frame_rate(video.get(key, ""))
                break
            except ValueError:
                continue

    raw_duration = probe_data.get("format", {}).get("duration")
    if raw_duration is None and video is not None:
        raw_duration = video.get("duration")
    try:
        duration = float(raw_duration)
    except (TypeError, ValueError):
        raise ProbeError(path, "duration is unknown")

    return VideoInfo(duration=duration, fps=fps, streams=streams)


def probe_video(path: Path, ffprobe: str = "ffprobe") -> VideoInfo:
    """
    Probe duration, frame rate and streams of a video.

    Raises:
        ToolInvocationError: ffprobe failed
        ProbeError: Output cannot be interpreted
    """
    data = _run_ffprobe(ffprobe, ["-show_format", "-show_streams"], path)
    return parse_video_info(data, str(path))


def probe_keyframes(path: Path, ffprobe: str = "ffprobe") -> List[float]:
    """
    Timestamps (seconds, ascending) of the keyframes of the primary video stream.

    Raises:
        ToolInvocationError: ffprobe failed
        ProbeError: Output cannot be interpreted
    """
    data = _run_ffprobe(
        ffprobe,
        [
            "-select_streams", "v:0",
            "-skip_frame", "nokey",
            "-show_entries", "frame=pts_time,best_effort_timestamp_time",
        ],
        path,
    )
    keyframes = set()
    for frame in data.get("frames", []):
        raw = frame.get("pts_time", frame.get("best_effort_timestamp_time"))
        if raw in (None, "N/A"):
            continue
        try:
            keyframes.add(float(raw))
        except ValueError:
            raise ProbeError(str(path), f"keyframe timestamp '{raw}' is not a number")
    return sorted(keyframes)


class Prober:
    """ffprobe bound to a binary path, found lazily."""

    def __init__(self, ffprobe_path: Optional[str] = None):
        self._ffprobe_path = ffprobe_path

    def _find_ffprobe(self) -> Optional[str]:
        if not self._ffprobe_path:
            self._ffprobe_path = find_tool("ffprobe")
        return self._ffprobe_path

    def is_available(self) -> bool:
        return self._find_ffprobe() is not None

    def _require(self) -> str:
        ffprobe = self._find_ffprobe()
        if ffprobe is None:
            raise ToolInvocationError("ffprobe", "not found in PATH")
        return ffprobe

    def video_info(self, path: Path) -> VideoInfo:
        return probe_video(path, self._require())

    def keyframes(self, path: Path) -> List[float]:
        return probe_keyframes(path, self._require())
