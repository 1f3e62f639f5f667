"""
Cutting backends: turn a decoded video and its keep timeline into the cut video.
"""

from .errors import CuttingError, CutterNotAvailableError, ToolInvocationError, ProbeError
from .base import Cutter
from .probe import Prober, VideoInfo, StreamInfo, probe_video, probe_keyframes, parse_video_info
from .ffmpeg import FFmpegCutter, Segment, plan_segments
from .mkvmerge import MkvmergeCutter, split_argument
from .registry import DEFAULT_CUTTER, available_cutters, create_cutter
from .tools import find_tool, run_tool

__all__ = [
    "CuttingError",
    "CutterNotAvailableError",
    "ToolInvocationError",
    "ProbeError",
    "Cutter",
    "Prober",
    "VideoInfo",
    "StreamInfo",
    "probe_video",
    "probe_keyframes",
    "parse_video_info",
    "FFmpegCutter",
    "Segment",
    "plan_segments",
    "MkvmergeCutter",
    "split_argument",
    "DEFAULT_CUTTER",
    "available_cutters",
    "create_cutter",
    "find_tool",
    "run_tool",
]
