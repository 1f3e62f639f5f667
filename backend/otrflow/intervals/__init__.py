"""
Interval algebra and time conversions used to build keep timelines.
"""

from .algebra import Interval, normalize, complement, intersect, total_length
from .timecodes import (
    parse_timecode,
    format_timecode,
    parse_frame_rate,
    frames_to_seconds,
)

__all__ = [
    "Interval",
    "normalize",
    "complement",
    "intersect",
    "total_length",
    "parse_timecode",
    "format_timecode",
    "parse_frame_rate",
    "frames_to_seconds",
]
