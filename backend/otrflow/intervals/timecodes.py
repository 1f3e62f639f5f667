"""
Conversions between frames, seconds and hh:mm:ss.ffffff timecodes.
"""

import re
from fractions import Fraction
from typing import Union

# hh:mm:ss with optional fraction of up to six digits
TIMECODE_PATTERN = re.compile(r"^(\d+):([0-5]\d):([0-5]\d)(?:\.(\d{0,6}))?$")

Rate = Union[float, Fraction]


def parse_timecode(value: str) -> float:
    """
    Parse "hh:mm:ss[.ffffff]" into seconds.

    Raises:
        ValueError: If value is not a timecode
    """
    match = TIMECODE_PATTERN.match(value.strip())
    if not match:
        raise ValueError(f"'{value}' is not a timecode (hh:mm:ss.ffffff)")
    hours, minutes, seconds, fraction = match.groups()
    micro = int((fraction or "").ljust(6, "0"))
    return int(hours) * 3600 + int(minutes) * 60 + int(seconds) + micro / 1_000_000


def format_timecode(seconds: float) -> str:
    """Format seconds as "hh:mm:ss.ffffff" (the form mkvmerge and ffmpeg accept)."""
    if seconds < 0:
        raise ValueError(f"Cannot format negative time {seconds}")
    total_micro = int(round(seconds * 1_000_000))
    whole, micro = divmod(total_micro, 1_000_000)
    hours, rest = divmod(whole, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}.{micro:06d}"


def parse_frame_rate(value: str) -> Fraction:
    """
    Parse a frame rate as reported by ffprobe ("25/1", "30000/1001", "25").

    Raises:
        ValueError: If value is not a positive rate
    """
    try:
        rate = Fraction(value.strip())
    except (ValueError, ZeroDivisionError):
        raise ValueError(f"'{value}' is not a frame rate")
    if rate <= 0:
        raise ValueError(f"Frame rate must be positive, got {value}")
    return rate


def frames_to_seconds(frame: int, fps: Rate) -> float:
    """Start time of a frame number at the given frame rate."""
    if fps <= 0:
        raise ValueError(f"Frame rate must be positive, got {fps}")
    return float(Fraction(frame) / Fraction(fps))

