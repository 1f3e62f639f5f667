"""
Cut list documents and interval strings.

Document format (INI, as served and accepted by cutlist.at):

    [General]
    Application=otrflow
    Version=0.1.0
    IntendedCutApplicationName=ffmpeg
    NoOfCuts=2
    ApplyToFile=<video file name>
    OriginalFileSizeBytes=<size>

    [Cut0]
    Start=12.4             ; seconds
    Duration=1500.0
    StartFrame=310         ; frames
    DurationFrames=37500

    [Meta]
    CutlistId=123

    [Info]
    RatingByAuthor=4

Every [CutN] section describes a segment to keep. A cut list carries time
and/or frame bounds; the unit used by [Cut0] must be present in every
other cut as well.

Interval strings are the command line form of a cut list:

    frames:[100,2500][3200,9000]
    time:[0:00:04.0,0:10:00.5][0:12:00,0:30:00]
"""

import configparser
import io
import logging
import re
from typing import List, Optional, Sequence

from pydantic import ValidationError

from .. import __version__
from ..intervals import Interval, format_timecode, parse_timecode
from .errors import ParseError
from .models import CutItem, CutList, IntervalKind, IntervalMeaning

logger = logging.getLogger(__name__)

SECTION_GENERAL = "General"
SECTION_INFO = "Info"
SECTION_META = "Meta"
SECTION_CUT = "Cut"

KEY_APPLICATION = "Application"
KEY_VERSION = "Version"
KEY_INTENDED_CUT_APP = "IntendedCutApplicationName"
KEY_APPLY_TO_FILE = "ApplyToFile"
KEY_ORIG_FILE_SIZE = "OriginalFileSizeBytes"
KEY_NUM_OF_CUTS = "NoOfCuts"
KEY_CUTLIST_ID = "CutlistId"
KEY_RATING_BY_AUTHOR = "RatingByAuthor"
KEY_TIME_START = "Start"
KEY_TIME_DURATION = "Duration"
KEY_FRAMES_START = "StartFrame"
KEY_FRAMES_DURATION = "DurationFrames"

INTERVALS_PATTERN = re.compile(r"^(frames|time):((\[[^,\[\]]+,[^,\[\]]+\])+)$")
_INTERVAL_PATTERN = re.compile(r"\[([^,\[\]]+),([^,\[\]]+)\]")


def _new_parser() -> configparser.ConfigParser:
    parser = configparser.ConfigParser(interpolation=None, strict=False)
    parser.optionxform = str  # keys are case sensitive
    return parser


def _number(value: str, what: str, source: str) -> float:
    try:
        return float(value.strip())
    except ValueError:
        raise ParseError(source, f"{what} '{value}' is not a number")


def _read_pair(section: configparser.SectionProxy, kind: IntervalKind, source: str):
    """Return (start, duration) of one unit of a cut section, or None if absent."""
    start_key, duration_key = (
        (KEY_FRAMES_START, KEY_FRAMES_DURATION)
        if kind == IntervalKind.FRAMES
        else (KEY_TIME_START, KEY_TIME_DURATION)
    )
    if start_key not in section or duration_key not in section:
        return None
    where = f"[{section.name}]"
    return (
        _number(section[start_key], f"{where} {start_key}", source),
        _number(section[duration_key], f"{where} {duration_key}", source),
    )


def parse_cutlist_document(text: str, source: str = "document") -> CutList:
    """
    Parse a cut list document.

    Cuts with zero duration are skipped.

    Args:
        text: INI document
        source: Origin of the document, used in messages and on the result

    Returns:
        CutList of KEEP intervals

    Raises:
        ParseError: If the document is not a valid cut list
    """
    parser = _new_parser()
    try:
        parser.read_string(text.lstrip("\ufeff"))
    except configparser.Error as e:
        raise ParseError(source, f"not an INI document: {e}")

    cutlist_id: Optional[int] = None
    if parser.has_option(SECTION_META, KEY_CUTLIST_ID):
        raw_id = parser.get(SECTION_META, KEY_CUTLIST_ID).strip()
        if not raw_id.isdigit():
            raise ParseError(source, f"cut list id '{raw_id}' is not a number")
        cutlist_id = int(raw_id)

    if not parser.has_option(SECTION_GENERAL, KEY_NUM_OF_CUTS):
        raise ParseError(source, f"[{SECTION_GENERAL}] {KEY_NUM_OF_CUTS} is missing")
    try:
        num_cuts = int(parser.get(SECTION_GENERAL, KEY_NUM_OF_CUTS).strip())
    except ValueError:
        raise ParseError(source, f"{KEY_NUM_OF_CUTS} is not a number")

    kinds: List[IntervalKind] = []
    items: List[CutItem] = []
    for n in range(num_cuts):
        name = f"{SECTION_CUT}{n}"
        if not parser.has_section(name):
            raise ParseError(source, f"section [{name}] is missing")
        section = parser[name]

        pairs = {kind: _read_pair(section, kind, source) for kind in IntervalKind}
        if n == 0:
            kinds = [kind for kind, pair in pairs.items() if pair is not None]
            if not kinds:
                raise ParseError(source, f"[{name}] has neither time nor frame bounds")
        for kind in kinds:
            if pairs[kind] is None:
                raise ParseError(
                    source, f"[{name}] lacks {kind.value} bounds though the cut list uses them"
                )

        bounds = {}
        time_pair = pairs[IntervalKind.TIME] if IntervalKind.TIME in kinds else None
        frame_pair = pairs[IntervalKind.FRAMES] if IntervalKind.FRAMES in kinds else None
        if time_pair is not None and time_pair[1] > 0:
            bounds.update(start_time=time_pair[0], end_time=time_pair[0] + time_pair[1])
        if frame_pair is not None and frame_pair[1] > 0:
            start = int(round(frame_pair[0]))
            bounds.update(start_frame=start, end_frame=start + int(round(frame_pair[1])))
        if not bounds:
            logger.debug(f"[Cutlists] {source}: skipping zero-length [{name}]")
            continue

        try:
            items.append(CutItem(**bounds))
        except ValidationError as e:
            raise ParseError(source, f"[{name}]: {e.errors()[0]['msg']}")

    if not items:
        raise ParseError(source, "cut list does not contain intervals")

    return CutList(id=cutlist_id, items=items, meaning=IntervalMeaning.KEEP, source=source)


def serialize_cutlist_document(
    cutlist: CutList,
    apply_to_file: str,
    file_size: int,
    rating: int,
    cut_application: str = "ffmpeg",
) -> str:
    """
    Write a cut list as document.

    Inverse of parse_cutlist_document for KEEP lists.

    Raises:
        ValueError: If cutlist describes DELETE intervals or is empty
    """
    if cutlist.meaning != IntervalMeaning.KEEP:
        raise ValueError("Only cut lists of segments to keep can be written as document")
    if not cutlist.items:
        raise ValueError("Cannot write an empty cut list")

    parser = _new_parser()
    parser[SECTION_GENERAL] = {
        KEY_APPLICATION: "otrflow",
        KEY_VERSION: __version__,
        KEY_INTENDED_CUT_APP: cut_application,
        KEY_NUM_OF_CUTS: str(len(cutlist.items)),
        KEY_APPLY_TO_FILE: apply_to_file,
        KEY_ORIG_FILE_SIZE: str(file_size),
    }
    for n, item in enumerate(cutlist.items):
        section = {}
        if item.has_time:
            section[KEY_TIME_START] = repr(item.start_time)
            section[KEY_TIME_DURATION] = repr(item.end_time - item.start_time)
        if item.has_frames:
            section[KEY_FRAMES_START] = str(item.start_frame)
            section[KEY_FRAMES_DURATION] = str(item.end_frame - item.start_frame)
        parser[f"{SECTION_CUT}{n}"] = section
    if cutlist.id is not None:
        parser[SECTION_META] = {KEY_CUTLIST_ID: str(cutlist.id)}
    parser[SECTION_INFO] = {KEY_RATING_BY_AUTHOR: str(rating)}

    out = io.StringIO()
    parser.write(out, space_around_delimiters=False)
    return out.getvalue()


def parse_intervals(intervals: str) -> CutList:
    """
    Parse an interval string ("frames:[a,b]..." or "time:[hh:mm:ss,hh:mm:ss]...").

    Returns:
        CutList of KEEP intervals in the given unit

    Raises:
        ParseError: If the string is malformed or an interval is inverted
    """
    text = intervals.strip()
    match = INTERVALS_PATTERN.match(text)
    if not match:
        raise ParseError(f"'{intervals}'", "not an interval string")
    kind = IntervalKind(match.group(1))

    items: List[CutItem] = []
    for raw_start, raw_end in _INTERVAL_PATTERN.findall(match.group(2)):
        try:
            if kind == IntervalKind.FRAMES:
                item = CutItem(start_frame=int(raw_start.strip()), end_frame=int(raw_end.strip()))
            else:
                item = CutItem(
                    start_time=parse_timecode(raw_start), end_time=parse_timecode(raw_end)
                )
        except ValidationError as e:
            raise ParseError(f"'{intervals}'", e.errors()[0]["msg"])
        except ValueError as e:
            raise ParseError(f"'{intervals}'", str(e))
        items.append(item)

    for previous, current in zip(items, items[1:]):
        if kind == IntervalKind.FRAMES and current.start_frame < previous.end_frame:
            raise ParseError(f"'{intervals}'", "intervals overlap")
        if kind == IntervalKind.TIME and current.start_time < previous.end_time:
            raise ParseError(f"'{intervals}'", "intervals overlap")

    return CutList(items=items, meaning=IntervalMeaning.KEEP, source="intervals")


def format_intervals(intervals: Sequence[Interval]) -> str:
    """Time-based interval string for keep intervals in seconds."""
    return "time:" + "".join(
        f"[{format_timecode(start)},{format_timecode(end)}]" for start, end in intervals
    )
