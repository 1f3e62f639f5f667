"""
Cut list selection and keep timeline construction.

Selection rule:
- candidates rated below the minimum rating are dropped (inclusive
  threshold, no threshold accepts all)
- the highest rating wins; equal ratings are ordered by ascending id
- the same order is used to fall back to the next candidate when the
  chosen one cannot be downloaded, parsed or cut

Frame/time reconciliation (items carrying both units): frame bounds are
converted to seconds with the video's frame rate and intersected with
the time bounds, the tighter interval wins. If both disagree so much
that they do not overlap, the frame bounds are used.
"""

import logging
from fractions import Fraction
from pathlib import Path
from typing import Iterable, List, Optional, Protocol, Sequence, Union

from ..intervals import Interval, complement, frames_to_seconds, intersect, normalize
from .document import parse_cutlist_document, parse_intervals, serialize_cutlist_document
from .errors import CutlistError, NoCutlistFound, ParseError
from .models import (
    CutCandidate,
    CutItem,
    CutList,
    CutlistRequest,
    CutlistSource,
    IntervalMeaning,
)

logger = logging.getLogger(__name__)


class CandidateSource(Protocol):
    """Provider side of the selector (query + fetch)."""

    def query(self, file_name: str) -> List[CutCandidate]:
        ...

    def fetch(self, cutlist_id: int) -> str:
        ...


def query_candidates(provider: CandidateSource, file_name: str) -> List[CutCandidate]:
    """All candidates the provider offers for a video (may be empty)."""
    return provider.query(file_name)


def rank_candidates(
    candidates: Iterable[CutCandidate],
    min_rating: Optional[float] = None,
) -> List[CutCandidate]:
    """Acceptable candidates, best first (rating descending, id ascending)."""
    accepted = [c for c in candidates if min_rating is None or c.rating >= min_rating]
    return sorted(accepted, key=lambda c: (-c.rating, c.id))


def select_best(
    candidates: Iterable[CutCandidate],
    min_rating: Optional[float] = None,
    file_name: str = "video",
) -> CutCandidate:
    """
    Pick the best acceptable candidate.

    Raises:
        NoCutlistFound: If no candidate meets min_rating
    """
    ranked = rank_candidates(candidates, min_rating)
    if not ranked:
        raise NoCutlistFound(file_name, min_rating)
    return ranked[0]


def fetch_and_parse(provider: CandidateSource, candidate: CutCandidate) -> CutList:
    """
    Download and parse the document of a candidate.

    Raises:
        NetworkError: Download failed
        ParseError: Document is invalid
    """
    source = f"{candidate.source}:{candidate.id}"
    cutlist = parse_cutlist_document(provider.fetch(candidate.id), source=source)
    if cutlist.id is None:
        cutlist = cutlist.model_copy(update={"id": candidate.id})
    return cutlist


def load_cutlist(request: CutlistRequest, provider: CandidateSource) -> CutList:
    """
    Load the single cut list named by an explicit request (file, id or intervals).

    Raises:
        CutlistError: Cut list cannot be loaded
        ValueError: If request is an AUTO request
    """
    if request.source == CutlistSource.FILE:
        path = Path(request.value)
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ParseError(str(path), f"cannot be read: {e}")
        return parse_cutlist_document(text, source=str(path))
    if request.source == CutlistSource.ID:
        return fetch_and_parse(provider, CutCandidate(id=int(request.value)))
    if request.source == CutlistSource.DIRECT:
        return parse_intervals(request.value)
    raise ValueError("Automatic cut list selection has no single cut list to load")


def reconcile(item: CutItem, fps: Optional[Union[float, Fraction]]) -> Interval:
    """
    Time interval of a cut item.

    Raises:
        CutlistError: If the item only has frame bounds and fps is unknown
    """
    time_interval = Interval(item.start_time, item.end_time) if item.has_time else None
    if not item.has_frames:
        return time_interval
    if not fps:
        if time_interval is not None:
            return time_interval
        raise CutlistError("frame based cut list needs the frame rate of the video")

    frame_interval = Interval(
        frames_to_seconds(item.start_frame, fps),
        frames_to_seconds(item.end_frame, fps),
    )
    if time_interval is None:
        return frame_interval

    tighter = intersect(time_interval, frame_interval)
    if tighter.is_empty:
        logger.debug(
            f"[Cutlists] Time {tuple(time_interval)} and frames {tuple(frame_interval)} "
            f"disagree, using frames"
        )
        return frame_interval
    return tighter


def build_keep_timeline(
    cutlist: CutList,
    total_duration: float,
    fps: Optional[Union[float, Fraction]] = None,
) -> List[Interval]:
    """
    Turn a cut list into the sorted, disjoint segments to keep.

    DELETE lists are complemented against [0, total_duration); KEEP lists
    are normalized and clipped to it.

    Raises:
        CutlistError: Frame rate missing for a frame based list, or nothing to keep
    """
    intervals = [reconcile(item, fps) for item in cutlist.items]
    if cutlist.meaning == IntervalMeaning.DELETE:
        keep = complement(intervals, total_duration)
    else:
        keep = [
            Interval(max(start, 0.0), min(end, float(total_duration)))
            for start, end in normalize(intervals)
        ]
        keep = [interval for interval in keep if not interval.is_empty]

    if not keep:
        raise CutlistError(f"{cutlist.describe()} leaves nothing to keep")
    return keep


def build_cutlist_document(
    intervals: Sequence[Interval],
    rating: int,
    apply_to_file: str,
    file_size: int,
    cut_application: str = "ffmpeg",
) -> str:
    """Document for submitting keep intervals (seconds) to the provider."""
    cutlist = CutList(
        items=[CutItem(start_time=start, end_time=end) for start, end in normalize(intervals)],
        meaning=IntervalMeaning.KEEP,
        source="intervals",
    )
    return serialize_cutlist_document(cutlist, apply_to_file, file_size, rating, cut_application)
