"""
Interval algebra on time ranges.

Pure functions, no I/O. Boundaries are seconds (float) throughout; frame
based bounds are converted with timecodes.frames_to_seconds before they
reach this module.

Intervals are half-open: (start, end) covers start <= t < end.
"""

from typing import Iterable, List, NamedTuple, Tuple, Union


class Interval(NamedTuple):
    """Half-open time range in seconds."""

    start: float
    end: float

    @property
    def duration(self) -> float:
        return self.end - self.start

    @property
    def is_empty(self) -> bool:
        return self.end <= self.start


IntervalLike = Union[Interval, Tuple[float, float], List[float]]


def normalize(intervals: Iterable[IntervalLike]) -> List[Interval]:
    """
    Sort intervals by start and merge the ones that touch or overlap.

    Input may be unsorted and contain duplicates. Empty and inverted
    intervals are dropped.

    Example:
        normalize([(15, 30), (10, 20), (100, 110)])
        -> [Interval(10, 30), Interval(100, 110)]
    """
    items = sorted(
        (Interval(float(start), float(end)) for start, end in intervals),
        key=lambda i: (i.start, i.end),
    )

    merged: List[Interval] = []
    for item in items:
        if item.is_empty:
            continue
        if merged and item.start <= merged[-1].end:
            last = merged[-1]
            merged[-1] = Interval(last.start, max(last.end, item.end))
        else:
            merged.append(item)
    return merged


def complement(intervals: Iterable[IntervalLike], total: float) -> List[Interval]:
    """
    Gaps left by intervals inside [0, total).

    Intervals are normalized first, so unsorted input is accepted.
    Deletions reaching beyond either boundary are clipped.

    Example:
        complement([(10, 30), (100, 110)], 3600)
        -> [Interval(0, 10), Interval(30, 100), Interval(110, 3600)]

    Raises:
        ValueError: If total is negative
    """
    if total < 0:
        raise ValueError(f"Total duration must not be negative, got {total}")

    keep: List[Interval] = []
    cursor = 0.0
    for start, end in normalize(intervals):
        start = max(start, 0.0)
        end = min(end, float(total))
        if end <= start:
            continue
        if start > cursor:
            keep.append(Interval(cursor, start))
        cursor = max(cursor, end)

    if cursor < total:
        keep.append(Interval(cursor, float(total)))
    return keep


def intersect(a: IntervalLike, b: IntervalLike) -> Interval:
    """Intersection of two intervals (may be empty)."""
    return Interval(max(a[0], b[0]), min(a[1], b[1]))


def total_length(intervals: Iterable[IntervalLike]) -> float:
    """Summed length of the normalized intervals."""
    return sum(i.duration for i in normalize(intervals))

