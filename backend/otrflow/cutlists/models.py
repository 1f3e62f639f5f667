"""
Cut list data models.

A CutList is what a provider, a local file or an interval string
describes for one video. Its items may carry time bounds, frame bounds
or both; converting them into one time-based keep timeline is the job
of selector.build_keep_timeline.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, model_validator


class IntervalKind(str, Enum):
    """Unit in which a cut list item is expressed."""

    FRAMES = "frames"
    TIME = "time"


class IntervalMeaning(str, Enum):
    """
    What the intervals of a cut list describe.

    KEEP: segments that end up in the cut video (cutlist.at documents and
          interval strings)
    DELETE: segments that are removed (advertising blocks)
    """

    KEEP = "keep"
    DELETE = "delete"


class CutlistSource(str, Enum):
    """Where the cut list for a video comes from."""

    AUTO = "auto"  # query the provider and select the best candidate
    FILE = "file"  # local cut list document
    ID = "id"  # provider cut list by id
    DIRECT = "direct"  # interval string given by the user


class CutCandidate(BaseModel):
    """
    One cut list offered by the provider for a video.

    Transient: only exists during selection.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: int
    rating: float = 0.0
    source: str = "cutlist.at"


class CutItem(BaseModel):
    """
    One interval of a cut list.

    Time bounds are seconds, frame bounds are frame numbers; end bounds are
    exclusive. At least one of both pairs is set.
    """

    model_config = ConfigDict(extra="forbid")

    start_time: Optional[float] = None
    end_time: Optional[float] = None
    start_frame: Optional[int] = None
    end_frame: Optional[int] = None

    @model_validator(mode="after")
    def _check_bounds(self) -> "CutItem":
        has_time = self.start_time is not None and self.end_time is not None
        has_frames = self.start_frame is not None and self.end_frame is not None
        if (self.start_time is None) != (self.end_time is None):
            raise ValueError("time bounds must be given as a pair")
        if (self.start_frame is None) != (self.end_frame is None):
            raise ValueError("frame bounds must be given as a pair")
        if not (has_time or has_frames):
            raise ValueError("cut item has neither time nor frame bounds")
        if has_time and (self.start_time < 0 or self.end_time < self.start_time):
            raise ValueError(f"invalid time interval [{self.start_time}, {self.end_time}]")
        if has_frames and (self.start_frame < 0 or self.end_frame < self.start_frame):
            raise ValueError(f"invalid frame interval [{self.start_frame}, {self.end_frame}]")
        return self

    @property
    def has_time(self) -> bool:
        return self.start_time is not None

    @property
    def has_frames(self) -> bool:
        return self.start_frame is not None


class CutList(BaseModel):
    """Ordered cut list items plus where they came from."""

    model_config = ConfigDict(extra="forbid")

    id: Optional[int] = None
    items: List[CutItem]
    meaning: IntervalMeaning = IntervalMeaning.DELETE
    source: str = "unknown"
    """Human readable origin ("cutlist.at:123", a file path, "intervals")."""

    def describe(self) -> str:
        """Short label for log messages."""
        if self.id is not None:
            return f"cut list {self.id}"
        return f"cut list from {self.source}"


class CutlistRequest(BaseModel):
    """
    How the cut list for a video is to be obtained.

    value holds the file path, provider id or interval string depending
    on source; it is unused for AUTO.
    """

    model_config = ConfigDict(extra="forbid")

    source: CutlistSource = CutlistSource.AUTO
    value: Optional[str] = None
    min_rating: Optional[float] = None
    submit: bool = False
    rating: int = 0

    @model_validator(mode="after")
    def _check_value(self) -> "CutlistRequest":
        if self.source != CutlistSource.AUTO and not self.value:
            raise ValueError(f"cut list source '{self.source.value}' requires a value")
        if self.source == CutlistSource.ID and not str(self.value).isdigit():
            raise ValueError(f"cut list id must be a number, got '{self.value}'")
        return self
