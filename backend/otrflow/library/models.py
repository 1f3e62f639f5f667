"""
Asset model.

An asset is one recording. Its canonical name is derived from the file
name and stays the same from the encrypted download to the cut video;
the stage is where the file currently sits.
"""

from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict


class Stage(str, Enum):
    """
    Position of an asset in the pipeline.

    ENCODED: encrypted container as downloaded
    DECODED: decrypted video, not cut yet
    CUT: cut video (pre-cut original archived)
    """

    ENCODED = "encoded"
    DECODED = "decoded"
    CUT = "cut"


STAGE_ORDER = {Stage.ENCODED: 0, Stage.DECODED: 1, Stage.CUT: 2}


class Asset(BaseModel):
    """One recording file and what its name says about it."""

    model_config = ConfigDict(extra="forbid")

    canonical_name: str
    """Join key across stages: <key>[.HQ|.HD].<ext>"""

    key: str
    title: str
    date: str  # YY.MM.DD
    time: str  # hh-mm
    station: str
    number: str
    quality: Optional[str] = None  # HQ, HD or None
    extension: str  # container extension without dot
    stage: Stage
    path: Path

    @property
    def file_name(self) -> str:
        return self.path.name
