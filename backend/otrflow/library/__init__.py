"""
Working directory: file name grammar, layout and asset discovery.
"""

from .errors import LibraryError, FilesystemError
from .models import Asset, Stage, STAGE_ORDER
from .naming import parse_video_name, decoded_name, cut_name
from .layout import WorkingDirectory, atomic_move
from .scanner import discover

__all__ = [
    "LibraryError",
    "FilesystemError",
    "Asset",
    "Stage",
    "STAGE_ORDER",
    "parse_video_name",
    "decoded_name",
    "cut_name",
    "WorkingDirectory",
    "atomic_move",
    "discover",
]
