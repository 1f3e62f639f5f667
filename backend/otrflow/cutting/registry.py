"""
Cutter registry.

Cutters are chosen by name from configuration; adding a backend means
adding a factory here.
"""

from typing import Callable, Dict, List

from .base import Cutter
from .errors import CutterNotAvailableError
from .ffmpeg import FFmpegCutter
from .mkvmerge import MkvmergeCutter

DEFAULT_CUTTER = "ffmpeg"

_FACTORIES: Dict[str, Callable[[], Cutter]] = {
    FFmpegCutter.name: FFmpegCutter,
    MkvmergeCutter.name: MkvmergeCutter,
}


def available_cutters() -> List[str]:
    """Names of all known cutters."""
    return sorted(_FACTORIES)


def create_cutter(name: str = DEFAULT_CUTTER) -> Cutter:
    """
    Instantiate a cutter by name.

    Raises:
        CutterNotAvailableError: If name is unknown
    """
    factory = _FACTORIES.get(name)
    if factory is None:
        raise CutterNotAvailableError(name)
    return factory()
