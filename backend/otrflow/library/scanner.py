"""
Asset discovery.

Discovery re-derives all state from the file system on every run:
- explicitly given files are classified and moved into the area of
  their stage
- without explicit files, the root and the Encoded, Decoded and Cut
  areas are scanned; root files are moved into their area as well
- one asset per canonical name; if the same recording exists in several
  stages, the most advanced one wins and the others are left alone

Assets are returned sorted by canonical name.
"""

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from .errors import FilesystemError
from .layout import PARTIAL_PREFIX, WorkingDirectory
from .models import STAGE_ORDER, Asset
from .naming import parse_video_name

logger = logging.getLogger(__name__)


def _is_partial(path: Path) -> bool:
    return path.name.startswith(PARTIAL_PREFIX) or path.name.endswith(".part")


def _list_files(directory: Path) -> List[Path]:
    try:
        return sorted(p for p in directory.iterdir() if p.is_file())
    except FileNotFoundError:
        return []
    except OSError as e:
        raise FilesystemError(str(directory), f"cannot be read: {e}")


def _collect(
    workdir: WorkingDirectory,
    paths: Iterable[Path],
    found: Dict[str, Asset],
) -> None:
    for path in paths:
        if _is_partial(path):
            continue
        asset = parse_video_name(path)
        if asset is None:
            logger.warning(f"[Library] {path} is not a recording: ignored")
            continue

        existing = found.get(asset.canonical_name)
        if existing is not None:
            if STAGE_ORDER[existing.stage] >= STAGE_ORDER[asset.stage]:
                logger.info(
                    f"[Library] {asset.file_name} ignored: "
                    f"{asset.canonical_name} is already {existing.stage.value}"
                )
                continue
            logger.info(
                f"[Library] {existing.file_name} ignored: "
                f"{asset.canonical_name} is already {asset.stage.value}"
            )

        try:
            asset = workdir.move_to_stage_dir(asset)
        except OSError as e:
            logger.error(f"[Library] Cannot move {asset.file_name} into place: {e}")
            continue
        found[asset.canonical_name] = asset


def discover(
    workdir: WorkingDirectory,
    paths: Optional[Iterable[Path]] = None,
) -> List[Asset]:
    """
    Find the assets of a run.

    Args:
        workdir: Working directory (must exist, see WorkingDirectory.ensure)
        paths: Explicitly submitted files; if empty, the working directory
            is scanned

    Returns:
        Assets sorted by canonical name

    Raises:
        FilesystemError: A directory of the working directory cannot be read
    """
    found: Dict[str, Asset] = {}
    explicit = [Path(p).expanduser().absolute() for p in (paths or [])]

    if explicit:
        existing = []
        for path in explicit:
            if not path.is_file():
                logger.warning(f"[Library] {path} does not exist: ignored")
                continue
            existing.append(path)
        _collect(workdir, existing, found)
    else:
        for directory in (workdir.root, workdir.encoded_dir, workdir.decoded_dir, workdir.cut_dir):
            _collect(workdir, _list_files(directory), found)

    assets = sorted(found.values(), key=lambda a: a.canonical_name)
    if not assets:
        logger.info("[Library] No videos to process")
    return assets
