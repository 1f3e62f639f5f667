"""
Working directory layout.

    <root>/
        Encoded/            encrypted downloads
        Decoded/            decoded, not yet cut videos
        Decoded/Archive/    originals of cut videos (allows re-cutting)
        Cut/                cut videos

Directory membership is the durable state of an asset. A stage
transition is committed by a rename within the working directory, so a
later run either sees the file before or after the move, never half of it.
"""

import logging
import os
from pathlib import Path
from typing import Dict

from .errors import FilesystemError
from .models import Asset, Stage
from .naming import cut_name, decoded_name

logger = logging.getLogger(__name__)

ENCODED_DIR = "Encoded"
DECODED_DIR = "Decoded"
ARCHIVE_DIR = "Archive"
CUT_DIR = "Cut"

# Prefix of files that are still being written
PARTIAL_PREFIX = ".partial-"


def atomic_move(src: Path, dst: Path) -> None:
    """
    Move src to dst with a single rename.

    Raises:
        FileExistsError: If dst already exists
        OSError: If the rename fails
    """
    if dst.exists():
        raise FileExistsError(f"Destination already exists: {dst}")
    os.rename(src, dst)


class WorkingDirectory:
    """Paths of the working directory and moves between its areas."""

    def __init__(self, root: Path):
        self.root = Path(root).expanduser()

    @property
    def encoded_dir(self) -> Path:
        return self.root / ENCODED_DIR

    @property
    def decoded_dir(self) -> Path:
        return self.root / DECODED_DIR

    @property
    def archive_dir(self) -> Path:
        return self.root / DECODED_DIR / ARCHIVE_DIR

    @property
    def cut_dir(self) -> Path:
        return self.root / CUT_DIR

    def stage_dirs(self) -> Dict[Stage, Path]:
        return {
            Stage.ENCODED: self.encoded_dir,
            Stage.DECODED: self.decoded_dir,
            Stage.CUT: self.cut_dir,
        }

    def dir_for(self, stage: Stage) -> Path:
        return self.stage_dirs()[stage]

    def ensure(self) -> None:
        """
        Check the root and create missing sub directories.

        Raises:
            FilesystemError: Root missing, not a directory or not writable
        """
        if not self.root.is_dir():
            raise FilesystemError(str(self.root), "does not exist or is not a directory")
        if not os.access(self.root, os.R_OK | os.W_OK | os.X_OK):
            raise FilesystemError(str(self.root), "is not readable and writable")
        for directory in (self.encoded_dir, self.decoded_dir, self.archive_dir, self.cut_dir):
            try:
                directory.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise FilesystemError(str(directory), f"cannot be created: {e}")

    def decoded_path(self, asset: Asset) -> Path:
        """Where the decoded video of an encrypted asset goes."""
        return self.decoded_dir / decoded_name(asset.file_name)

    def cut_path(self, asset: Asset) -> Path:
        """Where the cut video of a decoded asset goes."""
        return self.cut_dir / cut_name(asset.file_name)

    def archive_path(self, asset: Asset) -> Path:
        """Where the original of a cut asset is kept."""
        return self.archive_dir / asset.file_name

    @staticmethod
    def partial_path(final: Path) -> Path:
        """Temporary name for a file that is still being written (extension kept)."""
        return final.with_name(PARTIAL_PREFIX + final.name)

    def move_to_stage_dir(self, asset: Asset) -> Asset:
        """
        Move an asset into the area of its stage, if it is not there yet.

        Returns:
            The asset with its new path

        Raises:
            FileExistsError: A file of that name already exists there
            OSError: The move failed
        """
        target_dir = self.dir_for(asset.stage)
        if asset.path.parent.resolve() == target_dir.resolve():
            return asset
        target = target_dir / asset.file_name
        atomic_move(asset.path, target)
        logger.info(f"[Library] Moved {asset.file_name} to {target_dir.name}/")
        return asset.model_copy(update={"path": target})
