"""
Tests for file name grammar, working directory layout and discovery.
"""

import os
from pathlib import Path

import pytest

from otrflow.library import (
    FilesystemError,
    Stage,
    WorkingDirectory,
    atomic_move,
    cut_name,
    decoded_name,
    discover,
    parse_video_name,
)

from fakes import CANONICAL_NAME, CUT_NAME, DECODED_NAME, ENCODED_NAME


# =============================================================================
# Naming
# =============================================================================


class TestNaming:
    """Recording file names."""

    @pytest.mark.parametrize(
        "name,stage",
        [(ENCODED_NAME, Stage.ENCODED), (DECODED_NAME, Stage.DECODED), (CUT_NAME, Stage.CUT)],
    )
    def test_stages_share_canonical_name(self, name, stage):
        """All three forms of a recording map to one canonical name."""
        asset = parse_video_name(Path("/videos") / name)

        assert asset.stage == stage
        assert asset.canonical_name == CANONICAL_NAME
        assert asset.file_name == name

    def test_fields(self):
        """The name is split into its parts."""
        asset = parse_video_name(Path(ENCODED_NAME))

        assert asset.title == "Movie"
        assert asset.date == "24.01.01"
        assert asset.time == "20-15"
        assert asset.station == "ard"
        assert asset.number == "90"
        assert asset.quality == "HQ"
        assert asset.extension == "avi"

    def test_without_quality(self):
        """Standard quality recordings have no quality marker."""
        asset = parse_video_name(Path("News_24.02.03_19-00_zdf_15_TVOON_DE.mpg.avi.otrkey"))

        assert asset.quality is None
        assert asset.canonical_name == "News_24.02.03_19-00_zdf_15_TVOON_DE.avi"

    @pytest.mark.parametrize(
        "name",
        [
            "holiday.mp4",
            "Movie_24.01.01_20-15_ard_90_TVOON_DE.mpg.HQ.otrkey",
            "Movie_24-01-01_20-15_ard_90_TVOON_DE.mpg.avi",
            "Movie_24.01.01_20-15_ard_90_TVOON_DE.mpg.HQ.avi.cutlist.txt",
        ],
    )
    def test_not_a_recording(self, name):
        """Other files are not assets."""
        assert parse_video_name(Path(name)) is None

    def test_derived_names(self):
        """Decoded and cut names follow from the previous stage."""
        assert decoded_name(ENCODED_NAME) == DECODED_NAME
        assert cut_name(DECODED_NAME) == CUT_NAME
        with pytest.raises(ValueError):
            decoded_name(DECODED_NAME)


# =============================================================================
# Layout
# =============================================================================


class TestLayout:
    """Working directory areas."""

    def test_ensure_creates_areas(self, tmp_path):
        """Missing areas are created."""
        wd = WorkingDirectory(tmp_path)
        wd.ensure()

        for directory in (wd.encoded_dir, wd.decoded_dir, wd.archive_dir, wd.cut_dir):
            assert directory.is_dir()
        assert wd.archive_dir.parent == wd.decoded_dir

    def test_ensure_missing_root(self, tmp_path):
        """A missing root is a filesystem error."""
        with pytest.raises(FilesystemError, match="does not exist"):
            WorkingDirectory(tmp_path / "missing").ensure()

    def test_atomic_move_refuses_to_overwrite(self, tmp_path):
        """An existing destination is never replaced."""
        src, dst = tmp_path / "a", tmp_path / "b"
        src.write_text("a")
        dst.write_text("b")

        with pytest.raises(FileExistsError):
            atomic_move(src, dst)
        assert dst.read_text() == "b"
        assert src.exists()

    def test_paths(self, workdir):
        """Stage paths of an asset."""
        encoded = parse_video_name(workdir.encoded_dir / ENCODED_NAME)
        decoded = parse_video_name(workdir.decoded_dir / DECODED_NAME)

        assert workdir.decoded_path(encoded) == workdir.decoded_dir / DECODED_NAME
        assert workdir.cut_path(decoded) == workdir.cut_dir / CUT_NAME
        assert workdir.archive_path(decoded) == workdir.archive_dir / DECODED_NAME
        assert workdir.partial_path(workdir.cut_dir / CUT_NAME).name == ".partial-" + CUT_NAME


# =============================================================================
# Discovery
# =============================================================================


class TestDiscover:
    """Finding the assets of a run."""

    def test_empty(self, workdir):
        """An empty working directory has no assets."""
        assert discover(workdir) == []

    def test_root_files_are_moved_into_their_area(self, workdir):
        """Files dropped into the root are collected."""
        (workdir.root / ENCODED_NAME).write_bytes(b"x")
        other = "News_24.02.03_19-00_zdf_15_TVOON_DE.mpg.avi"
        (workdir.root / other).write_bytes(b"y")

        assets = discover(workdir)

        assert [a.stage for a in assets] == [Stage.ENCODED, Stage.DECODED]
        assert assets[0].path == workdir.encoded_dir / ENCODED_NAME
        assert assets[1].path == workdir.decoded_dir / other
        assert not (workdir.root / ENCODED_NAME).exists()

    def test_most_advanced_stage_wins(self, workdir):
        """A recording present in several stages is one asset."""
        (workdir.encoded_dir / ENCODED_NAME).write_bytes(b"x")
        (workdir.decoded_dir / DECODED_NAME).write_bytes(b"y")

        assets = discover(workdir)

        assert len(assets) == 1
        assert assets[0].stage == Stage.DECODED
        assert (workdir.encoded_dir / ENCODED_NAME).exists()

    def test_ignores_partial_and_foreign_files(self, workdir):
        """Files being written and non-recordings are skipped."""
        (workdir.decoded_dir / (DECODED_NAME + ".part")).write_bytes(b"x")
        (workdir.cut_dir / (".partial-" + CUT_NAME)).write_bytes(b"x")
        (workdir.root / "notes.txt").write_text("hello")

        assert discover(workdir) == []
        assert (workdir.root / "notes.txt").exists()

    def test_sorted_by_canonical_name(self, workdir):
        """Assets come back in canonical name order."""
        names = [
            "Zoo_24.01.01_10-00_arte_30_TVOON_DE.mpg.avi",
            "Alpha_24.01.01_10-00_arte_30_TVOON_DE.mpg.avi",
        ]
        for name in names:
            (workdir.decoded_dir / name).write_bytes(b"x")

        assert [a.title for a in discover(workdir)] == ["Alpha", "Zoo"]

    def test_explicit_paths(self, workdir, tmp_path):
        """Given files are moved in; missing ones are ignored."""
        downloads = tmp_path / "downloads"
        downloads.mkdir()
        (downloads / ENCODED_NAME).write_bytes(b"x")
        (workdir.decoded_dir / "News_24.02.03_19-00_zdf_15_TVOON_DE.mpg.avi").write_bytes(b"y")

        assets = discover(workdir, [downloads / ENCODED_NAME, downloads / "missing.avi"])

        assert [a.canonical_name for a in assets] == [CANONICAL_NAME]
        assert assets[0].path == workdir.encoded_dir / ENCODED_NAME

    def test_unreadable_area(self, workdir):
        """An area that cannot be listed is a filesystem error."""
        if os.geteuid() == 0:
            pytest.skip("permissions are not enforced for root")
        workdir.decoded_dir.chmod(0)
        try:
            with pytest.raises(FilesystemError):
                discover(workdir)
        finally:
            workdir.decoded_dir.chmod(0o755)
