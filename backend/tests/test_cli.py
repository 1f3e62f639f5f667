"""
Tests for the command line interface.
"""

import pytest

from otrflow.cli import _cutlist_request, create_parser, exit_code_for, main
from otrflow.cutlists import CutlistSource
from otrflow.jobs import RunStage, RunSummary
from otrflow.settings import Settings


class TestParser:
    """Argument parsing."""

    def test_default_command_is_process(self):
        """Without sub command the whole working directory is processed."""
        args = create_parser().parse_args(["-v"])

        assert args.func.__name__ == "cmd_process"
        assert args.videos == []
        assert args.verbose

    def test_options_before_sub_command_are_kept(self):
        """Common options may precede the sub command."""
        args = create_parser().parse_args(["-u", "me", "decode", "a.otrkey"])

        assert args.user == "me"
        assert args.videos == ["a.otrkey"]
        assert args.func.__name__ == "cmd_decode"

    def test_cut_sources_are_exclusive(self):
        """Only one cut list source can be given."""
        with pytest.raises(SystemExit) as exc_info:
            create_parser().parse_args(
                ["cut", "a.avi", "--cutlist", "x.cutlist", "--intervals", "frames:[1,2]"]
            )
        assert exc_info.value.code == 2

    def test_cutlist_request(self):
        """Cut options become a cut list request, defaults from settings."""
        args = create_parser().parse_args(["cut", "a.avi", "--cutlist-id", "5"])

        request = _cutlist_request(args, Settings(min_cutlist_rating=2, cutlist_rating=3))

        assert request.source == CutlistSource.ID
        assert request.value == "5"
        assert request.min_rating == 2
        assert request.rating == 3

    def test_intervals_request(self):
        """Interval strings are passed on for submission."""
        args = create_parser().parse_args(
            ["cut", "a.avi", "--intervals", "time:[0:00:01,0:00:02]", "--submit", "--rating", "5"]
        )

        request = _cutlist_request(args, Settings())

        assert request.source == CutlistSource.DIRECT
        assert request.submit
        assert request.rating == 5


class TestExitCodes:
    """Summary to exit code."""

    def test_codes(self):
        """Abort beats configuration errors, which beat failures."""
        assert exit_code_for(RunSummary()) == 0
        assert exit_code_for(RunSummary(stage_errors={RunStage.CUT: "no ffmpeg"})) == 1
        assert exit_code_for(RunSummary(aborted=True, stage_errors={RunStage.CUT: "x"})) == 4


class TestMain:
    """Whole command runs without network or tools."""

    def test_invalid_configuration(self, tmp_path, capsys):
        """A broken configuration file exits with 1."""
        config = tmp_path / "otrflow.json"
        config.write_text("{broken")

        with pytest.raises(SystemExit) as exc_info:
            main(["-c", str(config)])

        assert exc_info.value.code == 1
        assert "not valid JSON" in capsys.readouterr().err

    def test_missing_working_directory(self, tmp_path):
        """An unusable working directory exits with 4."""
        with pytest.raises(SystemExit) as exc_info:
            main(["-c", str(tmp_path / "none.json"), "-d", str(tmp_path / "missing")])

        assert exc_info.value.code == 4

    def test_empty_working_directory(self, tmp_path, capsys):
        """Nothing to do is a success."""
        (tmp_path / "otr").mkdir()

        with pytest.raises(SystemExit) as exc_info:
            main(["-c", str(tmp_path / "none.json"), "-d", str(tmp_path / "otr")])

        assert exc_info.value.code == 0
        assert "0 asset(s)" in capsys.readouterr().out
        assert (tmp_path / "otr" / "Encoded").is_dir()

    def test_explicit_cutlist_takes_one_video(self, tmp_path, capsys):
        """A cut list given on the command line cannot be applied to several videos."""
        (tmp_path / "otr").mkdir()
        argv = ["-c", str(tmp_path / "none.json"), "-d", str(tmp_path / "otr"), "cut"]

        with pytest.raises(SystemExit) as exc_info:
            main(argv + ["a.avi", "b.avi", "--cutlist-id", "5"])

        assert exc_info.value.code == 1
        assert "single video" in capsys.readouterr().err
        assert not (tmp_path / "otr" / "Encoded").exists()
