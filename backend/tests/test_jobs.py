"""
Tests for stage transitions, failure classification and run summaries.
"""

from pathlib import Path

import pytest

from otrflow.cutlists import NetworkError, NoCutlistFound, ParseError
from otrflow.cutting import CutterNotAvailableError, ToolInvocationError
from otrflow.decoding import ChecksumMismatchPost, ChecksumMismatchPre, FormatError
from otrflow.jobs import (
    FailureKind,
    InvalidStageTransitionError,
    Job,
    JobOutcome,
    RunStage,
    RunSummary,
    can_transition,
    classify_failure,
    is_final,
    validate_stage_transition,
)
from otrflow.library import Stage, parse_video_name

from fakes import DECODED_NAME


# =============================================================================
# Stage transitions
# =============================================================================


class TestStageTransitions:
    """Encoded -> Decoded -> Cut only."""

    def test_forward_transitions(self):
        """Each stage leads to the next."""
        assert can_transition(Stage.ENCODED, Stage.DECODED)
        assert can_transition(Stage.DECODED, Stage.CUT)
        assert is_final(Stage.CUT)
        assert not is_final(Stage.DECODED)

    @pytest.mark.parametrize(
        "current,target",
        [
            (Stage.ENCODED, Stage.CUT),
            (Stage.CUT, Stage.DECODED),
            (Stage.DECODED, Stage.ENCODED),
            (Stage.CUT, Stage.CUT),
        ],
    )
    def test_invalid_transitions(self, current, target):
        """Skipping or going back is rejected."""
        assert not can_transition(current, target)
        with pytest.raises(InvalidStageTransitionError):
            validate_stage_transition(current, target)


# =============================================================================
# Failure classification
# =============================================================================


class TestClassifyFailure:
    """Errors map to failure kinds."""

    @pytest.mark.parametrize(
        "error,kind,retryable",
        [
            (FormatError("a", "bad"), FailureKind.FORMAT, False),
            (ChecksumMismatchPre("a"), FailureKind.CHECKSUM_PRE, False),
            (ChecksumMismatchPost("a"), FailureKind.CHECKSUM_POST, True),
            (NetworkError("down"), FailureKind.NETWORK, True),
            (ParseError("x", "bad"), FailureKind.PARSE, True),
            (NoCutlistFound("a"), FailureKind.CUTLIST, True),
            (CutterNotAvailableError("ffmpeg", "ffmpeg"), FailureKind.CUTTER_NOT_AVAILABLE, True),
            (ToolInvocationError("ffmpeg", "boom"), FailureKind.TOOL_INVOCATION, True),
            (PermissionError("denied"), FailureKind.FILESYSTEM, True),
            (KeyError("bug"), FailureKind.INTERNAL, True),
        ],
    )
    def test_kinds(self, error, kind, retryable):
        """Subclasses are matched before their bases."""
        assert classify_failure(error) == (kind, retryable)


# =============================================================================
# Summary
# =============================================================================


class TestRunSummary:
    """Human-readable run summaries."""

    def make_job(self, outcome: JobOutcome, **fields) -> Job:
        asset = parse_video_name(Path("/otr/Decoded") / DECODED_NAME)
        return Job(asset=asset, outcome=outcome, **fields)

    def test_lines_and_counts(self):
        """One line per asset, stage errors and a count line."""
        failed = self.make_job(JobOutcome.PENDING)
        failed.fail(FailureKind.CHECKSUM_PRE, "download is corrupt", retryable=False)
        summary = RunSummary(
            jobs=[self.make_job(JobOutcome.CUT, cutlist_id=12), failed],
            stage_errors={RunStage.DECODE: "password is not configured"},
        )

        lines = summary.summary().splitlines()

        assert lines[0].endswith(": cut (cut list 12)")
        assert lines[1].endswith(": failed [checksum_pre] download is corrupt")
        assert lines[2] == "decode stage not run: password is not configured"
        assert lines[-1] == "2 asset(s): 1 cut, 1 failed"
        assert summary.has_failures
        assert summary.counts()[JobOutcome.CUT] == 1

    def test_empty(self):
        """An empty run has only the count line."""
        assert RunSummary().summary() == "0 asset(s)"

    def test_skip_does_not_count_as_failure(self):
        """Skipped jobs are reported but not failures."""
        job = self.make_job(JobOutcome.PENDING)
        job.skip(FailureKind.ABORTED, "stopped")

        summary = RunSummary(jobs=[job])

        assert not summary.has_failures
        assert "not found" not in summary.summary()
        assert "skipped [aborted] stopped" in summary.summary()
