"""
Job and run summary models.

A job binds one asset to the current run. Jobs are not persisted: the
working directory is the durable record and every run re-creates its
jobs by scanning it.
"""

import uuid
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..library import Asset, Stage


class JobOutcome(str, Enum):
    """
    Result of a job in this run.

    PENDING: not processed (yet)
    DECODED: decoded in this run, cut stage not run or not reached
    CUT: cut in this run
    NOOP: already cut before this run
    NOT_FOUND: no acceptable cut list (yet); retried next run
    FAILED: a per-asset error occurred
    SKIPPED: the stage was not run for this asset (preflight error or abort)
    """

    PENDING = "pending"
    DECODED = "decoded"
    CUT = "cut"
    NOOP = "noop"
    NOT_FOUND = "not_found"
    FAILED = "failed"
    SKIPPED = "skipped"


class FailureKind(str, Enum):
    """Classification of why a job failed or was skipped."""

    FORMAT = "format"
    CHECKSUM_PRE = "checksum_pre"
    CHECKSUM_POST = "checksum_post"
    CREDENTIALS_MISSING = "credentials_missing"
    KEY_REQUEST = "key_request"
    NETWORK = "network"
    PARSE = "parse"
    CUTLIST = "cutlist"
    TOOL_INVOCATION = "tool_invocation"
    CUTTER_NOT_AVAILABLE = "cutter_not_available"
    FILESYSTEM = "filesystem"
    ABORTED = "aborted"
    INTERNAL = "internal"


class RunStage(str, Enum):
    """Stages a run can execute."""

    DECODE = "decode"
    CUT = "cut"


class Job(BaseModel):
    """One asset in one run."""

    model_config = ConfigDict(extra="forbid")

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    asset: Asset
    outcome: JobOutcome = JobOutcome.PENDING
    failure_kind: Optional[FailureKind] = None
    error: Optional[str] = None
    retryable: bool = True
    """False if retrying without user action cannot help (e.g. corrupt download)."""

    cutlist_id: Optional[int] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def name(self) -> str:
        return self.asset.canonical_name

    @property
    def stage(self) -> Stage:
        return self.asset.stage

    @property
    def path(self) -> Path:
        return self.asset.path

    def fail(self, kind: FailureKind, error: str, retryable: bool = True) -> None:
        self.outcome = JobOutcome.FAILED
        self.failure_kind = kind
        self.error = error
        self.retryable = retryable
        self.completed_at = datetime.now()

    def skip(self, kind: FailureKind, reason: str) -> None:
        self.outcome = JobOutcome.SKIPPED
        self.failure_kind = kind
        self.error = reason


class RunSummary(BaseModel):
    """Outcome of one pipeline run."""

    model_config = ConfigDict(extra="forbid")

    jobs: List[Job] = Field(default_factory=list)
    stage_errors: Dict[RunStage, str] = Field(default_factory=dict)
    """Preflight errors that kept a whole stage from running."""

    aborted: bool = False
    abort_reason: Optional[str] = None
    started_at: datetime = Field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None

    def counts(self) -> Dict[JobOutcome, int]:
        counts = {outcome: 0 for outcome in JobOutcome}
        for job in self.jobs:
            counts[job.outcome] += 1
        return counts

    @property
    def has_failures(self) -> bool:
        return any(job.outcome == JobOutcome.FAILED for job in self.jobs)

    def summary(self) -> str:
        """
        Human-readable run summary: one line per asset plus counts.

        Example:
            Movie_24.01.01_20-15_ard_90_TVOON_DE.HQ.avi: cut (cut list 123)
            Show_24.01.02_18-00_zdf_30_TVOON_DE.avi: failed [checksum_pre] ...
            2 asset(s): 1 cut, 1 failed
        """
        lines = []
        for job in self.jobs:
            line = f"{job.name}: {job.outcome.value.replace('_', ' ')}"
            if job.outcome == JobOutcome.CUT and job.cutlist_id is not None:
                line += f" (cut list {job.cutlist_id})"
            if job.error:
                kind = f"[{job.failure_kind.value}] " if job.failure_kind else ""
                line += f" {kind}{job.error}"
            lines.append(line)

        for stage, error in self.stage_errors.items():
            lines.append(f"{stage.value} stage not run: {error}")
        if self.aborted:
            lines.append(f"Run aborted: {self.abort_reason}")

        counts = ", ".join(
            f"{n} {outcome.value.replace('_', ' ')}"
            for outcome, n in self.counts().items()
            if n
        )
        lines.append(f"{len(self.jobs)} asset(s)" + (f": {counts}" if counts else ""))
        return "\n".join(lines)
