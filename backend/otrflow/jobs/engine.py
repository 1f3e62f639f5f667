"""
Pipeline orchestration.

Drives the assets of a working directory through Encoded -> Decoded -> Cut.

Scheduling:
- Decoding is sequential across files. Each file is decrypted by the
  decoder's own worker pool, so only one payload is in flight at a time.
- Cutting runs one job per worker in a bounded pool; each worker owns its
  asset end to end (select cut list, build keep timeline, run cutter).

Failure semantics:
- Every per-asset error is caught at the job boundary and recorded on
  the job. It never stops sibling jobs.
- Preflight errors (no credentials, cutter or ffprobe missing) skip the
  affected stage for the whole run; the other stage still runs.
- A working directory that becomes unusable aborts the run: no new job
  is started, running ones finish.
- A stage transition is committed by renaming the finished file into
  the area of its new stage. Nothing is left half moved.
"""

import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime
from functools import partial
from pathlib import Path
from typing import Callable, Iterable, Iterator, List, Optional, Protocol, Sequence, Tuple

from ..cutlists import (
    CutCandidate,
    CutList,
    CutlistError,
    CutlistRequest,
    CutlistSource,
    NetworkError,
    NoCutlistFound,
    ParseError,
    SubmissionError,
    build_cutlist_document,
    build_keep_timeline,
    fetch_and_parse,
    format_intervals,
    load_cutlist,
    query_candidates,
    rank_candidates,
)
from ..cutting import (
    Cutter,
    CutterNotAvailableError,
    CuttingError,
    Prober,
    ToolInvocationError,
)
from ..decoding import (
    ChecksumMismatchPost,
    ChecksumMismatchPre,
    Credentials,
    CredentialsMissing,
    Decoder,
    FormatError,
    KeyRequestError,
    KeyService,
)
from ..intervals import Interval, total_length
from ..library import Asset, FilesystemError, Stage, WorkingDirectory, atomic_move, discover
from .errors import RunAbortedError
from .models import FailureKind, Job, JobOutcome, RunStage, RunSummary
from .state import is_final, validate_stage_transition

logger = logging.getLogger(__name__)

ALL_STAGES: Tuple[RunStage, ...] = (RunStage.DECODE, RunStage.CUT)


class CutlistService(Protocol):
    """Cut list provider as used by the pipeline."""

    def query(self, file_name: str) -> List[CutCandidate]:
        ...

    def fetch(self, cutlist_id: int) -> str:
        ...

    def submit(self, document: str, file_name: str, access_token: str) -> int:
        ...


# Order matters: subclasses before their bases
_FAILURE_KINDS: Sequence[Tuple[type, FailureKind, bool]] = (
    (RunAbortedError, FailureKind.ABORTED, True),
    (FormatError, FailureKind.FORMAT, False),
    (ChecksumMismatchPre, FailureKind.CHECKSUM_PRE, False),
    (ChecksumMismatchPost, FailureKind.CHECKSUM_POST, True),
    (CredentialsMissing, FailureKind.CREDENTIALS_MISSING, True),
    (KeyRequestError, FailureKind.KEY_REQUEST, True),
    (NetworkError, FailureKind.NETWORK, True),
    (ParseError, FailureKind.PARSE, True),
    (CutlistError, FailureKind.CUTLIST, True),
    (CutterNotAvailableError, FailureKind.CUTTER_NOT_AVAILABLE, True),
    (CuttingError, FailureKind.TOOL_INVOCATION, True),
    (FilesystemError, FailureKind.FILESYSTEM, True),
    (OSError, FailureKind.FILESYSTEM, True),
)


def classify_failure(error: BaseException) -> Tuple[FailureKind, bool]:
    """Failure kind of an error and whether retrying in a later run can help."""
    for error_type, kind, retryable in _FAILURE_KINDS:
        if isinstance(error, error_type):
            return kind, retryable
    return FailureKind.INTERNAL, True


def default_cut_workers() -> int:
    return os.cpu_count() or 1


class Pipeline:
    """
    Decode and cut all assets of a working directory.

    Usage:
        pipeline = Pipeline(workdir, key_service, provider, cutter, user=..., password=...)
        summary = pipeline.run()
        print(summary.summary())
    """

    def __init__(
        self,
        workdir: WorkingDirectory,
        key_service: KeyService,
        cutlist_provider: CutlistService,
        cutter: Cutter,
        prober: Optional[Prober] = None,
        user: Optional[str] = None,
        password: Optional[str] = None,
        cutlist_request: Optional[CutlistRequest] = None,
        access_token: Optional[str] = None,
        decode_workers: Optional[int] = None,
        cut_workers: Optional[int] = None,
    ):
        """
        Initialize pipeline.

        Args:
            workdir: Working directory holding the assets
            key_service: Hands out decoding keys
            cutlist_provider: Cut list provider client
            cutter: Cutting backend
            prober: Video prober (default: ffprobe from PATH)
            user: Recording service user name (needed for decoding)
            password: Recording service password (needed for decoding)
            cutlist_request: How to obtain cut lists (default: automatic selection)
            access_token: Provider access token for submitting cut lists
            decode_workers: Decrypt workers per file (default: CPU count)
            cut_workers: Concurrent cut jobs (default: CPU count)
        """
        self.workdir = workdir
        self.key_service = key_service
        self.cutlist_provider = cutlist_provider
        self.cutter = cutter
        self.prober = prober or Prober()
        self.user = user
        self.password = password
        self.cutlist_request = cutlist_request or CutlistRequest()
        self.access_token = access_token
        self.decode_workers = decode_workers
        self.cut_workers = cut_workers or default_cut_workers()

        self._abort = threading.Event()
        self._abort_reason: Optional[str] = None
        self._abort_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Run control
    # ------------------------------------------------------------------

    @property
    def aborted(self) -> bool:
        return self._abort.is_set()

    def abort(self, reason: str) -> None:
        """Stop starting new jobs; jobs already running finish."""
        with self._abort_lock:
            if self._abort.is_set():
                return
            self._abort_reason = reason
            self._abort.set()
        logger.error(f"[Pipeline] Aborting run: {reason}")

    def _check_abort(self) -> None:
        if self._abort.is_set():
            raise RunAbortedError(self._abort_reason or "aborted")

    def _commit(self, operation: Callable[..., None], *args) -> None:
        """
        Run a file system operation on the working directory.

        An error is per-asset unless the working directory itself is gone,
        which aborts the run.
        """
        try:
            operation(*args)
        except OSError as e:
            reason = self._workdir_lost()
            if reason:
                raise RunAbortedError(reason) from e
            raise

    def _workdir_lost(self) -> Optional[str]:
        """Abort the run if the working directory is gone; returns the reason."""
        if self.workdir.root.is_dir():
            return None
        reason = f"working directory {self.workdir.root} is no longer accessible"
        self.abort(reason)
        return reason

    def run(
        self,
        paths: Optional[Iterable[Path]] = None,
        stages: Sequence[RunStage] = ALL_STAGES,
    ) -> RunSummary:
        """
        Process explicitly given files, or every asset of the working directory.

        Args:
            paths: Files to process (default: scan the working directory)
            stages: Stages to run

        Returns:
            RunSummary with one job per asset

        Raises:
            FilesystemError: Working directory unusable (fatal for the run)
        """
        summary = RunSummary()

        self.workdir.ensure()
        jobs = [Job(asset=asset) for asset in discover(self.workdir, paths)]
        summary.jobs = jobs
        logger.info(f"[Pipeline] {len(jobs)} asset(s) found in {self.workdir.root}")

        for job in jobs:
            if is_final(job.stage):
                job.outcome = JobOutcome.NOOP
                logger.debug(f"[Pipeline] {job.name}: already cut")

        if RunStage.DECODE in stages:
            self._decode_stage(jobs, summary)
        if RunStage.CUT in stages:
            self._cut_stage(jobs, summary)

        summary.aborted = self.aborted
        summary.abort_reason = self._abort_reason
        summary.completed_at = datetime.now()
        return summary

    def _run_job(self, job: Job, work: Callable[[], None]) -> Job:
        """Run one stage of one job; every error ends up on the job."""
        job.started_at = datetime.now()
        try:
            self._check_abort()
            work()
        except NoCutlistFound as e:
            job.outcome = JobOutcome.NOT_FOUND
            job.completed_at = datetime.now()
            logger.info(f"[Pipeline] {e}")
        except RunAbortedError as e:
            job.skip(FailureKind.ABORTED, e.reason)
        except Exception as e:
            kind, retryable = classify_failure(e)
            if kind == FailureKind.FILESYSTEM:
                reason = self._workdir_lost()
                if reason:
                    job.skip(FailureKind.ABORTED, reason)
                    return job
            job.fail(kind, str(e), retryable)
            if kind == FailureKind.INTERNAL:
                logger.exception(f"[Pipeline] {job.name}: unexpected error")
            else:
                logger.error(f"[Pipeline] {job.name}: {e}")
        else:
            job.completed_at = datetime.now()
        return job

    # ------------------------------------------------------------------
    # Decode stage
    # ------------------------------------------------------------------

    def _decode_stage(self, jobs: List[Job], summary: RunSummary) -> None:
        encoded = [job for job in jobs if job.stage == Stage.ENCODED]
        if not encoded:
            return

        try:
            credentials = Credentials.require(self.user, self.password)
        except CredentialsMissing as e:
            summary.stage_errors[RunStage.DECODE] = str(e)
            logger.error(f"[Pipeline] Decoding skipped: {e}")
            for job in encoded:
                job.skip(FailureKind.CREDENTIALS_MISSING, str(e))
            return

        logger.info(f"[Pipeline] Decoding {len(encoded)} video(s)")
        with Decoder(self.key_service, workers=self.decode_workers) as decoder:
            for job in encoded:
                self._run_job(job, partial(self._decode_one, decoder, job, credentials))

    def _decode_one(self, decoder: Decoder, job: Job, credentials: Credentials) -> None:
        asset = job.asset
        validate_stage_transition(asset.stage, Stage.DECODED)
        target = self.workdir.decoded_path(asset)
        if target.exists():
            raise FileExistsError(f"Destination already exists: {target}")

        logger.info(f"[Pipeline] Decoding {asset.file_name}")
        decoder.decode(asset.path, target, credentials)
        self._commit(asset.path.unlink)

        job.asset = asset.model_copy(update={"stage": Stage.DECODED, "path": target})
        job.outcome = JobOutcome.DECODED

    # ------------------------------------------------------------------
    # Cut stage
    # ------------------------------------------------------------------

    def _cut_preflight(self) -> Optional[str]:
        if not self.cutter.is_available():
            return f"cutter '{self.cutter.name}' is not installed"
        if not self.prober.is_available():
            return "ffprobe is not installed"
        return None

    def _cut_stage(self, jobs: List[Job], summary: RunSummary) -> None:
        decoded = [
            job
            for job in jobs
            if job.stage == Stage.DECODED
            and job.outcome in (JobOutcome.PENDING, JobOutcome.DECODED)
        ]
        if not decoded:
            return

        problem = self._cut_preflight()
        if problem:
            summary.stage_errors[RunStage.CUT] = problem
            logger.error(f"[Pipeline] Cutting skipped: {problem}")
            for job in decoded:
                job.skip(FailureKind.CUTTER_NOT_AVAILABLE, problem)
            return

        workers = max(1, min(self.cut_workers, len(decoded)))
        logger.info(f"[Pipeline] Cutting {len(decoded)} video(s) with {workers} worker(s)")
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="cut") as executor:
            futures = {
                executor.submit(self._run_job, job, partial(self._cut_one, job)): job
                for job in decoded
            }
            for future in as_completed(futures):
                job = future.result()
                logger.debug(f"[Pipeline] {job.name}: {job.outcome.value}")

    def _cutlist_loaders(self, asset: Asset) -> Iterator[Callable[[], CutList]]:
        """
        Cut lists to try for an asset, best first.

        Raises:
            NoCutlistFound: Automatic selection found no acceptable candidate
            NetworkError, ParseError: Candidates could not be queried
        """
        request = self.cutlist_request
        if request.source != CutlistSource.AUTO:
            yield partial(load_cutlist, request, self.cutlist_provider)
            return

        candidates = query_candidates(self.cutlist_provider, asset.file_name)
        ranked = rank_candidates(candidates, request.min_rating)
        if not ranked:
            raise NoCutlistFound(asset.file_name, request.min_rating)
        for candidate in ranked:
            yield partial(fetch_and_parse, self.cutlist_provider, candidate)

    def _cut_one(self, job: Job) -> None:
        asset = job.asset
        validate_stage_transition(asset.stage, Stage.CUT)
        target = self.workdir.cut_path(asset)
        if target.exists():
            raise FileExistsError(f"Destination already exists: {target}")

        info = self.prober.video_info(asset.path)
        last_error: Optional[Exception] = None
        for load in self._cutlist_loaders(asset):
            self._check_abort()
            try:
                cutlist = load()
                keep = build_keep_timeline(cutlist, info.duration, info.fps)
                logger.info(
                    f"[Pipeline] Cutting {asset.file_name} with {cutlist.describe()} "
                    f"({len(keep)} segment(s), {total_length(keep):.0f}s kept)"
                )
                logger.debug(f"[Pipeline] {asset.file_name}: keeping {format_intervals(keep)}")
                self._cut_with(asset, keep, target)
            except (CutlistError, ToolInvocationError) as e:
                logger.warning(f"[Pipeline] {asset.file_name}: {e}")
                last_error = e
                continue

            job.cutlist_id = cutlist.id
            self._submit_if_requested(asset, keep)
            self._archive(asset)
            job.asset = asset.model_copy(update={"stage": Stage.CUT, "path": target})
            job.outcome = JobOutcome.CUT
            logger.info(f"[Pipeline] Cut {asset.file_name}")
            return

        if last_error is None:
            raise NoCutlistFound(asset.file_name, self.cutlist_request.min_rating)
        raise last_error

    def _cut_with(self, asset: Asset, keep: List[Interval], target: Path) -> None:
        partial_target = self.workdir.partial_path(target)
        try:
            self.cutter.cut(asset.path, keep, partial_target)
            if not partial_target.is_file():
                raise ToolInvocationError(self.cutter.name, "no output file was written")
            self._commit(atomic_move, partial_target, target)
        except BaseException:
            partial_target.unlink(missing_ok=True)
            raise

    def _archive(self, asset: Asset) -> None:
        archive = self.workdir.archive_path(asset)
        try:
            self._commit(atomic_move, asset.path, archive)
        except FileExistsError:
            logger.warning(
                f"[Pipeline] {asset.file_name} not archived: {archive} already exists"
            )
        except RunAbortedError:
            raise
        except OSError as e:
            logger.warning(f"[Pipeline] {asset.file_name} not archived: {e}")

    def _submit_if_requested(self, asset: Asset, keep: List[Interval]) -> None:
        request = self.cutlist_request
        if request.source != CutlistSource.DIRECT or not request.submit:
            return
        if not self.access_token:
            logger.warning(
                f"[Pipeline] Cut list for {asset.file_name} not submitted: no access token"
            )
            return

        document = build_cutlist_document(
            keep,
            request.rating,
            apply_to_file=asset.file_name,
            file_size=asset.path.stat().st_size,
            cut_application=self.cutter.name,
        )
        try:
            self.cutlist_provider.submit(document, asset.file_name, self.access_token)
        except SubmissionError as e:
            logger.warning(f"[Pipeline] {asset.file_name}: {e}")
