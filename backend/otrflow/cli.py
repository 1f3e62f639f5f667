"""
otrflow command line.

    otrflow [options] [process] [VIDEO ...]
    otrflow [options] decode VIDEO ...
    otrflow [options] cut VIDEO ...
    otrflow [options] cut VIDEO (--cutlist FILE | --cutlist-id ID | --intervals STR)

Without videos, `process` works through the whole working directory.

The CLI is a dispatcher only: it loads settings, builds the pipeline and
reports the run summary.

Exit Codes:
===========
- 0: Success (including nothing to do)
- 1: Configuration error (invalid settings, missing credentials or cutter)
- 2: At least one video failed
- 4: System error (working directory unusable)
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, NoReturn, Optional, Sequence

from pydantic import ValidationError

from . import __version__
from .cutlists import CutlistProvider, CutlistRequest, CutlistSource
from .cutting import available_cutters, create_cutter
from .decoding import HttpKeyService
from .jobs import ALL_STAGES, Pipeline, RunStage, RunSummary
from .library import FilesystemError, WorkingDirectory
from .settings import Settings, SettingsError

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_CONFIG = 1
EXIT_FAILED = 2
EXIT_SYSTEM = 4


def _configure_logging(args: argparse.Namespace) -> None:
    level = logging.INFO
    if getattr(args, "verbose", False):
        level = logging.DEBUG
    elif getattr(args, "quiet", False):
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def _load_settings(args: argparse.Namespace) -> Settings:
    """Settings from file with command line overrides; exits with 1 if invalid."""
    try:
        settings = Settings.load(getattr(args, "config", None))
        return settings.merged(
            working_dir=getattr(args, "working_dir", None),
            user=getattr(args, "user", None),
            password=getattr(args, "password", None),
            cutter=getattr(args, "cutter", None),
            cut_workers=getattr(args, "cut_workers", None),
            decode_workers=getattr(args, "decode_workers", None),
        )
    except SettingsError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(EXIT_CONFIG)


def _cutlist_request(args: argparse.Namespace, settings: Settings) -> CutlistRequest:
    source, value = CutlistSource.AUTO, None
    if getattr(args, "cutlist", None):
        source, value = CutlistSource.FILE, args.cutlist
    elif getattr(args, "cutlist_id", None) is not None:
        source, value = CutlistSource.ID, str(args.cutlist_id)
    elif getattr(args, "intervals", None):
        source, value = CutlistSource.DIRECT, args.intervals

    min_rating = getattr(args, "min_rating", None)
    rating = getattr(args, "rating", None)
    return CutlistRequest(
        source=source,
        value=value,
        min_rating=min_rating if min_rating is not None else settings.min_cutlist_rating,
        submit=getattr(args, "submit", False) or settings.submit_cutlists,
        rating=rating if rating is not None else settings.cutlist_rating,
    )


def build_pipeline(settings: Settings, request: Optional[CutlistRequest] = None) -> Pipeline:
    """Assemble the production pipeline from settings."""
    return Pipeline(
        workdir=WorkingDirectory(settings.working_dir),
        key_service=HttpKeyService(timeout=settings.http_timeout_seconds),
        cutlist_provider=CutlistProvider(timeout=settings.http_timeout_seconds),
        cutter=create_cutter(settings.cutter),
        user=settings.user,
        password=settings.password,
        cutlist_request=request,
        access_token=settings.cutlist_access_token,
        decode_workers=settings.decode_workers,
        cut_workers=settings.cut_workers,
    )


def exit_code_for(summary: RunSummary) -> int:
    """Map a run summary to the process exit code."""
    if summary.aborted:
        return EXIT_SYSTEM
    if summary.stage_errors:
        return EXIT_CONFIG
    if summary.has_failures:
        return EXIT_FAILED
    return EXIT_OK


def _run(args: argparse.Namespace, stages: Sequence[RunStage]) -> NoReturn:
    settings = _load_settings(args)
    try:
        request = _cutlist_request(args, settings)
    except ValidationError as e:
        print(f"Error: {e.errors()[0]['msg']}", file=sys.stderr)
        sys.exit(EXIT_CONFIG)

    videos: List[Path] = [Path(v) for v in getattr(args, "videos", None) or []]
    if request.source != CutlistSource.AUTO and len(videos) > 1:
        print("Error: an explicit cut list applies to a single video", file=sys.stderr)
        sys.exit(EXIT_CONFIG)

    pipeline = build_pipeline(settings, request)
    try:
        summary = pipeline.run(videos, stages)
    except FilesystemError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(EXIT_SYSTEM)

    print(summary.summary())
    sys.exit(exit_code_for(summary))


def cmd_process(args: argparse.Namespace) -> NoReturn:
    """Decode and cut videos (all videos of the working directory if none given)."""
    _run(args, ALL_STAGES)


def cmd_decode(args: argparse.Namespace) -> NoReturn:
    """Decode the given videos only."""
    _run(args, (RunStage.DECODE,))


def cmd_cut(args: argparse.Namespace) -> NoReturn:
    """Cut the given decoded videos only."""
    _run(args, (RunStage.CUT,))


def _common_options() -> argparse.ArgumentParser:
    # SUPPRESS keeps sub command defaults from overwriting options given before it
    common = argparse.ArgumentParser(add_help=False, argument_default=argparse.SUPPRESS)
    common.add_argument("-c", "--config", type=Path, help="Configuration file")
    verbosity = common.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true", help="Debug output")
    verbosity.add_argument("-q", "--quiet", action="store_true", help="Warnings and errors only")
    common.add_argument("-d", "--working-dir", type=Path, help="Working directory")
    common.add_argument("-u", "--user", help="Recording service user name")
    common.add_argument("-p", "--password", help="Recording service password")
    common.add_argument("--cutter", choices=available_cutters(), help="Cutting backend")
    common.add_argument("--cut-workers", type=int, help="Number of videos cut concurrently")
    common.add_argument("--decode-workers", type=int, help="Decrypt workers per video")
    return common


def create_parser() -> argparse.ArgumentParser:
    common = _common_options()
    parser = argparse.ArgumentParser(
        prog="otrflow",
        description="Decode and cut recordings of the online TV recorder service",
        parents=[common],
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.set_defaults(func=cmd_process, videos=[])

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    parser_process = subparsers.add_parser(
        "process", parents=[common], help="Decode and cut videos (default)"
    )
    parser_process.add_argument("videos", nargs="*", help="Videos (default: working directory)")
    parser_process.set_defaults(func=cmd_process)

    parser_decode = subparsers.add_parser("decode", parents=[common], help="Decode videos")
    parser_decode.add_argument("videos", nargs="+", help="Encrypted videos")
    parser_decode.set_defaults(func=cmd_decode)

    parser_cut = subparsers.add_parser("cut", parents=[common], help="Cut decoded videos")
    parser_cut.add_argument("videos", nargs="+", help="Decoded videos")
    # --cutlist, --cutlist-id and --intervals describe one recording and take one video
    source = parser_cut.add_mutually_exclusive_group()
    source.add_argument("--cutlist", help="Cut list file")
    source.add_argument("--cutlist-id", type=int, help="Id of a cut list at the provider")
    source.add_argument(
        "--intervals",
        help='Segments to keep, e.g. "frames:[100,2500][3200,9000]" '
        'or "time:[0:00:04,0:10:00]"',
    )
    parser_cut.add_argument(
        "--min-rating", type=float, help="Minimum rating for automatic cut list selection"
    )
    parser_cut.add_argument(
        "--submit", action="store_true", help="Submit cut lists given by --intervals"
    )
    parser_cut.add_argument(
        "--rating", type=int, choices=range(0, 6), help="Rating of submitted cut lists"
    )
    parser_cut.set_defaults(func=cmd_cut)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> NoReturn:
    """
    Main CLI entrypoint.

    Parses arguments and dispatches to subcommands.
    """
    parser = create_parser()
    args = parser.parse_args(argv)
    _configure_logging(args)
    args.func(args)


if __name__ == "__main__":
    main()
