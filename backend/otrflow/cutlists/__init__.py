"""
Cut list acquisition, selection and keep timeline construction.
"""

from .errors import CutlistError, NetworkError, ParseError, NoCutlistFound, SubmissionError
from .models import (
    CutCandidate,
    CutItem,
    CutList,
    CutlistRequest,
    CutlistSource,
    IntervalKind,
    IntervalMeaning,
)
from .document import (
    parse_cutlist_document,
    serialize_cutlist_document,
    parse_intervals,
    format_intervals,
)
from .provider import CutlistProvider, parse_candidates
from .selector import (
    query_candidates,
    rank_candidates,
    select_best,
    fetch_and_parse,
    load_cutlist,
    reconcile,
    build_keep_timeline,
    build_cutlist_document,
)

__all__ = [
    "CutlistError",
    "NetworkError",
    "ParseError",
    "NoCutlistFound",
    "SubmissionError",
    "CutCandidate",
    "CutItem",
    "CutList",
    "CutlistRequest",
    "CutlistSource",
    "IntervalKind",
    "IntervalMeaning",
    "parse_cutlist_document",
    "serialize_cutlist_document",
    "parse_intervals",
    "format_intervals",
    "CutlistProvider",
    "parse_candidates",
    "query_candidates",
    "rank_candidates",
    "select_best",
    "fetch_and_parse",
    "load_cutlist",
    "reconcile",
    "build_keep_timeline",
    "build_cutlist_document",
]
