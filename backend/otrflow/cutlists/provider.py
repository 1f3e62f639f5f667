"""
Client for the cut list provider (cutlist.at).

Endpoints:
    GET  getxml.php?name=<video file name>  -> XML list of cut lists
    GET  getfile.php?id=<id>                -> cut list document
    POST <access token>/                    -> submit a document (userfile[])
"""

import logging
import re
import xml.etree.ElementTree as ET
from typing import List, Optional

import requests

from .. import __version__
from ..http import DEFAULT_TIMEOUT_SECONDS, create_session
from .errors import NetworkError, ParseError, SubmissionError
from .models import CutCandidate

logger = logging.getLogger(__name__)

PROVIDER_URL = "http://cutlist.at"
PROVIDER_NAME = "cutlist.at"

# Body returned for unknown cut list ids
NOT_FOUND_RESPONSE = "Not found."
SUBMISSION_ID_PATTERN = re.compile(r"^ID=(\d+)")


def _parse_rating(value: Optional[str]) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value.strip())
    except ValueError:
        return None


def parse_candidates(xml_text: str) -> List[CutCandidate]:
    """
    Parse the provider's cut list overview.

    Cut lists reporting errors are dropped. The rating falls back to the
    author's own rating, then to 0.

    Raises:
        ParseError: If the response is not the expected XML
    """
    if not xml_text.strip():
        return []

    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError as e:
        raise ParseError("overview", f"not XML: {e}")

    candidates: List[CutCandidate] = []
    for node in root.iter("cutlist"):
        raw_id = (node.findtext("id") or "").strip()
        if not raw_id.isdigit():
            raise ParseError("overview", f"cut list id '{raw_id}' is not a number")
        cutlist_id = int(raw_id)

        errors = (node.findtext("errors") or "").strip()
        if not errors.isdigit() or int(errors) > 0:
            logger.warning(f"[Cutlists] Cut list {cutlist_id} has errors: ignored")
            continue

        rating = _parse_rating(node.findtext("rating"))
        if rating is None:
            rating = _parse_rating(node.findtext("ratingbyauthor"))
        candidates.append(
            CutCandidate(id=cutlist_id, rating=rating or 0.0, source=PROVIDER_NAME)
        )
    return candidates


class CutlistProvider:
    """
    HTTP client for cutlist.at.

    Usage:
        provider = CutlistProvider()
        candidates = provider.query("Movie_24.01.01_20-15_ard_90_TVOON_DE.mpg.HQ.avi")
        document = provider.fetch(candidates[0].id)
    """

    def __init__(
        self,
        base_url: str = PROVIDER_URL,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or create_session(f"otrflow/{__version__}")

    def _get(self, endpoint: str, params: dict) -> str:
        url = f"{self.base_url}/{endpoint}"
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise NetworkError(str(e), url=url)
        return response.text

    def query(self, file_name: str) -> List[CutCandidate]:
        """
        List the cut lists available for a video.

        Returns:
            Candidates without errors (possibly empty)

        Raises:
            NetworkError: Provider not reachable
            ParseError: Unexpected response
        """
        logger.debug(f"[Cutlists] Querying cut lists for {file_name}")
        candidates = parse_candidates(self._get("getxml.php", {"name": file_name}))
        logger.debug(f"[Cutlists] {len(candidates)} cut list(s) for {file_name}")
        return candidates

    def fetch(self, cutlist_id: int) -> str:
        """
        Download the document of a cut list.

        Raises:
            NetworkError: Provider not reachable or id unknown
        """
        text = self._get("getfile.php", {"id": str(cutlist_id)})
        if text.strip() == NOT_FOUND_RESPONSE:
            raise NetworkError(f"cut list {cutlist_id} does not exist at provider")
        return text

    def submit(self, document: str, file_name: str, access_token: str) -> int:
        """
        Upload a self-authored cut list document.

        Args:
            document: Cut list document
            file_name: Name of the video the cut list applies to
            access_token: Personal provider access token

        Returns:
            Id assigned by the provider

        Raises:
            SubmissionError: Upload failed or was rejected
        """
        url = f"{self.base_url}/{access_token}/"
        files = {"userfile[]": (f"{file_name}.cutlist", document.encode("utf-8"))}
        try:
            response = self.session.post(url, files=files, timeout=self.timeout)
        except requests.RequestException as e:
            raise SubmissionError(str(e))

        if response.status_code != 200:
            raise SubmissionError(
                response.text.strip() or f"HTTP status {response.status_code}"
            )
        match = SUBMISSION_ID_PATTERN.match(response.text.strip())
        if not match:
            raise SubmissionError(f"unexpected response '{response.text.strip()[:80]}'")

        cutlist_id = int(match.group(1))
        logger.info(f"[Cutlists] Submitted cut list {cutlist_id} for {file_name}")
        return cutlist_id
