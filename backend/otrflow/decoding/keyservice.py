"""
Key service collaborator.

The decoder never talks HTTP itself: it asks a KeyService for the decoding
key of a container. HttpKeyService is the production implementation; tests
substitute their own object with the same fetch_key method.
"""

import logging
from datetime import date
from typing import Optional, Protocol

import requests

from ..http import DEFAULT_TIMEOUT_SECONDS, create_session
from .container import Header
from .errors import KeyRequestError
from .keys import (
    DECODER_VERSION,
    Credentials,
    build_key_request,
    date_stamp,
    parse_key_response,
)

logger = logging.getLogger(__name__)

KEY_SERVICE_URL = "http://onlinetvrecorder.com/quelle_neu1.php"


class KeyService(Protocol):
    """Anything that can hand out the decoding key for a container header."""

    def fetch_key(self, credentials: Credentials, header: Header) -> bytes:
        ...


class HttpKeyService:
    """
    Request decoding keys from the recording service over HTTP.

    The request imitates the service's own Windows decoder, including its
    user agent; the service rejects other clients.
    """

    def __init__(
        self,
        url: str = KEY_SERVICE_URL,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        self.url = url
        self.timeout = timeout
        self.session = session or create_session(f"Windows-OTR-Decoder/{DECODER_VERSION}")

    def fetch_key(
        self,
        credentials: Credentials,
        header: Header,
        day: Optional[date] = None,
    ) -> bytes:
        """
        Retrieve the decoding key for a container.

        Args:
            credentials: Service credentials
            header: Parsed container header
            day: Date used for the request key (today if not given)

        Returns:
            Decoding key bytes

        Raises:
            KeyRequestError: If the service cannot be reached or refuses
        """
        stamp = date_stamp(day or date.today())
        request = build_key_request(credentials, header, stamp)

        logger.debug(f"[KeyService] Requesting decoding key for {header.filename}")
        try:
            response = self.session.get(
                self.url,
                params={"code": request.code, "AA": request.user, "ZZ": request.date},
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            raise KeyRequestError(f"key service not reachable: {e}")

        return parse_key_response(response.text, credentials, stamp)
