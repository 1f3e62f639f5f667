"""
Tests for the decoding key exchange.
"""

import base64
import hashlib
from datetime import date
from unittest import mock

import pytest
import requests

from otrflow.decoding import Credentials, CredentialsMissing, HttpKeyService, KeyRequestError
from otrflow.decoding import cipher
from otrflow.decoding.container import Header
from otrflow.decoding.keys import (
    REQUEST_LENGTH,
    SERVICE_ERROR_INDICATOR,
    build_key_request,
    derive_request_key,
    parse_key_response,
)

from fakes import TEST_KEY

CREDENTIALS = Credentials(user="user@example.org", password="secret")
STAMP = "20240101"
HEADER = Header(
    filename="Movie_24.01.01_20-15_ard_90_TVOON_DE.mpg.HQ.avi",
    file_size=10_000,
    encoded_hash="A" * 48,
    decoded_hash="B" * 48,
    params={},
)


def service_response(key: bytes = TEST_KEY, stamp: str = STAMP) -> str:
    """What the key service answers for a successful request."""
    request_key = bytes.fromhex(
        derive_request_key(CREDENTIALS.user, CREDENTIALS.password, stamp)
    )
    body = f"&HP={key.hex().upper()}".encode("ascii")
    body = body.ljust(-(-len(body) // 8) * 8, b"\x00")
    iv = bytes(range(8))
    return base64.b64encode(iv + cipher.cbc_encrypt(request_key, iv, body)).decode("ascii")


# =============================================================================
# Request key
# =============================================================================


class TestRequestKey:
    """Request key derivation."""

    def test_splices_hashes_and_date(self):
        """The key interleaves slices of both hashes with the date."""
        user_hash = hashlib.md5(b"user@example.org").hexdigest()
        password_hash = hashlib.md5(b"secret").hexdigest()

        key = derive_request_key("user@example.org", "secret", STAMP)

        assert len(key) == 56
        assert key.startswith(user_hash[:13] + "2024" + password_hash[:11] + "01")
        assert key.endswith(user_hash[21:32] + "01" + password_hash[19:32])

    def test_known_answer(self):
        """md5("admin") and md5("password") spliced with 2024-01-01."""
        assert derive_request_key("admin", "password", "20240101") == (
            "21232f297a57a20245f4dcc3b5aa01a0e4a801fc301327deb882cf99"
        )

    def test_is_deterministic(self):
        """Same inputs, same key; another day, another key."""
        first = derive_request_key("u", "p", STAMP)
        assert derive_request_key("u", "p", STAMP) == first
        assert derive_request_key("u", "p", "20240102") != first

    def test_rejects_malformed_stamp(self):
        """The date stamp is YYYYMMDD."""
        with pytest.raises(ValueError):
            derive_request_key("u", "p", "2024-1-1")


# =============================================================================
# Request and response
# =============================================================================


class TestKeyRequest:
    """Key request encoding and response parsing."""

    def test_request_is_fixed_length_and_carries_header_material(self):
        """The decrypted request contains credentials, file name and checksum."""
        iv = bytes(8)
        request = build_key_request(CREDENTIALS, HEADER, STAMP, iv=iv)

        raw = base64.b64decode(request.code)
        assert len(raw) == REQUEST_LENGTH
        assert raw[:8] == iv

        request_key = bytes.fromhex(derive_request_key(CREDENTIALS.user, CREDENTIALS.password, STAMP))
        plain = cipher.cbc_decrypt(request_key, raw[:8], raw[8:]).decode("ascii")
        assert "&A=user@example.org" in plain
        assert "&P=secret" in plain
        assert f"&FN={HEADER.filename}" in plain
        assert f"&OH={HEADER.encoded_hash}" in plain
        assert request.date == STAMP

    def test_non_ascii_credentials_fill_exactly_one_request(self):
        """Padding is measured in encoded bytes, not characters."""
        credentials = Credentials(user="jürgen@example.org", password="passwört")
        request = build_key_request(credentials, HEADER, STAMP, iv=bytes(8))

        raw = base64.b64decode(request.code)
        assert len(raw) == REQUEST_LENGTH

        request_key = bytes.fromhex(
            derive_request_key(credentials.user, credentials.password, STAMP)
        )
        plain = cipher.cbc_decrypt(request_key, raw[:8], raw[8:]).decode("utf-8")
        assert "&A=jürgen@example.org" in plain
        assert "&P=passwört" in plain

    def test_parses_decoding_key(self):
        """The HP parameter of the decrypted response is the key."""
        assert parse_key_response(service_response(), CREDENTIALS, STAMP) == TEST_KEY

    def test_wrong_day_does_not_yield_the_key(self):
        """A response for another day cannot be decrypted into a key."""
        response = service_response(stamp="20231231")
        with pytest.raises(KeyRequestError):
            parse_key_response(response, CREDENTIALS, STAMP)

    def test_service_refusal(self):
        """A refusal carries the message of the service."""
        with pytest.raises(KeyRequestError) as exc_info:
            parse_key_response(
                f"{SERVICE_ERROR_INDICATOR} Wrong password", CREDENTIALS, STAMP
            )
        assert exc_info.value.service_message == "Wrong password"
        assert "Wrong password" in str(exc_info.value)

    def test_not_base64(self):
        """Garbage responses are reported as such."""
        with pytest.raises(KeyRequestError, match="base64"):
            parse_key_response("<html>error</html>", CREDENTIALS, STAMP)

    def test_unaligned_response(self):
        """Responses must contain an IV and whole blocks."""
        with pytest.raises(KeyRequestError, match="corrupt"):
            parse_key_response(base64.b64encode(bytes(12)).decode(), CREDENTIALS, STAMP)


# =============================================================================
# Credentials
# =============================================================================


class TestCredentials:
    """Credential validation."""

    def test_require_both(self):
        """Missing parts are named in the error."""
        with pytest.raises(CredentialsMissing, match="user name"):
            Credentials.require(None, "secret")
        with pytest.raises(CredentialsMissing, match="password"):
            Credentials.require("user", "")

    def test_require_ok(self):
        """Complete credentials are returned as is."""
        assert Credentials.require("u", "p") == Credentials(user="u", password="p")


# =============================================================================
# HTTP key service
# =============================================================================


class TestHttpKeyService:
    """HTTP transport of the key exchange."""

    def test_fetch_key(self):
        """The request goes out with user and date; the key comes back."""
        session = mock.Mock()
        session.get.return_value = mock.Mock(text=service_response())
        service = HttpKeyService(url="http://keys.invalid/", session=session)

        key = service.fetch_key(CREDENTIALS, HEADER, day=date(2024, 1, 1))

        assert key == TEST_KEY
        _, kwargs = session.get.call_args
        assert kwargs["params"]["AA"] == CREDENTIALS.user
        assert kwargs["params"]["ZZ"] == STAMP
        assert kwargs["timeout"] == service.timeout

    def test_unreachable_service(self):
        """Transport errors become KeyRequestError."""
        session = mock.Mock()
        session.get.side_effect = requests.ConnectionError("connection refused")
        service = HttpKeyService(session=session)

        with pytest.raises(KeyRequestError, match="not reachable"):
            service.fetch_key(CREDENTIALS, HEADER, day=date(2024, 1, 1))
