"""
Decoding of encrypted containers downloaded from the recording service.

This package parses the container header, obtains the decoding key and
decrypts the payload, verifying both checksums the container carries.
It knows nothing about the working directory or the pipeline.
"""

from .errors import (
    DecodingError,
    FormatError,
    ChecksumMismatchPre,
    ChecksumMismatchPost,
    CredentialsMissing,
    KeyRequestError,
)
from .container import Header, parse_header, build_header, verify_checksum
from .keys import Credentials, derive_request_key
from .keyservice import KeyService, HttpKeyService
from .decoder import Decoder, DecodeResult, decrypt_payload, derive_key

__all__ = [
    # Errors
    "DecodingError",
    "FormatError",
    "ChecksumMismatchPre",
    "ChecksumMismatchPost",
    "CredentialsMissing",
    "KeyRequestError",
    # Container
    "Header",
    "parse_header",
    "build_header",
    "verify_checksum",
    # Keys
    "Credentials",
    "derive_request_key",
    "derive_key",
    "KeyService",
    "HttpKeyService",
    # Decoder
    "Decoder",
    "DecodeResult",
    "decrypt_payload",
]
