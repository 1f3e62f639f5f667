"""
Encrypted container format.

Layout of a container as delivered by the recording service:

    +------------+----------------------------+---------------------------+
    | OTRKEYFILE | preamble (512 bytes)       | payload (SZ - 522 bytes)  |
    | 10 bytes   | Blowfish-LE/ECB, fixed key | Blowfish-LE/ECB, per file |
    +------------+----------------------------+---------------------------+

The decrypted preamble is a "&KEY=VALUE&KEY=VALUE..." string, padded to
512 bytes. Required parameters:

    FN  original file name (used when requesting the decoding key)
    SZ  total file size in bytes, header included
    OH  checksum of the encrypted payload
    FH  checksum of the decoded payload

Checksums are MD5 digests encoded as 48 hex characters: every third
character is filler and is dropped before comparing.
"""

import hashlib
from dataclasses import dataclass
from typing import Dict, Iterable, Optional

from . import cipher
from .errors import FormatError

# Sizes of the different parts of the container header
FILETYPE = b"OTRKEYFILE"
FILETYPE_LENGTH = len(FILETYPE)
PREAMBLE_LENGTH = 512
HEADER_LENGTH = FILETYPE_LENGTH + PREAMBLE_LENGTH

# Fixed key of the preamble
PREAMBLE_KEY = bytes.fromhex("EF3AB29CD19F0CAC5759C7ABD12CC92BA3FE0AFEBF960D63FEBD0F45")

# Header parameters
PARAM_FILENAME = "FN"
PARAM_FILESIZE = "SZ"
PARAM_ENCODED_HASH = "OH"
PARAM_DECODED_HASH = "FH"

REQUIRED_PARAMS = (PARAM_FILENAME, PARAM_FILESIZE, PARAM_ENCODED_HASH, PARAM_DECODED_HASH)

CHECKSUM_LENGTH = 48


@dataclass(frozen=True)
class Header:
    """Parameters extracted from the container preamble."""

    filename: str
    file_size: int
    encoded_hash: str
    decoded_hash: str
    params: Dict[str, str]

    @property
    def payload_size(self) -> int:
        """Number of payload bytes following the header."""
        return self.file_size - HEADER_LENGTH


def params_from_str(params_str: str, required: Iterable[str] = ()) -> Dict[str, str]:
    """
    Split a "&k1=v1&k2=v2..." string into a dict.

    Empty segments are skipped and a segment without "=" maps to "".
    Trailing NUL/space padding of the preamble is ignored.

    Raises:
        ValueError: If one of the required keys is missing
    """
    params: Dict[str, str] = {}
    for segment in params_str.rstrip("\x00 ").split("&"):
        if not segment:
            continue
        key, _, value = segment.partition("=")
        params[key] = value

    missing = [key for key in required if key not in params]
    if missing:
        raise ValueError(f"Parameter(s) {', '.join(missing)} missing")
    return params


def parse_header(data: bytes, path: str = "<bytes>") -> Header:
    """
    Parse and decrypt the container header.

    Args:
        data: At least the first HEADER_LENGTH bytes of the container
        path: Used in error messages only

    Returns:
        Header with the decoded parameters

    Raises:
        FormatError: If magic bytes do not match, the header is truncated
            or the preamble does not carry the required parameters
    """
    if len(data) < HEADER_LENGTH:
        raise FormatError(path, "file is too short to contain a header")

    if data[:FILETYPE_LENGTH] != FILETYPE:
        raise FormatError(path, f"file does not start with '{FILETYPE.decode()}'")

    preamble = cipher.ecb_decrypt(PREAMBLE_KEY, bytes(data[FILETYPE_LENGTH:HEADER_LENGTH]))
    try:
        params = params_from_str(preamble.decode("ascii"), REQUIRED_PARAMS)
    except UnicodeDecodeError:
        raise FormatError(path, "decrypted header is corrupt")
    except ValueError as e:
        raise FormatError(path, f"header is incomplete: {e}")

    try:
        file_size = int(params[PARAM_FILESIZE])
    except ValueError:
        raise FormatError(path, f"file size '{params[PARAM_FILESIZE]}' is not a number")

    if file_size < HEADER_LENGTH:
        raise FormatError(path, f"declared file size {file_size} is smaller than the header")

    return Header(
        filename=params[PARAM_FILENAME],
        file_size=file_size,
        encoded_hash=params[PARAM_ENCODED_HASH],
        decoded_hash=params[PARAM_DECODED_HASH],
        params=params,
    )


def build_header(params: Dict[str, str]) -> bytes:
    """
    Assemble an encrypted container header from parameters.

    Inverse of parse_header. The preamble is padded with NUL bytes.

    Raises:
        ValueError: If the serialized parameters do not fit into the preamble
    """
    preamble = "".join(f"&{key}={value}" for key, value in params.items()).encode("ascii")
    if len(preamble) > PREAMBLE_LENGTH:
        raise ValueError(f"Header parameters exceed {PREAMBLE_LENGTH} bytes")
    preamble = preamble.ljust(PREAMBLE_LENGTH, b"\x00")
    return FILETYPE + cipher.ecb_encrypt(PREAMBLE_KEY, preamble)


def reduce_checksum(encoded: str) -> Optional[bytes]:
    """
    Turn the 48-character header checksum into the 16 MD5 digest bytes.

    Returns:
        Digest bytes, or None if encoded is not a valid header checksum
    """
    if len(encoded) != CHECKSUM_LENGTH:
        return None
    reduced = "".join(c for i, c in enumerate(encoded) if (i + 1) % 3 != 0)
    try:
        return bytes.fromhex(reduced)
    except ValueError:
        return None


def expand_checksum(digest: bytes, filler: str = "0") -> str:
    """
    Encode a 16-byte digest in the 48-character header form.

    Inverse of reduce_checksum; the filler character is arbitrary.
    """
    hex_digest = digest.hex().upper()
    return "".join(hex_digest[i:i + 2] + filler for i in range(0, len(hex_digest), 2))


def verify_checksum(digest: bytes, expected: str) -> bool:
    """
    Compare a computed MD5 digest with a checksum from the header.

    A malformed expected checksum never verifies.
    """
    reference = reduce_checksum(expected)
    return reference is not None and reference == digest


def md5_digest(data: bytes) -> bytes:
    """MD5 digest of data (the checksum algorithm of the container format)."""
    return hashlib.md5(data).digest()
