"""
Decoding key derivation.

The decoding key of a container is handed out by the recording service.
Obtaining it is a fixed, versioned exchange:

1. A request key is spliced from md5(user), md5(password) and the
   current date (derive_request_key). It is a pure function of its inputs.
2. A 512-byte request payload carrying the credentials and header material
   (FN, OH) is encrypted with the request key (Blowfish-LE/CBC, random IV)
   and sent to the service (build_key_request).
3. The service answers with base64 data: IV followed by CBC ciphertext
   under the same request key. The decrypted answer carries the decoding
   key in parameter HP (parse_key_response).

All constants in this module are a compatibility contract with the
service's own decoder and must not be changed.
"""

import base64
import binascii
import hashlib
import secrets
from dataclasses import dataclass
from datetime import date
from typing import Callable, Optional

from . import cipher
from .container import Header, params_from_str
from .errors import CredentialsMissing, KeyRequestError

# Version of the service's decoder that this exchange imitates
DECODER_VERSION = "0.4.1133"
# Installation key of that decoder
INSTALLATION_KEY = "aFzW1tL7nP9vXd8yUfB5kLoSyATQ"
# Prefix of a service-side refusal
SERVICE_ERROR_INDICATOR = "MessageToBePrintedInDecoder"
# Length of the (unencrypted) request payload including the IV
REQUEST_LENGTH = 512
# Parameter carrying the decoding key in the service response
PARAM_DECODING_KEY = "HP"


@dataclass(frozen=True)
class Credentials:
    """User name and password for the recording service."""

    user: str
    password: str

    @classmethod
    def require(cls, user: Optional[str], password: Optional[str]) -> "Credentials":
        """
        Build credentials, failing if either part is missing.

        Raises:
            CredentialsMissing: If user or password is empty or None
        """
        if not user:
            raise CredentialsMissing("user name")
        if not password:
            raise CredentialsMissing("password")
        return cls(user=user, password=password)


@dataclass(frozen=True)
class KeyRequest:
    """An encoded key request, ready to be sent to the key service."""

    code: str
    user: str
    date: str


def date_stamp(day: date) -> str:
    """Date in the YYYYMMDD form the key exchange uses."""
    return day.strftime("%Y%m%d")


def _md5_hex(value: str) -> str:
    return hashlib.md5(value.encode("utf-8")).hexdigest()


def derive_request_key(user: str, password: str, stamp: str) -> str:
    """
    Derive the key that protects the key request and its response.

    Args:
        user: Service user name
        password: Service password
        stamp: Date as YYYYMMDD

    Returns:
        56 hex characters (28 key bytes)
    """
    if len(stamp) != 8 or not stamp.isdigit():
        raise ValueError(f"Date stamp must be YYYYMMDD, got '{stamp}'")
    user_hash = _md5_hex(user)
    password_hash = _md5_hex(password)
    return (
        user_hash[0:13]
        + stamp[:4]
        + password_hash[0:11]
        + stamp[4:6]
        + user_hash[21:32]
        + stamp[6:]
        + password_hash[19:32]
    )


def build_request_payload(
    credentials: Credentials,
    header: Header,
    filler: Callable[[int], str] = lambda n: secrets.token_hex((n + 1) // 2)[:n],
) -> str:
    """
    Assemble the plain key request payload.

    The payload is padded with random hex digits so that, together with the
    IV, its UTF-8 encoding is exactly REQUEST_LENGTH bytes long.
    """
    payload = (
        f"&A={credentials.user}"
        f"&P={credentials.password}"
        f"&FN={header.filename}"
        f"&OH={header.encoded_hash}"
        f"&M={_md5_hex('something')}"
        f"&OS={_md5_hex('Windows')}"
        f"&LN=DE"
        f"&VN={DECODER_VERSION}"
        f"&IR=TRUE"
        f"&IK={INSTALLATION_KEY}"
        f"&D="
    )
    room = REQUEST_LENGTH - cipher.BLOCK_SIZE - len(payload.encode("utf-8"))
    if room < 0:
        raise KeyRequestError("credentials and file name are too long for a key request")
    return payload + filler(room)


def build_key_request(
    credentials: Credentials,
    header: Header,
    stamp: str,
    iv: Optional[bytes] = None,
) -> KeyRequest:
    """
    Encrypt the key request payload.

    Args:
        credentials: Service credentials
        header: Header of the container to decode
        stamp: Date as YYYYMMDD
        iv: CBC initialization vector (random if not given)

    Returns:
        KeyRequest whose code is base64(IV + ciphertext)
    """
    request_key = bytes.fromhex(derive_request_key(credentials.user, credentials.password, stamp))
    iv = iv if iv is not None else secrets.token_bytes(cipher.BLOCK_SIZE)
    payload = build_request_payload(credentials, header).encode("utf-8")
    sealed = cipher.cbc_encrypt(request_key, iv, payload)
    return KeyRequest(
        code=base64.b64encode(iv + sealed).decode("ascii"),
        user=credentials.user,
        date=stamp,
    )


def parse_key_response(response: str, credentials: Credentials, stamp: str) -> bytes:
    """
    Extract the decoding key from a key service response.

    Args:
        response: Raw response body
        credentials: Credentials used for the request
        stamp: Date stamp used for the request

    Returns:
        Decoding key bytes

    Raises:
        KeyRequestError: If the service refused or the response is corrupt
    """
    response = response.strip()
    if response.startswith(SERVICE_ERROR_INDICATOR):
        raise KeyRequestError(
            "refused by service",
            service_message=response[len(SERVICE_ERROR_INDICATOR):].strip(),
        )

    try:
        raw = base64.b64decode(response, validate=True)
    except (binascii.Error, ValueError):
        raise KeyRequestError("response is not base64 encoded")

    if len(raw) < 2 * cipher.BLOCK_SIZE or len(raw) % cipher.BLOCK_SIZE != 0:
        raise KeyRequestError(
            f"response is corrupt: length must be a multiple of {cipher.BLOCK_SIZE}"
        )

    request_key = bytes.fromhex(derive_request_key(credentials.user, credentials.password, stamp))
    plain = cipher.cbc_decrypt(request_key, raw[:cipher.BLOCK_SIZE], raw[cipher.BLOCK_SIZE:])

    try:
        params = params_from_str(plain.decode("ascii"), [PARAM_DECODING_KEY])
        return bytes.fromhex(params[PARAM_DECODING_KEY])
    except UnicodeDecodeError:
        raise KeyRequestError("decrypted response is corrupt")
    except ValueError as e:
        raise KeyRequestError(f"decoding key missing or malformed: {e}")
