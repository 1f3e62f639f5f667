"""
Container decoder.

Decodes one encrypted container into its plaintext video.

Design rules:
- Both checksums must pass before the decoded file appears under its
  final name. The encrypted payload is verified before any decryption
  starts, the plaintext after.
- The payload is encrypted block by block without chaining, so disjoint
  block-aligned ranges are decrypted concurrently and reassembled by
  range index.
- One decoder owns one worker pool, reused for every file it decodes.
  Files themselves are decoded one after another.
- Output is written to a temporary file next to the target and renamed
  into place; a failed decode leaves no partial target behind.
"""

import hashlib
import logging
import os
from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Iterator, List, Optional

from . import cipher
from .container import HEADER_LENGTH, Header, parse_header, verify_checksum
from .errors import ChecksumMismatchPost, ChecksumMismatchPre, FormatError
from .keys import Credentials
from .keyservice import KeyService

logger = logging.getLogger(__name__)

# Bytes read per worker and round. Must be a multiple of the cipher block size.
DEFAULT_CHUNK_SIZE = 10 * 1024 * 1024
# Suffix of the temporary output file
PARTIAL_SUFFIX = ".part"


@dataclass(frozen=True)
class DecodeResult:
    """Outcome of a successful decode."""

    source_path: str
    output_path: str
    header: Header
    payload_bytes: int


def default_workers() -> int:
    """Number of decode workers: available parallelism."""
    return os.cpu_count() or 1


def derive_key(credentials: Credentials, header: Header, key_service: KeyService) -> bytes:
    """
    Obtain the decoding key for a container.

    Combines the credentials with the header material (file name and
    payload checksum) through the key service exchange. The key is never
    persisted; it lives for one decode call.
    """
    return key_service.fetch_key(credentials, header)


def split_ranges(length: int, parts: int) -> List[range]:
    """
    Split [0, length) into at most `parts` block-aligned, disjoint ranges.

    Every range except the last starts and ends on a block boundary, so
    each range can be decrypted independently.
    """
    if length <= 0:
        return []
    parts = max(1, parts)
    span = -(-length // parts)  # ceil
    span = -(-span // cipher.BLOCK_SIZE) * cipher.BLOCK_SIZE
    return [range(start, min(start + span, length)) for start in range(0, length, span)]


def decrypt_payload(
    encrypted: bytes,
    key: bytes,
    workers: int = 1,
    executor: Optional[Executor] = None,
) -> bytes:
    """
    Decrypt an in-memory payload with `workers` concurrent ranges.

    The result is byte-identical regardless of the number of workers.

    Args:
        encrypted: Encrypted payload (without header)
        key: Decoding key
        workers: Number of ranges to decrypt concurrently
        executor: Pool to run on (a temporary one is created if not given)
    """
    encrypted = bytes(encrypted)
    ranges = split_ranges(len(encrypted), workers)
    slices = [encrypted[r.start:r.stop] for r in ranges]

    if executor is None:
        if len(slices) <= 1:
            return b"".join(cipher.ecb_decrypt(key, s) for s in slices)
        with ThreadPoolExecutor(max_workers=len(slices)) as pool:
            return b"".join(pool.map(cipher.ecb_decrypt, [key] * len(slices), slices))

    # map() yields results in submission order: reassembly by range index
    return b"".join(executor.map(cipher.ecb_decrypt, [key] * len(slices), slices))


def _read_exact(stream: BinaryIO, size: int) -> bytes:
    data = stream.read(size)
    if len(data) < size:
        raise EOFError(f"expected {size} bytes, got {len(data)}")
    return data


class Decoder:
    """
    Decoder for encrypted containers.

    Usage:
        with Decoder(key_service, workers=4) as decoder:
            decoder.decode(source, target, credentials)
    """

    def __init__(
        self,
        key_service: KeyService,
        workers: Optional[int] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ):
        """
        Initialize decoder.

        Args:
            key_service: Collaborator that hands out decoding keys
            workers: Size of the decrypt worker pool (default: CPU count)
            chunk_size: Bytes per worker and round (multiple of 8)
        """
        if chunk_size <= 0 or chunk_size % cipher.BLOCK_SIZE != 0:
            raise ValueError(
                f"Chunk size {chunk_size} is not a positive multiple of "
                f"block size {cipher.BLOCK_SIZE}"
            )
        self.key_service = key_service
        self.workers = workers or default_workers()
        self.chunk_size = chunk_size
        self._executor: Optional[ThreadPoolExecutor] = None

    def __enter__(self) -> "Decoder":
        self._pool()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _pool(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self.workers, thread_name_prefix="decode"
            )
        return self._executor

    def close(self) -> None:
        """Shut down the worker pool (waits for running workers)."""
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def read_header(self, source: Path) -> Header:
        """
        Parse the header of a container and check the file is complete.

        Raises:
            FormatError: Bad magic, corrupt header or truncated file
        """
        with open(source, "rb") as f:
            header = parse_header(f.read(HEADER_LENGTH), str(source))

        actual_size = source.stat().st_size
        if actual_size < header.file_size:
            raise FormatError(
                str(source),
                f"file is truncated ({actual_size} of {header.file_size} bytes)",
            )
        return header

    def _chunks(self, stream: BinaryIO, total: int) -> Iterator[bytes]:
        remaining = total
        while remaining > 0:
            size = min(self.chunk_size, remaining)
            yield _read_exact(stream, size)
            remaining -= size

    def verify_encrypted(self, source: Path, header: Header) -> None:
        """
        Check the encrypted payload against the checksum in the header.

        Raises:
            ChecksumMismatchPre: If the payload does not match
        """
        hasher = hashlib.md5()
        with open(source, "rb") as f:
            f.seek(HEADER_LENGTH)
            try:
                for chunk in self._chunks(f, header.payload_size):
                    hasher.update(chunk)
            except EOFError:
                raise ChecksumMismatchPre(str(source))

        if not verify_checksum(hasher.digest(), header.encoded_hash):
            raise ChecksumMismatchPre(str(source))

    def decode(self, source: Path, target: Path, credentials: Credentials) -> DecodeResult:
        """
        Decode a container file into target.

        Args:
            source: Encrypted container
            target: Final path of the decoded video
            credentials: Service credentials for the key exchange

        Returns:
            DecodeResult

        Raises:
            FormatError: Container is not valid or truncated
            ChecksumMismatchPre: Encrypted payload is corrupt
            KeyRequestError: No decoding key could be obtained
            ChecksumMismatchPost: Decoded payload does not match
            OSError: Reading the source or writing the target failed
        """
        source = Path(source)
        target = Path(target)

        header = self.read_header(source)
        logger.debug(f"[Decoder] {source.name}: header OK, payload {header.payload_size} bytes")

        self.verify_encrypted(source, header)
        logger.debug(f"[Decoder] {source.name}: encrypted checksum OK")

        key = derive_key(credentials, header, self.key_service)

        partial = target.with_name(target.name + PARTIAL_SUFFIX)
        try:
            try:
                digest = self._decrypt_to(source, partial, header, key)
            except EOFError:
                raise FormatError(str(source), "file was truncated while decoding")
            if not verify_checksum(digest, header.decoded_hash):
                raise ChecksumMismatchPost(str(source))
            os.replace(partial, target)
        except BaseException:
            partial.unlink(missing_ok=True)
            raise

        logger.info(f"[Decoder] Decoded {source.name} -> {target.name}")
        return DecodeResult(
            source_path=str(source),
            output_path=str(target),
            header=header,
            payload_bytes=header.payload_size,
        )

    def _decrypt_to(self, source: Path, partial: Path, header: Header, key: bytes) -> bytes:
        """Decrypt the payload of source into partial, returning the plaintext MD5 digest."""
        pool = self._pool()
        hasher = hashlib.md5()

        with open(source, "rb") as src, open(partial, "wb") as out:
            src.seek(HEADER_LENGTH)
            chunks = self._chunks(src, header.payload_size)
            while True:
                # one round: up to `workers` consecutive chunks
                batch = [chunk for _, chunk in zip(range(self.workers), chunks)]
                if not batch:
                    break
                for plain in pool.map(cipher.ecb_decrypt, [key] * len(batch), batch):
                    hasher.update(plain)
                    out.write(plain)

        return hasher.digest()
