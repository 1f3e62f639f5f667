"""
Test doubles and fixture builders shared by the test modules.
"""

import os
from fractions import Fraction
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Set, Tuple

from otrflow.cutlists import CutCandidate, NetworkError
from otrflow.cutting import ToolInvocationError, VideoInfo
from otrflow.decoding import cipher
from otrflow.decoding.container import (
    HEADER_LENGTH,
    build_header,
    expand_checksum,
    md5_digest,
)
from otrflow.intervals import Interval

TEST_KEY = bytes.fromhex("00112233445566778899AABBCCDDEEFF0123456789ABCDEF")

ENCODED_NAME = "Movie_24.01.01_20-15_ard_90_TVOON_DE.mpg.HQ.avi.otrkey"
DECODED_NAME = "Movie_24.01.01_20-15_ard_90_TVOON_DE.mpg.HQ.avi"
CUT_NAME = "Movie_24.01.01_20-15_ard_90_TVOON_DE.mpg.HQ.cut.avi"
CANONICAL_NAME = "Movie_24.01.01_20-15_ard_90_TVOON_DE.HQ.avi"


def make_plaintext(size: int, seed: int = 7) -> bytes:
    """Deterministic, non-repeating test payload."""
    return bytes((i * 31 + seed + (i >> 8)) % 256 for i in range(size))


def seal(
    plaintext: bytes,
    key: bytes = TEST_KEY,
    filename: str = DECODED_NAME,
    tamper_at: Optional[int] = None,
    declare_tampered: bool = False,
) -> bytes:
    """
    Build an encrypted container around plaintext.

    Args:
        tamper_at: Flip one byte of the encrypted payload at this offset
        declare_tampered: Compute the encrypted checksum after tampering
            (the header then vouches for the corrupted payload)
    """
    encrypted = bytearray(cipher.ecb_encrypt(key, plaintext))
    if tamper_at is not None and not declare_tampered:
        encoded_hash = expand_checksum(md5_digest(bytes(encrypted)))
        encrypted[tamper_at] ^= 0xFF
    else:
        if tamper_at is not None:
            encrypted[tamper_at] ^= 0xFF
        encoded_hash = expand_checksum(md5_digest(bytes(encrypted)))

    header = build_header(
        {
            "FN": filename,
            "SZ": str(HEADER_LENGTH + len(encrypted)),
            "OH": encoded_hash,
            "FH": expand_checksum(md5_digest(plaintext), filler="A"),
        }
    )
    return header + bytes(encrypted)


class FakeKeyService:
    """Hands out a fixed key and records requests."""

    def __init__(self, key: bytes = TEST_KEY):
        self.key = key
        self.requests: List[Tuple[str, str]] = []

    def fetch_key(self, credentials, header) -> bytes:
        self.requests.append((credentials.user, header.filename))
        return self.key


class FakeProvider:
    """In-memory cut list provider."""

    def __init__(self):
        self.candidates: Dict[str, List[CutCandidate]] = {}
        self.documents: Dict[int, str] = {}
        self.submissions: List[Tuple[str, str, str]] = []
        self.fetched: List[int] = []
        self.unreachable = False

    def offer(self, file_name: str, cutlist_id: int, rating: float, document: str) -> None:
        self.candidates.setdefault(file_name, []).append(
            CutCandidate(id=cutlist_id, rating=rating)
        )
        self.documents[cutlist_id] = document

    def query(self, file_name: str) -> List[CutCandidate]:
        if self.unreachable:
            raise NetworkError("connection refused", url="http://cutlist.invalid")
        return list(self.candidates.get(file_name, []))

    def fetch(self, cutlist_id: int) -> str:
        self.fetched.append(cutlist_id)
        if cutlist_id not in self.documents:
            raise NetworkError(f"cut list {cutlist_id} does not exist at provider")
        return self.documents[cutlist_id]

    def submit(self, document: str, file_name: str, access_token: str) -> int:
        self.submissions.append((document, file_name, access_token))
        return 9000 + len(self.submissions)


class FakeCutter:
    """Writes the keep timeline into the target instead of a video."""

    name = "fake"

    def __init__(self, available: bool = True):
        self.available = available
        self.calls: List[Tuple[Path, List[Interval], Path]] = []
        self.fail_for: Set[str] = set()

    def is_available(self) -> bool:
        return self.available

    def cut(self, source: Path, keep: Sequence[Interval], target: Path) -> None:
        self.calls.append((Path(source), list(keep), Path(target)))
        if Path(source).name in self.fail_for:
            raise ToolInvocationError(self.name, "simulated failure", returncode=1)
        Path(target).write_text(
            "\n".join(f"{start}-{end}" for start, end in keep), encoding="utf-8"
        )


class FakeProber:
    """Reports the same duration and frame rate for every video."""

    def __init__(self, duration: float = 3600.0, fps: Fraction = Fraction(25), available=True):
        self.duration = duration
        self.fps = fps
        self.available = available

    def is_available(self) -> bool:
        return self.available

    def video_info(self, path: Path) -> VideoInfo:
        if not os.path.exists(path):
            raise ToolInvocationError("ffprobe", f"{path}: No such file or directory", 1)
        return VideoInfo(duration=self.duration, fps=self.fps, streams=[])

    def keyframes(self, path: Path) -> List[float]:
        return []


def cutlist_document(
    cuts: Sequence[Tuple[float, float]],
    cutlist_id: Optional[int] = None,
    frames: Optional[Sequence[Tuple[int, int]]] = None,
) -> str:
    """cutlist.at style document for (start, duration) time cuts."""
    lines = ["[General]", "Application=test", f"NoOfCuts={len(cuts)}", ""]
    for n, (start, duration) in enumerate(cuts):
        lines += [f"[Cut{n}]", f"Start={start}", f"Duration={duration}"]
        if frames is not None:
            frame_start, frame_duration = frames[n]
            lines += [f"StartFrame={frame_start}", f"DurationFrames={frame_duration}"]
        lines.append("")
    if cutlist_id is not None:
        lines += ["[Meta]", f"CutlistId={cutlist_id}", ""]
    return "\n".join(lines)
