"""
Recording file name grammar.

    <title>_YY.MM.DD_hh-mm_<station>_<number>_TVOON_DE.<source>[.HQ|.HD].<ext>[.otrkey]

Encrypted files carry the .otrkey suffix, decoded files do not. A cut
file replaces <ext> by cut.<ext>:

    <key>.<source>[.HQ|.HD].cut.<ext>

The canonical name <key>[.HQ|.HD].<ext> is the same for all three forms.
"""

import re
from pathlib import Path
from typing import Optional

from .models import Asset, Stage

_KEY = (
    r"(?P<key>(?P<title>[^\.]+)_(?P<date>\d{2}\.\d{2}\.\d{2})_(?P<time>\d{2}-\d{2})"
    r"_(?P<station>[^_]+)_(?P<number>\d+)_TVOON_DE)"
)
_QUALITY = r"(?:\.(?P<quality>HQ|HD))?"

UNCUT_PATTERN = re.compile(
    rf"^{_KEY}\.(?P<source>[^\.]+){_QUALITY}\.(?P<ext>[^\.]+)(?P<encext>\.otrkey)?$"
)
CUT_PATTERN = re.compile(rf"^{_KEY}\.(?P<source>[^\.]+){_QUALITY}\.cut\.(?P<ext>[^\.]+)$")

ENCRYPTED_SUFFIX = ".otrkey"
CUT_MARKER = "cut"


def parse_video_name(path: Path) -> Optional[Asset]:
    """
    Classify a file by its name.

    Cut names are checked first: some of them also match the uncut grammar.

    Returns:
        Asset, or None if the name is not a recording file name
    """
    path = Path(path)
    name = path.name

    match = CUT_PATTERN.match(name)
    if match:
        stage = Stage.CUT
    else:
        match = UNCUT_PATTERN.match(name)
        if not match or match.group("ext") == "otrkey":
            return None
        stage = Stage.ENCODED if match.group("encext") else Stage.DECODED

    quality = match.group("quality")
    ext = match.group("ext")
    return Asset(
        canonical_name=f"{match.group('key')}{'.' + quality if quality else ''}.{ext}",
        key=match.group("key"),
        title=match.group("title"),
        date=match.group("date"),
        time=match.group("time"),
        station=match.group("station"),
        number=match.group("number"),
        quality=quality,
        extension=ext,
        stage=stage,
        path=path,
    )


def decoded_name(encoded_name: str) -> str:
    """File name of the decoded video for an encrypted file name."""
    if not encoded_name.endswith(ENCRYPTED_SUFFIX):
        raise ValueError(f"'{encoded_name}' is not an encrypted file name")
    return encoded_name[: -len(ENCRYPTED_SUFFIX)]


def cut_name(decoded: str) -> str:
    """File name of the cut video for a decoded file name."""
    stem, dot, ext = decoded.rpartition(".")
    if not dot or not stem:
        raise ValueError(f"'{decoded}' has no extension")
    return f"{stem}.{CUT_MARKER}.{ext}"
