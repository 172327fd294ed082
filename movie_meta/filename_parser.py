"""Extract a search key (title and optional year) from a scene-style movie filename.

The title is everything up to the first *noise marker*: a year, a resolution,
a rip source, a codec, a scene tag or the file extension. Markers are tried in
the order of ``NOISE_MARKERS``; whichever class matches first at the earliest
position ends the title.
"""

from __future__ import annotations

import re
from datetime import date
from pathlib import Path
from typing import Optional, Union

from .models import Failure, FailureKind, ParsedKey

MIN_YEAR = 1900

NOISE_MARKERS: tuple[tuple[str, str], ...] = (
    ("year", r"[(\[]?(?P<year>(?:19|20)[0-9]{2})[)\]]?"),
    ("resolution", r"[0-9]{3,4}(?:p|i)"),
    (
        "rip_type",
        r"(?:PPV\.)?[HPS]DTV|[. ](?:HD)?CAM[| ]|B[DR]Rip|[.| ](?:HD-?)?TS[.| ]"
        r"|(?:PPV )?WEB-?DL(?: DVDRip)?|HDRip|DVDRip|CamRip|W[EB]Rip|BluRay|DvDScr"
        r"|hdtv|REMUX|3D|Half-(?:OU|SBS)+|4K|NF|AMZN",
    ),
    ("video_codec", r"xvid|[hx]\.?26[45]|AVC"),
    (
        "audio_codec",
        r"MP3|DD5\.?1|Dual[\- ]Audio|LiNE|DTS[-HD]+|AAC[.-]LC|AAC(?:\.?2\.0)?"
        r"|AC3(?:\.5\.1)?|7\.1|DDP5.1",
    ),
    ("scene_tag", r"REPACK|INTERNAL|PROPER"),
    ("extension", r"\.(?:mp4|m4v|mkv)$"),
)

TITLE_SEPARATORS = " _-"

UNPARSABLE_MESSAGE = "Error: Failed to parse required information from filename"


def _build_pattern() -> re.Pattern[str]:
    markers = "|".join(f"(?P<{name}_marker>{regex})" for name, regex in NOISE_MARKERS)
    return re.compile(rf"^(?:(?P<title>.+?)[. _-]?)?(?:{markers})")


FILENAME_PATTERN = _build_pattern()


def parse_filename(filename: Union[str, Path]) -> Union[ParsedKey, Failure]:
    name = Path(filename).name
    match = FILENAME_PATTERN.match(name)
    if not match:
        return Failure(FailureKind.UNPARSABLE_FILENAME, UNPARSABLE_MESSAGE)
    title = (match.group("title") or "").replace(".", " ").strip(TITLE_SEPARATORS)
    if not title:
        return Failure(FailureKind.UNPARSABLE_FILENAME, UNPARSABLE_MESSAGE)
    return ParsedKey(title=title, year=_valid_year(match.group("year")))


def matched_marker(filename: Union[str, Path]) -> Optional[str]:
    """Name of the marker class that ended the title, or None when nothing matched."""
    match = FILENAME_PATTERN.match(Path(filename).name)
    if not match:
        return None
    for name, _ in NOISE_MARKERS:
        if match.group(f"{name}_marker") is not None:
            return name
    return None


def _valid_year(raw: Optional[str]) -> Optional[int]:
    if not raw:
        return None
    year = int(raw)
    if MIN_YEAR <= year <= date.today().year + 1:
        return year
    return None
