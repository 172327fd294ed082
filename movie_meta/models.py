from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Dict, Optional, Tuple

UNKNOWN_YEAR = "Unknown"


class MediaKind(str, Enum):
    MOVIE = "movie"


class FailureKind(str, Enum):
    UNPARSABLE_FILENAME = "unparsable_filename"
    SEARCH_FAILED = "search_failed"
    NOT_FOUND = "not_found"
    MISSING_RELEASE_DATE = "missing_release_date"


@dataclass(frozen=True, slots=True)
class Failure:
    """Terminal outcome of a pipeline stage; the file is skipped."""

    kind: FailureKind
    message: str
    title: Optional[str] = None


@dataclass(frozen=True, slots=True)
class ParsedKey:
    title: str
    year: Optional[int] = None


@dataclass(frozen=True, slots=True)
class CandidateResult:
    title: str
    release_date: Optional[date] = None
    overview: str = ""
    poster_path: Optional[str] = None
    tmdb_id: Optional[int] = None

    @property
    def release_year(self) -> Optional[int]:
        return self.release_date.year if self.release_date else None

    def display_pair(self) -> Tuple[str, str]:
        year = self.release_year
        return self.title, str(year) if year is not None else UNKNOWN_YEAR


@dataclass(frozen=True, slots=True)
class ResolutionConfig:
    manual_mode: bool = False


@dataclass(slots=True)
class ResolvedMetadata:
    kind: MediaKind
    title: str
    release_date: date
    overview: str = ""
    cover_url: Optional[str] = None
    cover_filename: Optional[str] = None
    tmdb_id: Optional[int] = None
    found: bool = True
    artwork_available: bool = True

    @property
    def complete(self) -> bool:
        return self.found and self.artwork_available

    @property
    def year(self) -> int:
        return self.release_date.year

    def to_record(self) -> Dict[str, object]:
        return {
            "kind": self.kind.value,
            "title": self.title,
            "overview": self.overview,
            "release_date": self.release_date.isoformat(),
            "cover_url": self.cover_url,
            "cover_filename": self.cover_filename,
            "tmdb_id": self.tmdb_id,
            "found": self.found,
            "artwork_available": self.artwork_available,
        }


class ProviderError(Exception):
    """Raised by a metadata provider when a search cannot be completed."""
