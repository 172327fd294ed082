from __future__ import annotations

import logging
import urllib.error
import urllib.request
from pathlib import Path
from typing import Callable, Dict, Optional

from mutagen import MutagenError
from mutagen.mp4 import MP4, MP4Cover

from .config import TaggingSettings
from .models import ResolvedMetadata
from .organizer import Organizer
from .status import MessageType, StatusSink

logger = logging.getLogger(__name__)

PNG_MAGIC = b"\x89PNG\r\n\x1a\n"
MP4_MEDIA_KIND_MOVIE = 9

CoverFetcher = Callable[[str], Optional[bytes]]


def fetch_cover(url: str) -> Optional[bytes]:
    req = urllib.request.Request(url, headers={"User-Agent": "movie-meta/0.1"})
    try:
        with urllib.request.urlopen(req, timeout=15) as resp:
            return resp.read()
    except urllib.error.HTTPError as exc:
        logger.debug("Cover HTTP error %s for %s: %s", exc.code, url, exc)
    except urllib.error.URLError as exc:
        logger.warning("Cover request failed for %s: %s", url, exc)
    return None


class TagWriter:
    """Writes resolved movie metadata into MP4/M4V containers."""

    SUPPORTED_EXTS = {".mp4", ".m4v"}

    def __init__(
        self,
        settings: TaggingSettings | None = None,
        *,
        cover_fetcher: CoverFetcher = fetch_cover,
        organizer: Organizer | None = None,
    ) -> None:
        self.settings = settings or TaggingSettings()
        self.cover_fetcher = cover_fetcher
        self.organizer = organizer or Organizer(self.settings)

    def write(self, path: Path, meta: ResolvedMetadata, status: StatusSink) -> bool:
        ext = path.suffix.lower()
        if ext not in self.SUPPORTED_EXTS:
            status.status(f"Error: cannot write tags to {ext or 'extensionless'} files", MessageType.ERROR)
            return False
        try:
            video = MP4(path)
        except MutagenError as exc:
            status.status(f"Error: could not open {path.name} for tagging: {exc}", MessageType.ERROR)
            return False
        if video.tags is None:
            video.add_tags()

        success = True
        for key, value in self._desired_map(meta).items():
            video[key] = [value]
        if self.settings.extended_tagging:
            video["stik"] = [MP4_MEDIA_KIND_MOVIE]
        if self.settings.add_cover_art and meta.artwork_available and meta.cover_url:
            cover = self._cover(meta.cover_url)
            if cover is None:
                status.status("Error: failed to download movie cover", MessageType.ERROR)
                success = False
            else:
                video["covr"] = [cover]

        try:
            video.save()
        except MutagenError as exc:
            status.status(f"Error: could not save tags to {path.name}: {exc}", MessageType.ERROR)
            return False
        logger.debug("Wrote tags for %s", path)

        if self.organizer.enabled:
            try:
                target = self.organizer.rename(path, meta)
            except OSError as exc:
                status.status(f"Error: failed to rename {path.name}: {exc}", MessageType.ERROR)
                return False
            if target is not None:
                status.status(f"Renamed to {target.name}", MessageType.INFORMATION)
        return success

    def diff(self, path: Path, meta: ResolvedMetadata) -> Dict[str, Dict[str, Optional[str]]]:
        if path.suffix.lower() not in self.SUPPORTED_EXTS:
            return {}
        current = self.read_existing_tags(path) or {}
        changes: Dict[str, Dict[str, Optional[str]]] = {}
        for key, expected in self._desired_map(meta).items():
            current_value = current.get(key)
            if self._normalize(current_value) != self._normalize(expected):
                changes[key] = {"old": current_value, "new": expected}
        return changes

    def read_existing_tags(self, path: Path) -> Optional[Dict[str, Optional[str]]]:
        try:
            video = MP4(path)
        except MutagenError as exc:  # pragma: no cover - depends on local files
            logger.debug("Failed to read tags for %s: %s", path, exc)
            return None
        return {key: self._mp4_text(video, key) for key in ("\xa9nam", "\xa9day", "desc", "ldes")}

    def _desired_map(self, meta: ResolvedMetadata) -> Dict[str, str]:
        mapping = {
            "\xa9nam": meta.title,
            "\xa9day": meta.release_date.isoformat(),
        }
        if meta.overview:
            mapping["desc"] = meta.overview
            mapping["ldes"] = meta.overview
        return mapping

    def _cover(self, url: str) -> Optional[MP4Cover]:
        data = self.cover_fetcher(url)
        if not data:
            return None
        fmt = MP4Cover.FORMAT_PNG if data.startswith(PNG_MAGIC) else MP4Cover.FORMAT_JPEG
        return MP4Cover(data, imageformat=fmt)

    @staticmethod
    def _mp4_text(video: MP4, key: str) -> Optional[str]:
        value = video.get(key)
        if not value:
            return None
        first = value[0]
        if isinstance(first, bytes):
            return first.decode("utf-8", errors="replace")
        return str(first)

    @staticmethod
    def _normalize(value: Optional[str]) -> str:
        if value is None:
            return ""
        return value.strip()
