from __future__ import annotations

import errno
import logging
import re
import shutil
from pathlib import Path
from typing import Optional

from .config import TaggingSettings
from .fs_utils import fit_destination_path, safe_rename
from .models import ResolvedMetadata

logger = logging.getLogger(__name__)

UNKNOWN_TITLE = "Unknown Title"
INVALID_FILENAME_CHARS = re.compile(r'[<>:"|?*\x00-\x1f]')


class Organizer:
    """Renames tagged files after their resolved metadata."""

    def __init__(self, settings: TaggingSettings) -> None:
        self.settings = settings

    @property
    def enabled(self) -> bool:
        return self.settings.rename_files

    def plan_target(self, path: Path, meta: ResolvedMetadata) -> Optional[Path]:
        target = path.with_name(self.build_filename(meta, path.suffix))
        if target == path:
            return None
        return fit_destination_path(target)

    def build_filename(self, meta: ResolvedMetadata, suffix: str) -> str:
        name = self.settings.movie_rename_pattern.format(
            title=meta.title,
            year=meta.year,
            date=meta.release_date.isoformat(),
        )
        return f"{self._safe(name, UNKNOWN_TITLE)}{suffix}"

    def rename(self, path: Path, meta: ResolvedMetadata) -> Optional[Path]:
        target = self.plan_target(path, meta)
        if target is None:
            return None
        if target.exists():
            logger.warning("Not renaming %s; %s already exists", path, target)
            return None
        try:
            safe_rename(path, target)
        except OSError as exc:
            if exc.errno != errno.EXDEV:
                raise
            shutil.move(str(path), str(target))
        logger.debug("Renamed %s -> %s", path, target)
        return target

    @staticmethod
    def _safe(value: Optional[str], fallback: str) -> str:
        if not value:
            return fallback
        cleaned = INVALID_FILENAME_CHARS.sub("", value.strip())
        cleaned = re.sub(r"[\\/]+", "-", cleaned)
        cleaned = cleaned.strip(" .")
        return cleaned or fallback
