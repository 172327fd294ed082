from __future__ import annotations

import fnmatch
from collections.abc import Iterable, Iterator
from pathlib import Path

from .config import LibrarySettings


class LibraryScanner:
    """Walks the configured roots and yields movie files in a stable order."""

    def __init__(self, settings: LibrarySettings) -> None:
        self.settings = settings
        self._exts = {ext.lower() for ext in self.settings.include_extensions}

    def iter_files(self) -> Iterator[Path]:
        for root in self.settings.roots:
            if not root.exists():
                continue
            for file_path in sorted(root.rglob("*")):
                if file_path.is_file() and self.should_include(file_path):
                    yield file_path

    def expand(self, paths: Iterable[Path]) -> Iterator[Path]:
        for path in paths:
            if path.is_dir():
                for file_path in sorted(path.rglob("*")):
                    if file_path.is_file() and self.should_include(file_path):
                        yield file_path
            elif self.should_include(path):
                yield path

    def should_include(self, path: Path) -> bool:
        if path.suffix.lower() not in self._exts:
            return False
        rel = str(path)
        for pattern in self.settings.exclude_patterns:
            if fnmatch.fnmatch(rel, pattern):
                return False
        return True
