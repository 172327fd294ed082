from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler

from .scanner import LibraryScanner

logger = logging.getLogger(__name__)


class WatchHandler(FileSystemEventHandler):
    def __init__(
        self,
        queue: asyncio.Queue[Path],
        scanner: LibraryScanner,
        *,
        loop: asyncio.AbstractEventLoop,
    ) -> None:
        super().__init__()
        self.queue = queue
        self.scanner = scanner
        self.loop = loop

    def on_created(self, event: FileSystemEvent) -> None:
        self._maybe_enqueue(event.src_path, event.is_directory)

    def on_modified(self, event: FileSystemEvent) -> None:
        self._maybe_enqueue(event.src_path, event.is_directory)

    def _maybe_enqueue(self, src: str | bytes, is_directory: bool) -> None:
        if is_directory:
            return
        if isinstance(src, bytes):
            src = src.decode("utf-8", errors="replace")
        path = Path(src)
        if self.scanner.should_include(path):
            logger.debug("Queued file change: %s", path)
            self.loop.call_soon_threadsafe(self.queue.put_nowait, path)
