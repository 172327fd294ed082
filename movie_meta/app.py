from __future__ import annotations

import asyncio
import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional

from watchdog.observers import Observer

from .config import Settings
from .models import Failure, MediaKind, ResolutionConfig, ResolvedMetadata
from .processors import Processor, processor_for
from .prompt_io import InteractiveSelector
from .providers import MetadataProvider
from .providers.tmdb import TMDbClient
from .resolver import MetadataResolver
from .scanner import LibraryScanner
from .status import StatusSink
from .tagging import TagWriter
from .watchdog_handler import WatchHandler

logger = logging.getLogger(__name__)

MAX_TRACKED_FILES = 4096


@dataclass(slots=True)
class RunSummary:
    succeeded: list[Path] = field(default_factory=list)
    failed: list[Path] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed

    def record(self, path: Path, success: bool) -> None:
        (self.succeeded if success else self.failed).append(path)


@dataclass
class MovieMetaApp:
    settings: Settings
    scanner: LibraryScanner
    provider: MetadataProvider
    processor: Processor
    writer: TagWriter
    interactive: bool = True
    _attempts: OrderedDict[Path, float] = field(default_factory=OrderedDict)
    _active: set[Path] = field(default_factory=set)

    @classmethod
    def create(
        cls,
        settings: Settings,
        *,
        provider: MetadataProvider | None = None,
        writer: TagWriter | None = None,
        interactive: bool = True,
    ) -> "MovieMetaApp":
        provider = provider or TMDbClient(settings.providers)
        writer = writer or TagWriter(settings.tagging)
        resolver = MetadataResolver(provider)
        return cls(
            settings=settings,
            scanner=LibraryScanner(settings.library),
            provider=provider,
            processor=processor_for(MediaKind.MOVIE, resolver, writer),
            writer=writer,
            interactive=interactive,
        )

    def resolution_config(self, manual_mode: Optional[bool] = None) -> ResolutionConfig:
        if manual_mode is None:
            manual_mode = self.settings.tagging.manual_mode
        return ResolutionConfig(manual_mode=manual_mode)

    def process_file(
        self,
        path: Path,
        selector: InteractiveSelector,
        status: StatusSink,
        config: ResolutionConfig,
    ) -> bool:
        logger.debug("Processing %s", path)
        return self.processor.process(path, selector, status, config)

    def lookup_file(
        self,
        path: Path,
        selector: InteractiveSelector,
        status: StatusSink,
        config: ResolutionConfig,
    ) -> ResolvedMetadata | Failure:
        return self.processor.lookup(path, selector, status, config)

    def run_files(
        self,
        paths: Iterable[Path],
        selector: InteractiveSelector,
        status: StatusSink,
        config: ResolutionConfig,
    ) -> RunSummary:
        summary = RunSummary()
        for path in paths:
            summary.record(path, self.process_file(path, selector, status, config))
        return summary

    def run_scan(self, selector: InteractiveSelector, status: StatusSink, config: ResolutionConfig) -> RunSummary:
        return self.run_files(self.scanner.iter_files(), selector, status, config)

    async def run_watch(
        self,
        selector: InteractiveSelector,
        status: StatusSink,
        config: ResolutionConfig,
        *,
        initial_scan: bool = True,
    ) -> RunSummary:
        summary = RunSummary()
        queue: asyncio.Queue[Path] = asyncio.Queue()
        if initial_scan:
            for path in self.scanner.iter_files():
                await queue.put(path)
        loop = asyncio.get_running_loop()
        observer = Observer()
        handler = WatchHandler(queue, self.scanner, loop=loop)
        for root in self.settings.library.roots:
            if root.exists():
                observer.schedule(handler, str(root), recursive=True)
        observer.start()
        workers = self._start_workers(queue, summary, selector, status, config)
        try:
            while True:
                await asyncio.sleep(3600)
        except (asyncio.CancelledError, KeyboardInterrupt):
            logger.debug("Watcher stopping")
        finally:
            observer.stop()
            observer.join()
            for worker in workers:
                worker.cancel()
            await asyncio.gather(*workers, return_exceptions=True)
        return summary

    def _start_workers(
        self,
        queue: asyncio.Queue[Path],
        summary: RunSummary,
        selector: InteractiveSelector,
        status: StatusSink,
        config: ResolutionConfig,
    ) -> list[asyncio.Task[None]]:
        # A console selector cannot be shared between workers.
        concurrency = 1 if self.interactive else self.settings.daemon.worker_concurrency
        return [
            asyncio.create_task(self._worker(i, queue, summary, selector, status, config))
            for i in range(concurrency)
        ]

    async def _worker(
        self,
        worker_id: int,
        queue: asyncio.Queue[Path],
        summary: RunSummary,
        selector: InteractiveSelector,
        status: StatusSink,
        config: ResolutionConfig,
    ) -> None:
        loop = asyncio.get_running_loop()
        while True:
            path = await queue.get()
            try:
                mtime = _mtime(path)
                if mtime is None:
                    self._attempts.pop(path, None)
                    continue
                if path in self._active or self._attempts.get(path) == mtime:
                    continue
                self._active.add(path)
                try:
                    success = await loop.run_in_executor(
                        None, self.process_file, path, selector, status, config
                    )
                finally:
                    self._active.discard(path)
                summary.record(path, success)
                # Failures keep the pre-attempt mtime so the next change retries them.
                self._remember(path, _mtime(path) if success else mtime)
            except Exception:  # pragma: no cover - logged and ignored
                logger.exception("Worker %s failed to process %s", worker_id, path)
                summary.record(path, False)
            finally:
                queue.task_done()

    def _remember(self, path: Path, mtime: Optional[float]) -> None:
        if mtime is None:
            self._attempts.pop(path, None)
            return
        self._attempts[path] = mtime
        self._attempts.move_to_end(path)
        while len(self._attempts) > MAX_TRACKED_FILES:
            self._attempts.popitem(last=False)


def _mtime(path: Path) -> Optional[float]:
    try:
        return path.stat().st_mtime
    except OSError:
        return None
