import asyncio
import os
import tempfile
import unittest
from datetime import date
from pathlib import Path
from unittest.mock import patch

from movie_meta.app import MovieMetaApp, RunSummary
from movie_meta.config import LibrarySettings, ProviderSettings, Settings, TaggingSettings
from movie_meta.models import CandidateResult, ResolvedMetadata
from movie_meta.prompt_io import BufferPromptIO, FirstOptionSelector, PromptSelector
from movie_meta.status import BufferStatusSink
from movie_meta.watchdog_handler import WatchHandler


class _Provider:
    name = "TheMovieDB"

    def __init__(self, catalog) -> None:
        self.catalog = catalog

    def search(self, title, year=None):
        return list(self.catalog.get(title, []))


class _Writer:
    def __init__(self) -> None:
        self.written: list[tuple[Path, ResolvedMetadata]] = []

    def write(self, path, meta, status):
        self.written.append((path, meta))
        return True

    def diff(self, path, meta):
        return {}


class _FlakyWriter(_Writer):
    def __init__(self, results) -> None:
        super().__init__()
        self.results = list(results)

    def write(self, path, meta, status):
        super().write(path, meta, status)
        return self.results.pop(0)


class _Event:
    def __init__(self, src_path) -> None:
        self.src_path = src_path
        self.is_directory = False


CATALOG = {
    "Heat": [
        CandidateResult("Heat", date(1995, 12, 15), "Thief", "/heat.jpg"),
        CandidateResult("Heat", date(1986, 3, 14), "Vegas", "/heat86.jpg"),
    ],
    "Alien": [
        CandidateResult("Aliens", date(1986, 7, 18), "Sequel", "/aliens.jpg"),
        CandidateResult("Alien", date(1979, 5, 25), "Original", "/alien.jpg"),
    ],
}


class TestMovieMetaApp(unittest.TestCase):
    def _app(self, root: Path, manual: bool = False) -> MovieMetaApp:
        settings = Settings(
            library=LibrarySettings(roots=[str(root)]),
            providers=ProviderSettings(tmdb_api_key="abc"),
            tagging=TaggingSettings(manual_mode=manual),
        )
        return MovieMetaApp.create(settings, provider=_Provider(CATALOG), writer=_Writer())

    def test_scan_resolves_each_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            for name in ("Alien (1979).mp4", "Heat.1995.720p.mp4", "garbage.mp4", "Nope.2000.mkv"):
                (root / name).write_bytes(b"")
            app = self._app(root)
            prompt_io = BufferPromptIO(inputs=["2"])
            status = BufferStatusSink()

            summary = app.run_scan(PromptSelector(prompt_io), status, app.resolution_config())

        self.assertEqual(sorted(p.name for p in summary.succeeded), ["Alien (1979).mp4", "Heat.1995.720p.mp4"])
        self.assertEqual(sorted(p.name for p in summary.failed), ["Nope.2000.mkv", "garbage.mp4"])
        self.assertFalse(summary.ok)
        written = {path.name: meta for path, meta in app.writer.written}
        self.assertEqual(written["Alien (1979).mp4"].title, "Alien")
        self.assertEqual(written["Heat.1995.720p.mp4"].release_date.year, 1995)
        self.assertEqual(len(prompt_io.prompts), 1)

    def test_manual_mode_from_settings(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            app = self._app(root, manual=True)
            config = app.resolution_config()
            self.assertTrue(config.manual_mode)
            self.assertFalse(app.resolution_config(False).manual_mode)

            prompt_io = BufferPromptIO(inputs=["2"])
            status = BufferStatusSink()
            ok = app.process_file(root / "Heat.mp4", PromptSelector(prompt_io), status, config)

        self.assertTrue(ok)
        self.assertEqual(app.writer.written[0][1].release_date.year, 1986)

class TestWatchWorker(unittest.IsolatedAsyncioTestCase):
    def _app(self, root: Path, writer: _Writer) -> MovieMetaApp:
        settings = Settings(
            library=LibrarySettings(roots=[str(root)]),
            providers=ProviderSettings(tmdb_api_key="abc"),
        )
        return MovieMetaApp.create(
            settings, provider=_Provider(CATALOG), writer=writer, interactive=False
        )

    async def asyncSetUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self.queue: asyncio.Queue[Path] = asyncio.Queue()
        self.summary = RunSummary()

    async def asyncTearDown(self) -> None:
        self._tmp.cleanup()

    async def _drain(self, app: MovieMetaApp) -> None:
        worker = asyncio.create_task(
            app._worker(
                0,
                self.queue,
                self.summary,
                FirstOptionSelector(),
                BufferStatusSink(),
                app.resolution_config(),
            )
        )
        try:
            await asyncio.wait_for(self.queue.join(), timeout=5.0)
        finally:
            worker.cancel()
            await asyncio.gather(worker, return_exceptions=True)

    async def test_modified_file_is_retried_after_failed_attempt(self) -> None:
        path = self.root / "Heat.1995.mp4"
        path.write_bytes(b"partial")
        writer = _FlakyWriter([False, True])
        app = self._app(self.root, writer)
        handler = WatchHandler(self.queue, app.scanner, loop=asyncio.get_running_loop())

        handler.on_created(_Event(str(path)))  # type: ignore[arg-type]
        await asyncio.sleep(0)
        await self._drain(app)
        self.assertEqual(len(writer.written), 1)

        # Same content again: nothing to retry.
        self.queue.put_nowait(path)
        await self._drain(app)
        self.assertEqual(len(writer.written), 1)

        path.write_bytes(b"complete")
        later = path.stat().st_mtime + 10
        os.utime(path, (later, later))
        handler.on_modified(_Event(str(path)))  # type: ignore[arg-type]
        await asyncio.sleep(0)
        await self._drain(app)

        self.assertEqual(len(writer.written), 2)
        self.assertEqual(self.summary.failed, [path])
        self.assertEqual(self.summary.succeeded, [path])

        # Events caused by our own write are ignored once tagged.
        handler.on_modified(_Event(str(path)))  # type: ignore[arg-type]
        await asyncio.sleep(0)
        await self._drain(app)
        self.assertEqual(len(writer.written), 2)

    async def test_tracked_files_are_bounded_and_dropped_when_gone(self) -> None:
        first = self.root / "Heat.1995.mp4"
        second = self.root / "Alien (1979).mp4"
        for path in (first, second):
            path.write_bytes(b"")
        app = self._app(self.root, _Writer())

        with patch("movie_meta.app.MAX_TRACKED_FILES", 1):
            self.queue.put_nowait(first)
            self.queue.put_nowait(second)
            await self._drain(app)
        self.assertEqual(list(app._attempts), [second])

        second.unlink()
        self.queue.put_nowait(second)
        await self._drain(app)
        self.assertEqual(len(app._attempts), 0)


if __name__ == "__main__":
    unittest.main()
