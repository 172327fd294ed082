from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path

from pydantic import ValidationError

from .app import MovieMetaApp, RunSummary
from .commands import doctor as cmd_doctor
from .config import Settings, find_config
from .models import Failure, ResolutionConfig
from .prompt_io import FirstOptionSelector, InteractiveSelector, PromptSelector
from .providers.validation import validate_providers
from .status import LoggingStatusSink, StatusSink

LOG_FORMAT = "%(levelname).1s | %(name)s | %(message)s"

C_RESET = "\033[0m"
LEVEL_COLORS = {
    logging.DEBUG: "\033[36m",
    logging.INFO: "\033[37m",
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[31m",
    logging.CRITICAL: "\033[35m",
}


class ShortPathFormatter(logging.Formatter):
    def __init__(self, fmt: str, roots: list[Path]) -> None:
        super().__init__(fmt)
        self.roots = [str(root) for root in roots if root]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for root in self.roots:
            message = message.replace(f"{root}/", "").replace(root, "")
        return message


class ColorFormatter(ShortPathFormatter):
    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        color = LEVEL_COLORS.get(record.levelno)
        if not color:
            return message
        return f"{color}{message}{C_RESET}"


class WarningBufferHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__(level=logging.WARNING)
        self.records: list[str] = []

    def emit(self, record: logging.LogRecord) -> None:
        try:
            msg = self.format(record)
        except Exception:  # pragma: no cover
            msg = record.getMessage()
        self.records.append(msg)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Tag movie files with metadata from TheMovieDB")
    parser.add_argument("--config", type=Path, help="Path to config.yaml")
    parser.add_argument("--log-level", default="INFO", help="Python logging level")
    parser.add_argument(
        "--manual",
        action="store_true",
        help="Always choose between multiple search results, even on an exact title match",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Resolve metadata and print it as JSON without touching files",
    )
    parser.add_argument(
        "--non-interactive",
        action="store_true",
        help="Never prompt; take the top search result when a choice is needed",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)
    tag_parser = subparsers.add_parser("tag", help="Tag the given files or directories")
    tag_parser.add_argument("paths", nargs="+", type=Path)
    subparsers.add_parser("scan", help="Tag every movie file under the configured roots")
    subparsers.add_parser("watch", help="Scan, then tag new files as they appear")
    doctor_parser = subparsers.add_parser("doctor", help="Check configuration")
    doctor_parser.add_argument(
        "--providers",
        action="store_true",
        help="Also validate the TMDB API key with a network call",
    )
    return parser


def configure_logging(log_level: str, roots: list[Path]) -> tuple[WarningBufferHandler, Path]:
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    color_handler = logging.StreamHandler()
    color_handler.setFormatter(ColorFormatter(LOG_FORMAT, roots))
    root_logger.addHandler(color_handler)

    warn_buffer = WarningBufferHandler()
    warn_buffer.setFormatter(ShortPathFormatter(LOG_FORMAT, roots))
    root_logger.addHandler(warn_buffer)

    warn_log_path = Path.cwd() / "movie-meta-warnings.log"
    file_handler = logging.FileHandler(warn_log_path, mode="w", encoding="utf-8")
    file_handler.setLevel(logging.WARNING)
    file_handler.setFormatter(ShortPathFormatter(LOG_FORMAT, roots))
    root_logger.addHandler(file_handler)

    logging.getLogger("watchdog").setLevel(logging.WARNING)
    return warn_buffer, warn_log_path


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        settings = Settings.load(find_config(args.config))
    except FileNotFoundError as exc:
        raise SystemExit(str(exc)) from exc
    except ValidationError as exc:
        raise SystemExit(f"Invalid configuration:\n{exc}") from exc

    warn_buffer, warn_log_path = configure_logging(args.log_level, settings.library.roots)
    try:
        exit_code = _dispatch(parser, args, settings)
    finally:
        if warn_buffer.records:
            print("\n\033[33mWarnings/Errors summary:\033[0m")
            for line in warn_buffer.records:
                print(f" - {line}")
            print(f"\nFull warning log: {warn_log_path}")
    if exit_code:
        raise SystemExit(exit_code)


def _dispatch(parser: argparse.ArgumentParser, args: argparse.Namespace, settings: Settings) -> int:
    if args.command == "doctor":
        report = cmd_doctor.run(settings, validate_providers_online=args.providers)
        for line in report.checks:
            print(line)
        return 0 if report.ok else 1

    validate_providers(settings.providers)
    interactive = not args.non_interactive
    app = MovieMetaApp.create(settings, interactive=interactive)
    selector = PromptSelector() if interactive else FirstOptionSelector()
    status = LoggingStatusSink("movie_meta.status")
    config = app.resolution_config(True if args.manual else None)

    match args.command:
        case "tag":
            paths = list(app.scanner.expand(args.paths))
            if args.dry_run:
                return _dry_run(app, paths, selector, status, config)
            summary = app.run_files(paths, selector, status, config)
        case "scan":
            if args.dry_run:
                return _dry_run(app, list(app.scanner.iter_files()), selector, status, config)
            summary = app.run_scan(selector, status, config)
        case "watch":
            summary = asyncio.run(app.run_watch(selector, status, config))
        case _:
            parser.error("Unknown command")
    return _report(summary)


def _dry_run(
    app: MovieMetaApp,
    paths: list[Path],
    selector: InteractiveSelector,
    status: StatusSink,
    config: ResolutionConfig,
) -> int:
    failures = 0
    for path in paths:
        outcome = app.lookup_file(path, selector, status, config)
        if isinstance(outcome, Failure):
            failures += 1
            continue
        record = {"path": str(path), **outcome.to_record()}
        record["changes"] = app.writer.diff(path, outcome)
        print(json.dumps(record, ensure_ascii=False))
        if not outcome.complete:
            failures += 1
    return 1 if failures else 0


def _report(summary: RunSummary) -> int:
    logging.getLogger(__name__).info(
        "Tagged %d file(s), %d failed", len(summary.succeeded), len(summary.failed)
    )
    for path in summary.failed:
        logging.getLogger(__name__).warning("Failed: %s", path)
    return 0 if summary.ok else 1
