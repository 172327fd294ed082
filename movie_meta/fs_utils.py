from __future__ import annotations

import errno
import os
from pathlib import Path

ELLIPSIS = "…"
MAX_BASENAME_BYTES = 255


def fit_destination_path(path: Path) -> Path:
    """Shorten an over-long basename, keeping the suffix and avoiding existing files."""
    name_bytes = path.name.encode("utf-8")
    if len(name_bytes) <= MAX_BASENAME_BYTES:
        return path
    suffix_bytes = path.suffix.encode("utf-8")
    ellipsis_bytes = ELLIPSIS.encode("utf-8")
    stem = path.stem or "movie"
    counter = 0
    while True:
        extra = f"_{counter}" if counter else ""
        allowed = MAX_BASENAME_BYTES - len(suffix_bytes) - len(ellipsis_bytes) - len(extra.encode("utf-8"))
        truncated = stem.encode("utf-8")[: max(0, allowed)].decode("utf-8", errors="ignore") or "movie"
        candidate = path.with_name(f"{truncated}{extra}{ELLIPSIS}{path.suffix}")
        if not candidate.exists():
            return candidate
        counter += 1


def safe_rename(src: Path, dst: Path) -> None:
    try:
        src.rename(dst)
        return
    except OSError as exc:
        if exc.errno != errno.ENAMETOOLONG:
            raise
    src_dir_fd = os.open(src.parent, os.O_RDONLY)
    try:
        dst.parent.mkdir(parents=True, exist_ok=True)
        dst_dir_fd = os.open(dst.parent, os.O_RDONLY)
        try:
            os.rename(src.name, dst.name, src_dir_fd=src_dir_fd, dst_dir_fd=dst_dir_fd)
        finally:
            os.close(dst_dir_fd)
    finally:
        os.close(src_dir_fd)
