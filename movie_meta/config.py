from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator


class LibrarySettings(BaseModel):
    roots: List[Path] = Field(default_factory=list)
    include_extensions: List[str] = Field(default_factory=lambda: [".mp4", ".m4v", ".mkv"])
    exclude_patterns: List[str] = Field(default_factory=list)

    @field_validator("roots", mode="before")
    @classmethod
    def _expand_roots(cls, values: Optional[List[str]]) -> List[Path]:
        return [Path(v).expanduser().resolve() for v in values or []]

    @field_validator("include_extensions")
    @classmethod
    def _normalize_exts(cls, values: List[str]) -> List[str]:
        return [v.lower() if v.startswith(".") else f".{v.lower()}" for v in values]


class ProviderSettings(BaseModel):
    tmdb_api_key: str
    language: str = "en-US"
    include_adult: bool = False
    request_timeout_seconds: float = 10.0
    network_retries: int = Field(default=1, ge=0)
    network_retry_backoff_seconds: float = Field(default=0.5, ge=0.0)


class TaggingSettings(BaseModel):
    manual_mode: bool = False
    add_cover_art: bool = True
    extended_tagging: bool = False
    rename_files: bool = False
    movie_rename_pattern: str = "{title} ({year})"

    @field_validator("movie_rename_pattern")
    @classmethod
    def _check_pattern(cls, value: str) -> str:
        if "{title}" not in value:
            raise ValueError("movie_rename_pattern must contain {title}")
        try:
            value.format(title="", year=0, date="")
        except (KeyError, IndexError, ValueError) as exc:
            raise ValueError(f"movie_rename_pattern has an unknown placeholder: {exc}") from exc
        return value


class DaemonSettings(BaseModel):
    worker_concurrency: int = Field(default=2, ge=1)


class Settings(BaseModel):
    library: LibrarySettings = LibrarySettings()
    providers: ProviderSettings
    tagging: TaggingSettings = TaggingSettings()
    daemon: DaemonSettings = DaemonSettings()

    @classmethod
    def load(cls, path: Path) -> "Settings":
        with path.open("r", encoding="utf-8") as fh:
            raw = yaml.safe_load(fh)
        return cls.model_validate(raw or {})


def find_config(explicit_path: Optional[Path]) -> Path:
    if explicit_path:
        return explicit_path
    cwd = Path.cwd()
    for candidate in (cwd / "config.yaml", cwd / "config.yml"):
        if candidate.exists():
            return candidate
    raise FileNotFoundError("Could not find config.yaml - pass --config explicitly.")
