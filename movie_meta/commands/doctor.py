from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from ..config import Settings
from ..providers.validation import validate_providers
from ..providers.tmdb import TMDbClient


@dataclass(slots=True)
class DoctorReport:
    ok: bool = True
    checks: list[str] = field(default_factory=list)

    def add(self, label: str, status: str, detail: Optional[str] = None) -> None:
        line = f"{label}: {status}"
        if detail:
            line = f"{line} ({detail})"
        self.checks.append(line)
        if status == "ERROR":
            self.ok = False


def run(
    settings: Settings,
    *,
    validate_providers_online: bool = False,
    client: TMDbClient | None = None,
) -> DoctorReport:
    report = DoctorReport()

    roots = [root.resolve() for root in settings.library.roots]
    missing = [str(root) for root in roots if not root.exists()]
    if not roots:
        report.add("Library roots", "WARNING", "none configured; only `tag` can be used")
    elif missing:
        report.add("Library roots", "ERROR", f"missing: {', '.join(missing)}")
    else:
        report.add("Library roots", "OK", f"{len(roots)} root(s)")

    exts = ", ".join(settings.library.include_extensions)
    report.add("Extensions", "OK", exts)
    if ".mkv" in settings.library.include_extensions:
        report.add("Matroska", "WARNING", ".mkv files resolve but cannot be tagged")

    tagging = settings.tagging
    report.add("Manual mode", "ENABLED" if tagging.manual_mode else "DISABLED")
    report.add("Cover art", "ENABLED" if tagging.add_cover_art else "DISABLED")
    if tagging.rename_files:
        report.add("Rename", "ENABLED", f"pattern={tagging.movie_rename_pattern}")
    else:
        report.add("Rename", "DISABLED")

    if validate_providers_online:
        validate_providers(settings.providers, client=client)
        report.add("TMDB (network)", "OK")
    else:
        report.add("TMDB (network)", "SKIPPED", "pass --providers")
    return report
