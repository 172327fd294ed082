from __future__ import annotations

import logging
from typing import Sequence, Union

from .models import (
    CandidateResult,
    Failure,
    FailureKind,
    MediaKind,
    ParsedKey,
    ProviderError,
    ResolutionConfig,
    ResolvedMetadata,
)
from .prompt_io import InteractiveSelector
from .providers import MetadataProvider
from .providers.tmdb import TMDB_IMAGE_BASE
from .status import MessageType, StatusSink

logger = logging.getLogger(__name__)


class MetadataResolver:
    """
    Turns a parsed filename key into one metadata record.

    The provider's ranking is authoritative: the first result is taken whenever
    it is the only one or its title is an exact match, otherwise the injected
    selector decides. The resolver keeps no per-call state, so one instance can
    serve concurrent resolutions.
    """

    def __init__(
        self,
        provider: MetadataProvider,
        *,
        image_base_url: str = TMDB_IMAGE_BASE,
        kind: MediaKind = MediaKind.MOVIE,
    ) -> None:
        self.provider = provider
        self.image_base_url = image_base_url.rstrip("/")
        self.kind = kind

    @property
    def provider_label(self) -> str:
        return getattr(self.provider, "name", "TheMovieDB")

    def resolve(
        self,
        key: ParsedKey,
        selector: InteractiveSelector,
        config: ResolutionConfig,
        status: StatusSink,
    ) -> Union[ResolvedMetadata, Failure]:
        try:
            candidates = self.provider.search(key.title, key.year)
        except ProviderError as exc:
            logger.debug("Search for %r (%s) failed: %s", key.title, key.year, exc)
            return Failure(
                FailureKind.SEARCH_FAILED,
                f"Error: search for {key.title} on {self.provider_label} failed: {exc}",
                title=key.title,
            )
        if not candidates:
            return Failure(
                FailureKind.NOT_FOUND,
                f"Error: failed to find title {key.title} on {self.provider_label}",
                title=key.title,
            )

        selected = candidates[self._select_index(key, candidates, selector, config)]
        if selected.release_date is None:
            return Failure(
                FailureKind.MISSING_RELEASE_DATE,
                f"Error: {selected.title} on {self.provider_label} has no release date",
                title=key.title,
            )
        status.status(
            f"Found {selected.title} ({selected.release_year}) on {self.provider_label}",
            MessageType.INFORMATION,
        )

        result = self._map(selected)
        if not result.artwork_available:
            status.status("Error: failed to fetch movie cover", MessageType.ERROR)
        return result

    def _select_index(
        self,
        key: ParsedKey,
        candidates: Sequence[CandidateResult],
        selector: InteractiveSelector,
        config: ResolutionConfig,
    ) -> int:
        if len(candidates) == 1:
            return 0
        if candidates[0].title == key.title and not config.manual_mode:
            return 0
        options = [candidate.display_pair() for candidate in candidates]
        index = selector.choose(options)
        if not 0 <= index < len(candidates):
            raise IndexError(f"selector returned {index} for {len(candidates)} options")
        logger.debug("Selector picked %d of %d for %r", index, len(candidates), key.title)
        return index

    def _map(self, candidate: CandidateResult) -> ResolvedMetadata:
        poster = candidate.poster_path or ""
        return ResolvedMetadata(
            kind=self.kind,
            title=candidate.title,
            overview=candidate.overview or "",
            release_date=candidate.release_date,
            cover_url=f"{self.image_base_url}{poster}" if poster else None,
            cover_filename=poster.replace("/", "") or None,
            tmdb_id=candidate.tmdb_id,
            found=True,
            artwork_available=bool(poster),
        )

