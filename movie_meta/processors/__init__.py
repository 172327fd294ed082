from __future__ import annotations

from typing import Optional

from ..models import MediaKind
from ..resolver import MetadataResolver
from .base import MetadataWriter, Processor
from .movie import MovieProcessor


def processor_for(
    kind: MediaKind,
    resolver: MetadataResolver,
    writer: Optional[MetadataWriter] = None,
) -> Processor:
    if kind is MediaKind.MOVIE:
        return MovieProcessor(resolver, writer)
    raise ValueError(f"No processor registered for {kind!r}")


__all__ = ["MetadataWriter", "MovieProcessor", "Processor", "processor_for"]
