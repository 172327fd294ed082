from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

from ..filename_parser import matched_marker, parse_filename
from ..models import Failure, MediaKind, ResolutionConfig, ResolvedMetadata
from ..prompt_io import InteractiveSelector
from ..resolver import MetadataResolver
from ..status import MessageType, StatusSink
from .base import MetadataWriter

logger = logging.getLogger(__name__)


class MovieProcessor:
    kind = MediaKind.MOVIE

    def __init__(self, resolver: MetadataResolver, writer: Optional[MetadataWriter] = None) -> None:
        self.resolver = resolver
        self.writer = writer

    def lookup(
        self,
        path: Path,
        selector: InteractiveSelector,
        status: StatusSink,
        config: ResolutionConfig,
    ) -> Union[ResolvedMetadata, Failure]:
        key = parse_filename(path.name)
        if isinstance(key, Failure):
            status.status(key.message, MessageType.ERROR)
            return key
        logger.debug("Title of %s ended at %s marker", path.name, matched_marker(path.name))
        status.status(f"Parsed file as {key.title}", MessageType.INFORMATION)

        outcome = self.resolver.resolve(key, selector, config, status)
        if isinstance(outcome, Failure):
            status.status(outcome.message, MessageType.ERROR)
        return outcome

    def process(
        self,
        path: Path,
        selector: InteractiveSelector,
        status: StatusSink,
        config: ResolutionConfig,
        writer: Optional[MetadataWriter] = None,
    ) -> bool:
        outcome = self.lookup(path, selector, status, config)
        if isinstance(outcome, Failure):
            return False
        writer = writer or self.writer
        if writer is None:
            raise RuntimeError("MovieProcessor.process requires a metadata writer")
        tagging_success = writer.write(path, outcome, status)
        return tagging_success and outcome.complete
