from __future__ import annotations

from pathlib import Path
from typing import Optional, Protocol, Union

from ..models import Failure, MediaKind, ResolutionConfig, ResolvedMetadata
from ..prompt_io import InteractiveSelector
from ..status import StatusSink


class MetadataWriter(Protocol):
    def write(self, path: Path, meta: ResolvedMetadata, status: StatusSink) -> bool: ...


class Processor(Protocol):
    kind: MediaKind

    def lookup(
        self,
        path: Path,
        selector: InteractiveSelector,
        status: StatusSink,
        config: ResolutionConfig,
    ) -> Union[ResolvedMetadata, Failure]: ...

    def process(
        self,
        path: Path,
        selector: InteractiveSelector,
        status: StatusSink,
        config: ResolutionConfig,
        writer: Optional[MetadataWriter] = None,
    ) -> bool: ...
