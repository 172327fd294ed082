from __future__ import annotations

from typing import List, Optional, Protocol

from ..models import CandidateResult


class MetadataProvider(Protocol):
    name: str

    def search(self, title: str, year: Optional[int] = None) -> List[CandidateResult]: ...


__all__ = ["MetadataProvider"]
