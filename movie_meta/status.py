from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Protocol, Tuple

logger = logging.getLogger(__name__)


class MessageType(str, Enum):
    INFORMATION = "information"
    ERROR = "error"


class StatusSink(Protocol):
    def status(self, message: str, kind: MessageType = MessageType.INFORMATION) -> None: ...


class LoggingStatusSink:
    """Forwards pipeline progress to the logging system."""

    def __init__(self, name: str | None = None) -> None:
        self._logger = logging.getLogger(name) if name else logger

    def status(self, message: str, kind: MessageType = MessageType.INFORMATION) -> None:
        if kind is MessageType.ERROR:
            self._logger.error(message)
        else:
            self._logger.info(message)


@dataclass(slots=True)
class BufferStatusSink:
    messages: List[Tuple[str, MessageType]] = field(default_factory=list)

    def status(self, message: str, kind: MessageType = MessageType.INFORMATION) -> None:
        self.messages.append((message, kind))

    def errors(self) -> List[str]:
        return [msg for msg, kind in self.messages if kind is MessageType.ERROR]

    def infos(self) -> List[str]:
        return [msg for msg, kind in self.messages if kind is MessageType.INFORMATION]
