"""Receivers for generated file content."""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from .logging import get_logger
from .models import TypeKey
from .storage import FileSystem, LocalFileSystem


@dataclass(frozen=True)
class FileContentGenerated:
    """Emitted once per rendered file. `key` is None for index and barrel files."""

    key: Optional[TypeKey]
    path: Path
    content: str


class FileSink(ABC):
    """Consumes generated file events."""

    @abstractmethod
    def handle(self, event: FileContentGenerated) -> None:
        """Process a single generated file."""


class FileSystemSink(FileSink):
    """Persists generated content; the default sink."""

    def __init__(self, file_system: FileSystem | None = None) -> None:
        self.file_system = file_system or LocalFileSystem()

    def handle(self, event: FileContentGenerated) -> None:
        self.file_system.write_text(event.path, event.content)


class LoggingSink(FileSink):
    """Logs every generated file at debug level."""

    def __init__(self) -> None:
        self.logger = get_logger("sinks")

    def handle(self, event: FileContentGenerated) -> None:
        self.logger.debug(
            "Generated %s (%d chars) for %s", event.path, len(event.content), event.key or "index"
        )


class RecordingSink(FileSink):
    """Captures events in memory."""

    def __init__(self) -> None:
        self.events: List[FileContentGenerated] = []
        self._lock = threading.Lock()

    def handle(self, event: FileContentGenerated) -> None:
        with self._lock:
            self.events.append(event)

    def content_for(self, path: Path) -> Optional[str]:
        for event in reversed(self.events):
            if Path(event.path) == Path(path):
                return event.content
        return None

    @property
    def paths(self) -> List[Path]:
        return sorted(Path(event.path) for event in self.events)


__all__ = [
    "FileContentGenerated",
    "FileSink",
    "FileSystemSink",
    "LoggingSink",
    "RecordingSink",
]
