"""File system abstraction used for reading previous output and listing directories."""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from pathlib import Path, PurePosixPath
from typing import Dict, List, Optional


class FileSystem(ABC):
    """Minimal storage contract for the generator."""

    @abstractmethod
    def read_text(self, path: Path) -> Optional[str]:
        """Return the file contents, or None when the file does not exist."""

    @abstractmethod
    def write_text(self, path: Path, content: str) -> None:
        """Persist `content` at `path`, creating parent directories."""

    @abstractmethod
    def list_files(self, directory: Path) -> List[Path]:
        """Return the files directly inside `directory`, sorted by name."""

    @abstractmethod
    def list_directories(self, directory: Path) -> List[Path]:
        """Return the sub-directories directly inside `directory`, sorted by name."""


class LocalFileSystem(FileSystem):
    """Reads and writes the real disk."""

    def read_text(self, path: Path) -> Optional[str]:
        try:
            return Path(path).read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def write_text(self, path: Path, content: str) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8", newline="\n")

    def list_files(self, directory: Path) -> List[Path]:
        directory = Path(directory)
        if not directory.is_dir():
            return []
        return sorted(entry for entry in directory.iterdir() if entry.is_file())

    def list_directories(self, directory: Path) -> List[Path]:
        directory = Path(directory)
        if not directory.is_dir():
            return []
        return sorted(entry for entry in directory.iterdir() if entry.is_dir())


class MemoryFileSystem(FileSystem):
    """Keeps files in a dictionary; used for dry runs and tests."""

    def __init__(self, files: Optional[Dict[str, str]] = None) -> None:
        self._files: Dict[str, str] = {}
        self._lock = threading.Lock()
        for path, content in (files or {}).items():
            self.write_text(Path(path), content)

    @staticmethod
    def _normalise(path: Path) -> str:
        return PurePosixPath(Path(path).as_posix()).as_posix()

    def read_text(self, path: Path) -> Optional[str]:
        return self._files.get(self._normalise(path))

    def write_text(self, path: Path, content: str) -> None:
        with self._lock:
            self._files[self._normalise(path)] = content

    def list_files(self, directory: Path) -> List[Path]:
        prefix = self._normalise(directory).rstrip("/") + "/"
        names = {
            path
            for path in self._files
            if path.startswith(prefix) and "/" not in path[len(prefix):]
        }
        return [Path(path) for path in sorted(names)]

    def list_directories(self, directory: Path) -> List[Path]:
        prefix = self._normalise(directory).rstrip("/") + "/"
        names = set()
        for path in self._files:
            if path.startswith(prefix):
                remainder = path[len(prefix):]
                if "/" in remainder:
                    names.add(prefix + remainder.split("/", 1)[0])
        return [Path(path) for path in sorted(names)]

    @property
    def files(self) -> Dict[str, str]:
        return dict(self._files)


__all__ = ["FileSystem", "LocalFileSystem", "MemoryFileSystem"]
