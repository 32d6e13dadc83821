"""File-listing and file-reading capabilities for analysed applications.

The analyzer never touches the filesystem directly; it goes through a
:class:`FileSource`.  :class:`MountedFileSource` serves applications that
are checked out one directory per application id under a common root,
:class:`InMemoryFileSource` serves fixed content (embedding, tests).
"""

from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path, PurePosixPath
from typing import Dict, Iterable, List, Mapping, Optional, Set

from . import config
from .errors import FileAccessError, SourceUnavailableError

logger = logging.getLogger(__name__)


class FileSource(ABC):
    """Abstract access to the files of an application."""

    @abstractmethod
    def list_files(self, app_id: str) -> List[str]:
        """Return every analysable file of *app_id* as a POSIX relative path.

        Raises :class:`SourceUnavailableError` when the application cannot be
        reached at all.
        """
        ...

    @abstractmethod
    def read_file(self, app_id: str, path: str) -> str:
        """Return the text of *path*.

        Raises :class:`FileAccessError` for a missing or unreadable file and
        :class:`SourceUnavailableError` when the application is unreachable.
        """
        ...


class MountedFileSource(FileSource):
    """Applications mounted as ``<root>/<app_id>/...`` on the local disk."""

    def __init__(
        self,
        root: Optional[Path] = None,
        extensions: Optional[Iterable[str]] = None,
        skip_dirs: Optional[Iterable[str]] = None,
        max_file_bytes: int = config.MAX_FILE_BYTES,
    ) -> None:
        self.root = Path(root) if root is not None else config.APPS_ROOT
        self.extensions: Set[str] = {e.lower() for e in (extensions or config.SUPPORTED_EXTENSIONS)}
        self.skip_dirs: Set[str] = set(skip_dirs or config.SKIP_DIRS)
        self.max_file_bytes = max_file_bytes

    def app_root(self, app_id: str) -> Path:
        return self.root / app_id

    def list_files(self, app_id: str) -> List[str]:
        base = self.app_root(app_id)
        if not base.is_dir():
            raise SourceUnavailableError(app_id, f"{base} is not a directory")

        files: List[str] = []
        for dirpath, dirnames, filenames in os.walk(base):
            dirnames[:] = [d for d in dirnames if d not in self.skip_dirs]
            for filename in filenames:
                file_path = Path(dirpath) / filename
                if file_path.suffix.lower() not in self.extensions or not file_path.is_file():
                    continue
                files.append(file_path.relative_to(base).as_posix())
        files.sort()
        logger.debug("Listed %d files for %s under %s", len(files), app_id, base)
        return files

    def read_file(self, app_id: str, path: str) -> str:
        base = self.app_root(app_id)
        if not base.is_dir():
            raise SourceUnavailableError(app_id, f"{base} is not a directory")

        full = (base / path).resolve()
        try:
            full.relative_to(base.resolve())
        except ValueError:
            raise FileAccessError(path, "outside the application root") from None
        if not full.is_file():
            raise FileAccessError(path, "file not found")
        try:
            size = full.stat().st_size
            if size > self.max_file_bytes:
                raise FileAccessError(path, f"file is {size} bytes, limit is {self.max_file_bytes}")
            return full.read_text(encoding="utf-8", errors="ignore")
        except OSError as exc:
            raise FileAccessError(path, str(exc)) from exc


class InMemoryFileSource(FileSource):
    """Static ``{app_id: {path: content}}`` mapping.

    A content of ``None`` lists the file but makes it unreadable.
    """

    def __init__(self, files: Optional[Mapping[str, Mapping[str, Optional[str]]]] = None) -> None:
        self._apps: Dict[str, Dict[str, Optional[str]]] = {
            app: dict(entries) for app, entries in (files or {}).items()
        }

    def add_file(self, app_id: str, path: str, content: Optional[str]) -> None:
        self._apps.setdefault(app_id, {})[path] = content

    def list_files(self, app_id: str) -> List[str]:
        if app_id not in self._apps:
            raise SourceUnavailableError(app_id, "unknown application")
        return list(self._apps[app_id])

    def read_file(self, app_id: str, path: str) -> str:
        if app_id not in self._apps:
            raise SourceUnavailableError(app_id, "unknown application")
        normalized = str(PurePosixPath(path))
        entries = self._apps[app_id]
        if normalized not in entries:
            raise FileAccessError(path, "file not found")
        content = entries[normalized]
        if content is None:
            raise FileAccessError(path, "file is not readable")
        return content
