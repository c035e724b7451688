# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Bounded-depth project walks.

Every walk in the engine goes through FileCorpusScanner so the same
ignore set and depth semantics apply everywhere:
- The root is depth 0; a directory is listed only when its depth is
  at most max_depth.
- Entries whose name is in the ignore set are never yielded or entered.
- Unreadable directories and entries are skipped; a walk never aborts.
- There is no symlink-cycle detection; depth is the only bound.
"""

import logging
import os
from collections import deque
from pathlib import Path
from typing import Deque, Dict, Iterable, Iterator, List, Optional, Set, Tuple

from .config import DEFAULT_IGNORE_DIRS
from .models import StructureSummary

logger = logging.getLogger(__name__)


def extension_of(path: str) -> str:
    """Return the lower-cased extension of a path without the dot."""
    return os.path.splitext(path)[1][1:].lower()


def read_text_file(path: Path) -> str:
    """Read a file as text, trying UTF-8 first and falling back to latin-1.

    Raises:
        OSError: If the file cannot be read.
    """
    try:
        with open(path, encoding="utf-8") as f:
            return f.read()
    except UnicodeDecodeError:
        # latin-1 accepts all byte values
        logger.debug(f"File {path} is not UTF-8, using latin-1 fallback encoding")
        with open(path, encoding="latin-1") as f:
            return f.read()


class FileCorpusScanner:
    """Walks a project tree breadth-first with an explicit worklist."""

    def __init__(self, ignore_names: Optional[Iterable[str]] = None):
        self.ignore_names: Set[str] = set(
            DEFAULT_IGNORE_DIRS if ignore_names is None else ignore_names
        )

    def _list_dir(self, directory: Path) -> List[os.DirEntry]:
        try:
            with os.scandir(directory) as it:
                entries = list(it)
        except OSError as e:
            logger.debug(f"Skipping unreadable directory {directory}: {e}")
            return []
        entries.sort(key=lambda entry: entry.name)
        return entries

    def iter_entries(self, root: Path, max_depth: int) -> Iterator[Tuple[Path, bool, int]]:
        """Yield (path, is_dir, depth) for every entry reachable within max_depth.

        depth is the depth of the directory containing the entry.
        """
        worklist: Deque[Tuple[Path, int]] = deque([(Path(root), 0)])
        while worklist:
            directory, depth = worklist.popleft()
            for entry in self._list_dir(directory):
                if entry.name in self.ignore_names:
                    continue
                try:
                    is_dir = entry.is_dir()
                except OSError as e:
                    logger.debug(f"Skipping unreadable entry {entry.path}: {e}")
                    continue

                path = Path(entry.path)
                yield path, is_dir, depth
                if is_dir and depth + 1 <= max_depth:
                    worklist.append((path, depth + 1))

    def scan(self, root: Path, max_depth: int = 3) -> StructureSummary:
        """Summarize folders and files under root.

        Args:
            root: Project root directory.
            max_depth: Deepest directory level that is listed (root is 0).

        Returns:
            StructureSummary with root-relative, "/"-separated paths.
        """
        root = Path(root)
        folders: List[str] = []
        files_by_extension: Dict[str, List[str]] = {}
        total_files = 0

        for path, is_dir, _depth in self.iter_entries(root, max_depth):
            relative = path.relative_to(root).as_posix()
            if is_dir:
                folders.append(relative)
            else:
                files_by_extension.setdefault(extension_of(path.name), []).append(relative)
                total_files += 1

        logger.debug(
            f"Scanned {root}: {len(folders)} folders, {total_files} files (max_depth={max_depth})"
        )
        return StructureSummary(
            folders=tuple(folders),
            files_by_extension=files_by_extension,
            total_files=total_files,
        )

    def find_by_extensions(
        self,
        root: Path,
        extensions: Iterable[str],
        limit: int,
        max_depth: int = 3,
        exclude: Optional[Iterable[Path]] = None,
    ) -> List[Path]:
        """Find up to limit files whose extension is in extensions.

        Shallower files are found first. Paths in exclude are skipped.
        """
        wanted = {ext.lower().lstrip(".") for ext in extensions}
        excluded = {Path(p) for p in (exclude or ())}
        found: List[Path] = []
        if limit <= 0 or not wanted:
            return found

        for path, is_dir, _depth in self.iter_entries(Path(root), max_depth):
            if is_dir or path in excluded:
                continue
            if extension_of(path.name) in wanted:
                found.append(path)
                if len(found) >= limit:
                    break
        return found

    def find_by_name(self, root: Path, file_name: str, max_depth: int = 2) -> Optional[Path]:
        """Return the shallowest file named file_name under root, if any."""
        root = Path(root)
        direct = root / file_name
        try:
            if not root.is_dir():
                return None
            if direct.is_file():
                return direct
        except OSError as e:
            logger.debug(f"Cannot look up {direct}: {e}")
            return None

        for path, is_dir, _depth in self.iter_entries(root, max_depth):
            if not is_dir and path.name == file_name:
                return path
        return None
