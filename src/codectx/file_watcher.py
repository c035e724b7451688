# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Eager invalidation of cached context bundles from file system events.

ContextCache re-validates every entry on read, so the watcher is never
needed for correctness. It drops entries as soon as one of their files
changes, which keeps stale bundles from holding cache capacity until the
next lookup.

Events are filtered before any callback runs:
- names in the scanner ignore set (.git, node_modules, ...)
- credentials and key files
- .gitignore patterns (negations are not supported)

Known Limitations:
- Symlinked directories are followed by watchdog without containment checks
- A crashed observer thread is not restarted
"""

import fnmatch
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Iterable, List, Optional, Set

from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from .config import DEFAULT_IGNORE_DIRS

if TYPE_CHECKING:
    from watchdog.observers.api import BaseObserver

logger = logging.getLogger(__name__)

# Called with the absolute path of a changed file
InvalidationCallback = Callable[[str], None]

# Never reported, wherever they appear in the path
SENSITIVE_NAME_PATTERNS = (
    ".env",
    ".env.*",
    ".npmrc",
    ".pypirc",
    ".aws",
    "credentials.json",
    "secrets.yaml",
    "secrets.yml",
    "id_rsa",
    "id_dsa",
    "id_ecdsa",
    "id_ed25519",
    "*.key",
    "*.pem",
    "*.p12",
    "*.pfx",
)

_STALENESS_EVENTS = {EVENT_TYPE_CREATED, EVENT_TYPE_MODIFIED, EVENT_TYPE_DELETED}


def load_gitignore_patterns(gitignore_path: Path) -> Set[str]:
    """Read usable patterns from a .gitignore file.

    Blank lines, comments and negations are skipped; a trailing "/" is
    dropped so directory patterns also match the directory name itself.
    A missing or unreadable file yields no patterns.
    """
    if not gitignore_path.is_file():
        return set()

    try:
        lines = gitignore_path.read_text(encoding="utf-8").splitlines()
    except (OSError, UnicodeDecodeError) as e:
        logger.warning(f"Cannot read {gitignore_path}: {e}")
        return set()

    patterns = {
        line.strip().rstrip("/")
        for line in lines
        if line.strip() and not line.strip().startswith(("#", "!"))
    }
    logger.debug(f"{len(patterns)} .gitignore patterns loaded from {gitignore_path}")
    return patterns


class FileWatcher:
    """Reports changed project files to invalidation callbacks.

    Callbacks run on the watchdog observer thread, so they must be
    thread-safe; ContextCache.invalidate_file takes the cache lock.

    Usage:
        watcher = FileWatcher(project_root="/path/to/project")
        watcher.register_invalidation_callback(cache.invalidate_file)
        watcher.start()
        ...
        watcher.stop()
    """

    def __init__(
        self,
        project_root: str,
        ignore_names: Optional[Iterable[str]] = None,
        gitignore_path: Optional[str] = None,
    ):
        """
        Args:
            project_root: Directory watched recursively.
            ignore_names: File and directory names never reported
                (default: the scanner's ignore set).
            gitignore_path: Defaults to {project_root}/.gitignore.
        """
        self.project_root = Path(project_root).resolve()
        if ignore_names is None:
            ignore_names = DEFAULT_IGNORE_DIRS
        self.ignore_names: Set[str] = set(ignore_names)
        self.gitignore_patterns = load_gitignore_patterns(
            Path(gitignore_path) if gitignore_path else self.project_root / ".gitignore"
        )

        self._callbacks: List[InvalidationCallback] = []
        self._observer: Optional["BaseObserver"] = None
        self._handler = _InvalidationEventHandler(self)

    def _relative(self, path: Path) -> Path:
        try:
            return path.relative_to(self.project_root)
        except ValueError:
            return path

    def _is_excluded_name(self, name: str) -> bool:
        if name in self.ignore_names:
            return True
        return any(fnmatch.fnmatch(name, pattern) for pattern in SENSITIVE_NAME_PATTERNS)

    def _matches_gitignore(self, relative: str, name: str) -> bool:
        for pattern in self.gitignore_patterns:
            if fnmatch.fnmatch(name, pattern) or fnmatch.fnmatch(relative, pattern.lstrip("/")):
                return True
        return False

    def should_ignore(self, file_path: str) -> bool:
        """Whether changes to file_path are never reported."""
        path = Path(file_path)
        relative = self._relative(path)
        if any(self._is_excluded_name(part) for part in relative.parts):
            return True
        return self._matches_gitignore(relative.as_posix(), path.name)

    def register_invalidation_callback(self, callback: InvalidationCallback) -> None:
        if callback not in self._callbacks:
            self._callbacks.append(callback)

    def unregister_invalidation_callback(self, callback: InvalidationCallback) -> None:
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def notify(self, file_path: str) -> None:
        """Pass a changed path to every callback unless it is ignored.

        A callback that raises is logged and the remaining callbacks still run.
        """
        if self.should_ignore(file_path):
            logger.debug(f"Ignoring change to {file_path}")
            return

        for callback in list(self._callbacks):
            try:
                callback(file_path)
            except Exception as e:
                logger.error(f"Invalidation callback failed for {file_path}: {e}")

    def start(self) -> None:
        """Start the observer thread.

        Raises:
            RuntimeError: If the watcher is already running
        """
        if self.is_running():
            raise RuntimeError("FileWatcher is already running")

        observer = Observer()
        observer.schedule(  # type: ignore  # watchdog types vary by version
            self._handler, str(self.project_root), recursive=True
        )
        observer.start()  # type: ignore  # watchdog types vary by version
        self._observer = observer
        logger.info(f"Watching {self.project_root} for changes")

    def stop(self) -> None:
        """Stop the observer thread, waiting up to five seconds for it to exit."""
        if self._observer is None or not self._observer.is_alive():
            return
        self._observer.stop()  # type: ignore  # watchdog types vary by version
        self._observer.join(timeout=5.0)
        logger.info(f"Stopped watching {self.project_root}")

    def is_running(self) -> bool:
        return self._observer is not None and self._observer.is_alive()


class _InvalidationEventHandler(FileSystemEventHandler):
    """Forwards file events that can make a cached bundle stale."""

    def __init__(self, watcher: FileWatcher):
        super().__init__()
        self.watcher = watcher

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return

        if event.event_type in _STALENESS_EVENTS:
            self.watcher.notify(str(event.src_path))
        elif event.event_type == EVENT_TYPE_MOVED:
            # Both the vacated and the new path change existence
            self.watcher.notify(str(event.src_path))
            dest_path = getattr(event, "dest_path", None)
            if dest_path:
                self.watcher.notify(str(dest_path))
