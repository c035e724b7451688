# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Content-fingerprint cache for assembled project context bundles.

Bundles are keyed by the set of files they were built from and validated
lazily on every read:
- Key: SHA-256 of the deduplicated, sorted paths joined with "|", so the
  order in which files are listed never matters.
- Staleness hash: SHA-256 over "path:mtime_ns:size:content_length" for
  each file in key order. A missing or unreadable file contributes a
  marker instead, so deletion or a permission change is a mismatch.
- An entry is served only while it is younger than max_age and its
  staleness hash still matches. Otherwise it is removed and a miss counted.
- When a new key is inserted at capacity, the single oldest entry by
  creation time is evicted. Replacing an existing key never evicts.

All reads and mutations run under one lock, so the check-then-evict
sequence in get() is atomic with respect to concurrent callers.

Snapshots are JSON documents:
    {"version": 1, "exported_at": <epoch>, "stats": {...},
     "entries": [{"key", "files", "staleness_hash", "created_at", "bundle"}]}
"""

import hashlib
import json
import logging
import os
import threading
import time
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional

from .models import CacheEntry, CacheStatistics, ProjectContextBundle
from .scanner import read_text_file

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1


def canonical_files(files: Iterable[str]) -> List[str]:
    """Deduplicate and sort a file set."""
    return sorted({str(path) for path in files})


def compute_cache_key(files: Iterable[str]) -> str:
    """Order-independent fingerprint of a file set."""
    joined = "|".join(canonical_files(files))
    return hashlib.sha256(joined.encode("utf-8")).hexdigest()


def compute_staleness_hash(files: Iterable[str]) -> str:
    """Fingerprint of the on-disk state of a file set.

    Args:
        files: Paths, in the order they should be hashed.

    Returns:
        SHA-256 hex digest over (path, mtime, size, content length) per file.
    """
    hasher = hashlib.sha256()
    for path in files:
        try:
            stat = os.stat(path)
            content_length = len(read_text_file(Path(path)))
            part = f"{path}:{stat.st_mtime_ns}:{stat.st_size}:{content_length}"
        except FileNotFoundError:
            part = f"{path}:missing"
        except OSError:
            part = f"{path}:unreadable"
        hasher.update(part.encode("utf-8"))
        hasher.update(b"\n")
    return hasher.hexdigest()


class ContextCache:
    """Bounded, thread-safe cache of ProjectContextBundle objects.

    Example:
        cache = ContextCache(max_entries=100, max_age_seconds=1800)
        bundle = cache.get(files)
        if bundle is None:
            bundle = assemble(...)
            cache.set(files, bundle)
    """

    def __init__(
        self,
        max_entries: int = 100,
        max_age_seconds: float = 30 * 60,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize cache.

        Args:
            max_entries: Maximum number of bundles kept.
            max_age_seconds: Age at which an entry is considered expired.
            clock: Time source returning epoch seconds.
        """
        if max_entries <= 0:
            raise ValueError(f"max_entries must be positive, got {max_entries}")

        self.max_entries = max_entries
        self.max_age_seconds = max_age_seconds
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._invalidations = 0

    def _is_expired(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.created_at >= self.max_age_seconds

    def get(self, files: Iterable[str]) -> Optional[ProjectContextBundle]:
        """Return the cached bundle for a file set if it is still valid.

        An expired or stale entry is removed before the miss is reported.
        """
        key = compute_cache_key(files)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None

            if self._is_expired(entry, self._clock()):
                del self._entries[key]
                self._misses += 1
                logger.debug(f"Cache entry {key[:12]} expired")
                return None

            if compute_staleness_hash(entry.files) != entry.staleness_hash:
                del self._entries[key]
                self._misses += 1
                logger.debug(f"Cache entry {key[:12]} stale, files changed on disk")
                return None

            self._hits += 1
            return entry.bundle

    def set(self, files: Iterable[str], bundle: ProjectContextBundle) -> None:
        """Store a bundle for a file set, capturing the files' current state."""
        canonical = canonical_files(files)
        key = compute_cache_key(canonical)
        staleness_hash = compute_staleness_hash(canonical)

        with self._lock:
            if key not in self._entries and len(self._entries) >= self.max_entries:
                self._evict_oldest()

            self._entries[key] = CacheEntry(
                key=key,
                files=canonical,
                staleness_hash=staleness_hash,
                bundle=bundle,
                created_at=self._clock(),
            )

    def _evict_oldest(self) -> None:
        """Evict the entry with the smallest creation time. Caller holds the lock."""
        if not self._entries:
            return
        oldest_key = min(self._entries, key=lambda k: self._entries[k].created_at)
        del self._entries[oldest_key]
        self._evictions += 1
        logger.debug(f"Evicted cache entry: {oldest_key[:12]}")

    def invalidate(self, files: Iterable[str]) -> bool:
        """Remove the entry for a file set.

        Returns:
            True if an entry was removed.
        """
        key = compute_cache_key(files)
        with self._lock:
            if key in self._entries:
                del self._entries[key]
                self._invalidations += 1
                return True
            return False

    def invalidate_file(self, filepath: str) -> int:
        """Remove every entry whose file set contains filepath.

        Returns:
            Number of entries removed.
        """
        filepath = str(filepath)
        with self._lock:
            keys = [key for key, entry in self._entries.items() if filepath in entry.files]
            for key in keys:
                del self._entries[key]
            self._invalidations += len(keys)

        if keys:
            logger.debug(f"Invalidated {len(keys)} cache entries containing {filepath}")
        return len(keys)

    def clear(self) -> None:
        """Remove all entries and reset counters."""
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0
            self._evictions = 0
            self._invalidations = 0

    def cleanup_expired(self) -> int:
        """Remove all expired entries without checking staleness.

        Returns:
            Number of entries removed.
        """
        with self._lock:
            now = self._clock()
            expired = [key for key, entry in self._entries.items() if self._is_expired(entry, now)]
            for key in expired:
                del self._entries[key]

        if expired:
            logger.debug(f"Removed {len(expired)} expired cache entries")
        return len(expired)

    def _approx_size_bytes(self) -> int:
        return sum(
            len(json.dumps(entry.bundle.to_dict()).encode("utf-8"))
            for entry in self._entries.values()
        )

    def get_statistics(self) -> CacheStatistics:
        """Get cache statistics."""
        with self._lock:
            return CacheStatistics(
                hits=self._hits,
                misses=self._misses,
                entry_count=len(self._entries),
                approx_size_bytes=self._approx_size_bytes(),
                max_entries=self.max_entries,
                evictions=self._evictions,
                invalidations=self._invalidations,
            )

    def get_hit_rate(self) -> float:
        """Fraction of lookups served from the cache (0.0 with no lookups)."""
        with self._lock:
            total = self._hits + self._misses
            return self._hits / total if total else 0.0

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def export_snapshot(self, path: Path) -> bool:
        """Write all entries and counters to a JSON snapshot.

        Returns:
            True on success. Failures are logged and leave no partial file.
        """
        path = Path(path)
        with self._lock:
            data: Dict[str, Any] = {
                "version": SNAPSHOT_VERSION,
                "exported_at": self._clock(),
                "stats": {
                    "hits": self._hits,
                    "misses": self._misses,
                    "evictions": self._evictions,
                    "invalidations": self._invalidations,
                },
                "entries": [entry.to_dict() for entry in self._entries.values()],
            }

        tmp_path = path.with_name(path.name + ".tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_path, path)
        except (OSError, TypeError, ValueError) as e:
            logger.warning(f"Failed to export cache snapshot to {path}: {e}")
            if tmp_path.exists():
                tmp_path.unlink(missing_ok=True)
            return False

        logger.info(f"Exported {len(data['entries'])} cache entries to {path}")
        return True

    def import_snapshot(self, path: Path) -> bool:
        """Replace cache contents with a previously exported snapshot.

        The snapshot is parsed completely before anything is replaced; a
        missing, corrupt or wrong-version snapshot is logged and the current
        state is kept. Imported entries are still validated on read. When
        the snapshot holds more entries than max_entries the newest are kept.

        Returns:
            True if the snapshot was loaded.
        """
        path = Path(path)
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)

            if not isinstance(data, dict) or data.get("version") != SNAPSHOT_VERSION:
                logger.warning(f"Cache snapshot {path} has unsupported version, ignoring")
                return False

            loaded: Dict[str, CacheEntry] = {}
            for entry_data in data.get("entries", []):
                entry = CacheEntry.from_dict(entry_data)
                loaded[entry.key] = entry
            stats = data.get("stats", {})
            counters = {
                name: int(stats.get(name, 0))
                for name in ("hits", "misses", "evictions", "invalidations")
            }
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning(f"Failed to import cache snapshot {path}: {e}")
            return False

        newest = sorted(loaded.values(), key=lambda e: e.created_at, reverse=True)
        kept = newest[: self.max_entries]

        with self._lock:
            self._entries = {entry.key: entry for entry in sorted(kept, key=lambda e: e.created_at)}
            self._hits = counters["hits"]
            self._misses = counters["misses"]
            self._evictions = counters["evictions"]
            self._invalidations = counters["invalidations"]

        logger.info(f"Imported {len(kept)} cache entries from {path}")
        return True
