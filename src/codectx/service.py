# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""ProjectContextService - Business logic layer for the context engine.

This module owns every component and exposes the operations used by the
protocol layer and by embedding applications.

Key Responsibilities:
- Initialize and coordinate all subsystems (scanner, extractor, analyzers,
  cache, assembler, diff engine, formatter, watcher)
- Turn an intent into file references and an assembled context bundle
- Analyze and preview diffs
- Manage cache maintenance, snapshots and component lifecycle
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from .analyzers import AnalyzerRegistry, create_default_registry
from .assembler import ContextAssembler
from .cache import ContextCache
from .config import Config
from .context_formatter import ContextFormatter
from .diff_engine import DiffEngine
from .file_watcher import FileWatcher
from .log_config import get_snapshot_path
from .models import (
    CacheStatistics,
    DiffAnalysis,
    ExtractedFileReference,
    ProjectContextBundle,
)
from .project_config import ProjectConfigDetector
from .references import FileReferenceExtractor
from .scanner import FileCorpusScanner
from .style import StyleDetector

logger = logging.getLogger(__name__)

# Security limits for caller-supplied paths
_MAX_FILEPATH_LENGTH = 4096


class ContextResult:
    """Result of preparing context for an intent."""

    def __init__(
        self,
        references: List[ExtractedFileReference],
        bundle: ProjectContextBundle,
        rendered_context: str,
        token_count: int,
    ):
        """Initialize context result.

        Args:
            references: File references extracted from the intent
            bundle: Assembled project context
            rendered_context: Bundle rendered as prompt text
            token_count: Tokens in rendered_context
        """
        self.references = references
        self.bundle = bundle
        self.rendered_context = rendered_context
        self.token_count = token_count

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for protocol responses."""
        return {
            "references": [reference.to_dict() for reference in self.references],
            "bundle": self.bundle.to_dict(),
            "rendered_context": self.rendered_context,
            "token_count": self.token_count,
        }


class ProjectContextService:
    """Business logic coordinator for project context and change analysis.

    Owned Components:
    - FileCorpusScanner: Bounded project walks
    - FileReferenceExtractor: File paths mentioned in intents
    - AnalyzerRegistry: Structural and textual source outlines
    - ContextCache: Fingerprint cache of assembled bundles
    - ContextAssembler: Builds ProjectContextBundle objects
    - DiffEngine: Line diff with semantic overlay
    - ContextFormatter: Prompt and preview rendering
    - FileWatcher: Eager cache invalidation (optional)
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        project_root: Optional[str] = None,
        cache: Optional[ContextCache] = None,
        analyzers: Optional[AnalyzerRegistry] = None,
        file_watcher: Optional[FileWatcher] = None,
        formatter: Optional[ContextFormatter] = None,
        data_root: Optional[Path] = None,
    ):
        """Initialize the service with its dependencies.

        Args:
            config: Configuration object (default: loaded from the project root)
            project_root: Project root directory (default: cwd)
            cache: Context cache (default: sized from config)
            analyzers: Analyzer registry (default: structural Python + textual)
            file_watcher: FileWatcher instance (default: created on start)
            formatter: Context formatter (default: tiktoken-backed)
            data_root: Root directory for snapshots. If None, uses ~/.codectx/
        """
        self._project_root = Path(project_root).resolve() if project_root else Path.cwd().resolve()
        self.config = config or Config.for_project(self._project_root)
        self._data_root = data_root

        self.cache = (
            cache
            if cache is not None
            else ContextCache(
                max_entries=self.config.cache_max_entries,
                max_age_seconds=self.config.cache_max_age_seconds,
            )
        )
        self._analyzers = analyzers or create_default_registry()
        self._scanner = FileCorpusScanner(self.config.ignore_dirs)
        self._extractor = FileReferenceExtractor(
            self._project_root,
            scanner=self._scanner,
            search_max_depth=self.config.reference_search_max_depth,
        )
        self._assembler = ContextAssembler(
            self._project_root,
            config=self.config,
            scanner=self._scanner,
            style_detector=StyleDetector(),
            analyzers=self._analyzers,
            cache=self.cache,
            config_detector=ProjectConfigDetector(self._project_root),
        )
        self._diff_engine = DiffEngine(self._analyzers)
        self._formatter = formatter or ContextFormatter()

        self._file_watcher = file_watcher
        self._watcher_running = False

        if self.config.cache_persist:
            snapshot = self.snapshot_path
            if snapshot.exists():
                self.cache.import_snapshot(snapshot)

        logger.info(f"ProjectContextService initialized for {self._project_root}")

    @property
    def project_root(self) -> Path:
        return self._project_root

    @property
    def snapshot_path(self) -> Path:
        """Default snapshot file for this project under the data root."""
        return get_snapshot_path(self._project_root, self._data_root)

    def _validate_filepath(self, filepath: str) -> None:
        """Validate a caller-supplied filepath.

        Raises:
            ValueError: If filepath contains control characters, exceeds the
                length limit or contains path traversal patterns.
        """
        if any(ord(c) < 32 and c not in ("\t", "\n", "\r") for c in filepath):
            raise ValueError("Invalid characters in filepath")

        if len(filepath) > _MAX_FILEPATH_LENGTH:
            raise ValueError(f"Filepath too long: {len(filepath)} > {_MAX_FILEPATH_LENGTH}")

        if "/.." in filepath or filepath.startswith("..") or "\\.." in filepath:
            raise ValueError("Path traversal not allowed")

    # Context

    def extract_references(self, intent: str) -> List[ExtractedFileReference]:
        """File references mentioned in an intent, resolved against the project."""
        return self._extractor.extract_file_paths(intent)

    def extract_primary_file(self, intent: str) -> Optional[ExtractedFileReference]:
        return self._extractor.extract_primary_file(intent)

    def is_editing_existing_file(self, intent: str) -> bool:
        return self._extractor.is_editing_existing_file(intent)

    def file_not_found_message(self, reference: ExtractedFileReference) -> str:
        return self._extractor.file_not_found_message(reference)

    def collect_context(
        self,
        intent: str,
        target_files: Optional[Sequence[str]] = None,
        use_cache: bool = True,
    ) -> ProjectContextBundle:
        """Assemble the project context for an intent.

        File references in the intent are loaded first, followed by
        target_files.

        Raises:
            ValueError: If a target file path is invalid.
        """
        return self._collect(intent, target_files, self.extract_references(intent), use_cache)

    def _collect(
        self,
        intent: str,
        target_files: Optional[Sequence[str]],
        references: List[ExtractedFileReference],
        use_cache: bool,
    ) -> ProjectContextBundle:
        targets = list(target_files or [])
        for target in targets:
            self._validate_filepath(target)

        return self._assembler.collect_context(
            intent, targets, explicit_files=references, use_cache=use_cache
        )

    def render_context(
        self,
        bundle: ProjectContextBundle,
        references: Optional[Sequence[ExtractedFileReference]] = None,
    ) -> str:
        """Render a bundle as prompt text within the configured token limit."""
        return self._formatter.format_bundle(
            bundle, references=references, token_limit=self.config.context_token_limit
        )

    def prepare_context(
        self,
        intent: str,
        target_files: Optional[Sequence[str]] = None,
        use_cache: bool = True,
    ) -> ContextResult:
        """Extract references, assemble the bundle and render it in one call."""
        references = self.extract_references(intent)
        bundle = self._collect(intent, target_files, references, use_cache)
        rendered = self.render_context(bundle, references)
        return ContextResult(
            references=references,
            bundle=bundle,
            rendered_context=rendered,
            token_count=self._formatter.token_counter.count(rendered),
        )

    # Diffs

    def analyze_diff(
        self, original: str, modified: str, path: Optional[str] = None
    ) -> DiffAnalysis:
        return self._diff_engine.analyze_diff(original, modified, path)

    def preview_diff(self, original: str, modified: str, path: Optional[str] = None) -> str:
        """Analyze a diff and render it as plain text."""
        analysis = self.analyze_diff(original, modified, path)
        return self._formatter.format_diff(analysis, path)

    # Cache maintenance

    def get_cache_statistics(self) -> CacheStatistics:
        return self.cache.get_statistics()

    def invalidate_cache(self, files: Optional[Sequence[str]] = None) -> int:
        """Invalidate cached bundles.

        Args:
            files: Files whose entries should be dropped. Relative paths are
                resolved against the project root. If None, clears the cache.

        Returns:
            Number of entries removed (the previous entry count on a full clear).
        """
        if files is None:
            removed = len(self.cache)
            self.cache.clear()
            logger.info(f"Cleared context cache ({removed} entries)")
            return removed

        removed = 0
        for file_path in files:
            path = Path(file_path)
            if not path.is_absolute():
                path = self._project_root / path
            removed += self.cache.invalidate_file(str(path))
        return removed

    def cleanup_cache(self) -> int:
        """Remove expired cache entries."""
        return self.cache.cleanup_expired()

    def export_cache(self, path: Optional[Path] = None) -> bool:
        return self.cache.export_snapshot(path or self.snapshot_path)

    def import_cache(self, path: Optional[Path] = None) -> bool:
        return self.cache.import_snapshot(path or self.snapshot_path)

    # Lifecycle

    def start_file_watcher(self) -> None:
        """Start the file watcher so file events invalidate cached bundles eagerly."""
        if self._watcher_running:
            return

        if self._file_watcher is None:
            self._file_watcher = FileWatcher(
                project_root=str(self._project_root),
                ignore_names=self.config.ignore_dirs,
            )
        self._file_watcher.register_invalidation_callback(self.cache.invalidate_file)
        self._file_watcher.start()
        self._watcher_running = True
        logger.info("FileWatcher started")

    def stop_file_watcher(self) -> None:
        if self._watcher_running and self._file_watcher is not None:
            self._file_watcher.stop()
            self._watcher_running = False
            logger.info("FileWatcher stopped")

    def is_watching(self) -> bool:
        return self._watcher_running

    def shutdown(self) -> None:
        """Stop the watcher and persist the cache when persistence is enabled."""
        logger.info("ProjectContextService shutting down...")
        self.stop_file_watcher()

        if self.config.cache_persist:
            self.export_cache()

        logger.info("ProjectContextService shutdown complete")
