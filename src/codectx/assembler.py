# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Assembly of project context bundles.

collect_context() builds a ProjectContextBundle in a fixed order:
1. Explicit file references from the intent (missing files become empty
   records marked is_new, so the generator creates rather than edits them)
2. Target files not already covered, loaded the same way
3. Up to similar_files_limit reference files sharing an extension with
   the requested files
4. Structural summary from FileCorpusScanner
5. Style profile over related + similar files
6. Most frequent imports and structural patterns over the same files
7. Project tooling flags

The bundle is cached under the fingerprint of the explicit + target file
set. Any file that cannot be read is skipped; the assembler never raises
for filesystem problems.
"""

import logging
import os
from collections import Counter
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .analyzers import AnalyzerRegistry, create_default_registry
from .cache import ContextCache
from .config import Config
from .models import ExtractedFileReference, FileRecord, ProjectContextBundle
from .project_config import ProjectConfigDetector
from .scanner import FileCorpusScanner, extension_of, read_text_file
from .style import StyleDetector

logger = logging.getLogger(__name__)

LANGUAGE_BY_EXTENSION: Dict[str, str] = {
    "ts": "typescript",
    "tsx": "typescript",
    "mts": "typescript",
    "cts": "typescript",
    "js": "javascript",
    "jsx": "javascript",
    "mjs": "javascript",
    "cjs": "javascript",
    "py": "python",
    "pyi": "python",
    "json": "json",
    "md": "markdown",
    "css": "css",
    "scss": "scss",
    "html": "html",
    "vue": "vue",
    "svelte": "svelte",
    "go": "go",
    "rs": "rust",
    "java": "java",
    "rb": "ruby",
    "sh": "shell",
    "yml": "yaml",
    "yaml": "yaml",
    "toml": "toml",
}

# Structural patterns counted once per file that contains them, in tie-break order
STRUCTURAL_PATTERNS: Tuple[str, ...] = (
    "export default",
    "export class",
    "export interface",
    "export function",
    "@dataclass",
    "__all__",
)


def detect_language(extension: str) -> str:
    """Map an extension (without dot) to a language tag."""
    extension = extension.lower()
    return LANGUAGE_BY_EXTENSION.get(extension, extension or "text")


def top_k(counts: Counter, k: int) -> List[str]:
    """Keys by descending count; equal counts keep first-seen order."""
    ranked = sorted(counts.items(), key=lambda item: -item[1])
    return [key for key, _ in ranked[:k]]


class ContextAssembler:
    """Collects a ProjectContextBundle for a project root.

    Example:
        assembler = ContextAssembler(Path("/repo"), config, cache=ContextCache())
        bundle = assembler.collect_context("add a route", ["src/app.ts"])
    """

    def __init__(
        self,
        project_root: Path,
        config: Optional[Config] = None,
        scanner: Optional[FileCorpusScanner] = None,
        style_detector: Optional[StyleDetector] = None,
        analyzers: Optional[AnalyzerRegistry] = None,
        cache: Optional[ContextCache] = None,
        config_detector: Optional[ProjectConfigDetector] = None,
    ):
        self.project_root = Path(project_root).resolve()
        self.config = config or Config.for_project(self.project_root)
        self.scanner = scanner or FileCorpusScanner(self.config.ignore_dirs)
        self.style_detector = style_detector or StyleDetector()
        self.analyzers = analyzers or create_default_registry()
        self.cache = cache
        self.config_detector = config_detector or ProjectConfigDetector(self.project_root)

    def _display_path(self, absolute: Path, file_name: Optional[str] = None) -> str:
        """Root-relative path, or the base name for files outside the root."""
        try:
            return absolute.relative_to(self.project_root).as_posix()
        except ValueError:
            return file_name or absolute.name

    def _absolute(self, path: str) -> Path:
        candidate = Path(path)
        if not candidate.is_absolute():
            candidate = self.project_root / candidate
        return Path(os.path.normpath(candidate))

    def load_file(self, absolute: Path, display_path: str) -> Optional[FileRecord]:
        """Read one file into a FileRecord.

        Returns:
            A record with content and outline, an empty is_new record when
            the file does not exist, or None when it cannot be stat'ed or read.
        """
        extension = extension_of(absolute.name)
        language = detect_language(extension)

        try:
            stat = absolute.stat()
        except (FileNotFoundError, NotADirectoryError):
            return FileRecord(path=display_path, content="", language=language, is_new=True)
        except OSError as e:
            logger.warning(f"Skipping file {absolute}: {e}")
            return None

        try:
            content = read_text_file(absolute)
        except OSError as e:
            logger.warning(f"Skipping unreadable file {absolute}: {e}")
            return None

        outline = self.analyzers.analyze(content, extension)
        return FileRecord(
            path=display_path,
            content=content,
            language=language,
            size=stat.st_size,
            mtime=stat.st_mtime,
            imports=tuple(outline.imports),
            exports=tuple(outline.exports),
        )

    def _requested_files(
        self,
        target_files: Sequence[str],
        explicit_files: Sequence[ExtractedFileReference],
    ) -> List[Tuple[Path, str]]:
        """Absolute path and display path for every requested file, explicit first."""
        requested: List[Tuple[Path, str]] = []
        seen = set()

        for reference in explicit_files:
            absolute = Path(os.path.normpath(reference.normalized_path))
            if absolute in seen:
                continue
            seen.add(absolute)
            requested.append((absolute, self._display_path(absolute, reference.file_name)))

        for target in target_files:
            absolute = self._absolute(target)
            if absolute in seen:
                continue
            seen.add(absolute)
            requested.append((absolute, self._display_path(absolute)))

        return requested

    def collect_context(
        self,
        intent: str,
        target_files: Iterable[str],
        explicit_files: Optional[Iterable[ExtractedFileReference]] = None,
        use_cache: bool = True,
    ) -> ProjectContextBundle:
        """Collect the project context for a request.

        Args:
            intent: Free-form description of the requested change.
            target_files: Paths (absolute or root-relative) the change targets.
            explicit_files: References extracted from the intent, loaded first.
            use_cache: Whether to consult and populate the cache.

        Returns:
            The assembled, immutable bundle.
        """
        targets = list(target_files)
        explicit = list(explicit_files or [])
        requested = self._requested_files(targets, explicit)
        key_files = [str(absolute) for absolute, _ in requested]

        caching = use_cache and self.cache is not None and bool(key_files)
        if caching:
            cached = self.cache.get(key_files)
            if cached is not None:
                logger.debug(f"Context cache hit for {len(key_files)} files")
                return cached

        logger.info(f"Collecting context for intent: {intent[:80]!r}")

        related: List[FileRecord] = []
        for absolute, display in requested:
            record = self.load_file(absolute, display)
            if record is not None:
                related.append(record)

        similar = self._find_similar_files([absolute for absolute, _ in requested])
        structure = self.scanner.scan(self.project_root, self.config.scan_max_depth)
        samples = related + similar
        style = self.style_detector.detect(samples)
        common_imports, common_patterns = self._extract_common_patterns(samples)
        project_config = self.config_detector.detect()

        bundle = ProjectContextBundle(
            related_files=tuple(related),
            similar_files=tuple(similar),
            style=style,
            common_imports=tuple(common_imports),
            common_patterns=tuple(common_patterns),
            project_config=project_config,
            structure=structure,
            project_root=str(self.project_root),
        )

        if caching:
            self.cache.set(key_files, bundle)

        extra_fields: Dict[str, Any] = {
            "related_files": len(related),
            "similar_files": len(similar),
            "files_scanned": structure.total_files,
        }
        if self.cache is not None:
            extra_fields["cache"] = self.cache.get_statistics().to_dict()
        logger.info(
            f"Context collected: {len(related)} related files, {len(similar)} similar files, "
            f"{structure.total_files} files scanned",
            extra={"extra_fields": extra_fields},
        )
        return bundle

    def _find_similar_files(self, requested: List[Path]) -> List[FileRecord]:
        extensions = {extension_of(path.name) for path in requested}
        extensions.discard("")
        if not extensions:
            return []

        paths = self.scanner.find_by_extensions(
            self.project_root,
            extensions,
            limit=self.config.similar_files_limit,
            max_depth=self.config.similar_search_max_depth,
            exclude=requested,
        )

        similar: List[FileRecord] = []
        for path in paths:
            record = self.load_file(path, self._display_path(path))
            if record is not None and not record.is_new:
                similar.append(record)
        return similar

    def _extract_common_patterns(self, samples: List[FileRecord]) -> Tuple[List[str], List[str]]:
        import_counts: Counter = Counter()
        pattern_counts: Counter = Counter()

        for record in samples:
            for module in record.imports:
                import_counts[module] += 1
            for pattern in STRUCTURAL_PATTERNS:
                if pattern in record.content:
                    pattern_counts[pattern] += 1

        return (
            top_k(import_counts, self.config.top_k_imports),
            top_k(pattern_counts, self.config.top_k_patterns),
        )
