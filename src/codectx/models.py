# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Core data models for the project context engine.

This module defines the data structures shared by every component:
- FileRecord: A loaded project file with its outline
- StyleProfile: Coding conventions inferred from sample files
- ProjectConfigFlags: Tooling detected in the project root
- StructureSummary: Result of a bounded directory scan
- ProjectContextBundle: Immutable snapshot handed to the generation step
- CacheEntry / CacheStatistics: Content-fingerprint cache state
- DiffLine / DiffHunk / DiffStats / DiffAnalysis: Line diff results
- SemanticChange / BreakingChange: Semantic overlay on a diff
- ExtractedFileReference: A file path mentioned in free-form text

All models serialize to JSON-compatible primitives via to_dict/from_dict.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple


class DiffLineType:
    """Kinds of diff lines.

    Design: Using class constants (not Enum) for JSON-compatible strings.
    """

    ADD = "add"
    REMOVE = "remove"
    UNCHANGED = "unchanged"


class SemanticChangeType:
    """Kinds of semantic changes detected between two versions of a file."""

    FUNCTION_ADDED = "function-added"
    FUNCTION_REMOVED = "function-removed"
    IMPORT_ADDED = "import-added"
    IMPORT_REMOVED = "import-removed"
    EXPORT_ADDED = "export-added"
    EXPORT_REMOVED = "export-removed"


class Impact:
    """Impact level attached to a semantic change."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class BreakingChangeType:
    """Kinds of changes that may break dependents."""

    REMOVAL = "removal"
    SIGNATURE_CHANGE = "signature-change"


class NamingConvention:
    CAMEL_CASE = "camelCase"
    SNAKE_CASE = "snake_case"


class Indentation:
    SPACES = "spaces"
    TABS = "tabs"


class QuoteStyle:
    SINGLE = "single"
    DOUBLE = "double"


class AsyncStyle:
    ASYNC_AWAIT = "async/await"
    PROMISES = "promises"


def _freeze_mapping(value: Mapping[str, Any]) -> Mapping[str, Any]:
    if isinstance(value, MappingProxyType):
        return value
    return MappingProxyType(dict(value))


@dataclass(frozen=True)
class FileRecord:
    """A project file loaded for context.

    A record for a referenced file that does not exist yet has empty
    content and is_new=True, telling the generator to create it.
    """

    path: str  # Relative to the project root, or the base name when outside it
    content: str
    language: str  # Language tag such as "typescript" or "python"
    size: int = 0
    mtime: float = 0.0
    imports: Tuple[str, ...] = ()
    exports: Tuple[str, ...] = ()
    is_new: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "imports", tuple(self.imports))
        object.__setattr__(self, "exports", tuple(self.exports))

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        return {
            "path": self.path,
            "content": self.content,
            "language": self.language,
            "size": self.size,
            "mtime": self.mtime,
            "imports": list(self.imports),
            "exports": list(self.exports),
            "is_new": self.is_new,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FileRecord":
        """Deserialize from JSON-compatible dict."""
        return cls(
            path=data["path"],
            content=data["content"],
            language=data.get("language", ""),
            size=data.get("size", 0),
            mtime=data.get("mtime", 0.0),
            imports=tuple(data.get("imports", ())),
            exports=tuple(data.get("exports", ())),
            is_new=data.get("is_new", False),
        )


@dataclass(frozen=True)
class StyleProfile:
    """Coding conventions inferred from a set of sample files."""

    naming_convention: str = NamingConvention.CAMEL_CASE
    indentation: str = Indentation.SPACES
    indent_size: int = 2
    quotes: str = QuoteStyle.SINGLE
    semicolons: bool = True
    async_style: str = AsyncStyle.ASYNC_AWAIT

    def to_dict(self) -> Dict[str, Any]:
        return {
            "naming_convention": self.naming_convention,
            "indentation": self.indentation,
            "indent_size": self.indent_size,
            "quotes": self.quotes,
            "semicolons": self.semicolons,
            "async_style": self.async_style,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StyleProfile":
        defaults = cls()
        return cls(
            naming_convention=data.get("naming_convention", defaults.naming_convention),
            indentation=data.get("indentation", defaults.indentation),
            indent_size=data.get("indent_size", defaults.indent_size),
            quotes=data.get("quotes", defaults.quotes),
            semicolons=data.get("semicolons", defaults.semicolons),
            async_style=data.get("async_style", defaults.async_style),
        )


@dataclass(frozen=True)
class ProjectConfigFlags:
    """Tooling detected from configuration files in the project root."""

    has_strict_typing: bool = False
    has_lint_config: bool = False
    has_formatter_config: bool = False
    package_manager: str = "none"
    frameworks: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "frameworks", tuple(self.frameworks))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "has_strict_typing": self.has_strict_typing,
            "has_lint_config": self.has_lint_config,
            "has_formatter_config": self.has_formatter_config,
            "package_manager": self.package_manager,
            "frameworks": list(self.frameworks),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProjectConfigFlags":
        return cls(
            has_strict_typing=data.get("has_strict_typing", False),
            has_lint_config=data.get("has_lint_config", False),
            has_formatter_config=data.get("has_formatter_config", False),
            package_manager=data.get("package_manager", "none"),
            frameworks=tuple(data.get("frameworks", ())),
        )


@dataclass(frozen=True)
class StructureSummary:
    """Folders and files found by a bounded directory scan.

    Paths are relative to the scanned root and use "/" separators.
    files_by_extension maps an extension without the dot ("" for none)
    to the files carrying it.
    """

    folders: Tuple[str, ...] = ()
    files_by_extension: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)
    total_files: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "folders", tuple(self.folders))
        object.__setattr__(
            self,
            "files_by_extension",
            _freeze_mapping({ext: tuple(paths) for ext, paths in self.files_by_extension.items()}),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "folders": list(self.folders),
            "files_by_extension": {
                ext: list(paths) for ext, paths in self.files_by_extension.items()
            },
            "total_files": self.total_files,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StructureSummary":
        return cls(
            folders=tuple(data.get("folders", ())),
            files_by_extension={
                ext: tuple(paths) for ext, paths in data.get("files_by_extension", {}).items()
            },
            total_files=data.get("total_files", 0),
        )


@dataclass(frozen=True)
class ProjectContextBundle:
    """Immutable snapshot of the project context for one request.

    related_files: explicitly referenced and target files, in request order.
    similar_files: reference-only samples sharing an extension with the targets.
    common_imports / common_patterns: most frequent first, ties in first-seen order.
    """

    related_files: Tuple[FileRecord, ...] = ()
    similar_files: Tuple[FileRecord, ...] = ()
    style: StyleProfile = field(default_factory=StyleProfile)
    common_imports: Tuple[str, ...] = ()
    common_patterns: Tuple[str, ...] = ()
    project_config: ProjectConfigFlags = field(default_factory=ProjectConfigFlags)
    structure: StructureSummary = field(default_factory=StructureSummary)
    project_root: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "related_files", tuple(self.related_files))
        object.__setattr__(self, "similar_files", tuple(self.similar_files))
        object.__setattr__(self, "common_imports", tuple(self.common_imports))
        object.__setattr__(self, "common_patterns", tuple(self.common_patterns))

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        return {
            "related_files": [record.to_dict() for record in self.related_files],
            "similar_files": [record.to_dict() for record in self.similar_files],
            "style": self.style.to_dict(),
            "common_imports": list(self.common_imports),
            "common_patterns": list(self.common_patterns),
            "project_config": self.project_config.to_dict(),
            "structure": self.structure.to_dict(),
            "project_root": self.project_root,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProjectContextBundle":
        """Deserialize from JSON-compatible dict."""
        return cls(
            related_files=tuple(FileRecord.from_dict(r) for r in data.get("related_files", [])),
            similar_files=tuple(FileRecord.from_dict(r) for r in data.get("similar_files", [])),
            style=StyleProfile.from_dict(data.get("style", {})),
            common_imports=tuple(data.get("common_imports", ())),
            common_patterns=tuple(data.get("common_patterns", ())),
            project_config=ProjectConfigFlags.from_dict(data.get("project_config", {})),
            structure=StructureSummary.from_dict(data.get("structure", {})),
            project_root=data.get("project_root", ""),
        )


@dataclass
class CacheEntry:
    """A cached bundle keyed by the fingerprint of its file set."""

    key: str
    files: List[str]  # Canonical (deduplicated, sorted) paths the key was derived from
    staleness_hash: str
    bundle: ProjectContextBundle
    created_at: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "files": list(self.files),
            "staleness_hash": self.staleness_hash,
            "created_at": self.created_at,
            "bundle": self.bundle.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CacheEntry":
        return cls(
            key=data["key"],
            files=list(data["files"]),
            staleness_hash=data["staleness_hash"],
            bundle=ProjectContextBundle.from_dict(data["bundle"]),
            created_at=float(data["created_at"]),
        )


@dataclass
class CacheStatistics:
    """Performance metrics for the context cache."""

    hits: int
    misses: int
    entry_count: int
    approx_size_bytes: int
    max_entries: int = 0
    evictions: int = 0
    invalidations: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "entry_count": self.entry_count,
            "approx_size_bytes": self.approx_size_bytes,
            "max_entries": self.max_entries,
            "evictions": self.evictions,
            "invalidations": self.invalidations,
            "hit_rate": self.hit_rate,
        }


@dataclass
class DiffLine:
    """One line of a hunk.

    line_number is 1-based in the modified text for add/unchanged lines
    and in the original text for remove lines.
    """

    line_type: str  # DiffLineType value
    content: str
    line_number: int
    old_line_number: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "type": self.line_type,
            "content": self.content,
            "line_number": self.line_number,
        }
        if self.old_line_number is not None:
            result["old_line_number"] = self.old_line_number
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DiffLine":
        return cls(
            line_type=data["type"],
            content=data["content"],
            line_number=data["line_number"],
            old_line_number=data.get("old_line_number"),
        )


@dataclass
class DiffHunk:
    """A contiguous region of change with its surrounding unchanged lines."""

    old_start: int
    old_lines: int
    new_start: int
    new_lines: int
    lines: List[DiffLine] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "old_start": self.old_start,
            "old_lines": self.old_lines,
            "new_start": self.new_start,
            "new_lines": self.new_lines,
            "lines": [line.to_dict() for line in self.lines],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DiffHunk":
        return cls(
            old_start=data["old_start"],
            old_lines=data["old_lines"],
            new_start=data["new_start"],
            new_lines=data["new_lines"],
            lines=[DiffLine.from_dict(line) for line in data.get("lines", [])],
        )


@dataclass
class DiffStats:
    additions: int = 0
    deletions: int = 0
    modifications: int = 0

    @property
    def is_empty(self) -> bool:
        return self.additions == 0 and self.deletions == 0 and self.modifications == 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "additions": self.additions,
            "deletions": self.deletions,
            "modifications": self.modifications,
        }


@dataclass
class SemanticChange:
    change_type: str  # SemanticChangeType value
    name: str
    description: str
    impact: str  # Impact value

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.change_type,
            "name": self.name,
            "description": self.description,
            "impact": self.impact,
        }


@dataclass
class BreakingChange:
    change_type: str  # BreakingChangeType value
    description: str
    affected_files: List[str] = field(default_factory=list)
    suggestion: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.change_type,
            "description": self.description,
            "affected_files": list(self.affected_files),
            "suggestion": self.suggestion,
        }


@dataclass
class DiffAnalysis:
    """Line diff plus semantic overlay for one file."""

    hunks: List[DiffHunk]
    semantic_changes: List[SemanticChange]
    breaking_changes: List[BreakingChange]
    stats: DiffStats
    summary: str

    @property
    def has_changes(self) -> bool:
        return bool(self.hunks or self.semantic_changes or self.breaking_changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hunks": [hunk.to_dict() for hunk in self.hunks],
            "semantic_changes": [change.to_dict() for change in self.semantic_changes],
            "breaking_changes": [change.to_dict() for change in self.breaking_changes],
            "stats": self.stats.to_dict(),
            "summary": self.summary,
        }


@dataclass
class ExtractedFileReference:
    """A file path mentioned in free-form text and its resolution."""

    original_path: str  # As written, with surrounding delimiters stripped
    normalized_path: str  # Absolute path after resolution
    exists: bool
    extension: str  # Without the dot
    file_name: str

    @property
    def is_absolute(self) -> bool:
        return _is_absolute_reference(self.original_path)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "original_path": self.original_path,
            "normalized_path": self.normalized_path,
            "exists": self.exists,
            "extension": self.extension,
            "file_name": self.file_name,
        }


def _is_absolute_reference(path: str) -> bool:
    if path.startswith("/"):
        return True
    # Windows drive path such as C:\src\app.ts or C:/src/app.ts
    return len(path) > 2 and path[0].isalpha() and path[1] == ":" and path[2] in "\\/"
