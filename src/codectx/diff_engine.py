# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Line diff with a semantic and breaking-change overlay.

The line diff walks two cursors over the original and modified lines:
- Equal lines advance both cursors and are recorded only inside an open hunk.
- On a mismatch a hunk is opened if none is open. When the original is
  exhausted the modified line is an addition; when the modified text is
  exhausted the original line is a removal; otherwise the pair is a
  removal immediately followed by an addition and both cursors advance.
- After each step a hunk with more than five lines whose last three
  lines are unchanged is closed; the next mismatch opens a new one.

The walk does not realign after an insertion or deletion, so every line
after such a change shows as modified. Hunk output is consumed by preview
rendering exactly as produced.
"""

import logging
from typing import Dict, List, Optional

from .analyzers import AnalyzerRegistry, SourceOutline, create_default_registry
from .models import (
    BreakingChange,
    BreakingChangeType,
    DiffAnalysis,
    DiffHunk,
    DiffLine,
    DiffLineType,
    DiffStats,
    Impact,
    SemanticChange,
    SemanticChangeType,
)
from .scanner import extension_of

logger = logging.getLogger(__name__)

# A hunk is closed once it is longer than this and ends in CLOSING_CONTEXT unchanged lines
HUNK_MIN_LINES_TO_CLOSE = 5
CLOSING_CONTEXT = 3


def _plural(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


def compute_hunks(original: str, modified: str) -> List[DiffHunk]:
    """Compute the line hunks between two texts split on "\\n"."""
    original_lines = original.split("\n")
    modified_lines = modified.split("\n")
    hunks: List[DiffHunk] = []
    current: Optional[DiffHunk] = None
    old_index = 0
    new_index = 0

    while old_index < len(original_lines) or new_index < len(modified_lines):
        old_exhausted = old_index >= len(original_lines)
        new_exhausted = new_index >= len(modified_lines)

        if (
            not old_exhausted
            and not new_exhausted
            and original_lines[old_index] == modified_lines[new_index]
        ):
            if current is not None:
                current.lines.append(
                    DiffLine(
                        line_type=DiffLineType.UNCHANGED,
                        content=modified_lines[new_index],
                        line_number=new_index + 1,
                        old_line_number=old_index + 1,
                    )
                )
            old_index += 1
            new_index += 1
        else:
            if current is None:
                current = DiffHunk(
                    old_start=old_index + 1,
                    old_lines=0,
                    new_start=new_index + 1,
                    new_lines=0,
                )
                hunks.append(current)

            if old_exhausted:
                current.lines.append(
                    DiffLine(
                        line_type=DiffLineType.ADD,
                        content=modified_lines[new_index],
                        line_number=new_index + 1,
                    )
                )
                current.new_lines += 1
                new_index += 1
            elif new_exhausted:
                current.lines.append(
                    DiffLine(
                        line_type=DiffLineType.REMOVE,
                        content=original_lines[old_index],
                        line_number=old_index + 1,
                        old_line_number=old_index + 1,
                    )
                )
                current.old_lines += 1
                old_index += 1
            else:
                current.lines.append(
                    DiffLine(
                        line_type=DiffLineType.REMOVE,
                        content=original_lines[old_index],
                        line_number=old_index + 1,
                        old_line_number=old_index + 1,
                    )
                )
                current.lines.append(
                    DiffLine(
                        line_type=DiffLineType.ADD,
                        content=modified_lines[new_index],
                        line_number=new_index + 1,
                    )
                )
                current.old_lines += 1
                current.new_lines += 1
                old_index += 1
                new_index += 1

        if current is not None and len(current.lines) > HUNK_MIN_LINES_TO_CLOSE:
            tail = current.lines[-CLOSING_CONTEXT:]
            if all(line.line_type == DiffLineType.UNCHANGED for line in tail):
                current = None

    return hunks


def compute_stats(hunks: List[DiffHunk]) -> DiffStats:
    """Count added and removed lines.

    A removal directly followed by an addition also counts as a modification.
    """
    stats = DiffStats()
    for hunk in hunks:
        previous: Optional[DiffLine] = None
        for line in hunk.lines:
            if line.line_type == DiffLineType.ADD:
                stats.additions += 1
                if previous is not None and previous.line_type == DiffLineType.REMOVE:
                    stats.modifications += 1
            elif line.line_type == DiffLineType.REMOVE:
                stats.deletions += 1
            previous = line
    return stats


def build_summary(
    stats: DiffStats,
    semantic_changes: List[SemanticChange],
    breaking_changes: List[BreakingChange],
) -> str:
    """Short human-readable description of a diff."""
    parts: List[str] = []
    if stats.additions:
        parts.append(f"+{_plural(stats.additions, 'line')} added")
    if stats.deletions:
        parts.append(f"-{_plural(stats.deletions, 'line')} removed")
    if stats.modifications:
        parts.append(f"{_plural(stats.modifications, 'line')} modified")
    if semantic_changes:
        parts.append(_plural(len(semantic_changes), "semantic change"))
    if breaking_changes:
        parts.append(_plural(len(breaking_changes), "breaking change"))
    return ", ".join(parts) or "No changes"


class DiffEngine:
    """Analyzes the difference between two versions of a file.

    Function, import and export names come from the analyzer registry,
    chosen by the extension of the optional path. Without a path the
    JavaScript/TypeScript textual patterns apply.
    """

    def __init__(self, analyzers: Optional[AnalyzerRegistry] = None):
        self.analyzers = analyzers or create_default_registry()

    def analyze_diff(
        self, original: str, modified: str, path: Optional[str] = None
    ) -> DiffAnalysis:
        """Compare two versions of a text.

        Args:
            original: Text before the change.
            modified: Text after the change.
            path: Optional file path, used to pick the outline strategy and
                reported as the affected file of breaking changes.

        Returns:
            DiffAnalysis with hunks, semantic changes, breaking changes,
            stats and summary.
        """
        extension = extension_of(path) if path else ""
        before = self.analyzers.analyze(original, extension)
        after = self.analyzers.analyze(modified, extension)

        hunks = compute_hunks(original, modified)
        semantic_changes = self.detect_semantic_changes(before, after)
        breaking_changes = self.detect_breaking_changes(before, after, path)
        stats = compute_stats(hunks)

        analysis = DiffAnalysis(
            hunks=hunks,
            semantic_changes=semantic_changes,
            breaking_changes=breaking_changes,
            stats=stats,
            summary=build_summary(stats, semantic_changes, breaking_changes),
        )
        logger.debug(f"Diff of {path or '<text>'}: {analysis.summary}")
        return analysis

    def detect_semantic_changes(
        self, before: SourceOutline, after: SourceOutline
    ) -> List[SemanticChange]:
        """Names added or removed between two outlines."""
        changes: List[SemanticChange] = []

        def compare(
            old: List[str],
            new: List[str],
            kind: str,
            added_type: str,
            added_impact: str,
            removed_type: str,
            removed_impact: str,
        ) -> None:
            old_names = set(old)
            new_names = set(new)
            for name in new:
                if name not in old_names:
                    changes.append(
                        SemanticChange(
                            change_type=added_type,
                            name=name,
                            description=f"{kind} '{name}' was added",
                            impact=added_impact,
                        )
                    )
            for name in old:
                if name not in new_names:
                    changes.append(
                        SemanticChange(
                            change_type=removed_type,
                            name=name,
                            description=f"{kind} '{name}' was removed",
                            impact=removed_impact,
                        )
                    )

        compare(
            list(before.functions),
            list(after.functions),
            "Function",
            SemanticChangeType.FUNCTION_ADDED,
            Impact.MEDIUM,
            SemanticChangeType.FUNCTION_REMOVED,
            Impact.HIGH,
        )
        compare(
            before.imports,
            after.imports,
            "Import",
            SemanticChangeType.IMPORT_ADDED,
            Impact.LOW,
            SemanticChangeType.IMPORT_REMOVED,
            Impact.MEDIUM,
        )
        compare(
            before.exports,
            after.exports,
            "Export",
            SemanticChangeType.EXPORT_ADDED,
            Impact.LOW,
            SemanticChangeType.EXPORT_REMOVED,
            Impact.HIGH,
        )
        return changes

    def detect_breaking_changes(
        self, before: SourceOutline, after: SourceOutline, path: Optional[str] = None
    ) -> List[BreakingChange]:
        """Removed exports and functions whose parameter list changed."""
        affected = [path] if path else []
        changes: List[BreakingChange] = []

        remaining_exports = set(after.exports)
        for name in before.exports:
            if name not in remaining_exports:
                changes.append(
                    BreakingChange(
                        change_type=BreakingChangeType.REMOVAL,
                        description=f"Export '{name}' was removed; dependent code may break",
                        affected_files=list(affected),
                        suggestion=(
                            f"Consider deprecating '{name}' instead of removing it, "
                            "or migrate its callers in the same change"
                        ),
                    )
                )

        new_signatures: Dict[str, str] = after.functions
        for name, old_params in before.functions.items():
            new_params = new_signatures.get(name)
            if new_params is not None and new_params != old_params:
                changes.append(
                    BreakingChange(
                        change_type=BreakingChangeType.SIGNATURE_CHANGE,
                        description=(
                            f"Signature of '{name}' changed from ({old_params}) to ({new_params})"
                        ),
                        affected_files=list(affected),
                        suggestion=f"Check every call site of '{name}'",
                    )
                )

        return changes
