# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Tests for DiffEngine line diffs and semantic overlay."""

from codectx.diff_engine import DiffEngine, build_summary, compute_hunks, compute_stats
from codectx.models import (
    BreakingChangeType,
    DiffLineType,
    DiffStats,
    Impact,
    SemanticChangeType,
)


class TestLineDiff:
    """Tests for the two-cursor hunk computation."""

    def test_identical_texts(self) -> None:
        analysis = DiffEngine().analyze_diff("a\nb\nc", "a\nb\nc")

        assert analysis.hunks == []
        assert analysis.stats.is_empty
        assert analysis.summary == "No changes"
        assert not analysis.has_changes

    def test_single_line_change(self) -> None:
        analysis = DiffEngine().analyze_diff("a\nb", "a\nx")

        assert len(analysis.hunks) == 1
        hunk = analysis.hunks[0]
        assert (hunk.old_start, hunk.old_lines, hunk.new_start, hunk.new_lines) == (2, 1, 2, 1)
        assert [(line.line_type, line.content) for line in hunk.lines] == [
            (DiffLineType.REMOVE, "b"),
            (DiffLineType.ADD, "x"),
        ]
        assert hunk.lines[0].line_number == 2
        assert hunk.lines[0].old_line_number == 2
        assert hunk.lines[1].line_number == 2
        assert analysis.stats.to_dict() == {"additions": 1, "deletions": 1, "modifications": 1}
        assert analysis.summary == "+1 line added, -1 line removed, 1 line modified"

    def test_appended_line(self) -> None:
        hunks = compute_hunks("a", "a\nb")

        assert len(hunks) == 1
        assert hunks[0].old_start == 2
        assert hunks[0].old_lines == 0
        assert hunks[0].new_lines == 1
        assert [line.line_type for line in hunks[0].lines] == [DiffLineType.ADD]

    def test_removed_line(self) -> None:
        hunks = compute_hunks("a\nb", "a")

        assert len(hunks) == 1
        assert [(line.line_type, line.content) for line in hunks[0].lines] == [
            (DiffLineType.REMOVE, "b")
        ]
        assert compute_stats(hunks).to_dict() == {
            "additions": 0,
            "deletions": 1,
            "modifications": 0,
        }

    def test_hunk_closes_after_trailing_context(self) -> None:
        original = "\n".join(str(n) for n in range(1, 11))
        modified = original.replace("2", "X", 1).replace("9", "Y")

        hunks = compute_hunks(original, modified)

        assert len(hunks) == 2
        first, second = hunks
        assert [line.content for line in first.lines] == ["2", "X", "3", "4", "5", "6"]
        assert (second.old_start, second.new_start) == (9, 9)
        assert [line.line_type for line in second.lines] == [
            DiffLineType.REMOVE,
            DiffLineType.ADD,
            DiffLineType.UNCHANGED,
        ]

    def test_line_numbers_are_monotonic_per_cursor(self) -> None:
        original = "a\nb\nc\nd\ne"
        modified = "a\nB\nc\nD\ne\nf\ng"

        for hunk in compute_hunks(original, modified):
            new_numbers = [
                line.line_number for line in hunk.lines if line.line_type != DiffLineType.REMOVE
            ]
            old_numbers = [
                line.old_line_number for line in hunk.lines if line.old_line_number is not None
            ]
            assert new_numbers == sorted(new_numbers)
            assert old_numbers == sorted(old_numbers)

    def test_insertion_shifts_following_lines(self) -> None:
        # No realignment: every line after an insertion shows as modified
        analysis = DiffEngine().analyze_diff("a\nb\nc", "a\nnew\nb\nc")

        assert analysis.stats.to_dict() == {"additions": 3, "deletions": 2, "modifications": 2}


class TestSemanticChanges:
    def test_added_import(self) -> None:
        original = "import a from 'a';\nexport function foo(x) {}\n"
        modified = "import a from 'a';\nimport x from 'x';\nexport function foo(x) {}\n"

        analysis = DiffEngine().analyze_diff(original, modified, "src/m.ts")

        assert len(analysis.semantic_changes) == 1
        change = analysis.semantic_changes[0]
        assert change.change_type == SemanticChangeType.IMPORT_ADDED
        assert change.name == "x"
        assert change.impact == Impact.LOW
        assert analysis.breaking_changes == []

    def test_removed_import_and_added_function(self) -> None:
        original = "const fs = require('fs');\n"
        modified = "function read(path) {}\n"

        changes = DiffEngine().analyze_diff(original, modified).semantic_changes

        assert [(c.change_type, c.name, c.impact) for c in changes] == [
            (SemanticChangeType.FUNCTION_ADDED, "read", Impact.MEDIUM),
            (SemanticChangeType.IMPORT_REMOVED, "fs", Impact.MEDIUM),
        ]

    def test_removed_export_is_breaking(self) -> None:
        original = "export function foo() {}\nexport function bar() {}\n"
        modified = "export function bar() {}\n"

        analysis = DiffEngine().analyze_diff(original, modified, "src/m.ts")

        assert [(c.change_type, c.name) for c in analysis.semantic_changes] == [
            (SemanticChangeType.FUNCTION_REMOVED, "foo"),
            (SemanticChangeType.EXPORT_REMOVED, "foo"),
        ]
        assert all(c.impact == Impact.HIGH for c in analysis.semantic_changes)

        assert len(analysis.breaking_changes) == 1
        breaking = analysis.breaking_changes[0]
        assert breaking.change_type == BreakingChangeType.REMOVAL
        assert "foo" in breaking.description
        assert breaking.affected_files == ["src/m.ts"]
        assert breaking.suggestion

        assert analysis.summary == (
            "+2 lines added, -3 lines removed, 2 lines modified, "
            "2 semantic changes, 1 breaking change"
        )

    def test_signature_change(self) -> None:
        analysis = DiffEngine().analyze_diff(
            "export function foo(a) {}\n", "export function foo(a, b) {}\n"
        )

        assert analysis.semantic_changes == []
        assert len(analysis.breaking_changes) == 1
        breaking = analysis.breaking_changes[0]
        assert breaking.change_type == BreakingChangeType.SIGNATURE_CHANGE
        assert "(a)" in breaking.description
        assert "(a, b)" in breaking.description
        assert breaking.affected_files == []

    def test_python_uses_structural_outline(self) -> None:
        original = "import os\n\n\ndef load(path):\n    pass\n"
        modified = "import os\nimport json\n\n\ndef load(path, strict=False):\n    pass\n"

        analysis = DiffEngine().analyze_diff(original, modified, "pkg/loader.py")

        assert [(c.change_type, c.name) for c in analysis.semantic_changes] == [
            (SemanticChangeType.IMPORT_ADDED, "json"),
        ]
        assert [b.change_type for b in analysis.breaking_changes] == [
            BreakingChangeType.SIGNATURE_CHANGE
        ]
        assert analysis.breaking_changes[0].affected_files == ["pkg/loader.py"]

    def test_whitespace_only_parameter_change_is_not_breaking(self) -> None:
        analysis = DiffEngine().analyze_diff(
            "function add(a, b) {}\n", "function add(a,\n    b) {}\n"
        )

        assert analysis.breaking_changes == []


class TestSummary:
    def test_pluralization(self) -> None:
        assert build_summary(DiffStats(additions=2), [], []) == "+2 lines added"
        assert build_summary(DiffStats(deletions=1), [], []) == "-1 line removed"
        assert build_summary(DiffStats(), [], []) == "No changes"
