# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Tests for core data models."""

import dataclasses
import json

import pytest

from codectx.models import (
    BreakingChange,
    BreakingChangeType,
    CacheEntry,
    CacheStatistics,
    DiffAnalysis,
    DiffHunk,
    DiffLine,
    DiffLineType,
    DiffStats,
    ExtractedFileReference,
    FileRecord,
    ProjectConfigFlags,
    ProjectContextBundle,
    StructureSummary,
    StyleProfile,
)


def _sample_bundle() -> ProjectContextBundle:
    return ProjectContextBundle(
        related_files=[
            FileRecord(
                path="src/app.ts",
                content="import x from 'x';\n",
                language="typescript",
                size=19,
                mtime=1700000000.5,
                imports=["x"],
                exports=[],
            ),
            FileRecord(path="src/new.ts", content="", language="typescript", is_new=True),
        ],
        similar_files=[
            FileRecord(path="src/util.ts", content="export const a = 1;", language="typescript")
        ],
        style=StyleProfile(naming_convention="snake_case", indent_size=4),
        common_imports=["x", "y"],
        common_patterns=["export default"],
        project_config=ProjectConfigFlags(
            has_strict_typing=True, package_manager="npm", frameworks=["React"]
        ),
        structure=StructureSummary(
            folders=["src"],
            files_by_extension={"ts": ["src/app.ts", "src/util.ts"]},
            total_files=2,
        ),
        project_root="/repo",
    )


class TestStyleProfile:
    def test_defaults(self) -> None:
        profile = StyleProfile()
        assert profile.naming_convention == "camelCase"
        assert profile.indentation == "spaces"
        assert profile.indent_size == 2
        assert profile.quotes == "single"
        assert profile.semicolons is True
        assert profile.async_style == "async/await"

    def test_from_dict_fills_missing_fields(self) -> None:
        profile = StyleProfile.from_dict({"quotes": "double"})
        assert profile.quotes == "double"
        assert profile.indentation == "spaces"


class TestProjectContextBundle:
    """Tests for bundle immutability and serialization."""

    def test_sequences_are_tuples(self) -> None:
        bundle = _sample_bundle()
        assert isinstance(bundle.related_files, tuple)
        assert isinstance(bundle.similar_files, tuple)
        assert isinstance(bundle.common_imports, tuple)
        assert isinstance(bundle.related_files[0].imports, tuple)
        assert isinstance(bundle.project_config.frameworks, tuple)

    def test_bundle_is_frozen(self) -> None:
        bundle = _sample_bundle()
        with pytest.raises(dataclasses.FrozenInstanceError):
            bundle.common_imports = ()  # type: ignore[misc]

    def test_structure_mapping_is_read_only(self) -> None:
        bundle = _sample_bundle()
        with pytest.raises(TypeError):
            bundle.structure.files_by_extension["py"] = ("a.py",)  # type: ignore[index]

    def test_round_trip_through_json(self) -> None:
        bundle = _sample_bundle()
        data = json.loads(json.dumps(bundle.to_dict()))
        restored = ProjectContextBundle.from_dict(data)

        assert restored == bundle
        assert restored.related_files[1].is_new is True
        assert restored.structure.files_by_extension["ts"] == ("src/app.ts", "src/util.ts")

    def test_empty_bundle_from_empty_dict(self) -> None:
        bundle = ProjectContextBundle.from_dict({})
        assert bundle.related_files == ()
        assert bundle.style == StyleProfile()
        assert bundle.project_config.package_manager == "none"


class TestCacheModels:
    def test_cache_entry_round_trip(self) -> None:
        entry = CacheEntry(
            key="abc",
            files=["/repo/a.ts"],
            staleness_hash="def",
            bundle=_sample_bundle(),
            created_at=123.0,
        )
        restored = CacheEntry.from_dict(json.loads(json.dumps(entry.to_dict())))
        assert restored == entry

    def test_hit_rate(self) -> None:
        empty = CacheStatistics(hits=0, misses=0, entry_count=0, approx_size_bytes=0)
        assert empty.hit_rate == 0.0
        stats = CacheStatistics(hits=3, misses=1, entry_count=1, approx_size_bytes=10)
        assert stats.hit_rate == 0.75
        assert stats.to_dict()["hit_rate"] == 0.75


class TestDiffModels:
    def test_diff_line_uses_type_key(self) -> None:
        line = DiffLine(line_type=DiffLineType.ADD, content="x", line_number=2)
        data = line.to_dict()
        assert data == {"type": "add", "content": "x", "line_number": 2}
        assert DiffLine.from_dict(data) == line

    def test_hunk_round_trip(self) -> None:
        hunk = DiffHunk(
            old_start=2,
            old_lines=1,
            new_start=2,
            new_lines=1,
            lines=[
                DiffLine(DiffLineType.REMOVE, "b", 2, old_line_number=2),
                DiffLine(DiffLineType.ADD, "x", 2),
            ],
        )
        assert DiffHunk.from_dict(hunk.to_dict()) == hunk

    def test_diff_analysis_has_changes(self) -> None:
        empty = DiffAnalysis(
            hunks=[],
            semantic_changes=[],
            breaking_changes=[],
            stats=DiffStats(),
            summary="No changes",
        )
        assert not empty.has_changes
        assert empty.stats.is_empty

        breaking = DiffAnalysis(
            hunks=[],
            semantic_changes=[],
            breaking_changes=[BreakingChange(BreakingChangeType.REMOVAL, "gone")],
            stats=DiffStats(),
            summary="1 breaking change",
        )
        assert breaking.has_changes
        assert breaking.to_dict()["breaking_changes"][0]["type"] == "removal"


class TestExtractedFileReference:
    @pytest.mark.parametrize(
        "original_path,expected",
        [
            ("/home/user/app.ts", True),
            ("C:\\src\\app.ts", True),
            ("C:/src/app.ts", True),
            ("src/app.ts", False),
            ("app.ts", False),
        ],
    )
    def test_is_absolute(self, original_path: str, expected: bool) -> None:
        reference = ExtractedFileReference(
            original_path=original_path,
            normalized_path=original_path,
            exists=False,
            extension="ts",
            file_name="app.ts",
        )
        assert reference.is_absolute is expected
