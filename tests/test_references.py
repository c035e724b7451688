# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Tests for FileReferenceExtractor.

Covers the five extraction patterns, their ordering, deduplication,
resolution against the project root and the fallback project search.
"""

from pathlib import Path
from typing import List

import pytest

from codectx.references import FileReferenceExtractor


@pytest.fixture
def project(tmp_path: Path) -> Path:
    (tmp_path / "src" / "utils").mkdir(parents=True)
    (tmp_path / "src" / "app.ts").write_text("export const app = 1;\n")
    (tmp_path / "src" / "utils" / "helpers.ts").write_text("export function help() {}\n")
    return tmp_path


def _originals(extractor: FileReferenceExtractor, text: str) -> List[str]:
    return [reference.original_path for reference in extractor.extract_file_paths(text)]


class TestPatterns:
    """Tests for each extraction pattern."""

    def test_backtick_path_is_extracted_once(self, project: Path) -> None:
        extractor = FileReferenceExtractor(project)

        references = extractor.extract_file_paths("please edit `src/app.ts` now")

        assert len(references) == 1
        assert references[0].original_path == "src/app.ts"
        assert references[0].exists is True
        assert references[0].normalized_path == str(project / "src" / "app.ts")
        assert references[0].extension == "ts"
        assert references[0].file_name == "app.ts"

    def test_relative_and_bare_paths(self, project: Path) -> None:
        extractor = FileReferenceExtractor(project)

        assert _originals(extractor, "update src/components/Button.tsx and also utils.ts") == [
            "src/components/Button.tsx",
            "utils.ts",
        ]

    def test_posix_absolute_path(self, project: Path) -> None:
        extractor = FileReferenceExtractor(project)

        references = extractor.extract_file_paths("look at /home/user/project/main.py please")

        assert len(references) == 1
        reference = references[0]
        assert reference.original_path == "/home/user/project/main.py"
        assert reference.normalized_path == "/home/user/project/main.py"
        assert reference.exists is False
        assert reference.is_absolute

    def test_windows_absolute_path(self, project: Path) -> None:
        extractor = FileReferenceExtractor(project)

        references = extractor.extract_file_paths("open C:\\Users\\dev\\main.ts")

        assert len(references) == 1
        reference = references[0]
        assert reference.original_path == "C:\\Users\\dev\\main.ts"
        assert reference.normalized_path == "C:\\Users\\dev\\main.ts"
        assert reference.file_name == "main.ts"
        assert reference.extension == "ts"
        assert reference.is_absolute

    def test_relative_path_tail_is_not_absolute(self, project: Path) -> None:
        extractor = FileReferenceExtractor(project)

        references = extractor.extract_file_paths("edit src/utils/helpers.ts")

        assert [r.original_path for r in references] == ["src/utils/helpers.ts"]
        assert not references[0].is_absolute

    def test_pattern_order(self, project: Path) -> None:
        extractor = FileReferenceExtractor(project)

        assert _originals(extractor, "edit main.ts and `lib/x.ts` and /opt/y.ts") == [
            "/opt/y.ts",
            "lib/x.ts",
            "main.ts",
        ]

    def test_sentence_punctuation(self, project: Path) -> None:
        extractor = FileReferenceExtractor(project)

        assert _originals(extractor, "Fix the bug in main.ts.") == ["main.ts"]
        assert _originals(extractor, "Is it in (main.ts)?") == ["main.ts"]

    @pytest.mark.parametrize(
        "text",
        [
            "upgrade to version 1.2.3",
            "see https://example.com/page.html for details",
            "run `npm test` first",
            "use a helper, e.g. a function",
            "",
        ],
    )
    def test_non_references(self, project: Path, text: str) -> None:
        assert FileReferenceExtractor(project).extract_file_paths(text) == []

    def test_backtick_without_extension_does_not_hide_other_paths(self, project: Path) -> None:
        extractor = FileReferenceExtractor(project)

        assert _originals(extractor, "run `npm test` then edit index.js") == ["index.js"]


class TestResolution:
    def test_duplicates_are_removed(self, project: Path) -> None:
        extractor = FileReferenceExtractor(project)

        assert _originals(extractor, "edit main.ts, then test main.ts") == ["main.ts"]

    def test_same_file_through_different_spellings(self, project: Path) -> None:
        extractor = FileReferenceExtractor(project)

        references = extractor.extract_file_paths("compare `src/app.ts` with ./src/app.ts")

        assert len(references) == 1
        assert references[0].original_path == "src/app.ts"

    def test_fallback_search_finds_nested_file(self, project: Path) -> None:
        extractor = FileReferenceExtractor(project)

        references = extractor.extract_file_paths("fix helpers.ts")

        assert len(references) == 1
        assert references[0].exists is True
        assert references[0].normalized_path == str(project / "src" / "utils" / "helpers.ts")

    def test_fallback_search_depth_is_bounded(self, project: Path) -> None:
        deep = project / "a" / "b" / "c"
        deep.mkdir(parents=True)
        (deep / "buried.ts").write_text("")

        references = FileReferenceExtractor(project).extract_file_paths("fix buried.ts")

        assert references[0].exists is False
        assert references[0].normalized_path == str(project / "buried.ts")

    def test_unresolved_reference_is_returned(self, project: Path) -> None:
        references = FileReferenceExtractor(project).extract_file_paths("create src/new-file.ts")

        assert len(references) == 1
        assert references[0].exists is False
        assert references[0].normalized_path == str(project / "src" / "new-file.ts")

    def test_overlong_file_name_is_unresolved(self, project: Path) -> None:
        name = "a" * 300 + ".ts"

        references = FileReferenceExtractor(project).extract_file_paths(f"please edit {name}")

        assert [r.original_path for r in references] == [name]
        assert references[0].exists is False
        assert references[0].normalized_path == str(project / name)


class TestPrimaryFile:
    def test_prefers_existing_file(self, project: Path) -> None:
        extractor = FileReferenceExtractor(project)

        primary = extractor.extract_primary_file("compare /opt/x.ts with new.ts and src/app.ts")

        assert primary is not None
        assert primary.original_path == "src/app.ts"

    def test_then_absolute_path(self, project: Path) -> None:
        extractor = FileReferenceExtractor(project)

        primary = extractor.extract_primary_file("move new.ts next to /opt/x.ts")

        assert primary is not None
        assert primary.original_path == "/opt/x.ts"

    def test_then_first_mention(self, project: Path) -> None:
        extractor = FileReferenceExtractor(project)

        primary = extractor.extract_primary_file("create one.ts and two.ts")

        assert primary is not None
        assert primary.original_path == "one.ts"

    def test_no_references(self, project: Path) -> None:
        assert FileReferenceExtractor(project).extract_primary_file("make it faster") is None


class TestIntent:
    @pytest.mark.parametrize(
        "text,expected",
        [
            ("Please refactor the parser", True),
            ("Fix the login bug", True),
            ("UPDATE the readme", True),
            ("create a new component", False),
            ("add a prefix option", False),
        ],
    )
    def test_is_editing_existing_file(self, project: Path, text: str, expected: bool) -> None:
        assert FileReferenceExtractor(project).is_editing_existing_file(text) is expected

    def test_file_not_found_message(self, project: Path) -> None:
        extractor = FileReferenceExtractor(project)
        reference = extractor.extract_file_paths("edit lib/missing.ts")[0]

        message = extractor.file_not_found_message(reference)

        assert "lib/missing.ts" in message
        assert reference.normalized_path in message
        assert 'create missing.ts' in message
